"""
Constants
Centralised storage for report lifecycle values, selection limits and user-facing messages.
"""
MAX_RELEVANT_FILES = 10
TITLE_MAX_LENGTH = 50

# Report lifecycle
STATUS_OPEN = "open"
STATUS_CONFIRMED = "confirmed"

# Report id prefixes
REPORT_ID_PREFIX = "report"
FALLBACK_ID_PREFIX = "fallback"

# Messages surfaced through the HTTP layer
MSG_NOT_FOUND = "Bug report not found"
MSG_DESCRIPTION_REQUIRED = "Bug description is required"
MSG_REPO_PATH_REQUIRED = "Repository path is required"
MSG_REPORT_ID_REQUIRED = "Report ID is required"
MSG_INFO_REQUIRED = "Additional information is required"
MSG_INFO_SUBMITTED = "Additional information submitted successfully"
MSG_RATE_LIMITED = "Too many bug reports submitted, please try again later."

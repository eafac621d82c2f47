"""
Ticket Publisher
================
Files confirmed reports as Linear issues through Linear's GraphQL API.

Publishing Flow:
    1. Resolve team: configured id, else the first team in the workspace
       (no team / lookup failure → no ticket, return None)
    2. Build description: report markdown + files examined + screenshots
    3. Resolve labels: "bug" if present; "high"/"urgent" when the root
       cause mentions a crash or something critical
       (label lookup failure → continue without labels)
    4. Create the issue (priority 2). Errors here propagate to the caller.

Follow-up answers submitted after confirmation are posted as a comment on
the linked issue; comment failures are logged and swallowed.

Without an API key every operation is a no-op returning None.
"""
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

import httpx

from app.core.config import Settings
from app.models.bug_report import StructuredReport
from app.models.report_record import TicketRef

logger = logging.getLogger(__name__)

DEFAULT_PRIORITY = 2

_TEAMS_QUERY = "query Teams { teams { nodes { id name } } }"

_LABELS_QUERY = "query IssueLabels { issueLabels { nodes { id name } } }"

_CREATE_ISSUE_MUTATION = """
mutation IssueCreate($input: IssueCreateInput!) {
  issueCreate(input: $input) {
    success
    issue { id number url title }
  }
}
"""

_CREATE_COMMENT_MUTATION = """
mutation CommentCreate($input: CommentCreateInput!) {
  commentCreate(input: $input) { success }
}
"""

_PRIORITY_TRIGGERS = ("crash", "critical")
_PRIORITY_LABELS = ("high", "urgent")


class TicketError(Exception):
    """The tracker rejected a request or returned an unusable payload."""


def build_ticket_description(
    markdown: str,
    files: Iterable[str],
    screenshots: Iterable[str] = (),
) -> str:
    """Issue body: the analysis, the files examined and any screenshots."""
    files_list = "\n".join(f"- `{path}`" for path in files)
    description = f"## AI Bug Analysis\n{markdown}\n\n## Files Examined\n{files_list}"

    shots = list(screenshots)
    if shots:
        description += "\n\n## Screenshots\n" + "\n".join(
            f"![Screenshot]({url})" for url in shots
        )
    return description


def select_label_ids(report: StructuredReport, labels: List[Dict[str, Any]]) -> List[str]:
    """Pick the bug label and, for crash/critical root causes, a priority label."""
    label_ids: List[str] = []

    bug_label = next(
        (label for label in labels if str(label.get("name", "")).lower() == "bug"), None
    )
    if bug_label:
        label_ids.append(bug_label["id"])

    root_cause = report.suspected_root_cause.lower()
    if any(trigger in root_cause for trigger in _PRIORITY_TRIGGERS):
        priority_label = next(
            (
                label for label in labels
                if str(label.get("name", "")).lower() in _PRIORITY_LABELS
            ),
            None,
        )
        if priority_label:
            label_ids.append(priority_label["id"])
    return label_ids


def format_follow_up_comment(responses: Mapping[str, Any]) -> str:
    sections = [
        f"### {kind[:1].upper() + kind[1:].replace('_', ' ')}\n{answer}"
        for kind, answer in responses.items()
    ]
    return "## Additional Information From User\n\n" + "\n\n".join(sections)


class LinearTicketPublisher:
    """
    Linear GraphQL client scoped to what bug filing needs.

    Parameters
    ----------
    api_key : str or None
        Linear API key; None disables publishing.
    team_id : str or None
        Default team for new issues.
    api_url : str
        GraphQL endpoint.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        team_id: Optional[str] = None,
        api_url: str = "https://api.linear.app/graphql",
        timeout_seconds: float = 30.0,
    ) -> None:
        self.api_key = api_key
        self.team_id = team_id
        self.api_url = api_url
        self.timeout_seconds = timeout_seconds
        self._http: Optional[httpx.AsyncClient] = None

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def _get_http(self) -> httpx.AsyncClient:
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout_seconds))
        return self._http

    async def close(self) -> None:
        if self._http and not self._http.is_closed:
            await self._http.aclose()
            self._http = None

    async def _graphql(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        http = await self._get_http()
        headers = {
            "Authorization": self.api_key,
            "Content-Type": "application/json",
        }
        payload: Dict[str, Any] = {"query": query}
        if variables:
            payload["variables"] = variables

        try:
            resp = await http.post(self.api_url, json=payload, headers=headers)
            resp.raise_for_status()
            body = resp.json()
        except httpx.HTTPStatusError as e:
            raise TicketError(f"Linear returned HTTP {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            raise TicketError(f"Linear request failed: {e}") from e

        if not isinstance(body, dict):
            raise TicketError("Linear returned a non-object payload")
        if body.get("errors"):
            messages = "; ".join(
                str(err.get("message", err)) if isinstance(err, dict) else str(err)
                for err in body["errors"]
            )
            raise TicketError(f"Linear GraphQL error: {messages}")
        data = body.get("data") or {}
        if not isinstance(data, dict):
            raise TicketError("Linear returned a non-object data field")
        return data

    @staticmethod
    def _nodes(data: Dict[str, Any], field: str) -> List[Dict[str, Any]]:
        """Return ``data[field].nodes`` keeping only nodes that carry an id."""
        connection = data.get(field) or {}
        if not isinstance(connection, dict):
            raise TicketError(f"Linear '{field}' is not a connection object")
        nodes = connection.get("nodes") or []
        if not isinstance(nodes, list):
            raise TicketError(f"Linear '{field}.nodes' is not a list")
        return [node for node in nodes if isinstance(node, dict) and node.get("id")]

    async def _resolve_team(self, team_id: Optional[str]) -> Optional[str]:
        if team_id:
            return team_id
        try:
            teams = self._nodes(await self._graphql(_TEAMS_QUERY), "teams")
        except TicketError as e:
            logger.error("Error fetching Linear teams: %s", e)
            return None

        if not teams:
            logger.warning("No teams found in Linear account. Cannot create issue.")
            return None
        return teams[0]["id"]

    async def _fetch_labels(self) -> List[Dict[str, Any]]:
        try:
            return self._nodes(await self._graphql(_LABELS_QUERY), "issueLabels")
        except TicketError as e:
            logger.error("Error fetching labels, continuing without labels: %s", e)
            return []

    async def publish(
        self,
        report: StructuredReport,
        markdown: str,
        files: Iterable[str],
        screenshots: Iterable[str] = (),
        team_id: Optional[str] = None,
    ) -> Optional[TicketRef]:
        """
        Create an issue for a confirmed report.

        Returns
        -------
        TicketRef or None
            None when Linear is not configured or no team can be resolved.

        Raises
        ------
        TicketError
            If the issue-create call itself fails.
        """
        if not self.configured:
            logger.info("Linear integration not configured. Skipping issue creation.")
            return None

        resolved_team = await self._resolve_team(team_id or self.team_id)
        if not resolved_team:
            return None

        labels = await self._fetch_labels()
        issue_input = {
            "teamId": resolved_team,
            "title": report.title,
            "description": build_ticket_description(markdown, files, screenshots),
            "labelIds": select_label_ids(report, labels),
            "priority": DEFAULT_PRIORITY,
        }

        data = await self._graphql(_CREATE_ISSUE_MUTATION, {"input": issue_input})
        result = data.get("issueCreate") or {}
        issue = result.get("issue") if isinstance(result, dict) else None
        if not isinstance(issue, dict) or not issue.get("id") or not result.get("success"):
            raise TicketError("Linear did not create the issue")

        ticket = TicketRef(
            id=issue["id"],
            number=issue.get("number"),
            url=issue.get("url"),
            title=issue.get("title") or report.title,
        )
        logger.info("Created Linear issue %s (%s)", ticket.number, ticket.url)
        return ticket

    async def add_comment(self, issue_id: str, responses: Mapping[str, Any]) -> bool:
        """Post follow-up answers on an existing issue. Never raises."""
        if not self.configured or not issue_id:
            return False
        try:
            data = await self._graphql(
                _CREATE_COMMENT_MUTATION,
                {"input": {"issueId": issue_id, "body": format_follow_up_comment(responses)}},
            )
        except TicketError as e:
            logger.error("Error updating Linear issue %s: %s", issue_id, e)
            return False
        result = data.get("commentCreate")
        return isinstance(result, dict) and bool(result.get("success"))


def build_ticket_publisher(settings: Settings) -> LinearTicketPublisher:
    return LinearTicketPublisher(
        api_key=settings.linear_api_key,
        team_id=settings.linear_team_id,
        api_url=settings.linear_api_url,
        timeout_seconds=settings.http_timeout_seconds,
    )

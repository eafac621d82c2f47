"""
Configuration
=============
Loads environment variables from .env file using python-dotenv.

Environment Variables:
    PORT                       — HTTP port for uvicorn (default: 3001)
    APP_ENV                    — "production" hides error details in 500 bodies
    OPENAI_API_KEY             — Enables model-backed file selection and synthesis
    OPENAI_MODEL               — Chat completion model (default: gpt-4.1)
    OPENAI_BASE_URL            — OpenAI-compatible endpoint root
    SUPABASE_URL               — Hosted report store (PostgREST) base URL
    SUPABASE_SERVICE_ROLE_KEY  — Service key for the report store
    SUPABASE_TABLE             — Table holding report rows (default: bug_reports)
    LINEAR_API_KEY             — Enables ticket creation in Linear
    LINEAR_TEAM_ID             — Target team; first available team if unset
    RATE_LIMIT_MAX             — Analysis requests allowed per window (default: 10)
    RATE_LIMIT_WINDOW_SECONDS  — Rolling window length (default: 300)
    CORS_ORIGINS               — Comma-separated list of allowed origins ("*" for any)
    LOG_DIR                    — Directory for daily log files (default: logs)

Degraded Modes:
    Every external integration is optional. A missing OpenAI key runs the
    selector and synthesizer on their deterministic fallbacks, missing
    Supabase credentials keep reports in process memory, and a missing
    Linear key makes confirmation skip ticket creation.
"""
import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

PORT = int(os.getenv("PORT", 3001))
APP_ENV = os.getenv("APP_ENV", os.getenv("NODE_ENV", "development"))

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4.1")
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")

SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY")
SUPABASE_TABLE = os.getenv("SUPABASE_TABLE", "bug_reports")

LINEAR_API_KEY = os.getenv("LINEAR_API_KEY")
LINEAR_TEAM_ID = os.getenv("LINEAR_TEAM_ID")
LINEAR_API_URL = os.getenv("LINEAR_API_URL", "https://api.linear.app/graphql")

# Submission backpressure (applies to /analyze only)
RATE_LIMIT_MAX = int(os.getenv("RATE_LIMIT_MAX", 10))
RATE_LIMIT_WINDOW_SECONDS = float(os.getenv("RATE_LIMIT_WINDOW_SECONDS", 300))

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "*").split(",")
    if origin.strip()
]

LOG_DIR = os.getenv("LOG_DIR", "logs")

# Transport timeout for outbound HTTP calls (seconds)
HTTP_TIMEOUT_SECONDS = float(os.getenv("HTTP_TIMEOUT_SECONDS", 60))


@dataclass
class Settings:
    """Snapshot of the runtime configuration, passed to component factories."""
    app_env: str = "development"
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4.1"
    openai_base_url: str = "https://api.openai.com/v1"
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    supabase_table: str = "bug_reports"
    linear_api_key: Optional[str] = None
    linear_team_id: Optional[str] = None
    linear_api_url: str = "https://api.linear.app/graphql"
    rate_limit_max: int = 10
    rate_limit_window_seconds: float = 300.0
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    http_timeout_seconds: float = 60.0

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() == "production"

    @property
    def openai_configured(self) -> bool:
        return bool(self.openai_api_key)

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    @property
    def linear_configured(self) -> bool:
        return bool(self.linear_api_key)


def load_settings() -> Settings:
    """Build Settings from the module-level environment values."""
    return Settings(
        app_env=APP_ENV,
        openai_api_key=OPENAI_API_KEY,
        openai_model=OPENAI_MODEL,
        openai_base_url=OPENAI_BASE_URL,
        supabase_url=SUPABASE_URL,
        supabase_key=SUPABASE_SERVICE_ROLE_KEY,
        supabase_table=SUPABASE_TABLE,
        linear_api_key=LINEAR_API_KEY,
        linear_team_id=LINEAR_TEAM_ID,
        linear_api_url=LINEAR_API_URL,
        rate_limit_max=RATE_LIMIT_MAX,
        rate_limit_window_seconds=RATE_LIMIT_WINDOW_SECONDS,
        cors_origins=list(CORS_ORIGINS),
        http_timeout_seconds=HTTP_TIMEOUT_SECONDS,
    )

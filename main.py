import uvicorn
import time
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from app.agents.orchestrator import BugReportOrchestrator, build_orchestrator
from app.api.bug_reports import router as bug_report_router
from app.core.config import PORT, Settings, load_settings
from app.services.rate_limiter import SlidingWindowRateLimiter
from app.utils.logging_config import setup_logging

setup_logging(level=logging.INFO)
logger = logging.getLogger("main")


# ---------------------------------------------------------------------------
# Logging Middleware
# ---------------------------------------------------------------------------
class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        client_host = request.client.host if request.client else "unknown"
        logger.info(f"Incoming: {request.method} {request.url.path} from {client_host}")

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(f"Request failed: {request.method} {request.url.path} - Error: {str(e)}")
            raise

        process_time = (time.time() - start_time) * 1000
        logger.info(
            f"Outgoing: {request.method} {request.url.path} - "
            f"Status: {response.status_code} - "
            f"Time: {process_time:.2f}ms"
        )
        return response


def _log_configuration(settings: Settings) -> None:
    def _status(ok: bool) -> str:
        return "configured" if ok else "not configured"

    logger.info("Configuration status:")
    logger.info(f"- OpenAI API Key: {_status(settings.openai_configured)}")
    logger.info(f"- Supabase: {_status(settings.supabase_configured)}")
    logger.info(f"- Linear: {_status(settings.linear_configured)}")


def create_app(
    settings: Optional[Settings] = None,
    orchestrator: Optional[BugReportOrchestrator] = None,
) -> FastAPI:
    """
    Build the API application.

    Collaborators are chosen once here and shared by every request through
    ``app.state``; tests pass their own ``orchestrator``.
    """
    settings = settings or load_settings()
    orchestrator = orchestrator or build_orchestrator(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        _log_configuration(settings)
        yield
        await app.state.orchestrator.close()

    app = FastAPI(title="Bug Report AI API", lifespan=lifespan)
    app.state.settings = settings
    app.state.orchestrator = orchestrator
    app.state.rate_limiter = SlidingWindowRateLimiter(
        max_requests=settings.rate_limit_max,
        window_seconds=settings.rate_limit_window_seconds,
    )

    app.add_middleware(LoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=True)
        content = {"status": "error", "message": "Internal server error"}
        if not settings.is_production:
            content["error"] = str(exc)
        return JSONResponse(status_code=500, content=content)

    # Health endpoint
    @app.get("/")
    async def health_check():
        return {"status": "ok", "message": "Bug Report AI API is running"}

    app.include_router(bug_report_router)
    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=PORT, reload=True)

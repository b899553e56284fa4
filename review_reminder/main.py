"""PR Review Reminder: Main FastAPI Application.

Tracks pull request review requests posted in Slack and keeps reminding
reviewers until someone approves.
"""

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from .api import api_router
from .core import get_settings
from .core.database import async_session_factory, close_db, init_db
from .jobs.reminder_job import EscalationScheduler, ReminderConfig
from .schemas import ErrorResponse
from .services.engagement import ReactionEngagementResolver
from .services.reminder_dispatcher import ReminderDispatcher
from .services.review_service import ReviewService
from .services.review_store import SqlReviewStore, SqlWorkspaceStore
from .services.slack_gateway import SlackGateway

logger = logging.getLogger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown."""
    logger.info(f"Starting {settings.app_name} ({settings.environment})")

    await init_db()

    http_client = httpx.AsyncClient(timeout=30.0)
    gateway = SlackGateway(
        http_client,
        SqlWorkspaceStore(async_session_factory, settings),
        base_url=settings.slack_api_base_url,
    )
    store = SqlReviewStore(async_session_factory)

    app.state.review_service = ReviewService(store, gateway)
    app.state.scheduler = EscalationScheduler.from_config(
        ReminderConfig.from_settings(settings),
        store=store,
        resolver=ReactionEngagementResolver(gateway),
        dispatcher=ReminderDispatcher(gateway),
        alert_webhook_url=settings.slack_alerts_webhook_url,
    )
    app.state.scheduler.start()

    yield

    # Shutdown
    await app.state.scheduler.stop()
    await http_client.aclose()
    await close_db()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    ## PR Review Reminder

    Slack bot that tracks pull request review requests.

    - `/pr <url> [@reviewers] [description]` announces a PR in the channel
    - 👀 on the announcement marks you as reviewing
    - ✅ approves the PR and stops the reminders
    - Pending PRs get threaded reminders, escalating to `@channel`
    """,
    lifespan=lifespan,
)


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.exception(f"Unhandled exception on {request.url.path}")

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            error="internal_error",
            message=f"An unexpected error occurred: {str(exc)[:200]}",
        ).model_dump(),
    )


# Health check endpoint
@app.get("/health", tags=["health"])
async def health_check(request: Request):
    """Health check endpoint."""
    scheduler = getattr(request.app.state, "scheduler", None)
    return {
        "status": "healthy",
        "version": settings.app_version,
        "scheduler_running": bool(scheduler and scheduler.running),
    }


app.include_router(api_router)


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    uvicorn.run(
        "review_reminder.main:app",
        host="127.0.0.1",
        port=8080,
        reload=settings.debug,
    )

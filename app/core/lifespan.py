from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.core.config import get_settings
from app.core.job_queue import RedisJobQueue, default_job_retry_policy
from app.core.logging import get_logger, setup_logging
from app.db.session import build_engine, build_session_factory
from app.services.github.webhook_service import WebhookDispatcher

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan function for the FastAPI application.
    Handles startup and shutdown events for application services.
    """
    # 1. Settings and logging
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)
    app.title = settings.PROJECT_NAME
    logger.info("Starting %s", settings.PROJECT_NAME)
    if not settings.GITHUB_WEBHOOK_SECRET:
        logger.warning("GITHUB_WEBHOOK_SECRET is not set; webhook deliveries will be rejected")

    # 2. Database
    engine = build_engine(settings.DATABASE_URL)
    app.state.session_factory = build_session_factory(engine)

    # 3. Job queue and webhook dispatcher
    queue = RedisJobQueue.from_url(
        settings.VALKEY_URL,
        default_job_retry_policy(settings.JOB_ATTEMPTS, settings.JOB_BACKOFF_SECONDS),
    )
    app.state.dispatcher = WebhookDispatcher(queue, settings.GITHUB_WEBHOOK_SECRET)

    yield

    # 4. Close Valkey/Redis Connection
    await queue.close()

    # 5. Dispose Database Engine
    await engine.dispose()

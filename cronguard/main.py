"""FastAPI application initialization for CronGuard."""

import logging
import logging.config
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cronguard.config import get_settings
from cronguard.database import close_db
from cronguard.routers import alert_channels, checker, monitors, ping, status, status_groups
from cronguard.services.alerts import get_alert_notifier, reset_alert_notifier
from cronguard.services.checker import get_monitor_checker, reset_monitor_checker


def configure_logging(level: str) -> None:
    """Send all log records to the console at ``level``."""
    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s",
                "datefmt": "%Y-%m-%dT%H:%M:%S",
            }
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
            }
        },
        "root": {
            "handlers": ["console"],
            "level": level.upper(),
        },
    })


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings = get_settings()
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Debug mode: {settings.debug}")

    notifier = get_alert_notifier()
    notifier.start()
    checker_service = get_monitor_checker()
    checker_service.start()

    yield

    logger.info("Shutting down application...")
    reset_monitor_checker()
    logger.info("Monitor checker stopped")
    await reset_alert_notifier()
    await close_db()


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Dead man's switch monitoring for cron jobs and scheduled tasks",
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health", tags=["Health"])
    async def health_check() -> dict:
        return {
            "status": "healthy",
            "app_name": settings.app_name,
            "version": settings.app_version,
        }

    @app.get("/api", tags=["Root"])
    async def api_root() -> dict:
        return {
            "message": f"Welcome to {settings.app_name} API",
            "version": settings.app_version,
            "docs": "/api/docs",
        }

    # Register routers
    app.include_router(monitors.router)
    app.include_router(alert_channels.router)
    app.include_router(ping.router)
    app.include_router(status.router)
    app.include_router(status_groups.router)
    app.include_router(checker.router)

    return app


app = create_app()

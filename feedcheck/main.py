from __future__ import annotations

import logging

from fastapi import FastAPI

from feedcheck.config import get_feed_validation_settings, get_logging_settings


def _configure_logging() -> None:
    """
    Configure root logging once for the API process.
    """

    log_level = get_logging_settings().level
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    _configure_logging()

    application = FastAPI(
        title="Feedcheck API",
        version="1.0.0",
    )

    from feedcheck.api.routers import validation_router

    application.include_router(validation_router)

    settings = get_feed_validation_settings()
    logging.getLogger(__name__).info(
        "Feed validation configured chunk_size=%s max_issues=%s max_valid_records=%s",
        settings.chunk_size,
        settings.max_issues,
        settings.max_valid_records,
    )

    @application.get("/health")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return application


app = create_app()

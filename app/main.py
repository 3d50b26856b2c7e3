from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI

from app.scanning.logging_utils import configure_logging
from app.schemas.scan import HealthResponse


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Start the background scheduler on boot, optionally autostart the batch scan; shut it down on exit."""
    from app.scheduler.jobs import autostart_batch_scheduler, get_background_scheduler

    scheduler = get_background_scheduler()
    scheduler.start()
    logging.getLogger(__name__).info("Scheduler started")
    if autostart_batch_scheduler():
        logging.getLogger(__name__).info("Batch scan autostarted from domain source")
    try:
        yield
    finally:
        scheduler.shutdown(wait=True)
        logging.getLogger(__name__).info("Scheduler shut down")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    configure_logging()

    application = FastAPI(
        title="Ads Transparency Scanner API",
        version="1.0.0",
        lifespan=_lifespan,
    )

    from app.api.routers import scan_router, scheduler_router

    application.include_router(scan_router)
    application.include_router(scheduler_router)

    @application.get("/health", response_model=HealthResponse)
    def healthcheck() -> HealthResponse:
        return HealthResponse(status="ok", timestamp=datetime.now(timezone.utc))

    return application


app = create_app()

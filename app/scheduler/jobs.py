"""
app/scheduler/jobs.py

APScheduler wiring for the recurring domain batch scan.

Lifecycle
----------
``get_background_scheduler()`` returns the process-wide ``BackgroundScheduler``.
Start it on app boot; shut it down gracefully on app shutdown. The scheduler
is wired into FastAPI via the ``lifespan`` context in main.py.

``get_batch_scheduler()`` returns the ``BatchScheduler`` that owns the scan
job on top of it. The batch job is only added when ``start`` is called,
either from the API or from ``autostart_batch_scheduler`` when
``SCHEDULER_AUTOSTART`` is enabled.
"""

from __future__ import annotations

import logging
from functools import lru_cache

from apscheduler.schedulers.background import BackgroundScheduler

from app.config import get_scanner_settings, get_scheduler_settings
from app.scanning.errors import DomainSourceError, SchedulerConfigError
from app.scanning.logging_utils import log_event
from app.scheduler.batch import BatchScheduler
from app.services.scan_service import (
    get_domain_scanner,
    get_domain_source,
    get_result_sink,
    get_scan_lock,
)

logger = logging.getLogger(__name__)


def build_scheduler() -> BackgroundScheduler:
    """
    Returns a configured but *not yet started* ``BackgroundScheduler``.
    """

    return BackgroundScheduler(
        timezone="UTC",
        job_defaults={"coalesce": True, "max_instances": 1},
    )


@lru_cache(maxsize=1)
def get_background_scheduler() -> BackgroundScheduler:
    return build_scheduler()


@lru_cache(maxsize=1)
def get_batch_scheduler() -> BatchScheduler:
    """
    Build and cache the batch scheduler bound to the shared scan lock.
    """

    return BatchScheduler(
        scheduler=get_background_scheduler(),
        scanner=get_domain_scanner(),
        scan_lock=get_scan_lock(),
        settings=get_scheduler_settings(),
        timezone_name=get_scanner_settings().timezone,
    )


def autostart_batch_scheduler() -> bool:
    """
    Start the batch scheduler from the domain source when enabled.

    Returns True when a run was launched. Failures are logged, not raised,
    so the API still boots without a reachable domain source.
    """

    settings = get_scheduler_settings()
    if not settings.autostart:
        return False

    try:
        domains = get_domain_source().load_domains()
        get_batch_scheduler().start(
            interval_minutes=settings.default_interval_minutes,
            domains=domains,
            batch_size=settings.default_batch_size,
            sink=get_result_sink(),
            region=get_scanner_settings().default_region,
        )
    except (DomainSourceError, SchedulerConfigError) as exc:
        log_event(logger, logging.WARNING, "scheduler_autostart_skipped", error=str(exc))
        return False
    return True

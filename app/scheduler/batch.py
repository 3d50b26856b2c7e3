"""
app/scheduler/batch.py

Self re-arming batch scan over a domain list.

States
------
  Idle    - not enabled, nothing pending.
  Armed   - enabled, a one-shot APScheduler ``date`` job is pending.
  Running - a run is in flight.

``start`` kicks a run immediately. When a run completes and the scheduler
is still enabled, the next one-shot job is armed at ``completion + interval``,
so runs never overlap and the interval is measured from the end of a run.
``stop`` removes the pending job; an in-flight run finishes but does not
re-arm.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Protocol

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.base import BaseScheduler

from app.config import SchedulerSettings
from app.domain.scan import BatchRunReport, DomainQuery, DomainScanResult, ScanRow
from app.scanning.errors import SchedulerConfigError, SinkError
from app.scanning.locking import ScanLock
from app.scanning.logging_utils import log_event
from app.scanning.normalization import build_query, normalize_domain_list
from app.scanning.rows import build_error_row, format_scan_date
from app.scanning.storage.base import ResultSink

logger = logging.getLogger(__name__)

SCAN_JOB_ID = "domain_batch_scan"
LOCK_OWNER = "scheduler"


class Scanner(Protocol):
    def scan(self, query: DomainQuery) -> DomainScanResult: ...


@dataclass(frozen=True)
class SchedulerStatus:
    """
    Point-in-time snapshot of the batch scheduler state.
    """

    enabled: bool
    is_running: bool
    interval_minutes: int | None
    batch_size: int | None
    region: str | None
    domains: list[str] = field(default_factory=list)
    last_run_time: datetime | None = None
    next_run_time: datetime | None = None
    last_run_rows: int = 0
    failed_batches: int = 0
    last_error: str | None = None
    last_report: BatchRunReport | None = None


def split_batches(domains: Sequence[str], batch_size: int) -> list[list[str]]:
    """
    Split ``domains`` into ``ceil(N / batch_size)`` contiguous batches.
    """

    if batch_size < 1:
        raise SchedulerConfigError("batch_size must be >= 1")
    return [list(domains[start : start + batch_size]) for start in range(0, len(domains), batch_size)]


class BatchScheduler:
    """
    Owns the batch scan state machine on top of an APScheduler instance.
    """

    def __init__(
        self,
        *,
        scheduler: BaseScheduler,
        scanner: Scanner,
        scan_lock: ScanLock,
        settings: SchedulerSettings,
        timezone_name: str = "Asia/Jerusalem",
        sleep: Callable[[float], None] = time.sleep,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._scheduler = scheduler
        self._scanner = scanner
        self._scan_lock = scan_lock
        self._settings = settings
        self._timezone_name = timezone_name
        self._sleep = sleep
        self._now = now or (lambda: datetime.now(timezone.utc))

        self._state_lock = threading.Lock()
        self._enabled = False
        self._is_running = False
        self._in_flight = False
        self._interval_minutes: int | None = None
        self._batch_size: int | None = None
        self._region: str | None = None
        self._domains: list[str] = []
        self._sink: ResultSink | None = None
        self._last_run_time: datetime | None = None
        self._next_run_time: datetime | None = None
        self._last_run_rows = 0
        self._failed_batches = 0
        self._last_error: str | None = None
        self._last_report: BatchRunReport | None = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def start(
        self,
        *,
        interval_minutes: int,
        domains: Sequence[str],
        batch_size: int,
        sink: ResultSink,
        region: str | None = None,
    ) -> SchedulerStatus:
        """
        Enable the schedule and launch the first run immediately.

        While a run is in flight the new configuration is stored for the
        next run and no second run is launched.
        Raises SchedulerConfigError for invalid parameters.
        """

        if isinstance(interval_minutes, bool) or not isinstance(interval_minutes, int) or interval_minutes < 1:
            raise SchedulerConfigError("interval_minutes must be an integer >= 1")
        if isinstance(batch_size, bool) or not isinstance(batch_size, int) or batch_size < 1:
            raise SchedulerConfigError("batch_size must be an integer >= 1")
        normalized = normalize_domain_list(domains)
        if not normalized:
            raise SchedulerConfigError("domains must contain at least one non-blank domain")

        with self._state_lock:
            self._enabled = True
            self._interval_minutes = interval_minutes
            self._batch_size = batch_size
            self._domains = normalized
            self._sink = sink
            self._region = region

            if self._is_running:
                log_event(logger, logging.INFO, "scheduler_start_ignored", reason="run_in_progress")
                return self._snapshot()

            self._is_running = True
            self._cancel_pending_job()
            run_at = self._now()
            self._arm(run_at)

        log_event(
            logger,
            logging.INFO,
            "scheduler_started",
            interval_minutes=interval_minutes,
            batch_size=batch_size,
            domains=len(normalized),
        )
        return self.status()

    def stop(self) -> SchedulerStatus:
        """
        Disable the schedule and cancel the pending run. Idempotent.
        """

        with self._state_lock:
            was_enabled = self._enabled
            self._enabled = False
            if self._cancel_pending_job() and not self._in_flight:
                self._is_running = False
            self._next_run_time = None

        if was_enabled:
            log_event(logger, logging.INFO, "scheduler_stopped")
        return self.status()

    def status(self) -> SchedulerStatus:
        with self._state_lock:
            return self._snapshot()

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    def run_batches(
        self,
        *,
        domains: Sequence[str],
        batch_size: int,
        sink: ResultSink,
        region: str | None = None,
    ) -> BatchRunReport:
        """
        Scan every domain once, appending each batch's rows to ``sink``.

        A failing domain becomes an error row; a failing sink append is
        logged and counted, and the run continues with the next batch.
        """

        started_at = self._now()
        batches = split_batches(list(domains), batch_size)
        domains_scanned = 0
        domains_failed = 0
        rows_saved = 0
        failed_batches = 0

        for batch_index, batch in enumerate(batches):
            rows: list[ScanRow] = []
            for domain_index, domain in enumerate(batch):
                result_rows, succeeded = self._scan_one(domain, region)
                rows.extend(result_rows)
                domains_scanned += 1
                if not succeeded:
                    domains_failed += 1
                if domain_index < len(batch) - 1:
                    self._sleep(self._settings.domain_delay_seconds)

            try:
                rows_saved += sink.append_rows(rows).saved_count
            except SinkError as exc:
                failed_batches += 1
                log_event(
                    logger,
                    logging.ERROR,
                    "batch_sink_failed",
                    batch=batch_index + 1,
                    rows=len(rows),
                    error=str(exc),
                )

            log_event(
                logger,
                logging.INFO,
                "batch_completed",
                batch=batch_index + 1,
                batches=len(batches),
                domains=len(batch),
            )
            if batch_index < len(batches) - 1:
                self._sleep(self._settings.batch_delay_seconds)

        return BatchRunReport(
            started_at=started_at,
            finished_at=self._now(),
            batches=len(batches),
            domains_scanned=domains_scanned,
            domains_failed=domains_failed,
            rows_saved=rows_saved,
            failed_batches=failed_batches,
        )

    def _run_job(self) -> None:
        with self._state_lock:
            if not self._enabled:
                self._is_running = False
                return
            self._is_running = True
            self._in_flight = True
            self._next_run_time = None
            domains = list(self._domains)
            batch_size = self._batch_size or self._settings.default_batch_size
            sink = self._sink
            region = self._region

        report: BatchRunReport | None = None
        error: str | None = None
        try:
            log_event(logger, logging.INFO, "scheduled_run_started", domains=len(domains), batch_size=batch_size)
            with self._scan_lock.hold(LOCK_OWNER, blocking=True):
                report = self.run_batches(domains=domains, batch_size=batch_size, sink=sink, region=region)
        except Exception as exc:  # noqa: BLE001
            error = str(exc)
            logger.exception("Scheduled batch run failed")
        finally:
            completed_at = self._now()
            with self._state_lock:
                self._is_running = False
                self._in_flight = False
                self._last_run_time = completed_at
                self._last_error = error
                if report is not None:
                    self._last_report = report
                    self._last_run_rows = report.rows_saved
                    self._failed_batches = report.failed_batches
                if self._enabled:
                    self._arm(completed_at + timedelta(minutes=self._interval_minutes or 1))
                else:
                    self._next_run_time = None

        if report is not None:
            log_event(
                logger,
                logging.INFO,
                "scheduled_run_completed",
                batches=report.batches,
                domains_scanned=report.domains_scanned,
                domains_failed=report.domains_failed,
                rows_saved=report.rows_saved,
                failed_batches=report.failed_batches,
            )

    def _scan_one(self, domain: str, region: str | None) -> tuple[list[ScanRow], bool]:
        query = build_query(domain, region)
        try:
            result = self._scanner.scan(query)
        except Exception as exc:  # noqa: BLE001
            log_event(logger, logging.ERROR, "domain_scan_crashed", domain=domain, error=str(exc))
            scan_date = format_scan_date(self._now(), self._timezone_name)
            return [build_error_row(query=query, message=str(exc), scan_date=scan_date)], False
        return list(result.rows), result.success

    # ------------------------------------------------------------------
    # Helpers (callers hold _state_lock)
    # ------------------------------------------------------------------

    def _arm(self, run_at: datetime) -> None:
        self._scheduler.add_job(
            self._run_job,
            trigger="date",
            run_date=run_at,
            id=SCAN_JOB_ID,
            name="Domain batch scan",
            replace_existing=True,
            misfire_grace_time=None,
        )
        self._next_run_time = run_at

    def _cancel_pending_job(self) -> bool:
        try:
            self._scheduler.remove_job(SCAN_JOB_ID)
        except JobLookupError:
            return False
        return True

    def _snapshot(self) -> SchedulerStatus:
        return SchedulerStatus(
            enabled=self._enabled,
            is_running=self._is_running,
            interval_minutes=self._interval_minutes,
            batch_size=self._batch_size,
            region=self._region,
            domains=list(self._domains),
            last_run_time=self._last_run_time,
            next_run_time=self._next_run_time,
            last_run_rows=self._last_run_rows,
            failed_batches=self._failed_batches,
            last_error=self._last_error,
            last_report=self._last_report,
        )


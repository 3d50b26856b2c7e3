"""
app/services/scan_service.py

Service orchestration for ad-hoc domain scans and adapter wiring.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from functools import lru_cache

from app.config import (
    ScannerSettings,
    get_drive_settings,
    get_result_sink_settings,
    get_scanner_settings,
    get_sheet_settings,
)
from app.domain.scan import DomainQuery, DomainScanResult
from app.scanning.errors import BatchLimitError
from app.scanning.locking import ScanLock
from app.scanning.logging_utils import log_event
from app.scanning.navigator import PlaywrightNavigator
from app.scanning.normalization import build_query
from app.scanning.pipeline import DomainScanner
from app.scanning.rows import build_error_row, format_scan_date
from app.scanning.storage import (
    ArtifactStore,
    DomainSource,
    DriveArtifactStore,
    NullArtifactStore,
    ResultSink,
    SheetDomainSource,
    SheetResultSink,
    SQLAlchemyResultSink,
)
from db.session import SessionLocal

logger = logging.getLogger(__name__)


class ScanService:
    """
    Runs single and small manual batch scans under the shared scan lock.

    Ad-hoc requests never wait for the lock; ScanBusyError is raised while a
    scheduled run or another request holds it.
    """

    def __init__(
        self,
        *,
        scanner: DomainScanner,
        scan_lock: ScanLock,
        settings: ScannerSettings,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._scanner = scanner
        self._scan_lock = scan_lock
        self._settings = settings
        self._sleep = sleep

    def scan_single(self, *, domain: str | None, region: str | None = None) -> DomainScanResult:
        query = build_query(domain, region or self._settings.default_region)
        with self._scan_lock.hold(f"api:scan:{query.domain}", blocking=False):
            return self._scanner.scan(query)

    def scan_batch(self, *, domains: Sequence[str] | None, region: str | None = None) -> list[DomainScanResult]:
        """
        Scan up to ``manual_batch_limit`` domains sequentially.

        Raises ValueError for an empty list and BatchLimitError above the cap.
        A domain that crashes is reported as a failed result and the
        remaining domains are still scanned.
        """

        if not domains:
            raise ValueError("Missing or invalid domains array")
        limit = self._settings.manual_batch_limit
        if len(domains) > limit:
            raise BatchLimitError(f"Maximum {limit} domains per batch request")

        queries: list[DomainQuery] = [
            build_query(domain, region or self._settings.default_region) for domain in domains
        ]
        log_event(logger, logging.INFO, "manual_batch_started", domains=len(queries))

        results: list[DomainScanResult] = []
        with self._scan_lock.hold("api:scan-batch", blocking=False):
            for index, query in enumerate(queries):
                results.append(self._scan_isolated(query))
                if index < len(queries) - 1:
                    self._sleep(self._settings.manual_delay_seconds)
        return results

    def _scan_isolated(self, query: DomainQuery) -> DomainScanResult:
        try:
            return self._scanner.scan(query)
        except Exception as exc:  # noqa: BLE001
            log_event(logger, logging.ERROR, "domain_scan_crashed", domain=query.domain, error=str(exc))
            scan_date = format_scan_date(datetime.now(timezone.utc), self._settings.timezone)
            return DomainScanResult(
                query=query,
                success=False,
                rows=[build_error_row(query=query, message=str(exc), scan_date=scan_date)],
                error=str(exc),
            )


def build_result_sink(kind: str) -> ResultSink:
    """
    Build the configured result sink (``sheets`` or ``database``).
    """

    if kind == "database":
        return SQLAlchemyResultSink(session_factory=SessionLocal)
    return SheetResultSink(get_sheet_settings())


def build_artifact_store() -> ArtifactStore:
    drive_settings = get_drive_settings()
    if not drive_settings.token_path:
        return NullArtifactStore()
    return DriveArtifactStore(drive_settings)


@lru_cache(maxsize=1)
def get_scan_lock() -> ScanLock:
    return ScanLock()


@lru_cache(maxsize=1)
def get_result_sink() -> ResultSink:
    return build_result_sink(get_result_sink_settings().kind)


@lru_cache(maxsize=1)
def get_domain_source() -> DomainSource:
    return SheetDomainSource(get_sheet_settings())


@lru_cache(maxsize=1)
def get_domain_scanner() -> DomainScanner:
    """
    Build and cache the browser-backed domain scanner.
    """

    settings = get_scanner_settings()
    return DomainScanner(
        navigator=PlaywrightNavigator(settings),
        artifact_store=build_artifact_store(),
        settings=settings,
    )


@lru_cache(maxsize=1)
def get_scan_service() -> ScanService:
    """
    Build and cache the ad-hoc scan service.
    """

    return ScanService(
        scanner=get_domain_scanner(),
        scan_lock=get_scan_lock(),
        settings=get_scanner_settings(),
    )

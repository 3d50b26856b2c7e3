"""
app/scanning/pipeline.py

End-to-end scan of one domain: navigate, extract, aggregate, store the
screenshot and fan out result rows.
"""

from __future__ import annotations

import base64
import binascii
import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Protocol

from app.config import ScannerSettings
from app.domain.scan import (
    DomainQuery,
    DomainScanResult,
    PageBundle,
    SupplementaryDetails,
)
from app.scanning.aggregation import PublisherAggregator
from app.scanning.errors import ArtifactAuthError, ArtifactStoreError, NavigationError
from app.scanning.logging_utils import log_event
from app.scanning.parsing import PageExtractor
from app.scanning.rows import build_error_row, build_rows, format_scan_date
from app.scanning.storage.base import ArtifactStore

logger = logging.getLogger(__name__)

ARTIFACT_PLACEHOLDER = "screenshot unavailable (artifact store not authorized)"
SCREENSHOT_MIME_TYPE = "image/png"


class Navigator(Protocol):
    def scan(self, query: DomainQuery) -> PageBundle: ...


class DomainScanner:
    """
    Run one domain through Navigator -> Extractor -> Aggregator -> rows.

    A navigation failure becomes a single error row; nothing else about a
    scan raises except programming errors.
    """

    def __init__(
        self,
        *,
        navigator: Navigator,
        artifact_store: ArtifactStore,
        settings: ScannerSettings,
        aggregator: PublisherAggregator | None = None,
        extractor: type[PageExtractor] = PageExtractor,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._navigator = navigator
        self._artifact_store = artifact_store
        self._settings = settings
        self._aggregator = aggregator or PublisherAggregator()
        self._extractor = extractor
        self._now = now or (lambda: datetime.now(timezone.utc))

    def scan(self, query: DomainQuery) -> DomainScanResult:
        started = self._now()
        scan_date = format_scan_date(started, self._settings.timezone)
        log_event(logger, logging.INFO, "domain_scan_started", domain=query.domain, region=query.region)

        try:
            bundle = self._navigator.scan(query)
        except NavigationError as exc:
            log_event(logger, logging.WARNING, "domain_scan_failed", domain=query.domain, error=str(exc))
            return DomainScanResult(
                query=query,
                success=False,
                rows=[build_error_row(query=query, message=str(exc), scan_date=scan_date)],
                error=str(exc),
            )

        extraction = bundle.search_extraction
        advertiser = extraction.advertiser
        summaries = self._aggregator.aggregate(
            domain=query.domain,
            creatives=extraction.creatives,
            advertiser=advertiser,
            supplementary=self._supplementary(bundle),
        )
        artifact_url = self._store_screenshot(bundle, started)
        rows = build_rows(
            query=query,
            extraction=extraction,
            summaries=summaries,
            media_ref=artifact_url,
            scan_date=scan_date,
        )

        log_event(
            logger,
            logging.INFO,
            "domain_scan_completed",
            domain=query.domain,
            has_results=extraction.has_results,
            total_ads=extraction.total_ads,
            publishers=len(summaries),
            rows=len(rows),
        )
        return DomainScanResult(
            query=query,
            success=True,
            rows=rows,
            summaries=summaries,
            extraction=extraction,
            artifact_url=artifact_url,
        )

    def _supplementary(self, bundle: PageBundle) -> SupplementaryDetails | None:
        if bundle.advertiser is None and bundle.creative is None:
            return None

        advertiser = bundle.search_extraction.advertiser
        details: dict[str, object] = {}
        if bundle.advertiser is not None:
            advertiser_details = self._extractor.extract_advertiser_details(bundle.advertiser.text)
            details["legal_name"] = advertiser_details.legal_name
            details["location"] = advertiser_details.location
            details["verified"] = advertiser_details.verified
        if bundle.creative is not None:
            creative_details = self._extractor.extract_creative_details(bundle.creative.text)
            details["last_seen_date"] = creative_details.last_seen_date
            details["format"] = creative_details.format
            details["shown_in_regions"] = creative_details.shown_in

        return SupplementaryDetails(
            publisher_id=advertiser.id if advertiser else None,
            **details,
        )

    def _store_screenshot(self, bundle: PageBundle, started: datetime) -> str | None:
        if not bundle.screenshot_png_b64:
            return None

        try:
            blob = base64.b64decode(bundle.screenshot_png_b64, validate=True)
        except (binascii.Error, ValueError) as exc:
            log_event(logger, logging.WARNING, "screenshot_decode_failed", domain=bundle.query.domain, error=str(exc))
            return None

        name = f"{bundle.query.domain}_{started.strftime('%Y%m%dT%H%M%S')}.png"
        try:
            return self._artifact_store.store(blob, name, SCREENSHOT_MIME_TYPE).url
        except ArtifactAuthError as exc:
            log_event(logger, logging.WARNING, "artifact_store_unauthorized", domain=bundle.query.domain, error=str(exc))
            return ARTIFACT_PLACEHOLDER
        except ArtifactStoreError as exc:
            log_event(logger, logging.WARNING, "artifact_store_failed", domain=bundle.query.domain, error=str(exc))
            return None

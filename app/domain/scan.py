"""
app/domain/scan.py

Domain models for the ads transparency crawl-and-extract pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


class AdFormat:
    TEXT = "Text"
    IMAGE = "Image"
    VIDEO = "Video"


class PageKind:
    SEARCH = "search"
    ADVERTISER = "advertiser"
    CREATIVE = "creative"


class ScanStatus:
    SUCCESS = "success"
    ERROR = "error"


DEFAULT_REGION = "anywhere"

RESULT_HEADERS: tuple[str, ...] = (
    "Domain",
    "Publisher Name",
    "Publisher ID",
    "Creative ID",
    "Legal Name",
    "Verified",
    "Location",
    "Total Ads",
    "Region",
    "Ad Formats",
    "Last Seen Date",
    "Shown In Regions",
    "Ad Image/Video URL",
    "Ad Text",
    "Scan Date",
    "Status",
)


@dataclass(frozen=True)
class DomainQuery:
    """
    One normalized domain lookup against the transparency portal.
    """

    domain: str
    region: str = DEFAULT_REGION


@dataclass(frozen=True)
class RawPage:
    """
    Rendered text and HTML snapshot of one visited page.
    """

    kind: str
    url: str
    text: str
    html: str
    timed_out: bool = False


@dataclass(frozen=True)
class Dimensions:
    width: int
    height: int


@dataclass(frozen=True)
class Creative:
    """
    One ad creative card found on the search page.
    """

    index: int
    creative_id: str | None
    advertiser_id: str | None
    position: int
    total_in_view: int | None
    url: str | None
    advertiser_name: str | None
    verified: bool
    format: str
    dimensions: Dimensions | None = None
    image_url: str | None = None
    video_url: str | None = None
    ad_text: str = ""


@dataclass(frozen=True)
class Advertiser:
    id: str | None
    name: str | None
    legal_name: str | None = None
    verified: bool = False
    location: str | None = None


@dataclass(frozen=True)
class AdvertiserDetails:
    """
    Facts read from the advertiser detail page.
    """

    legal_name: str | None = None
    location: str | None = None
    verified: bool = False


@dataclass(frozen=True)
class CreativeDetails:
    """
    Facts read from the creative detail page.
    """

    last_seen_date: str | None = None
    format: str | None = None
    shown_in: str | None = None


@dataclass(frozen=True)
class SearchExtraction:
    """
    Everything extracted from the domain search page.
    """

    has_results: bool = False
    total_ads: int = 0
    total_ads_text: str = ""
    total_ads_in_view: int | None = None
    advertiser: Advertiser | None = None
    creatives: list[Creative] = field(default_factory=list)
    ad_formats: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class SupplementaryDetails:
    """
    Best-effort facts gathered from the detail pages for one publisher.

    ``None`` means "not observed" and never replaces a known value.
    """

    publisher_id: str | None
    legal_name: str | None = None
    location: str | None = None
    verified: bool | None = None
    last_seen_date: str | None = None
    format: str | None = None
    shown_in_regions: str | None = None


@dataclass(frozen=True)
class PageBundle:
    """
    Pages captured for one domain scan.
    """

    query: DomainQuery
    search: RawPage
    search_extraction: SearchExtraction
    advertiser: RawPage | None = None
    creative: RawPage | None = None
    screenshot_png_b64: str | None = None


@dataclass(frozen=True)
class PublisherSummary:
    """
    Per-publisher aggregate of the creatives seen for a domain.
    """

    name: str | None
    id: str | None
    ads: list[Creative] = field(default_factory=list)
    ad_formats: list[str] = field(default_factory=list)
    last_seen_date: str | None = None
    location: str | None = None
    legal_name: str | None = None
    shown_in_regions: str | None = None
    verified: bool = False


@dataclass(frozen=True)
class ScanRow:
    """
    Persisted unit of a scan, one per publisher summary or failed domain.
    """

    domain: str
    publisher_name: str | None
    publisher_id: str | None
    creative_id: str | None
    legal_name: str | None
    verified: bool
    location: str | None
    total_ads: int
    region: str
    ad_formats: tuple[str, ...]
    last_seen_date: str | None
    shown_in_regions: str | None
    ad_media_url: str | None
    ad_text: str | None
    scan_date: str
    status: str

    @property
    def is_error(self) -> bool:
        return self.status.startswith(ScanStatus.ERROR)

    def to_values(self) -> list[Any]:
        """
        Render the row in ``RESULT_HEADERS`` order for tabular sinks.
        """

        return [
            self.domain,
            self.publisher_name or "",
            self.publisher_id or "",
            self.creative_id or "",
            self.legal_name or "",
            "Yes" if self.verified else "No",
            self.location or "",
            self.total_ads,
            self.region or DEFAULT_REGION,
            ", ".join(self.ad_formats),
            self.last_seen_date or "",
            self.shown_in_regions or "",
            self.ad_media_url or "",
            self.ad_text or "",
            self.scan_date,
            self.status,
        ]


@dataclass(frozen=True)
class DomainScanResult:
    """
    Outcome of scanning one domain end to end.
    """

    query: DomainQuery
    success: bool
    rows: list[ScanRow]
    summaries: list[PublisherSummary] = field(default_factory=list)
    extraction: SearchExtraction | None = None
    artifact_url: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class BatchRunReport:
    """
    Totals for one scheduler run over the domain list.
    """

    started_at: datetime
    finished_at: datetime
    batches: int
    domains_scanned: int
    domains_failed: int
    rows_saved: int
    failed_batches: int

"""
app/domain package marker.
"""

from app.domain.scan import (
    RESULT_HEADERS,
    AdFormat,
    Advertiser,
    AdvertiserDetails,
    BatchRunReport,
    Creative,
    CreativeDetails,
    Dimensions,
    DomainQuery,
    DomainScanResult,
    PageBundle,
    PageKind,
    PublisherSummary,
    RawPage,
    ScanRow,
    ScanStatus,
    SearchExtraction,
    SupplementaryDetails,
)

__all__ = [
    "AdFormat",
    "Advertiser",
    "AdvertiserDetails",
    "BatchRunReport",
    "Creative",
    "CreativeDetails",
    "Dimensions",
    "DomainQuery",
    "DomainScanResult",
    "PageBundle",
    "PageKind",
    "PublisherSummary",
    "RESULT_HEADERS",
    "RawPage",
    "ScanRow",
    "ScanStatus",
    "SearchExtraction",
    "SupplementaryDetails",
]

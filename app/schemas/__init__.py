"""
app/schemas package marker.
"""

from app.schemas.scan import (
    BatchRunReportResponse,
    BatchScanRequest,
    BatchScanResponse,
    CreativeResponse,
    HealthResponse,
    PublisherSummaryResponse,
    ScanResultResponse,
    ScanRowResponse,
    SchedulerStartRequest,
    SchedulerStatusResponse,
)

__all__ = [
    "BatchRunReportResponse",
    "BatchScanRequest",
    "BatchScanResponse",
    "CreativeResponse",
    "HealthResponse",
    "PublisherSummaryResponse",
    "ScanResultResponse",
    "ScanRowResponse",
    "SchedulerStartRequest",
    "SchedulerStatusResponse",
]

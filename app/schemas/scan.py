"""
app/schemas/scan.py

Request and response schemas for domain scans and the batch scheduler.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from app.domain.scan import DEFAULT_REGION


class ScanRowResponse(BaseModel):
    """
    API response model for one result row, in sink column order.
    """

    domain: str
    publisher_name: str | None = None
    publisher_id: str | None = None
    creative_id: str | None = None
    legal_name: str | None = None
    verified: bool = False
    location: str | None = None
    total_ads: int = Field(..., ge=0)
    region: str
    ad_formats: list[str] = Field(default_factory=list)
    last_seen_date: str | None = None
    shown_in_regions: str | None = None
    ad_media_url: str | None = None
    ad_text: str | None = None
    scan_date: str
    status: str


class CreativeResponse(BaseModel):
    creative_id: str | None = None
    advertiser_id: str | None = None
    position: int
    total_in_view: int | None = None
    url: str | None = None
    advertiser_name: str | None = None
    verified: bool = False
    format: str
    width: int | None = None
    height: int | None = None
    image_url: str | None = None
    video_url: str | None = None
    ad_text: str = ""


class PublisherSummaryResponse(BaseModel):
    name: str | None = None
    id: str | None = None
    ad_formats: list[str] = Field(default_factory=list)
    last_seen_date: str | None = None
    location: str | None = None
    legal_name: str | None = None
    shown_in_regions: str | None = None
    verified: bool = False
    ads: list[CreativeResponse] = Field(default_factory=list)


class ScanResultResponse(BaseModel):
    """
    API response model for one scanned domain. Screenshots are never inlined.
    """

    success: bool
    domain: str
    region: str
    error: str | None = None
    has_results: bool = False
    total_ads: int = Field(default=0, ge=0)
    total_ads_text: str = ""
    ad_formats: list[str] = Field(default_factory=list)
    artifact_url: str | None = None
    summaries: list[PublisherSummaryResponse] = Field(default_factory=list)
    rows: list[ScanRowResponse] = Field(default_factory=list)


class BatchScanRequest(BaseModel):
    domains: list[str] | None = None
    region: str = DEFAULT_REGION


class BatchScanResponse(BaseModel):
    success: bool = True
    count: int = Field(..., ge=0)
    results: list[ScanResultResponse] = Field(default_factory=list)


class SchedulerStartRequest(BaseModel):
    """
    Start parameters; omitted values fall back to scheduler settings and
    the configured domain source.
    """

    interval_minutes: int | None = None
    batch_size: int | None = None
    domains: list[str] | None = None
    region: str | None = None


class BatchRunReportResponse(BaseModel):
    started_at: datetime
    finished_at: datetime
    batches: int
    domains_scanned: int
    domains_failed: int
    rows_saved: int
    failed_batches: int


class SchedulerStatusResponse(BaseModel):
    enabled: bool
    is_running: bool
    interval_minutes: int | None = None
    batch_size: int | None = None
    region: str | None = None
    domain_count: int = 0
    last_run_time: datetime | None = None
    next_run_time: datetime | None = None
    last_run_rows: int = 0
    failed_batches: int = 0
    last_error: str | None = None
    last_report: BatchRunReportResponse | None = None


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime

"""
Fan publisher summaries out into persisted ``ScanRow`` records.
"""

from __future__ import annotations

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from app.domain.scan import (
    DomainQuery,
    PublisherSummary,
    ScanRow,
    ScanStatus,
    SearchExtraction,
)

SCAN_DATE_FORMAT = "%Y-%m-%d %H:%M:%S %Z"


def format_scan_date(moment: datetime | None = None, tz_name: str = "Asia/Jerusalem") -> str:
    """
    Render a scan timestamp in ``tz_name`` with its zone abbreviation.
    """

    current = moment or datetime.now(timezone.utc)
    if current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)
    return current.astimezone(ZoneInfo(tz_name)).strftime(SCAN_DATE_FORMAT)


def build_rows(
    *,
    query: DomainQuery,
    extraction: SearchExtraction,
    summaries: list[PublisherSummary],
    media_ref: str | None,
    scan_date: str,
) -> list[ScanRow]:
    """
    One success row per summary.

    ``media_ref`` is the stored screenshot URL (or its placeholder); without
    it the row falls back to the first creative's image or video URL.
    """

    rows: list[ScanRow] = []
    for summary in summaries:
        first_ad = summary.ads[0] if summary.ads else None
        creative_media = None
        if first_ad is not None:
            creative_media = first_ad.image_url or first_ad.video_url
        rows.append(
            ScanRow(
                domain=query.domain,
                publisher_name=summary.name,
                publisher_id=summary.id,
                creative_id=first_ad.creative_id if first_ad else None,
                legal_name=summary.legal_name,
                verified=summary.verified,
                location=summary.location,
                total_ads=extraction.total_ads,
                region=query.region,
                ad_formats=tuple(summary.ad_formats),
                last_seen_date=summary.last_seen_date,
                shown_in_regions=summary.shown_in_regions,
                ad_media_url=media_ref or creative_media,
                ad_text=first_ad.ad_text if first_ad else None,
                scan_date=scan_date,
                status=ScanStatus.SUCCESS,
            )
        )
    return rows


def build_error_row(*, query: DomainQuery, message: str, scan_date: str) -> ScanRow:
    return ScanRow(
        domain=query.domain,
        publisher_name=None,
        publisher_id=None,
        creative_id=None,
        legal_name=None,
        verified=False,
        location=None,
        total_ads=0,
        region=query.region,
        ad_formats=(),
        last_seen_date=None,
        shown_in_regions=None,
        ad_media_url=None,
        ad_text=None,
        scan_date=scan_date,
        status=f"{ScanStatus.ERROR}: {message}",
    )

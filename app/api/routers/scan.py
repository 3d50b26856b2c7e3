"""
app/api/routers/scan.py

Ad-hoc single-domain and manual batch scan endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.domain.scan import DEFAULT_REGION, DomainScanResult, PublisherSummary, ScanRow
from app.scanning.errors import ScanBusyError
from app.schemas.scan import (
    BatchScanRequest,
    BatchScanResponse,
    CreativeResponse,
    PublisherSummaryResponse,
    ScanResultResponse,
    ScanRowResponse,
)
from app.services.scan_service import ScanService, get_scan_service

router = APIRouter(tags=["scan"])


@router.get("/scan", response_model=ScanResultResponse)
def scan_domain(
    domain: str | None = Query(default=None, description="Domain to look up"),
    region: str = Query(default=DEFAULT_REGION),
    scan_service: ScanService = Depends(get_scan_service),
) -> ScanResultResponse:
    """
    Scan one domain and return its publisher summaries and rows.
    """

    try:
        result = scan_service.scan_single(domain=domain, region=region)
    except ScanBusyError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return to_scan_result_response(result)


@router.post("/scan-batch", response_model=BatchScanResponse)
def scan_domain_batch(
    payload: BatchScanRequest,
    scan_service: ScanService = Depends(get_scan_service),
) -> BatchScanResponse:
    """
    Scan a small list of domains sequentially.
    """

    try:
        results = scan_service.scan_batch(domains=payload.domains, region=payload.region)
    except ScanBusyError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    return BatchScanResponse(
        success=True,
        count=len(results),
        results=[to_scan_result_response(result) for result in results],
    )


def to_scan_result_response(result: DomainScanResult) -> ScanResultResponse:
    extraction = result.extraction
    return ScanResultResponse(
        success=result.success,
        domain=result.query.domain,
        region=result.query.region,
        error=result.error,
        has_results=extraction.has_results if extraction else False,
        total_ads=extraction.total_ads if extraction else 0,
        total_ads_text=extraction.total_ads_text if extraction else "",
        ad_formats=list(extraction.ad_formats) if extraction else [],
        artifact_url=result.artifact_url,
        summaries=[_summary_response(summary) for summary in result.summaries],
        rows=[_row_response(row) for row in result.rows],
    )


def _summary_response(summary: PublisherSummary) -> PublisherSummaryResponse:
    return PublisherSummaryResponse(
        name=summary.name,
        id=summary.id,
        ad_formats=list(summary.ad_formats),
        last_seen_date=summary.last_seen_date,
        location=summary.location,
        legal_name=summary.legal_name,
        shown_in_regions=summary.shown_in_regions,
        verified=summary.verified,
        ads=[
            CreativeResponse(
                creative_id=ad.creative_id,
                advertiser_id=ad.advertiser_id,
                position=ad.position,
                total_in_view=ad.total_in_view,
                url=ad.url,
                advertiser_name=ad.advertiser_name,
                verified=ad.verified,
                format=ad.format,
                width=ad.dimensions.width if ad.dimensions else None,
                height=ad.dimensions.height if ad.dimensions else None,
                image_url=ad.image_url,
                video_url=ad.video_url,
                ad_text=ad.ad_text,
            )
            for ad in summary.ads
        ],
    )


def _row_response(row: ScanRow) -> ScanRowResponse:
    return ScanRowResponse(
        domain=row.domain,
        publisher_name=row.publisher_name,
        publisher_id=row.publisher_id,
        creative_id=row.creative_id,
        legal_name=row.legal_name,
        verified=row.verified,
        location=row.location,
        total_ads=row.total_ads,
        region=row.region,
        ad_formats=list(row.ad_formats),
        last_seen_date=row.last_seen_date,
        shown_in_regions=row.shown_in_regions,
        ad_media_url=row.ad_media_url,
        ad_text=row.ad_text,
        scan_date=row.scan_date,
        status=row.status,
    )

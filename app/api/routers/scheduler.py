"""
app/api/routers/scheduler.py

Batch scheduler control endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from app.config import SchedulerSettings, get_scheduler_settings
from app.scanning.errors import DomainSourceError
from app.scanning.storage import DomainSource, ResultSink
from app.scheduler.batch import BatchScheduler, SchedulerStatus
from app.scheduler.jobs import get_batch_scheduler
from app.schemas.scan import (
    BatchRunReportResponse,
    SchedulerStartRequest,
    SchedulerStatusResponse,
)
from app.services.scan_service import get_domain_source, get_result_sink

router = APIRouter(prefix="/scheduler", tags=["scheduler"])


@router.post("/start", response_model=SchedulerStatusResponse)
def start_scheduler(
    payload: SchedulerStartRequest | None = None,
    batch_scheduler: BatchScheduler = Depends(get_batch_scheduler),
    sink: ResultSink = Depends(get_result_sink),
    domain_source: DomainSource = Depends(get_domain_source),
    settings: SchedulerSettings = Depends(get_scheduler_settings),
) -> SchedulerStatusResponse:
    """
    Enable the recurring scan and launch the first run immediately.
    """

    payload = payload or SchedulerStartRequest()
    domains = payload.domains
    if domains is None:
        try:
            domains = domain_source.load_domains()
        except DomainSourceError as exc:
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc

    try:
        snapshot = batch_scheduler.start(
            interval_minutes=(
                payload.interval_minutes
                if payload.interval_minutes is not None
                else settings.default_interval_minutes
            ),
            domains=domains,
            batch_size=payload.batch_size if payload.batch_size is not None else settings.default_batch_size,
            sink=sink,
            region=payload.region,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return to_status_response(snapshot)


@router.post("/stop", response_model=SchedulerStatusResponse)
def stop_scheduler(
    batch_scheduler: BatchScheduler = Depends(get_batch_scheduler),
) -> SchedulerStatusResponse:
    return to_status_response(batch_scheduler.stop())


@router.get("/status", response_model=SchedulerStatusResponse)
def scheduler_status(
    batch_scheduler: BatchScheduler = Depends(get_batch_scheduler),
) -> SchedulerStatusResponse:
    return to_status_response(batch_scheduler.status())


def to_status_response(snapshot: SchedulerStatus) -> SchedulerStatusResponse:
    report = snapshot.last_report
    return SchedulerStatusResponse(
        enabled=snapshot.enabled,
        is_running=snapshot.is_running,
        interval_minutes=snapshot.interval_minutes,
        batch_size=snapshot.batch_size,
        region=snapshot.region,
        domain_count=len(snapshot.domains),
        last_run_time=snapshot.last_run_time,
        next_run_time=snapshot.next_run_time,
        last_run_rows=snapshot.last_run_rows,
        failed_batches=snapshot.failed_batches,
        last_error=snapshot.last_error,
        last_report=(
            BatchRunReportResponse(
                started_at=report.started_at,
                finished_at=report.finished_at,
                batches=report.batches,
                domains_scanned=report.domains_scanned,
                domains_failed=report.domains_failed,
                rows_saved=report.rows_saved,
                failed_batches=report.failed_batches,
            )
            if report is not None
            else None
        ),
    )

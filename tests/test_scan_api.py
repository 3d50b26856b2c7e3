"""
tests/test_scan_api.py

HTTP contract tests for the scan and scheduler routers.

The app is built with ``create_app`` and exercised through TestClient
without entering the lifespan, so no background scheduler or browser is
started. Service providers are replaced through ``dependency_overrides``.

Coverage
--------
- /health
- /scan: missing domain, busy lock, response shape
- /scan-batch: empty and oversize lists, sequential results
- /scheduler/start, /stop, /status including domain-source fallback
"""

from __future__ import annotations

from collections.abc import Sequence

import pytest
from apscheduler.jobstores.base import JobLookupError
from fastapi.testclient import TestClient

from app.config import ScannerSettings, SchedulerSettings, get_scheduler_settings
from app.domain.scan import (
    AdFormat,
    Creative,
    DomainQuery,
    DomainScanResult,
    PublisherSummary,
    ScanRow,
    SearchExtraction,
)
from app.main import create_app
from app.scanning.errors import DomainSourceError
from app.scanning.locking import ScanLock
from app.scanning.rows import build_rows
from app.scanning.storage.base import DomainSource, ResultSink, SinkResult, StaticDomainSource
from app.scheduler.batch import BatchScheduler
from app.scheduler.jobs import get_batch_scheduler
from app.services.scan_service import (
    ScanService,
    get_domain_source,
    get_result_sink,
    get_scan_service,
)


class StubScanner:
    def __init__(self) -> None:
        self.scanned: list[DomainQuery] = []

    def scan(self, query: DomainQuery) -> DomainScanResult:
        self.scanned.append(query)
        creative = Creative(
            index=0,
            creative_id="CR456",
            advertiser_id="AR123",
            position=1,
            total_in_view=80,
            url="https://adstransparency.google.com/advertiser/AR123/creative/CR456",
            advertiser_name="Acme Media",
            verified=True,
            format=AdFormat.IMAGE,
            image_url="https://tpc.googlesyndication.com/simgad/1",
        )
        extraction = SearchExtraction(
            has_results=True,
            total_ads=2000,
            total_ads_text="About 2K ads",
            creatives=[creative],
            ad_formats=[AdFormat.IMAGE],
        )
        summaries = [
            PublisherSummary(name="Acme Media", id="AR123", ads=[creative], ad_formats=[AdFormat.IMAGE], verified=True)
        ]
        rows = build_rows(query=query, extraction=extraction, summaries=summaries, media_ref=None, scan_date="d")
        return DomainScanResult(query=query, success=True, rows=rows, summaries=summaries, extraction=extraction)


class NullSink(ResultSink):
    def append_rows(self, rows: Sequence[ScanRow]) -> SinkResult:
        return SinkResult(saved_count=len(rows))


class FailingDomainSource(DomainSource):
    def load_domains(self) -> list[str]:
        raise DomainSourceError("Failed to read domains from 'CONFIG': 403")


class PendingJobScheduler:
    def __init__(self) -> None:
        self.jobs: dict[str, dict] = {}

    def add_job(self, func, **kwargs) -> None:
        self.jobs[kwargs["id"]] = {"func": func, **kwargs}

    def remove_job(self, job_id: str) -> None:
        if self.jobs.pop(job_id, None) is None:
            raise JobLookupError(job_id)


@pytest.fixture()
def scan_lock() -> ScanLock:
    return ScanLock()


@pytest.fixture()
def scanner() -> StubScanner:
    return StubScanner()


@pytest.fixture()
def batch_scheduler(scanner, scan_lock) -> BatchScheduler:
    return BatchScheduler(
        scheduler=PendingJobScheduler(),
        scanner=scanner,
        scan_lock=scan_lock,
        settings=SchedulerSettings(default_batch_size=5, default_interval_minutes=60),
    )


@pytest.fixture()
def app(scanner, scan_lock, batch_scheduler):
    application = create_app()
    service = ScanService(
        scanner=scanner,
        scan_lock=scan_lock,
        settings=ScannerSettings(manual_batch_limit=10),
        sleep=lambda seconds: None,
    )
    application.dependency_overrides[get_scan_service] = lambda: service
    application.dependency_overrides[get_batch_scheduler] = lambda: batch_scheduler
    application.dependency_overrides[get_result_sink] = lambda: NullSink()
    application.dependency_overrides[get_domain_source] = lambda: StaticDomainSource(["one.com", "two.com"])
    application.dependency_overrides[get_scheduler_settings] = lambda: SchedulerSettings(
        default_batch_size=5,
        default_interval_minutes=60,
    )
    return application


@pytest.fixture()
def client(app) -> TestClient:
    return TestClient(app)


def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["timestamp"]


class TestScanEndpoint:
    def test_missing_domain_is_400(self, client: TestClient) -> None:
        response = client.get("/scan")
        assert response.status_code == 400

    def test_busy_lock_is_409(self, client: TestClient, scan_lock: ScanLock) -> None:
        with scan_lock.hold("scheduler"):
            response = client.get("/scan", params={"domain": "example.com"})
        assert response.status_code == 409
        assert "already in progress" in response.json()["detail"]

    def test_success_shape(self, client: TestClient, scanner: StubScanner) -> None:
        response = client.get("/scan", params={"domain": "https://www.Example.com/", "region": "IL"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["domain"] == "example.com"
        assert body["region"] == "IL"
        assert body["total_ads"] == 2000
        assert body["summaries"][0]["ads"][0]["creative_id"] == "CR456"
        row = body["rows"][0]
        assert row["publisher_id"] == "AR123"
        assert row["ad_formats"] == ["Image"]
        assert row["status"] == "success"
        assert scanner.scanned == [DomainQuery(domain="example.com", region="IL")]


class TestScanBatchEndpoint:
    def test_empty_list_is_400(self, client: TestClient) -> None:
        response = client.post("/scan-batch", json={"domains": []})
        assert response.status_code == 400
        assert response.json()["detail"] == "Missing or invalid domains array"

    def test_missing_list_is_400(self, client: TestClient) -> None:
        assert client.post("/scan-batch", json={}).status_code == 400

    def test_oversize_list_is_400(self, client: TestClient, scanner: StubScanner) -> None:
        response = client.post("/scan-batch", json={"domains": [f"d{i}.com" for i in range(11)]})

        assert response.status_code == 400
        assert response.json()["detail"] == "Maximum 10 domains per batch request"
        assert scanner.scanned == []

    def test_results_in_request_order(self, client: TestClient) -> None:
        response = client.post("/scan-batch", json={"domains": ["a.com", "b.com"]})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["count"] == 2
        assert [result["domain"] for result in body["results"]] == ["a.com", "b.com"]


class TestSchedulerEndpoints:
    def test_start_with_explicit_config(self, client: TestClient) -> None:
        response = client.post(
            "/scheduler/start",
            json={"interval_minutes": 15, "batch_size": 2, "domains": ["a.com", "b.com", "c.com"]},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["enabled"] is True
        assert body["is_running"] is True
        assert body["interval_minutes"] == 15
        assert body["batch_size"] == 2
        assert body["domain_count"] == 3
        assert body["next_run_time"] is not None

    def test_start_without_body_uses_domain_source_and_defaults(self, client: TestClient) -> None:
        response = client.post("/scheduler/start")

        assert response.status_code == 200
        body = response.json()
        assert body["interval_minutes"] == 60
        assert body["batch_size"] == 5
        assert body["domain_count"] == 2

    def test_domain_source_failure_is_502(self, app, client: TestClient) -> None:
        app.dependency_overrides[get_domain_source] = lambda: FailingDomainSource()
        response = client.post("/scheduler/start", json={"interval_minutes": 5})
        assert response.status_code == 502

    @pytest.mark.parametrize(
        "payload",
        [
            {"interval_minutes": 0, "domains": ["a.com"]},
            {"batch_size": 0, "domains": ["a.com"]},
            {"domains": ["", " "]},
        ],
    )
    def test_invalid_config_is_400(self, client: TestClient, payload: dict) -> None:
        response = client.post("/scheduler/start", json=payload)
        assert response.status_code == 400
        assert client.get("/scheduler/status").json()["enabled"] is False

    def test_stop_and_status(self, client: TestClient) -> None:
        client.post("/scheduler/start", json={"domains": ["a.com"]})

        stopped = client.post("/scheduler/stop")
        again = client.post("/scheduler/stop")
        status = client.get("/scheduler/status")

        for response in (stopped, again, status):
            assert response.status_code == 200
            body = response.json()
            assert body["enabled"] is False
            assert body["is_running"] is False
            assert body["next_run_time"] is None

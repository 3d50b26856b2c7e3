"""
tests/test_storage.py

Pytest unit tests for the result sinks, artifact stores and domain sources.

The database sink runs against in-memory SQLite; the Sheets and Drive
adapters run against small fakes of the gspread and Drive v3 client
surfaces they call.

Coverage
--------
- SQLAlchemy sink: table bootstrap, ordered insert, failure wrapping
- Sheets sink: header bootstrap on a missing worksheet, RAW append, errors
- Sheets domain source: header skip and normalization
- Drive store: folder reuse, public link, 401/403 vs other HTTP errors,
  token refresh and transport failures
- Null and local-file artifact stores
"""

from __future__ import annotations

import json

import httplib2
import pytest
from google.auth.exceptions import RefreshError
from googleapiclient.errors import HttpError
from gspread.exceptions import WorksheetNotFound
from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.config import DriveSettings, SheetSettings
from app.domain.scan import RESULT_HEADERS, DomainQuery, ScanRow
from app.scanning.errors import ArtifactAuthError, ArtifactStoreError, DomainSourceError, SinkError
from app.scanning.rows import build_error_row
from app.scanning.storage import (
    DriveArtifactStore,
    LocalFileArtifactStore,
    NullArtifactStore,
    SheetDomainSource,
    SheetResultSink,
    SQLAlchemyResultSink,
    StaticDomainSource,
)
from db.models.scan_result import ScanResultRecord


def _row(domain: str, publisher: str = "Acme") -> ScanRow:
    return ScanRow(
        domain=domain,
        publisher_name=publisher,
        publisher_id="AR1",
        creative_id="CR1",
        legal_name="Acme Ltd",
        verified=True,
        location="Israel",
        total_ads=2000,
        region="anywhere",
        ad_formats=("Image", "Video"),
        last_seen_date="4 Feb 2026",
        shown_in_regions="Everywhere",
        ad_media_url="https://drive.google.com/uc?export=view&id=F1",
        ad_text="Buy now",
        scan_date="2026-02-04 13:05:00 IST",
        status="success",
    )


# ---------------------------------------------------------------------------
# SQLAlchemy sink
# ---------------------------------------------------------------------------


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    yield factory
    engine.dispose()


class TestSQLAlchemyResultSink:
    def test_creates_table_and_persists_rows(self, session_factory) -> None:
        sink = SQLAlchemyResultSink(session_factory=session_factory)
        error_row = build_error_row(
            query=DomainQuery(domain="a.com"),
            message="Navigation failed for a.com: timeout",
            scan_date="d",
        )

        result = sink.append_rows([_row("a.com"), _row("a.com", publisher="Beta"), error_row])

        assert result.saved_count == 3
        with session_factory() as session:
            records = list(session.scalars(select(ScanResultRecord).where(ScanResultRecord.domain == "a.com")))
        assert len(records) == 3
        by_publisher = {record.publisher_name: record for record in records}
        acme = by_publisher["Acme"]
        assert acme.verified == "Yes"
        assert acme.ad_formats == "Image, Video"
        assert acme.total_ads == 2000
        assert by_publisher[None].status == "error: Navigation failed for a.com: timeout"
        assert by_publisher[None].verified == "No"

    def test_empty_append_is_noop(self, session_factory) -> None:
        assert SQLAlchemyResultSink(session_factory=session_factory).append_rows([]).saved_count == 0

    def test_database_error_becomes_sink_error(self, tmp_path) -> None:
        engine = create_engine(f"sqlite:///{tmp_path / 'missing' / 'scan.db'}")
        sink = SQLAlchemyResultSink(session_factory=sessionmaker(bind=engine))

        with pytest.raises(SinkError, match="Failed to persist 1 scan rows"):
            sink.append_rows([_row("a.com")])


# ---------------------------------------------------------------------------
# Sheets
# ---------------------------------------------------------------------------


class FakeWorksheet:
    def __init__(self, title: str, column: list[str] | None = None) -> None:
        self.title = title
        self.column = column or []
        self.appended: list[tuple[list[list], str]] = []
        self.updates: list[tuple[str, list[list]]] = []
        self.formats: list[tuple[str, dict]] = []
        self.frozen_rows: int | None = None

    def append_rows(self, values, value_input_option: str) -> None:
        self.appended.append((values, value_input_option))

    def update(self, *, range_name: str, values) -> None:
        self.updates.append((range_name, values))

    def format(self, ranges: str, fmt: dict) -> None:
        self.formats.append((ranges, fmt))

    def freeze(self, rows: int) -> None:
        self.frozen_rows = rows

    def col_values(self, col: int) -> list[str]:
        assert col == 1
        return list(self.column)


class FakeSpreadsheet:
    def __init__(self, worksheets: dict[str, FakeWorksheet]) -> None:
        self.worksheets = worksheets
        self.added: list[dict] = []

    def worksheet(self, title: str) -> FakeWorksheet:
        if title not in self.worksheets:
            raise WorksheetNotFound(title)
        return self.worksheets[title]

    def add_worksheet(self, *, title: str, rows: int, cols: int) -> FakeWorksheet:
        self.added.append({"title": title, "rows": rows, "cols": cols})
        worksheet = FakeWorksheet(title)
        self.worksheets[title] = worksheet
        return worksheet


class FakeSheetsClient:
    def __init__(self, spreadsheet: FakeSpreadsheet) -> None:
        self.spreadsheet = spreadsheet
        self.opened: list[str] = []

    def open_by_key(self, key: str) -> FakeSpreadsheet:
        self.opened.append(key)
        return self.spreadsheet


SHEET_SETTINGS = SheetSettings(credentials_path="creds.json", spreadsheet_id="sheet-123")


class TestSheetResultSink:
    def test_creates_worksheet_with_bold_frozen_header(self) -> None:
        spreadsheet = FakeSpreadsheet({})
        client = FakeSheetsClient(spreadsheet)
        sink = SheetResultSink(SHEET_SETTINGS, client_factory=lambda: client)

        result = sink.append_rows([_row("a.com")])

        assert result.saved_count == 1
        assert spreadsheet.added == [{"title": "RESULTS", "rows": 1000, "cols": 16}]
        worksheet = spreadsheet.worksheets["RESULTS"]
        assert worksheet.updates == [("A1", [list(RESULT_HEADERS)])]
        assert worksheet.formats == [("A1:P1", {"textFormat": {"bold": True}})]
        assert worksheet.frozen_rows == 1
        values, option = worksheet.appended[0]
        assert option == "RAW"
        assert values[0][0] == "a.com"
        assert values[0][5] == "Yes"
        assert values[0][9] == "Image, Video"

    def test_existing_worksheet_is_reused_without_header(self) -> None:
        worksheet = FakeWorksheet("RESULTS")
        client = FakeSheetsClient(FakeSpreadsheet({"RESULTS": worksheet}))
        sink = SheetResultSink(SHEET_SETTINGS, client_factory=lambda: client)

        sink.append_rows([_row("a.com")])
        sink.append_rows([_row("b.com"), _row("c.com")])

        assert worksheet.updates == []
        assert [len(values) for values, _ in worksheet.appended] == [1, 2]
        assert client.opened == ["sheet-123"]

    def test_missing_spreadsheet_id_raises_sink_error(self) -> None:
        sink = SheetResultSink(SheetSettings(), client_factory=lambda: FakeSheetsClient(FakeSpreadsheet({})))
        with pytest.raises(SinkError, match="RESULTS_SPREADSHEET_ID"):
            sink.append_rows([_row("a.com")])

    def test_missing_credentials_raise_sink_error(self) -> None:
        sink = SheetResultSink(SheetSettings(spreadsheet_id="sheet-123"))
        with pytest.raises(SinkError, match="GOOGLE_SHEETS_CRED"):
            sink.append_rows([_row("a.com")])


class TestSheetDomainSource:
    def test_reads_column_a_below_header(self) -> None:
        worksheet = FakeWorksheet("CONFIG", column=["Domain", "https://www.One.com/", "", "two.com"])
        client = FakeSheetsClient(FakeSpreadsheet({"CONFIG": worksheet}))
        source = SheetDomainSource(SHEET_SETTINGS, client_factory=lambda: client)

        assert source.load_domains() == ["one.com", "two.com"]

    def test_missing_worksheet_raises_domain_source_error(self) -> None:
        client = FakeSheetsClient(FakeSpreadsheet({}))
        source = SheetDomainSource(SHEET_SETTINGS, client_factory=lambda: client)

        with pytest.raises(DomainSourceError, match="CONFIG"):
            source.load_domains()


def test_static_domain_source_normalizes() -> None:
    assert StaticDomainSource(["WWW.A.com/", " ", "b.com"]).load_domains() == ["a.com", "b.com"]


# ---------------------------------------------------------------------------
# Drive
# ---------------------------------------------------------------------------


class _Request:
    def __init__(self, result=None, error: Exception | None = None) -> None:
        self._result = result
        self._error = error

    def execute(self):
        if self._error is not None:
            raise self._error
        return self._result


class FakeFiles:
    def __init__(self, service: "FakeDriveService") -> None:
        self._service = service

    def list(self, **kwargs) -> _Request:
        self._service.list_calls.append(kwargs)
        return _Request({"files": [{"id": fid} for fid in self._service.existing_folders]})

    def create(self, **kwargs) -> _Request:
        self._service.create_calls.append(kwargs)
        if "media_body" in kwargs:
            return _Request({"id": "FILE1"}, self._service.upload_error)
        return _Request({"id": "FOLDER1"})


class FakePermissions:
    def __init__(self, service: "FakeDriveService") -> None:
        self._service = service

    def create(self, **kwargs) -> _Request:
        self._service.permission_calls.append(kwargs)
        return _Request({})


class FakeDriveService:
    def __init__(self, existing_folders: list[str] | None = None, upload_error: Exception | None = None) -> None:
        self.existing_folders = existing_folders or []
        self.upload_error = upload_error
        self.list_calls: list[dict] = []
        self.create_calls: list[dict] = []
        self.permission_calls: list[dict] = []

    def files(self) -> FakeFiles:
        return FakeFiles(self)

    def permissions(self) -> FakePermissions:
        return FakePermissions(self)


def _http_error(status: int) -> HttpError:
    content = json.dumps({"error": {"message": f"status {status}"}}).encode()
    return HttpError(httplib2.Response({"status": status}), content)


DRIVE_SETTINGS = DriveSettings(token_path="token.json", folder_name="ADS Screenshots")


class TestDriveArtifactStore:
    def test_creates_folder_uploads_and_shares(self) -> None:
        service = FakeDriveService()
        store = DriveArtifactStore(DRIVE_SETTINGS, service_factory=lambda: service)

        artifact = store.store(b"png", "a.com_20260204T110500.png", "image/png")

        assert artifact.url == "https://drive.google.com/uc?export=view&id=FILE1"
        assert artifact.file_id == "FILE1"
        folder_create, upload = service.create_calls
        assert folder_create["body"]["name"] == "ADS Screenshots"
        assert upload["body"] == {"name": "a.com_20260204T110500.png", "parents": ["FOLDER1"]}
        assert service.permission_calls == [
            {"fileId": "FILE1", "body": {"role": "reader", "type": "anyone"}}
        ]

    def test_existing_folder_looked_up_once(self) -> None:
        service = FakeDriveService(existing_folders=["EXISTING"])
        store = DriveArtifactStore(DRIVE_SETTINGS, service_factory=lambda: service)

        store.store(b"1", "one.png", "image/png")
        store.store(b"2", "two.png", "image/png")

        assert len(service.list_calls) == 1
        assert [call["body"]["parents"] for call in service.create_calls] == [["EXISTING"], ["EXISTING"]]

    @pytest.mark.parametrize("status", [401, 403])
    def test_auth_rejection_is_artifact_auth_error(self, status: int) -> None:
        service = FakeDriveService(upload_error=_http_error(status))
        store = DriveArtifactStore(DRIVE_SETTINGS, service_factory=lambda: service)

        with pytest.raises(ArtifactAuthError):
            store.store(b"png", "a.png", "image/png")

    def test_server_error_is_artifact_store_error(self) -> None:
        service = FakeDriveService(upload_error=_http_error(500))
        store = DriveArtifactStore(DRIVE_SETTINGS, service_factory=lambda: service)

        with pytest.raises(ArtifactStoreError) as exc_info:
            store.store(b"png", "a.png", "image/png")
        assert not isinstance(exc_info.value, ArtifactAuthError)

    def test_missing_token_is_artifact_auth_error(self, tmp_path) -> None:
        store = DriveArtifactStore(DriveSettings(token_path=str(tmp_path / "token.json")))
        with pytest.raises(ArtifactAuthError, match="Drive token not found"):
            store.store(b"png", "a.png", "image/png")

    def test_refresh_failure_is_artifact_auth_error_and_resets_client(self) -> None:
        services = [
            FakeDriveService(upload_error=RefreshError("invalid_grant: Token has been expired or revoked.")),
            FakeDriveService(),
        ]
        store = DriveArtifactStore(DRIVE_SETTINGS, service_factory=lambda: services.pop(0))

        with pytest.raises(ArtifactAuthError, match="invalid_grant"):
            store.store(b"png", "a.png", "image/png")
        artifact = store.store(b"png", "b.png", "image/png")

        assert artifact.file_id == "FILE1"
        assert services == []

    @pytest.mark.parametrize(
        "error",
        [httplib2.ServerNotFoundError("Unable to find the server"), TimeoutError("timed out")],
    )
    def test_transport_failure_is_artifact_store_error(self, error: Exception) -> None:
        service = FakeDriveService(upload_error=error)
        store = DriveArtifactStore(DRIVE_SETTINGS, service_factory=lambda: service)

        with pytest.raises(ArtifactStoreError) as exc_info:
            store.store(b"png", "a.png", "image/png")
        assert not isinstance(exc_info.value, ArtifactAuthError)


def test_null_artifact_store_is_unauthorized() -> None:
    with pytest.raises(ArtifactAuthError):
        NullArtifactStore().store(b"png", "a.png", "image/png")


class TestLocalFileArtifactStore:
    def test_directory_target_keeps_name(self, tmp_path) -> None:
        artifact = LocalFileArtifactStore(tmp_path).store(b"png", "a.com.png", "image/png")

        assert (tmp_path / "a.com.png").read_bytes() == b"png"
        assert artifact.url == (tmp_path / "a.com.png").resolve().as_uri()

    def test_file_target_is_written(self, tmp_path) -> None:
        target = tmp_path / "shots" / "latest.png"
        LocalFileArtifactStore(target).store(b"png", "ignored.png", "image/png")
        assert target.read_bytes() == b"png"

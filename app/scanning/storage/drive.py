"""
Google Drive artifact store for scan screenshots.
"""

from __future__ import annotations

import io
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httplib2
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseUpload

from app.config import DriveSettings
from app.scanning.errors import ArtifactAuthError, ArtifactStoreError
from app.scanning.logging_utils import log_event
from app.scanning.storage.base import ArtifactStore, StoredArtifact

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/drive.file"]
FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
DOWNLOAD_URL_TEMPLATE = "https://drive.google.com/uc?export=view&id={file_id}"


def _load_credentials(token_path: str | None) -> Credentials:
    """
    Load authorized-user OAuth credentials, refreshing and rewriting the
    token file when it has expired. Raises ArtifactAuthError.
    """

    if not token_path or not Path(token_path).exists():
        raise ArtifactAuthError(f"Drive token not found at {token_path or '<unset DRIVE_TOKEN_PATH>'}")

    try:
        creds = Credentials.from_authorized_user_file(token_path, SCOPES)
        if creds and creds.expired and creds.refresh_token:
            logger.info("Refreshing Drive token at %s", token_path)
            creds.refresh(Request())
            Path(token_path).write_text(creds.to_json(), encoding="utf-8")
    except (GoogleAuthError, ValueError) as exc:
        raise ArtifactAuthError(f"Invalid Drive token at {token_path}: {exc}") from exc

    if not creds or not creds.valid:
        raise ArtifactAuthError(f"Invalid Drive credentials at {token_path}")
    return creds


def _build_drive_service(token_path: str | None) -> Any:
    creds = _load_credentials(token_path)
    return build("drive", "v3", credentials=creds, cache_discovery=False)


class DriveArtifactStore(ArtifactStore):
    """
    Upload artifacts into a named Drive folder and share them by link.
    """

    def __init__(
        self,
        settings: DriveSettings,
        *,
        service_factory: Callable[[], Any] | None = None,
    ) -> None:
        self._folder_name = settings.folder_name
        self._service_factory = service_factory or (lambda: _build_drive_service(settings.token_path))
        self._service: Any | None = None
        self._folder_id: str | None = None

    def store(self, blob: bytes, name: str, mime_type: str) -> StoredArtifact:
        """
        Upload ``blob`` and return its public download link.

        Rejected or unrefreshable credentials raise ArtifactAuthError and drop
        the cached client; other failures raise ArtifactStoreError.
        """

        service = self._drive()
        try:
            folder_id = self._get_or_create_folder(service)
            media = MediaIoBaseUpload(io.BytesIO(blob), mimetype=mime_type, resumable=False)
            created = (
                service.files()
                .create(
                    body={"name": name, "parents": [folder_id]},
                    media_body=media,
                    fields="id",
                )
                .execute()
            )
            file_id = created["id"]
            service.permissions().create(
                fileId=file_id,
                body={"role": "reader", "type": "anyone"},
            ).execute()
        except HttpError as exc:
            if exc.resp is not None and exc.resp.status in (401, 403):
                self._service = None
                raise ArtifactAuthError(f"Drive rejected upload of {name}: {exc}") from exc
            raise ArtifactStoreError(f"Drive upload of {name} failed: {exc}") from exc
        except GoogleAuthError as exc:
            self._service = None
            raise ArtifactAuthError(f"Drive credentials rejected for {name}: {exc}") from exc
        except (httplib2.HttpLib2Error, OSError) as exc:
            raise ArtifactStoreError(f"Drive upload of {name} failed: {exc}") from exc

        url = DOWNLOAD_URL_TEMPLATE.format(file_id=file_id)
        log_event(logger, logging.INFO, "artifact_uploaded", name=name, file_id=file_id)
        return StoredArtifact(url=url, file_id=file_id)

    def _drive(self) -> Any:
        if self._service is None:
            self._service = self._service_factory()
        return self._service

    def _get_or_create_folder(self, service: Any) -> str:
        if self._folder_id is not None:
            return self._folder_id

        escaped = self._folder_name.replace("'", "\\'")
        response = (
            service.files()
            .list(
                q=f"name='{escaped}' and mimeType='{FOLDER_MIME_TYPE}' and trashed=false",
                fields="files(id, name)",
                spaces="drive",
            )
            .execute()
        )
        files = response.get("files", [])
        if files:
            self._folder_id = files[0]["id"]
            return self._folder_id

        folder = (
            service.files()
            .create(body={"name": self._folder_name, "mimeType": FOLDER_MIME_TYPE}, fields="id")
            .execute()
        )
        self._folder_id = folder["id"]
        log_event(logger, logging.INFO, "artifact_folder_created", folder=self._folder_name)
        return self._folder_id


class NullArtifactStore(ArtifactStore):
    """
    Artifact store used when Drive is not configured; always unauthorized.
    """

    def store(self, blob: bytes, name: str, mime_type: str) -> StoredArtifact:
        raise ArtifactAuthError("No artifact store is configured")

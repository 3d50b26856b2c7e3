"""
Local filesystem artifact store, used by the CLI to keep screenshots.
"""

from __future__ import annotations

from pathlib import Path

from app.scanning.errors import ArtifactStoreError
from app.scanning.storage.base import ArtifactStore, StoredArtifact


class LocalFileArtifactStore(ArtifactStore):
    """
    Write each artifact to ``target``; a directory target keeps the
    artifact name, a file target is overwritten.
    """

    def __init__(self, target: str | Path) -> None:
        self._target = Path(target)

    def store(self, blob: bytes, name: str, mime_type: str) -> StoredArtifact:
        path = self._target / name if self._target.is_dir() else self._target
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(blob)
        except OSError as exc:
            raise ArtifactStoreError(f"Failed to write {path}: {exc}") from exc
        resolved = path.resolve()
        return StoredArtifact(url=resolved.as_uri(), file_id=str(resolved))

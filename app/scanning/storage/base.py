"""
Storage layer interfaces for scan results, screenshots and domain lists.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass

from app.domain.scan import ScanRow
from app.scanning.normalization import normalize_domain_list


@dataclass(frozen=True)
class SinkResult:
    saved_count: int


@dataclass(frozen=True)
class StoredArtifact:
    url: str
    file_id: str | None = None


class ResultSink(ABC):
    """
    Append-only destination for scan rows.
    """

    @abstractmethod
    def append_rows(self, rows: Sequence[ScanRow]) -> SinkResult:
        """
        Persist rows in order, creating the backing store with its header
        on first use. Raises SinkError on failure.
        """


class ArtifactStore(ABC):
    """
    Binary artifact upload returning a shareable reference.
    """

    @abstractmethod
    def store(self, blob: bytes, name: str, mime_type: str) -> StoredArtifact:
        """
        Raises ArtifactAuthError when unauthorized, ArtifactStoreError otherwise.
        """


class DomainSource(ABC):
    @abstractmethod
    def load_domains(self) -> list[str]:
        """
        Return normalized, non-blank domains in source order.
        """


class StaticDomainSource(DomainSource):
    """
    Fixed domain list, used by the CLI and in tests.
    """

    def __init__(self, domains: Sequence[str]) -> None:
        self._domains = normalize_domain_list(domains)

    def load_domains(self) -> list[str]:
        return list(self._domains)

"""
Storage layer exports.
"""

from app.scanning.storage.base import (
    ArtifactStore,
    DomainSource,
    ResultSink,
    SinkResult,
    StaticDomainSource,
    StoredArtifact,
)
from app.scanning.storage.drive import DriveArtifactStore, NullArtifactStore
from app.scanning.storage.local import LocalFileArtifactStore
from app.scanning.storage.sheets import SheetDomainSource, SheetResultSink
from app.scanning.storage.sqlalchemy_storage import SQLAlchemyResultSink

__all__ = [
    "ArtifactStore",
    "DomainSource",
    "DriveArtifactStore",
    "LocalFileArtifactStore",
    "NullArtifactStore",
    "ResultSink",
    "SQLAlchemyResultSink",
    "SheetDomainSource",
    "SheetResultSink",
    "SinkResult",
    "StaticDomainSource",
    "StoredArtifact",
]

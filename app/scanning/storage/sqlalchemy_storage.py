"""
SQLAlchemy-backed result sink.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.scan import ScanRow
from app.repositories.scan_result_repository import ScanResultRepository
from app.scanning.errors import SinkError
from app.scanning.logging_utils import log_event
from app.scanning.storage.base import ResultSink, SinkResult

logger = logging.getLogger(__name__)


class SQLAlchemyResultSink(ResultSink):
    """
    Persist scan rows to the ``scan_results`` table, one commit per call.
    """

    def __init__(self, *, session_factory: Callable[[], Session], batch_size: int = 500) -> None:
        self._session_factory = session_factory
        self._batch_size = max(1, batch_size)
        self._table_ready = False

    def append_rows(self, rows: Sequence[ScanRow]) -> SinkResult:
        if not rows:
            return SinkResult(saved_count=0)

        session = self._session_factory()
        repository = ScanResultRepository(session)
        try:
            if not self._table_ready:
                repository.ensure_table()
                self._table_ready = True
            saved = repository.bulk_insert(rows, batch_size=self._batch_size)
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise SinkError(f"Failed to persist {len(rows)} scan rows: {exc}") from exc
        finally:
            session.close()

        log_event(logger, logging.INFO, "rows_persisted", sink="database", saved_count=saved)
        return SinkResult(saved_count=saved)

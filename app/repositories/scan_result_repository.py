"""
app/repositories/scan_result_repository.py

Persistence layer for scan result rows.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from sqlalchemy import insert
from sqlalchemy.orm import Session

from app.domain.scan import ScanRow
from db.models.scan_result import ScanResultRecord

_DEFAULT_BATCH_SIZE = 500


class ScanResultRepository:
    """
    Repository for batch inserts of scan result rows.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def ensure_table(self) -> None:
        """
        Create the ``scan_results`` table when it does not exist yet.
        """

        ScanResultRecord.__table__.create(bind=self._session.get_bind(), checkfirst=True)

    def bulk_insert(
        self,
        rows: Sequence[ScanRow],
        *,
        batch_size: int = _DEFAULT_BATCH_SIZE,
    ) -> int:
        if not rows:
            return 0

        payloads = [self._to_payload(row) for row in rows]
        size = max(1, batch_size)
        for start in range(0, len(payloads), size):
            self._session.execute(insert(ScanResultRecord), payloads[start : start + size])
        return len(payloads)

    @staticmethod
    def _to_payload(row: ScanRow) -> dict[str, Any]:
        return {
            "domain": row.domain,
            "publisher_name": row.publisher_name,
            "publisher_id": row.publisher_id,
            "creative_id": row.creative_id,
            "legal_name": row.legal_name,
            "verified": "Yes" if row.verified else "No",
            "location": row.location,
            "total_ads": row.total_ads,
            "region": row.region,
            "ad_formats": ", ".join(row.ad_formats),
            "last_seen_date": row.last_seen_date,
            "shown_in_regions": row.shown_in_regions,
            "ad_media_url": row.ad_media_url,
            "ad_text": row.ad_text,
            "scan_date": row.scan_date,
            "status": row.status,
        }

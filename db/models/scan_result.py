"""
db/models/scan_result.py

One persisted ScanRow: a publisher summary or an error for one domain scan.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base


class ScanResultRecord(Base):
    __tablename__ = "scan_results"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    domain: Mapped[str] = mapped_column(String(255), nullable=False)
    publisher_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    publisher_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    creative_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    legal_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    verified: Mapped[str] = mapped_column(
        String(3),
        nullable=False,
        comment="Yes or No",
    )
    location: Mapped[str | None] = mapped_column(String(120), nullable=True)
    total_ads: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    region: Mapped[str] = mapped_column(String(64), nullable=False)
    ad_formats: Mapped[str] = mapped_column(
        String(120),
        nullable=False,
        default="",
        comment="Comma-joined Text, Image, Video",
    )
    last_seen_date: Mapped[str | None] = mapped_column(String(64), nullable=True)
    shown_in_regions: Mapped[str | None] = mapped_column(String(255), nullable=True)
    ad_media_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    ad_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    scan_date: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="Localized timestamp with timezone label",
    )
    status: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="success or error: <message>",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        Index("ix_scan_results_domain", "domain"),
        Index("ix_scan_results_publisher_id", "publisher_id"),
    )

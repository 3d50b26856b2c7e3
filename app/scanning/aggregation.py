"""
app/scanning/aggregation.py

Group extracted creatives under publishers and merge detail-page facts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace

from app.domain.scan import (
    Advertiser,
    Creative,
    PublisherSummary,
    SupplementaryDetails,
)
from app.scanning.logging_utils import log_event

logger = logging.getLogger(__name__)


@dataclass
class _PublisherGroup:
    id: str | None
    name: str | None
    ads: list[Creative] = field(default_factory=list)
    verified: bool = False


class PublisherAggregator:
    """
    Build one ``PublisherSummary`` per distinct publisher seen on a domain.
    """

    def aggregate(
        self,
        *,
        domain: str,
        creatives: list[Creative],
        advertiser: Advertiser | None,
        supplementary: SupplementaryDetails | None = None,
    ) -> list[PublisherSummary]:
        groups = self._group(creatives=creatives, advertiser=advertiser)
        summaries = [self._summarize(group, advertiser) for group in groups]

        if not summaries:
            summaries = [
                PublisherSummary(
                    name=domain,
                    id=None,
                    ads=list(creatives),
                    ad_formats=union_formats(creatives),
                )
            ]
            log_event(
                logger,
                logging.DEBUG,
                "publisher_fallback_used",
                domain=domain,
                creatives=len(creatives),
            )

        if supplementary is not None:
            summaries = self._merge_supplementary(summaries, supplementary)
        return summaries

    def _group(
        self,
        *,
        creatives: list[Creative],
        advertiser: Advertiser | None,
    ) -> list[_PublisherGroup]:
        page_key = None
        if advertiser is not None:
            page_key = advertiser.id or advertiser.name

        groups: dict[str, _PublisherGroup] = {}
        for creative in creatives:
            key = creative.advertiser_id or creative.advertiser_name
            if key is not None:
                group = groups.get(key)
                if group is None:
                    group = _PublisherGroup(id=creative.advertiser_id, name=creative.advertiser_name)
                    groups[key] = group
            elif page_key is not None:
                group = groups.get(page_key)
                if group is None:
                    group = _PublisherGroup(id=advertiser.id, name=advertiser.name)
                    groups[page_key] = group
            else:
                continue

            group.ads.append(creative)
            group.verified = group.verified or creative.verified
            if group.name is None and creative.advertiser_name:
                group.name = creative.advertiser_name

        if not groups and page_key is not None:
            groups[page_key] = _PublisherGroup(id=advertiser.id, name=advertiser.name)
        return list(groups.values())

    @staticmethod
    def _summarize(group: _PublisherGroup, advertiser: Advertiser | None) -> PublisherSummary:
        summary = PublisherSummary(
            name=group.name,
            id=group.id,
            ads=list(group.ads),
            ad_formats=union_formats(group.ads),
            verified=group.verified,
        )
        if advertiser is None or not _same_publisher(summary, advertiser):
            return summary
        return replace(
            summary,
            name=summary.name or advertiser.name,
            legal_name=advertiser.legal_name,
            location=advertiser.location,
            verified=summary.verified or advertiser.verified,
        )

    @staticmethod
    def _merge_supplementary(
        summaries: list[PublisherSummary],
        supplementary: SupplementaryDetails,
    ) -> list[PublisherSummary]:
        target_index: int | None = None
        for index, summary in enumerate(summaries):
            if supplementary.publisher_id is not None and summary.id == supplementary.publisher_id:
                target_index = index
                break
        if target_index is None and len(summaries) == 1:
            target_index = 0
        if target_index is None:
            return summaries

        merged = list(summaries)
        merged[target_index] = merge_details(merged[target_index], supplementary)
        return merged


def merge_details(summary: PublisherSummary, details: SupplementaryDetails) -> PublisherSummary:
    """
    Overlay detail-page facts; ``None`` never replaces a known value and
    ``verified`` only ever turns true.
    """

    updates: dict[str, object] = {}
    for field_name in ("legal_name", "location", "last_seen_date", "shown_in_regions"):
        value = getattr(details, field_name)
        if value is not None:
            updates[field_name] = value
    if details.verified:
        updates["verified"] = True
    if details.format and details.format not in summary.ad_formats:
        updates["ad_formats"] = [*summary.ad_formats, details.format]
    if not updates:
        return summary
    return replace(summary, **updates)


def union_formats(creatives: list[Creative]) -> list[str]:
    formats: list[str] = []
    for creative in creatives:
        if creative.format and creative.format not in formats:
            formats.append(creative.format)
    return formats


def _same_publisher(summary: PublisherSummary, advertiser: Advertiser) -> bool:
    if summary.id is not None and advertiser.id is not None:
        return summary.id == advertiser.id
    return summary.name is not None and summary.name == advertiser.name

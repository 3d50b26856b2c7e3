"""
BeautifulSoup-based extraction layer for ads transparency pages.

Every method here is a pure transform over captured page text and HTML.
Missing content yields empty or ``None`` fields, never an exception.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from bs4 import BeautifulSoup, Tag

from app.config import DEFAULT_BASE_URL
from app.domain.scan import (
    AdFormat,
    Advertiser,
    AdvertiserDetails,
    Creative,
    CreativeDetails,
    Dimensions,
    SearchExtraction,
)
from app.scanning.normalization import strip_directional_marks, translate_to_english

_ADS_UNIT = r"(?:ads?|מודעות)"
_QUALIFIER = r"(?:about|approximately|בערך)"


@dataclass(frozen=True)
class AdCountPattern:
    regex: re.Pattern[str]
    thousands: bool


# First match wins.
AD_COUNT_PATTERNS: tuple[AdCountPattern, ...] = (
    AdCountPattern(
        re.compile(rf"(?:{_QUALIFIER}\s*)?(\d+(?:\.\d+)?)\s*K\s*{_ADS_UNIT}", flags=re.IGNORECASE),
        thousands=True,
    ),
    AdCountPattern(
        re.compile(rf"{_QUALIFIER}\s*(\d+(?:\.\d+)?)\s*K", flags=re.IGNORECASE),
        thousands=True,
    ),
    AdCountPattern(
        re.compile(rf"(\d+(?:,\d+)*)\s*{_ADS_UNIT}", flags=re.IGNORECASE),
        thousands=False,
    ),
)

NO_RESULTS_MARKERS = ("No ads match", "No results", "אין מודעות")
VERIFIED_MARKERS = ("המפרסם אימת את הזהות", "verified", "מאומת")

CREATIVE_SELECTOR = "creative-preview"
CREATIVE_LINK_SELECTOR = 'a[href*="/creative/"]'
ADVERTISER_LINK_SELECTOR = 'a[href*="/advertiser/"]'
AD_IMAGE_SELECTOR = 'img[src*="googlesyndication"], img[src*="googleusercontent"]'
ADVERTISER_INFO_SELECTOR = "[data-advertiser-name]"

ADVERTISER_ID_REGEX = re.compile(r"/advertiser/(AR\d+)")
CREATIVE_ID_REGEX = re.compile(r"/creative/(CR\d+)")
POSITION_REGEX = re.compile(r"(\d+)\s*(?:מתוך|of)\s*(\d+)")
VERIFIED_COMPANY_REGEX = re.compile(
    r"\n([A-Za-z0-9][A-Za-z0-9\s]+(?:LTD|LLC|Inc|Corp|Ltd)\.?)\s*\n\s*(?:מאומת|Verified)",
    flags=re.IGNORECASE,
)
LEGAL_NAME_REGEX = re.compile(r"(?:שם חוקי|Legal name)[:\s]+([^\n]+)", flags=re.IGNORECASE)
COUNTRY_REGEX = re.compile(r"(?:מדינה|Country)[:\s]+([^\n]+)", flags=re.IGNORECASE)
LAST_SHOWN_REGEX = re.compile(
    r"(?:הוצגה בפעם האחרונה|Last shown)[:\s]+([^\n]+)",
    flags=re.IGNORECASE,
)
FORMAT_REGEX = re.compile(r"(?:פורמט|Format)[:\s]+([^\n]+)", flags=re.IGNORECASE)
SHOWN_IN_REGEX = re.compile(r"(?:הופיעו ב|Shown in)[:\s]+([^\n]+)", flags=re.IGNORECASE)

FORMAT_TRANSLATIONS = {
    "תמונה": AdFormat.IMAGE,
    "טקסט": AdFormat.TEXT,
    "סרטון": AdFormat.VIDEO,
    "וידאו": AdFormat.VIDEO,
}

AD_TEXT_LIMIT = 500


class PageExtractor:
    """
    Deterministic extractors for the search, advertiser and creative pages.
    """

    @classmethod
    def extract_search(
        cls,
        *,
        text: str,
        html: str,
        base_url: str = DEFAULT_BASE_URL,
    ) -> SearchExtraction:
        """
        Extract ad count, advertiser and creatives from the domain search page.
        """

        clean_text = strip_directional_marks(text)
        if cls.has_no_results_marker(clean_text):
            return SearchExtraction(has_results=False)

        total_ads, total_ads_text = cls.extract_ad_count(clean_text)
        soup = BeautifulSoup(html or "", "html.parser")
        creatives = cls.extract_creatives(soup=soup, base_url=base_url)
        advertiser = cls.extract_advertiser(soup=soup, clean_text=clean_text)

        return SearchExtraction(
            has_results=bool(creatives) or total_ads > 0,
            total_ads=total_ads,
            total_ads_text=total_ads_text,
            total_ads_in_view=creatives[0].total_in_view if creatives else None,
            advertiser=advertiser,
            creatives=creatives,
            ad_formats=cls.collect_formats(creatives),
        )

    @staticmethod
    def has_no_results_marker(clean_text: str) -> bool:
        return any(marker in clean_text for marker in NO_RESULTS_MARKERS)

    @staticmethod
    def extract_ad_count(clean_text: str) -> tuple[int, str]:
        """
        Return ``(count, matched excerpt)``; ``(0, "")`` when nothing matches.
        """

        for pattern in AD_COUNT_PATTERNS:
            match = pattern.regex.search(clean_text or "")
            if match is None:
                continue
            try:
                value = Decimal(match.group(1).replace(",", ""))
            except InvalidOperation:
                continue
            if pattern.thousands:
                value *= 1000
            count = int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
            return count, match.group(0).strip()
        return 0, ""

    @classmethod
    def extract_creatives(cls, *, soup: BeautifulSoup, base_url: str) -> list[Creative]:
        creatives: list[Creative] = []
        for index, node in enumerate(soup.select(CREATIVE_SELECTOR)):
            creatives.append(cls._parse_creative(node=node, index=index, base_url=base_url))
        return creatives

    @classmethod
    def extract_advertiser(cls, *, soup: BeautifulSoup, clean_text: str) -> Advertiser | None:
        """
        Resolve the page-level advertiser from the first creative card,
        falling back to a verified company name in the page text.
        """

        advertiser: Advertiser | None = None
        first_creative = soup.select_one(CREATIVE_SELECTOR)
        if first_creative is not None:
            link = first_creative.select_one(ADVERTISER_LINK_SELECTOR)
            if link is not None:
                advertiser_id, _ = cls.parse_creative_path(link.get("href"))
                name_node = first_creative.select_one('.advertiser-name, [class*="advertiser"]')
                advertiser = Advertiser(
                    id=advertiser_id,
                    name=cls._node_text(name_node) or None,
                )

        if advertiser is None or advertiser.name is None:
            info_node = soup.select_one(ADVERTISER_INFO_SELECTOR)
            info_name = cls._clean_line(str(info_node.get("data-advertiser-name") or "")) if info_node else ""
            if info_name:
                advertiser = Advertiser(
                    id=advertiser.id if advertiser else None,
                    name=info_name,
                )

        company_match = VERIFIED_COMPANY_REGEX.search(clean_text or "")
        if company_match is not None:
            advertiser = Advertiser(
                id=advertiser.id if advertiser else None,
                name=company_match.group(1).strip(),
                verified=True,
            )
        return advertiser

    @classmethod
    def extract_advertiser_details(cls, text: str) -> AdvertiserDetails:
        """
        Legal name, country and verification from the advertiser page.
        """

        clean_text = strip_directional_marks(text)
        lowered = clean_text.lower()
        return AdvertiserDetails(
            legal_name=cls._first_group(LEGAL_NAME_REGEX, clean_text),
            location=translate_to_english(cls._first_group(COUNTRY_REGEX, clean_text)),
            verified=any(marker in lowered for marker in VERIFIED_MARKERS),
        )

    @classmethod
    def extract_creative_details(cls, text: str) -> CreativeDetails:
        """
        Last shown date, canonical format and regions from the creative page.
        """

        clean_text = strip_directional_marks(text)
        raw_format = cls._first_group(FORMAT_REGEX, clean_text)
        return CreativeDetails(
            last_seen_date=translate_to_english(cls._first_group(LAST_SHOWN_REGEX, clean_text)),
            format=FORMAT_TRANSLATIONS.get(raw_format, raw_format) if raw_format else None,
            shown_in=translate_to_english(cls._first_group(SHOWN_IN_REGEX, clean_text)),
        )

    @staticmethod
    def detect_format(node: Tag) -> str:
        if node.select_one("video") is not None:
            return AdFormat.VIDEO
        if node.select_one(AD_IMAGE_SELECTOR) is not None:
            return AdFormat.IMAGE
        return AdFormat.TEXT

    @staticmethod
    def collect_formats(creatives: list[Creative]) -> list[str]:
        """
        Formats in order of first appearance, without duplicates.
        """

        formats: list[str] = []
        for creative in creatives:
            if creative.format and creative.format not in formats:
                formats.append(creative.format)
        return formats

    @staticmethod
    def parse_creative_path(href: object) -> tuple[str | None, str | None]:
        """
        Split ``/advertiser/<AR…>/creative/<CR…>`` into its two ids.
        """

        if not isinstance(href, str) or not href:
            return None, None
        advertiser_match = ADVERTISER_ID_REGEX.search(href)
        creative_match = CREATIVE_ID_REGEX.search(href)
        return (
            advertiser_match.group(1) if advertiser_match else None,
            creative_match.group(1) if creative_match else None,
        )

    @classmethod
    def _parse_creative(cls, *, node: Tag, index: int, base_url: str) -> Creative:
        link = node.select_one(CREATIVE_LINK_SELECTOR) or node.select_one(ADVERTISER_LINK_SELECTOR)
        href = link.get("href") if link is not None else None
        href = href if isinstance(href, str) else None
        advertiser_id, creative_id = cls.parse_creative_path(href)

        aria_label = link.get("aria-label") if link is not None else None
        position_match = POSITION_REGEX.search(aria_label) if isinstance(aria_label, str) else None

        image = node.select_one(AD_IMAGE_SELECTOR)
        video = node.select_one("video")
        video_url: str | None = None
        if video is not None:
            source = video.select_one("source")
            video_url = cls._attr(video, "src") or (cls._attr(source, "src") if source else None)

        width = cls._int_attr(image, "width")
        height = cls._int_attr(image, "height")

        return Creative(
            index=index,
            creative_id=creative_id,
            advertiser_id=advertiser_id,
            position=int(position_match.group(1)) if position_match else index + 1,
            total_in_view=int(position_match.group(2)) if position_match else None,
            url=cls._absolute_url(href, base_url),
            advertiser_name=cls._node_text(node.select_one(".advertiser-name")) or None,
            verified=(
                node.select_one(".verified") is not None
                or node.select_one(".advertiser-name-verified") is not None
            ),
            format=cls.detect_format(node),
            dimensions=Dimensions(width=width, height=height) if width and height else None,
            image_url=cls._attr(image, "src") if image is not None else None,
            video_url=video_url,
            ad_text=node.get_text("\n", strip=True)[:AD_TEXT_LIMIT],
        )

    @staticmethod
    def _absolute_url(href: str | None, base_url: str) -> str | None:
        if not href:
            return None
        if href.startswith(("http://", "https://")):
            return href
        return f"{base_url.rstrip('/')}/{href.lstrip('/')}"

    @staticmethod
    def _attr(node: Tag | None, name: str) -> str | None:
        if node is None:
            return None
        value = node.get(name)
        if isinstance(value, str) and value.strip():
            return value.strip()
        return None

    @classmethod
    def _int_attr(cls, node: Tag | None, name: str) -> int | None:
        raw = cls._attr(node, name)
        if raw is None:
            return None
        try:
            return int(float(raw))
        except (ValueError, OverflowError):
            return None

    @classmethod
    def _node_text(cls, node: Tag | None) -> str:
        if node is None:
            return ""
        return cls._clean_line(node.get_text(" ", strip=True))

    @staticmethod
    def _clean_line(value: str) -> str:
        return re.sub(r"\s+", " ", value).strip()

    @staticmethod
    def _first_group(regex: re.Pattern[str], text: str) -> str | None:
        match = regex.search(text or "")
        if match is None:
            return None
        value = match.group(1).strip()
        return value or None

"""
Domain and locale normalization for scan inputs and extracted text.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence

from app.domain.scan import DEFAULT_REGION, DomainQuery

_SCHEME_REGEX = re.compile(r"^https?://", flags=re.IGNORECASE)
_WWW_PREFIX_REGEX = re.compile(r"^www\.", flags=re.IGNORECASE)
_DIRECTIONAL_MARKS_REGEX = re.compile(r"[\u200e\u200f]")

# Applied top to bottom; each entry sees the output of the ones before it.
# Entries that contain another entry must come first (Singapore before China).
LOCALE_TABLE: tuple[tuple[str, str], ...] = (
    # Countries
    ("הולנד", "Netherlands"),
    ("ישראל", "Israel"),
    ("ארצות הברית", "United States"),
    ("בריטניה", "United Kingdom"),
    ("גרמניה", "Germany"),
    ("צרפת", "France"),
    ("ספרד", "Spain"),
    ("איטליה", "Italy"),
    ("קנדה", "Canada"),
    ("אוסטרליה", "Australia"),
    ("יפן", "Japan"),
    ("סינגפור", "Singapore"),
    ("סין", "China"),
    ("הודו", "India"),
    ("ברזיל", "Brazil"),
    ("רוסיה", "Russia"),
    ("מקסיקו", "Mexico"),
    ("פולין", "Poland"),
    ("טורקיה", "Turkey"),
    ("אוקראינה", "Ukraine"),
    ("שוויץ", "Switzerland"),
    ("אוסטריה", "Austria"),
    ("בלגיה", "Belgium"),
    ("שוודיה", "Sweden"),
    ("נורבגיה", "Norway"),
    ("דנמרק", "Denmark"),
    ("פינלנד", "Finland"),
    ("פורטוגל", "Portugal"),
    ("יוון", "Greece"),
    ("צ'כיה", "Czech Republic"),
    ("רומניה", "Romania"),
    ("הונגריה", "Hungary"),
    ("אירלנד", "Ireland"),
    ("ניו זילנד", "New Zealand"),
    ("הונג קונג", "Hong Kong"),
    ("דרום קוריאה", "South Korea"),
    ("תאילנד", "Thailand"),
    ("מלזיה", "Malaysia"),
    ("אינדונזיה", "Indonesia"),
    ("פיליפינים", "Philippines"),
    ("וייטנאם", "Vietnam"),
    ("ארגנטינה", "Argentina"),
    ("קולומביה", "Colombia"),
    ("צ'ילה", "Chile"),
    ("פרו", "Peru"),
    ("מצרים", "Egypt"),
    ("דרום אפריקה", "South Africa"),
    ("איחוד האמירויות", "United Arab Emirates"),
    ("סעודיה", "Saudi Arabia"),
    # Regions / "shown in"
    ("בכל מקום", "Everywhere"),
    ("כל המקומות", "All locations"),
    # Month abbreviations as rendered in dates ("4 בפבר׳ 2026")
    ("בינו׳", "Jan"),
    ("בפבר׳", "Feb"),
    ("במרץ", "Mar"),
    ("באפר׳", "Apr"),
    ("במאי", "May"),
    ("ביוני", "Jun"),
    ("ביולי", "Jul"),
    ("באוג׳", "Aug"),
    ("בספט׳", "Sep"),
    ("באוק׳", "Oct"),
    ("בנוב׳", "Nov"),
    ("בדצמ׳", "Dec"),
)


def normalize_domain(raw: object) -> str:
    """
    Strip scheme, ``www.`` prefix and trailing slashes; lower-case the rest.

    Repeats until nothing changes, so the result is a fixed point.
    """

    value = str(raw if raw is not None else "").strip().lower()
    previous: str | None = None
    while value != previous:
        previous = value
        value = _SCHEME_REGEX.sub("", value)
        value = _WWW_PREFIX_REGEX.sub("", value)
        value = value.rstrip("/").strip()
    return value


def build_query(domain: object, region: str | None = None) -> DomainQuery:
    """
    Build a normalized query. Raises ValueError for blank domains.
    """

    normalized = normalize_domain(domain)
    if not normalized:
        raise ValueError("Missing required parameter: domain")
    normalized_region = (region or "").strip() or DEFAULT_REGION
    return DomainQuery(domain=normalized, region=normalized_region)


def normalize_domain_list(values: Iterable[object]) -> list[str]:
    """
    Normalize raw domain entries, dropping blanks and keeping order.
    """

    normalized: list[str] = []
    for value in values:
        domain = normalize_domain(value)
        if domain:
            normalized.append(domain)
    return normalized


def parse_domain_column(values: Sequence[object], *, has_header: bool = True) -> list[str]:
    """
    Turn one spreadsheet column into a domain list, skipping the header row.
    """

    rows = values[1:] if has_header else values
    return normalize_domain_list(rows)


def strip_directional_marks(text: str | None) -> str:
    if not text:
        return ""
    return _DIRECTIONAL_MARKS_REGEX.sub("", text)


def translate_to_english(text: str | None) -> str | None:
    """
    Replace known Hebrew country, region and month phrases with English.
    """

    if not text:
        return text
    result = text
    for hebrew, english in LOCALE_TABLE:
        result = result.replace(hebrew, english)
    return result

"""
Page extraction exports.
"""

from app.scanning.parsing.page_extractors import AD_COUNT_PATTERNS, PageExtractor

__all__ = ["AD_COUNT_PATTERNS", "PageExtractor"]

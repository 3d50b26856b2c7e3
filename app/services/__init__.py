"""
app/services package marker.
"""

from app.services.scan_service import (
    ScanService,
    get_domain_scanner,
    get_domain_source,
    get_result_sink,
    get_scan_lock,
    get_scan_service,
)

__all__ = [
    "ScanService",
    "get_domain_scanner",
    "get_domain_source",
    "get_result_sink",
    "get_scan_lock",
    "get_scan_service",
]

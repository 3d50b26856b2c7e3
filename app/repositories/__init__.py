"""
app/repositories package marker.
"""

from app.repositories.scan_result_repository import ScanResultRepository

__all__ = [
    "ScanResultRepository",
]

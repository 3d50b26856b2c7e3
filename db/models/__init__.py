"""
Model package exports.

Import all SQLAlchemy models here so metadata registration works without
extra imports.
"""

from db.models.scan_result import ScanResultRecord

__all__ = [
    "ScanResultRecord",
]

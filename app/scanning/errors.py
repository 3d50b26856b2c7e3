"""
Exceptions raised across the scan pipeline and its adapters.
"""

from __future__ import annotations


class ScanError(Exception):
    """Base exception for scan pipeline failures."""


class NavigationError(ScanError):
    """Raised when the first page load for a domain fails."""

    def __init__(self, domain: str, message: str) -> None:
        super().__init__(f"Navigation failed for {domain}: {message}")
        self.domain = domain
        self.reason = message


class SinkError(ScanError):
    """Raised when appending rows to the result sink fails."""


class ArtifactStoreError(ScanError):
    """Raised when uploading a screenshot artifact fails."""


class ArtifactAuthError(ArtifactStoreError):
    """Raised when the artifact store has no usable authorization."""


class DomainSourceError(ScanError):
    """Raised when the domain list cannot be loaded."""


class ScanBusyError(ScanError):
    """Raised when an ad-hoc scan is requested while another scan holds the lock."""


class SchedulerConfigError(ValueError):
    """Raised when the batch scheduler is started with invalid parameters."""


class BatchLimitError(ValueError):
    """Raised when a manual batch request exceeds the per-call domain cap."""

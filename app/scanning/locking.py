"""
Process-wide exclusive lock shared by scheduled and ad-hoc scans.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager

from app.scanning.errors import ScanBusyError


class ScanLock:
    """
    Non-reentrant lock that remembers who holds it.

    Scheduled runs acquire with ``blocking=True``; API requests acquire with
    ``blocking=False`` and surface ``ScanBusyError`` as a 409.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._holder: str | None = None

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    @property
    def holder(self) -> str | None:
        return self._holder

    @contextmanager
    def hold(
        self,
        owner: str,
        *,
        blocking: bool = True,
        timeout: float | None = None,
    ) -> Iterator[None]:
        if blocking:
            acquired = self._lock.acquire(timeout=-1 if timeout is None else timeout)
        else:
            acquired = self._lock.acquire(blocking=False)
        if not acquired:
            raise ScanBusyError(f"A scan is already in progress ({self._holder or 'unknown'})")

        self._holder = owner
        try:
            yield
        finally:
            self._holder = None
            self._lock.release()

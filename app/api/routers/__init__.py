"""
app/api/routers package marker.
"""

from app.api.routers.scan import router as scan_router
from app.api.routers.scheduler import router as scheduler_router

__all__ = [
    "scan_router",
    "scheduler_router",
]

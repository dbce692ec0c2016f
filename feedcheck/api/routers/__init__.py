"""
feedcheck/api/routers package marker.
"""

from feedcheck.api.routers.validation import router as validation_router

__all__ = [
    "validation_router",
]

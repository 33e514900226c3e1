"""
Routers package for API endpoints.

This package contains all API route handlers organized by functionality.
"""

from .admin import router as admin_router
from .recordings import router as recordings_router
from .screenshot import router as screenshot_router

__all__ = [
    "admin_router",
    "recordings_router",
    "screenshot_router",
]

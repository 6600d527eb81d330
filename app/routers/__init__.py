"""
Routers package for API endpoints.

This package contains all API route handlers organized by functionality.
"""

from .ringtones import router as ringtones_router

__all__ = [
    "ringtones_router",
]

# backend/routes/__init__.py
"""
Routes package for the StatShark API
Contains all API endpoint routers
"""
from .predictions import router as predictions_router
from .teams import router as teams_router
from .cache import router as cache_router
from .health import router as health_router

__all__ = ["predictions_router", "teams_router", "cache_router", "health_router"]

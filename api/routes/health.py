"""
Health check endpoint.
"""

import time

from fastapi import APIRouter, Depends

from api.deps import get_settings, start_time
from config.settings import Settings
from stepdoc import __version__

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check(settings: Settings = Depends(get_settings)):
    """Basic health check endpoint"""
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": __version__,
        "timestamp": time.time(),
        "uptime_seconds": round(time.time() - start_time, 3),
    }

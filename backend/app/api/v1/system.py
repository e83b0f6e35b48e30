"""
API endpoints for system-wide operations and diagnostics.
"""

from fastapi import APIRouter

from ...ai_bridge.query_service import integration_query_service
from ...core.config import settings

router = APIRouter()


@router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": "support-integration-bridge",
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT,
    }


@router.get("/integration-cache")
async def get_integration_cache_stats():
    """Size and keys of the integration query cache"""
    return integration_query_service.get_cache_stats()


@router.delete("/integration-cache")
async def clear_integration_cache():
    """Drop every cached integration lookup"""
    integration_query_service.clear_cache()
    return {"success": True, "message": "Integration cache cleared"}

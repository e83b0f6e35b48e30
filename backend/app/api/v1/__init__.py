"""
API v1 module initialization.
"""

from fastapi import APIRouter
from .system import router as system_router

api_router = APIRouter()

# Include all v1 routers
api_router.include_router(system_router, prefix="/system", tags=["system"])

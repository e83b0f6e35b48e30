import os
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from app.api.v1 import api_router
from app.api.webhooks import router as webhooks_router
from app.ai_bridge.query_service import integration_query_service
from app.core.config import settings
from app.core.exceptions import setup_exception_handlers
from app.core.logging_config import setup_logging
from app.core.rate_limiter import initialize_rate_limiter, cleanup_rate_limiter


if not os.environ.get("TESTING"):
    setup_logging("DEBUG" if settings.DEBUG else "INFO")

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Support Integration Bridge API",
    description="Live CRM and eCommerce context for support chat, plus Shopify and HubSpot webhook ingestion",
    version="1.0.0",
    docs_url="/docs" if settings.ENVIRONMENT == "development" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT == "development" else None,
)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses"""
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        if settings.ENVIRONMENT == "production":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        return response


if not os.environ.get("TESTING"):
    app.add_middleware(SecurityHeadersMiddleware)

# Compression middleware (safe for tests)
app.add_middleware(GZipMiddleware, minimum_size=1000)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE"],
    allow_headers=["Authorization", "Content-Type", "Accept", "Origin"],
    max_age=600,
)

# Exception handlers
setup_exception_handlers(app)

# Routes
app.include_router(api_router, prefix=settings.API_V1_STR)
app.include_router(webhooks_router, prefix="/api/webhooks", tags=["webhooks"])


@app.get("/")
async def root():
    return {"message": "Support Integration Bridge API", "version": "1.0.0"}


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


@app.on_event("startup")
async def startup_event():
    """Initialize services on startup"""
    # Skip Redis initialization in test environment
    if not os.environ.get("TESTING"):
        await initialize_rate_limiter()
    logger.info(f"Support integration bridge started ({settings.ENVIRONMENT})")


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup services on shutdown"""
    integration_query_service.clear_cache()
    if not os.environ.get("TESTING"):
        await cleanup_rate_limiter()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True if settings.ENVIRONMENT == "development" else False
    )

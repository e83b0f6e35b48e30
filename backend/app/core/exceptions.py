"""
Exception hierarchy and FastAPI exception handlers.
"""

import logging
from typing import Any, Dict, List
from fastapi import Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .responses import ErrorResponse, ResponseStatus

logger = logging.getLogger(__name__)

class BaseAPIException(Exception):
    """Base exception for API errors"""
    status_code = 500

    def __init__(self, message: str, code: str = None, details: Dict[str, Any] = None):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

class ValidationException(BaseAPIException):
    """Validation error exception"""
    status_code = 400

    def __init__(self, message: str, field_errors: List[str] = None):
        self.field_errors = field_errors or []
        super().__init__(message, code="VALIDATION_ERROR", details={"field_errors": self.field_errors})

class UnauthorizedException(BaseAPIException):
    """Unauthorized access exception"""
    status_code = 401

    def __init__(self, message: str = "Unauthorized access"):
        super().__init__(message, code="UNAUTHORIZED")

class RateLimitException(BaseAPIException):
    """Rate limit exceeded exception"""
    status_code = 429

    def __init__(self, message: str = "Rate limit exceeded", retry_after: int = None):
        details = {}
        if retry_after:
            details["retry_after"] = retry_after
        super().__init__(message, code="RATE_LIMIT_EXCEEDED", details=details)

class WebhookProcessingException(BaseAPIException):
    """Unhandled failure while applying a webhook delivery"""
    status_code = 500

    def __init__(self, message: str = "Internal server error", provider: str = None):
        details = {}
        if provider:
            details["provider"] = provider
        super().__init__(message, code="WEBHOOK_PROCESSING_ERROR", details=details)

def setup_exception_handlers(app):
    """Setup exception handlers for the FastAPI app"""

    @app.exception_handler(BaseAPIException)
    async def base_api_exception_handler(request: Request, exc: BaseAPIException):
        """Handle custom API exceptions"""
        logger.warning(f"API Exception: {exc.message} (Code: {exc.code})", extra={
            "exception_type": exc.__class__.__name__,
            "code": exc.code,
            "details": exc.details,
            "path": request.url.path,
            "method": request.method
        })

        error_response = ErrorResponse(
            status=ResponseStatus.ERROR,
            message=exc.message,
            code=exc.code,
            details=exc.details
        )

        headers = None
        if isinstance(exc, RateLimitException) and exc.details.get("retry_after"):
            headers = {"Retry-After": str(exc.details["retry_after"])}

        return JSONResponse(
            status_code=exc.status_code,
            content=error_response.model_dump(),
            headers=headers
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle Pydantic validation errors"""
        logger.warning(f"Validation Error: {exc.errors()}", extra={
            "path": request.url.path,
            "method": request.method
        })

        field_errors = []
        for error in exc.errors():
            field_path = " -> ".join(str(loc) for loc in error["loc"])
            field_errors.append(f"{field_path}: {error['msg']}")

        error_response = ErrorResponse(
            status=ResponseStatus.ERROR,
            message="Validation failed",
            errors=field_errors,
            code="VALIDATION_ERROR"
        )

        return JSONResponse(
            status_code=422,
            content=error_response.model_dump()
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        """Handle FastAPI HTTP exceptions"""
        logger.warning(f"HTTP Exception: {exc.detail}", extra={
            "status_code": exc.status_code,
            "path": request.url.path,
            "method": request.method
        })

        error_response = ErrorResponse(
            status=ResponseStatus.ERROR,
            message=str(exc.detail),
            code=f"HTTP_{exc.status_code}"
        )

        return JSONResponse(
            status_code=exc.status_code,
            content=error_response.model_dump(),
            headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(StarletteHTTPException)
    async def starlette_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle Starlette HTTP exceptions (404/405 from routing)"""
        logger.warning(f"Starlette Exception: {exc.detail}", extra={
            "status_code": exc.status_code,
            "path": request.url.path,
            "method": request.method
        })

        error_response = ErrorResponse(
            status=ResponseStatus.ERROR,
            message=str(exc.detail),
            code=f"HTTP_{exc.status_code}"
        )

        return JSONResponse(
            status_code=exc.status_code,
            content=error_response.model_dump(),
            headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions"""
        logger.error(f"Unexpected Exception: {str(exc)}", extra={
            "exception_type": exc.__class__.__name__,
            "path": request.url.path,
            "method": request.method
        }, exc_info=True)

        error_response = ErrorResponse(
            status=ResponseStatus.ERROR,
            message="An unexpected error occurred",
            code="INTERNAL_SERVER_ERROR"
        )

        return JSONResponse(
            status_code=500,
            content=error_response.model_dump()
        )

"""
Standard response models for consistent API responses.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
from enum import Enum


class ResponseStatus(str, Enum):
    """Standard response status values"""
    SUCCESS = "success"
    ERROR = "error"
    PARTIAL = "partial"


class ErrorResponse(BaseModel):
    """Standard error response"""
    status: ResponseStatus = ResponseStatus.ERROR
    success: bool = False
    message: str = Field(..., description="Error message")
    errors: List[str] = Field(default_factory=list, description="Detailed error messages")
    code: Optional[str] = Field(None, description="Error code")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")


class WebhookEventResult(BaseModel):
    """Outcome of a single webhook event within a delivery"""
    event_id: Optional[str] = Field(None, description="Provider event identifier")
    event_type: Optional[str] = Field(None, description="Provider topic or event type")
    success: bool = Field(..., description="Whether the event was applied")
    processed_records: int = Field(0, description="Records written for this event")
    actions_triggered: List[str] = Field(default_factory=list, description="Side effects queued")
    error: Optional[str] = Field(None, description="Failure reason when success is false")


class WebhookResponse(BaseModel):
    """Response body for accepted webhook deliveries"""
    success: bool = True
    processed: int = Field(..., description="Number of events handled in this delivery")
    results: List[WebhookEventResult] = Field(default_factory=list)
    duration_ms: int = Field(0, description="Handler wall time in milliseconds")
    topic: Optional[str] = None
    shop_domain: Optional[str] = None

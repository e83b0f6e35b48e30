"""
Audit log for webhook deliveries.

Writes go through their own session so an audit row survives a rolled-back
processing transaction. A failed audit write is logged and dropped; it never
changes the response sent to the provider.
"""

import logging
from typing import Any, Optional

from ..core import database
from ..models.events import WebhookEvent

logger = logging.getLogger(__name__)


class WebhookAuditLogger:
    """Persists one ``webhook_events`` row per authenticated delivery"""

    async def record(
        self,
        provider: str,
        event_type: Optional[str],
        payload: Any,
        source_ip: Optional[str],
        success: bool,
        error_message: Optional[str] = None
    ) -> None:
        try:
            async with database.AsyncSessionLocal() as session:
                session.add(WebhookEvent(
                    provider=provider,
                    event_type=event_type or "unknown",
                    payload=payload,
                    source_ip=source_ip,
                    processed=success,
                    success=success,
                    error_message=error_message,
                ))
                await session.commit()
        except Exception as e:
            logger.error(
                f"Error logging webhook event: {e}",
                extra={"provider": provider, "topic": event_type, "source_ip": source_ip}
            )


# Global instance
webhook_audit_logger = WebhookAuditLogger()

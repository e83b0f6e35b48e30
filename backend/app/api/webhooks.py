"""
Inbound webhook endpoints for Shopify and HubSpot.

Every delivery goes through the same gates in order: per-IP rate limit,
required headers, signature over the raw body, payload shape. Rejected
deliveries write nothing. Authenticated deliveries are processed and then
recorded in the webhook audit log, whether they succeed or fail.
"""

import json
import time
import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.database import get_db
from ..core.exceptions import (
    RateLimitException,
    UnauthorizedException,
    ValidationException,
    WebhookProcessingException,
)
from ..core.rate_limiter import RateLimiter, get_webhook_rate_limiter
from ..core.responses import WebhookEventResult, WebhookResponse
from ..integrations.audit import webhook_audit_logger
from ..integrations.base import WebhookContext, resolve_tenant
from ..integrations.hubspot import event_type_of, hubspot_webhook_processor
from ..integrations.shopify import shopify_webhook_processor
from ..integrations.signatures import verify_hubspot_signature, verify_shopify_signature

logger = logging.getLogger(__name__)

router = APIRouter()


def get_source_ip(request: Request) -> str:
    """First hop of X-Forwarded-For when behind a proxy, else the peer address"""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def enforce_rate_limit(limiter: RateLimiter, provider: str, source_ip: str, max_requests: int) -> None:
    window = settings.WEBHOOK_RATE_LIMIT_WINDOW
    is_limited, requests_made, _ = await limiter.is_rate_limited(f"{provider}:{source_ip}", max_requests, window)
    if is_limited:
        logger.warning(
            f"{provider} webhook rate limit exceeded ({requests_made} requests)",
            extra={"provider": provider, "source_ip": source_ip}
        )
        raise RateLimitException(retry_after=window)


def parse_json_body(body: bytes) -> Any:
    try:
        return json.loads(body)
    except ValueError:
        raise ValidationException("Invalid webhook payload", ["body: not valid JSON"])


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


@router.post("/shopify", response_model=WebhookResponse)
async def shopify_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
    limiter: RateLimiter = Depends(get_webhook_rate_limiter)
):
    """Receive a single Shopify topic delivery"""
    started = time.perf_counter()
    source_ip = get_source_ip(request)

    await enforce_rate_limit(limiter, "shopify", source_ip, settings.SHOPIFY_RATE_LIMIT_REQUESTS)

    hmac_header = request.headers.get("x-shopify-hmac-sha256")
    topic = request.headers.get("x-shopify-topic")
    shop_domain = request.headers.get("x-shopify-shop-domain")
    if not hmac_header or not topic or not shop_domain:
        raise ValidationException("Missing required Shopify headers")

    body = await request.body()
    if not verify_shopify_signature(body, hmac_header, settings.SHOPIFY_WEBHOOK_SECRET):
        logger.warning(
            "Invalid Shopify webhook signature",
            extra={"provider": "shopify", "topic": topic, "source_ip": source_ip}
        )
        raise UnauthorizedException("Invalid webhook signature")

    payload = parse_json_body(body)
    if not isinstance(payload, dict):
        raise ValidationException("Invalid webhook payload", ["body: expected a JSON object"])

    ctx = WebhookContext(session=db, provider="shopify", account_id=shop_domain, source_ip=source_ip)
    try:
        ctx.user_id = await resolve_tenant(db, "shopify", shop_domain)
        result = await shopify_webhook_processor.process(ctx, topic, payload)
        await db.commit()
    except Exception as e:
        await db.rollback()
        logger.error(
            f"Error processing Shopify webhook {topic}: {e}",
            extra={"provider": "shopify", "topic": topic, "source_ip": source_ip},
            exc_info=True
        )
        await webhook_audit_logger.record("shopify", topic, payload, source_ip, False, str(e))
        raise WebhookProcessingException(provider="shopify") from e

    await webhook_audit_logger.record("shopify", topic, payload, source_ip, True)

    return WebhookResponse(
        success=True,
        processed=1,
        results=[result],
        duration_ms=_elapsed_ms(started),
        topic=topic,
        shop_domain=shop_domain,
    )


@router.post("/hubspot", response_model=WebhookResponse)
async def hubspot_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
    limiter: RateLimiter = Depends(get_webhook_rate_limiter)
):
    """Receive a batch of HubSpot events; each event commits or fails on its own"""
    started = time.perf_counter()
    source_ip = get_source_ip(request)

    await enforce_rate_limit(limiter, "hubspot", source_ip, settings.HUBSPOT_RATE_LIMIT_REQUESTS)

    signature = request.headers.get("x-hubspot-signature")
    timestamp = request.headers.get("x-hubspot-request-timestamp")
    if not signature or not timestamp:
        raise ValidationException("Missing required headers")

    body = await request.body()
    if not verify_hubspot_signature(body, signature, settings.HUBSPOT_WEBHOOK_SECRET):
        logger.warning(
            "Invalid HubSpot webhook signature",
            extra={"provider": "hubspot", "source_ip": source_ip}
        )
        raise UnauthorizedException("Invalid signature")

    events = parse_json_body(body)
    if not isinstance(events, list):
        raise ValidationException("Invalid webhook payload", ["body: expected a JSON array"])

    ctx = WebhookContext(session=db, provider="hubspot", source_ip=source_ip)
    results = []

    for event in events:
        try:
            result = await hubspot_webhook_processor.process_event(ctx, event)
            await db.commit()
        except Exception as e:
            await db.rollback()
            event_id = event.get("eventId") if isinstance(event, dict) else None
            logger.error(
                f"Error processing HubSpot event {event_id}: {e}",
                extra={"provider": "hubspot", "source_ip": source_ip}
            )
            result = WebhookEventResult(
                event_id=str(event_id) if event_id is not None else None,
                event_type=event_type_of(event) if isinstance(event, dict) else None,
                success=False,
                error=str(e),
            )
        results.append(result)

    await webhook_audit_logger.record("hubspot", "batch", events, source_ip, True)

    return WebhookResponse(
        success=True,
        processed=len(results),
        results=results,
        duration_ms=_elapsed_ms(started),
    )

"""
Base Webhook Framework for Third-Party Platforms

Provider processors share the same plumbing: resolve which tenant an
inbound event belongs to, upsert synced records, and queue side effects
(workflow triggers, notifications, knowledge updates, sync tasks) as rows
for downstream workers. Processors never commit; the route owns the
transaction.
"""

import logging
from abc import ABC
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Type

from sqlalchemy import and_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from ..models.integration import Integration
from ..models.events import KnowledgeUpdate, Notification, OrderEvent, SyncTask, WorkflowTrigger

logger = logging.getLogger(__name__)


@dataclass
class WebhookContext:
    """Per-delivery state handed to every handler"""
    session: AsyncSession
    provider: str
    account_id: Optional[str] = None  # shop domain or HubSpot portal id
    user_id: Optional[str] = None
    source_ip: Optional[str] = None
    tenant_cache: Dict[Tuple[str, str], Optional[str]] = field(default_factory=dict)


HandlerResult = List[str]  # actions triggered
Handler = Callable[[WebhookContext, Dict[str, Any]], Awaitable[HandlerResult]]


async def resolve_tenant(session: AsyncSession, provider: str, account_id: Optional[str]) -> Optional[str]:
    """Tenant that connected this provider account, or None when unknown"""
    if not account_id:
        return None

    result = await session.execute(
        select(Integration)
        .where(and_(Integration.provider == provider, Integration.account_id == account_id))
        .order_by(Integration.id)
    )
    integration = result.scalars().first()
    return integration.user_id if integration else None


async def upsert_record(
    session: AsyncSession,
    model: Type,
    lookup: Dict[str, Any],
    values: Dict[str, Any]
) -> Tuple[Any, bool]:
    """
    Insert or update the row identified by ``lookup``.

    Select-then-write keeps this portable across PostgreSQL and SQLite.
    ``None`` in the lookup matches NULL, so events for unlinked accounts
    still update a single row. Returns (row, created).
    """
    conditions = [
        getattr(model, key).is_(None) if value is None else getattr(model, key) == value
        for key, value in lookup.items()
    ]
    result = await session.execute(select(model).where(and_(*conditions)))
    row = result.scalars().first()
    created = row is None

    if created:
        row = model(**lookup)
        session.add(row)

    for key, value in values.items():
        setattr(row, key, value)

    await session.flush()
    return row, created


class BaseWebhookProcessor(ABC):
    """Dispatches provider events to handlers and owns the side-effect helpers"""

    provider: str = ""

    def __init__(self):
        self.handlers: Dict[str, Handler] = {}

    def register(self, event_type: str, handler: Handler) -> None:
        self.handlers[event_type] = handler

    async def tenant_for(self, ctx: WebhookContext, account_id: Optional[str]) -> Optional[str]:
        key = (self.provider, str(account_id) if account_id is not None else "")
        if key not in ctx.tenant_cache:
            ctx.tenant_cache[key] = await resolve_tenant(ctx.session, self.provider, key[1] or None)
        return ctx.tenant_cache[key]

    async def has_active_integration(self, ctx: WebhookContext, provider: str) -> bool:
        """Whether the tenant behind this delivery also has ``provider`` connected"""
        if not ctx.user_id:
            return False

        result = await ctx.session.execute(
            select(Integration.id).where(and_(
                Integration.user_id == ctx.user_id,
                Integration.provider == provider,
                Integration.status == "active",
            ))
        )
        return result.first() is not None

    async def queue_workflow_trigger(self, ctx: WebhookContext, trigger_type: str, trigger_data: Dict[str, Any]) -> None:
        ctx.session.add(WorkflowTrigger(
            user_id=ctx.user_id,
            trigger_type=trigger_type,
            trigger_data={**trigger_data, "provider": self.provider},
        ))
        logger.info(
            f"Queued workflow trigger {trigger_type}",
            extra={"provider": self.provider, "user_id": ctx.user_id}
        )

    async def queue_notification(
        self,
        ctx: WebhookContext,
        audience: str,
        notification_type: str,
        title: str,
        message: str,
        recipient_email: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None
    ) -> None:
        ctx.session.add(Notification(
            user_id=ctx.user_id,
            audience=audience,
            notification_type=notification_type,
            title=title,
            message=message,
            recipient_email=recipient_email,
            data=data or {},
        ))

    async def record_order_event(
        self,
        ctx: WebhookContext,
        order_external_id: str,
        event_type: str,
        event_data: Dict[str, Any]
    ) -> None:
        ctx.session.add(OrderEvent(
            user_id=ctx.user_id,
            provider=self.provider,
            order_external_id=order_external_id,
            event_type=event_type,
            event_data=event_data,
        ))

    async def queue_knowledge_update(
        self,
        ctx: WebhookContext,
        entity_type: str,
        entity_id: str,
        action: str,
        data: Optional[Dict[str, Any]] = None
    ) -> None:
        ctx.session.add(KnowledgeUpdate(
            user_id=ctx.user_id,
            provider=self.provider,
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            data=data or {},
        ))

    async def queue_sync_task(
        self,
        ctx: WebhookContext,
        task_type: str,
        target_provider: str,
        entity_id: str,
        payload: Dict[str, Any]
    ) -> None:
        ctx.session.add(SyncTask(
            user_id=ctx.user_id,
            task_type=task_type,
            source_provider=self.provider,
            target_provider=target_provider,
            entity_id=entity_id,
            payload=payload,
        ))


def require_object_id(payload: Dict[str, Any], key: str = "id") -> str:
    value = payload.get(key)
    if value is None or value == "":
        raise ValueError(f"Payload is missing '{key}'")
    return str(value)

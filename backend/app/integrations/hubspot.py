"""
HubSpot webhook processing.

HubSpot batches events into a JSON array and sends property changes one
property at a time. Each event is applied on its own; the route commits
after every successful event so one bad event does not discard the batch.
"""

import logging
from typing import Any, Dict, List, Optional, Type

from sqlalchemy import and_, update

from ..models.integration import IntegrationProvider
from ..models.synced import SyncedCompany, SyncedContact, SyncedDeal
from ..core.responses import WebhookEventResult
from .base import BaseWebhookProcessor, WebhookContext, require_object_id, upsert_record
from .data_mapper import (
    HUBSPOT_COMPANY_PROPERTIES,
    HUBSPOT_CONTACT_PROPERTIES,
    HUBSPOT_DEAL_PROPERTIES,
    map_hubspot_property,
    utcnow,
)

logger = logging.getLogger(__name__)

# Contact properties the assistant relies on to recognize a customer
CRITICAL_CONTACT_PROPERTIES = {"email", "firstname", "lastname", "phone", "company"}


def event_type_of(event: Dict[str, Any]) -> Optional[str]:
    return event.get("subscriptionType") or event.get("eventType")


class HubSpotWebhookProcessor(BaseWebhookProcessor):
    """Applies HubSpot CRM events to the synced tables"""

    provider = IntegrationProvider.HUBSPOT

    def __init__(self):
        super().__init__()
        self.register("contact.propertyChange", self._contact_property_changed)
        self.register("deal.propertyChange", self._deal_property_changed)
        self.register("company.propertyChange", self._company_property_changed)
        self.register("contact.creation", self._contact_created)
        self.register("deal.creation", self._deal_created)
        self.register("company.creation", self._company_created)
        self.register("contact.deletion", self._contact_deleted)

    async def process_event(self, ctx: WebhookContext, event: Dict[str, Any]) -> WebhookEventResult:
        """Apply one event; raises on malformed events or storage errors"""
        if not isinstance(event, dict):
            raise ValueError("Event must be a JSON object")

        event_type = event_type_of(event)
        event_id = str(event["eventId"]) if event.get("eventId") is not None else None

        portal_id = event.get("portalId")
        ctx.account_id = str(portal_id) if portal_id is not None else None
        ctx.user_id = await self.tenant_for(ctx, ctx.account_id)

        handler = self.handlers.get(event_type)
        if handler is None:
            logger.info(
                f"Unhandled HubSpot event type: {event_type}",
                extra={"provider": self.provider, "topic": event_type}
            )
            return WebhookEventResult(
                event_id=event_id,
                event_type=event_type,
                success=True,
                actions_triggered=["event_logged"],
            )

        logger.info(
            f"Processing HubSpot event: {event_type} for object {event.get('objectId')}",
            extra={"provider": self.provider, "topic": event_type, "user_id": ctx.user_id}
        )
        actions = await handler(ctx, event)
        return WebhookEventResult(
            event_id=event_id,
            event_type=event_type,
            success=True,
            processed_records=1,
            actions_triggered=actions,
        )

    def _lookup(self, ctx: WebhookContext, object_id: str) -> Dict[str, Any]:
        return {"user_id": ctx.user_id, "provider": self.provider, "external_id": object_id}

    async def _apply_property(
        self,
        ctx: WebhookContext,
        model: Type,
        mapping: Dict,
        event: Dict[str, Any]
    ) -> str:
        object_id = require_object_id(event, "objectId")
        property_name = event.get("propertyName")
        property_value = event.get("propertyValue")

        existing, _ = await upsert_record(ctx.session, model, self._lookup(ctx, object_id), {
            "portal_id": ctx.account_id,
            "updated_at": utcnow(),
            "last_synced_at": utcnow(),
        })

        column, value = map_hubspot_property(mapping, property_name, property_value)
        if column is not None:
            setattr(existing, column, value)
        elif property_name:
            # Reassign so the JSON column is flagged dirty
            existing.data = {**(existing.data or {}), property_name: property_value}

        await ctx.session.flush()
        return object_id

    async def _contact_property_changed(self, ctx: WebhookContext, event: Dict[str, Any]) -> List[str]:
        object_id = await self._apply_property(ctx, SyncedContact, HUBSPOT_CONTACT_PROPERTIES, event)
        actions = ["contact_updated"]

        if event.get("propertyName") in CRITICAL_CONTACT_PROPERTIES:
            await self.queue_knowledge_update(ctx, "contact", object_id, "upsert", {
                "property_name": event.get("propertyName"),
                "property_value": event.get("propertyValue"),
            })
            actions.append("ai_context_updated")
        return actions

    async def _deal_property_changed(self, ctx: WebhookContext, event: Dict[str, Any]) -> List[str]:
        object_id = await self._apply_property(ctx, SyncedDeal, HUBSPOT_DEAL_PROPERTIES, event)
        actions = ["deal_updated"]

        if event.get("propertyName") == "dealstage":
            await self.queue_workflow_trigger(ctx, "hubspot_deal_stage_change", {
                "deal_id": object_id,
                "new_stage": event.get("propertyValue"),
            })
            actions.append("workflow_triggered")
        return actions

    async def _company_property_changed(self, ctx: WebhookContext, event: Dict[str, Any]) -> List[str]:
        await self._apply_property(ctx, SyncedCompany, HUBSPOT_COMPANY_PROPERTIES, event)
        return ["company_updated"]

    async def _create_minimal(self, ctx: WebhookContext, model: Type, event: Dict[str, Any]) -> str:
        """Creation events carry no properties; store the id until a property change fills it in"""
        object_id = require_object_id(event, "objectId")
        await upsert_record(ctx.session, model, self._lookup(ctx, object_id), {
            "portal_id": ctx.account_id,
            "last_synced_at": utcnow(),
        })
        return object_id

    async def _contact_created(self, ctx: WebhookContext, event: Dict[str, Any]) -> List[str]:
        await self._create_minimal(ctx, SyncedContact, event)
        return ["contact_created"]

    async def _deal_created(self, ctx: WebhookContext, event: Dict[str, Any]) -> List[str]:
        object_id = await self._create_minimal(ctx, SyncedDeal, event)
        await self.queue_workflow_trigger(ctx, "hubspot_new_deal", {
            "deal_id": object_id,
            "portal_id": ctx.account_id,
        })
        return ["deal_created", "workflow_triggered"]

    async def _company_created(self, ctx: WebhookContext, event: Dict[str, Any]) -> List[str]:
        object_id = await self._create_minimal(ctx, SyncedCompany, event)
        await self.queue_knowledge_update(ctx, "company", object_id, "upsert", dict(event))
        return ["company_created", "ai_knowledge_updated"]

    async def _contact_deleted(self, ctx: WebhookContext, event: Dict[str, Any]) -> List[str]:
        object_id = require_object_id(event, "objectId")
        now = utcnow()

        await ctx.session.execute(
            update(SyncedContact)
            .where(and_(
                SyncedContact.provider == self.provider,
                SyncedContact.external_id == object_id,
                SyncedContact.user_id == ctx.user_id if ctx.user_id else SyncedContact.user_id.is_(None),
            ))
            .values(deleted_at=now, last_synced_at=now)
        )
        await self.queue_knowledge_update(ctx, "contact", object_id, "delete")
        return ["contact_deleted", "ai_knowledge_cleaned"]


# Global instance
hubspot_webhook_processor = HubSpotWebhookProcessor()

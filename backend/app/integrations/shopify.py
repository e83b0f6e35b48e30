"""
Shopify webhook processing.

One delivery carries one topic for one shop. Each topic handler upserts the
affected record and queues its side effects; unknown topics are only logged.
"""

import logging
from typing import Any, Dict, List

from sqlalchemy import and_, update

from ..core.config import settings
from ..models.integration import Integration, IntegrationProvider
from ..models.synced import SyncedContact, SyncedOrder, SyncedProduct
from ..models.events import InventoryLevel
from ..core.responses import WebhookEventResult
from .base import BaseWebhookProcessor, WebhookContext, require_object_id, upsert_record
from .data_mapper import (
    parse_timestamp,
    shopify_customer_values,
    shopify_order_values,
    shopify_product_values,
    shopify_tracking_numbers,
    utcnow,
)

logger = logging.getLogger(__name__)


class ShopifyWebhookProcessor(BaseWebhookProcessor):
    """Applies Shopify topics to the synced tables"""

    provider = IntegrationProvider.SHOPIFY

    def __init__(self, low_stock_threshold: int = None):
        super().__init__()
        self.low_stock_threshold = (
            low_stock_threshold if low_stock_threshold is not None else settings.LOW_STOCK_THRESHOLD
        )

        self.register("orders/create", self._order_created)
        self.register("orders/updated", self._order_updated)
        self.register("orders/paid", self._order_paid)
        self.register("orders/cancelled", self._order_cancelled)
        self.register("orders/fulfilled", self._order_fulfilled)
        self.register("customers/create", self._customer_created)
        self.register("customers/update", self._customer_updated)
        self.register("products/create", self._product_created)
        self.register("products/update", self._product_updated)
        self.register("inventory_levels/update", self._inventory_updated)
        self.register("app/uninstalled", self._app_uninstalled)

    async def process(self, ctx: WebhookContext, topic: str, payload: Dict[str, Any]) -> WebhookEventResult:
        """Run the handler for ``topic``; handler errors propagate to the route"""
        event_id = str(payload["id"]) if payload.get("id") is not None else None
        handler = self.handlers.get(topic)

        if handler is None:
            logger.info(
                f"Unhandled Shopify webhook topic: {topic}",
                extra={"provider": self.provider, "topic": topic}
            )
            return WebhookEventResult(
                event_id=event_id,
                event_type=topic,
                success=True,
                actions_triggered=["event_logged"],
            )

        logger.info(
            f"Processing Shopify webhook: {topic} from {ctx.account_id}",
            extra={"provider": self.provider, "topic": topic, "user_id": ctx.user_id}
        )
        actions = await handler(ctx, payload)
        return WebhookEventResult(
            event_id=event_id,
            event_type=topic,
            success=True,
            processed_records=1,
            actions_triggered=actions,
        )

    # Orders

    async def _upsert_order(self, ctx: WebhookContext, order: Dict[str, Any]) -> str:
        external_id = require_object_id(order)
        await upsert_record(
            ctx.session,
            SyncedOrder,
            {"user_id": ctx.user_id, "provider": self.provider, "external_id": external_id},
            shopify_order_values(order, ctx.account_id),
        )
        return external_id

    def _customer_email(self, order: Dict[str, Any]):
        return (order.get("customer") or {}).get("email") or order.get("email")

    async def _order_created(self, ctx: WebhookContext, order: Dict[str, Any]) -> List[str]:
        external_id = await self._upsert_order(ctx, order)
        customer_email = self._customer_email(order)

        await self.queue_workflow_trigger(ctx, "shopify_new_order", {
            "order_id": external_id,
            "shop_domain": ctx.account_id,
            "order_value": order.get("total_price"),
            "customer_email": customer_email,
        })
        await self.queue_notification(
            ctx,
            audience="merchant",
            notification_type="new_order",
            title=f"New Order: {order.get('name') or external_id}",
            message=f"New order received for ${order.get('total_price')} from {customer_email or 'Guest'}",
            data={
                "order_id": external_id,
                "order_name": order.get("name"),
                "total_price": order.get("total_price"),
                "customer_email": customer_email,
            },
        )
        return ["order_created", "workflow_triggered", "notification_sent"]

    async def _order_updated(self, ctx: WebhookContext, order: Dict[str, Any]) -> List[str]:
        external_id = await self._upsert_order(ctx, order)
        actions = ["order_updated"]

        customer_email = self._customer_email(order)
        if customer_email:
            await self.queue_notification(
                ctx,
                audience="customer",
                notification_type="order_update",
                title=f"Order Update: {order.get('name') or external_id}",
                message=f"Your order status has been updated to: {order.get('fulfillment_status') or order.get('financial_status')}",
                recipient_email=customer_email,
                data={"order_id": external_id},
            )
            actions.append("customer_notified")
        return actions

    async def _order_paid(self, ctx: WebhookContext, order: Dict[str, Any]) -> List[str]:
        external_id = await self._upsert_order(ctx, order)

        await self.record_order_event(ctx, external_id, "payment_received", {
            "amount": order.get("total_price"),
            "currency": order.get("currency"),
            "payment_gateway": order.get("gateway"),
        })
        await self.queue_workflow_trigger(ctx, "shopify_order_paid", {
            "order_id": external_id,
            "shop_domain": ctx.account_id,
            "payment_amount": order.get("total_price"),
            "customer_email": self._customer_email(order),
        })
        return ["order_paid", "workflow_triggered"]

    async def _order_cancelled(self, ctx: WebhookContext, order: Dict[str, Any]) -> List[str]:
        external_id = await self._upsert_order(ctx, order)

        await self.record_order_event(ctx, external_id, "order_cancelled", {
            "cancel_reason": order.get("cancel_reason"),
            "cancelled_at": order.get("cancelled_at"),
        })
        await self.queue_workflow_trigger(ctx, "shopify_order_cancelled", {
            "order_id": external_id,
            "shop_domain": ctx.account_id,
            "cancel_reason": order.get("cancel_reason"),
            "customer_email": self._customer_email(order),
        })
        return ["order_cancelled", "workflow_triggered"]

    async def _order_fulfilled(self, ctx: WebhookContext, order: Dict[str, Any]) -> List[str]:
        external_id = await self._upsert_order(ctx, order)
        actions = ["order_fulfilled"]

        await self.record_order_event(ctx, external_id, "order_fulfilled", {
            "fulfillment_status": order.get("fulfillment_status"),
            "tracking_numbers": shopify_tracking_numbers(order),
        })

        customer_email = self._customer_email(order)
        if customer_email:
            await self.queue_notification(
                ctx,
                audience="customer",
                notification_type="order_fulfilled",
                title=f"Order Shipped: {order.get('name') or external_id}",
                message="Your order has been shipped and is on its way!",
                recipient_email=customer_email,
                data={"order_id": external_id, "tracking_numbers": shopify_tracking_numbers(order)},
            )
            actions.append("notification_sent")
        return actions

    # Customers

    async def _upsert_customer(self, ctx: WebhookContext, customer: Dict[str, Any]) -> str:
        external_id = require_object_id(customer)
        await upsert_record(
            ctx.session,
            SyncedContact,
            {"user_id": ctx.user_id, "provider": self.provider, "external_id": external_id},
            shopify_customer_values(customer, ctx.account_id),
        )
        return external_id

    async def _customer_created(self, ctx: WebhookContext, customer: Dict[str, Any]) -> List[str]:
        external_id = await self._upsert_customer(ctx, customer)
        actions = ["customer_created"]

        if await self.has_active_integration(ctx, IntegrationProvider.HUBSPOT):
            await self.queue_sync_task(ctx, "customer_create", IntegrationProvider.HUBSPOT, external_id, customer)
            actions.append("hubspot_synced")

        if customer.get("accepts_marketing") and customer.get("email"):
            await self.queue_sync_task(ctx, "add_subscriber", "email_marketing", external_id, {
                "email": customer.get("email"),
                "first_name": customer.get("first_name"),
                "last_name": customer.get("last_name"),
                "source": "shopify_customer_create",
            })
            actions.append("email_subscribed")
        return actions

    async def _customer_updated(self, ctx: WebhookContext, customer: Dict[str, Any]) -> List[str]:
        external_id = await self._upsert_customer(ctx, customer)
        actions = ["customer_updated"]

        if await self.has_active_integration(ctx, IntegrationProvider.HUBSPOT):
            await self.queue_sync_task(ctx, "customer_update", IntegrationProvider.HUBSPOT, external_id, customer)
            actions.append("hubspot_updated")
        return actions

    # Catalog

    async def _upsert_product(self, ctx: WebhookContext, product: Dict[str, Any]) -> str:
        external_id = require_object_id(product)
        await upsert_record(
            ctx.session,
            SyncedProduct,
            {"user_id": ctx.user_id, "provider": self.provider, "external_id": external_id},
            shopify_product_values(product, ctx.account_id),
        )
        await self.queue_knowledge_update(ctx, "product", external_id, "upsert", {
            "title": product.get("title"),
            "description": product.get("body_html"),
            "product_type": product.get("product_type"),
            "vendor": product.get("vendor"),
            "tags": product.get("tags"),
        })
        return external_id

    async def _product_created(self, ctx: WebhookContext, product: Dict[str, Any]) -> List[str]:
        await self._upsert_product(ctx, product)
        return ["product_created", "ai_knowledge_updated"]

    async def _product_updated(self, ctx: WebhookContext, product: Dict[str, Any]) -> List[str]:
        await self._upsert_product(ctx, product)
        return ["product_updated", "ai_knowledge_updated"]

    async def _inventory_updated(self, ctx: WebhookContext, level: Dict[str, Any]) -> List[str]:
        item_id = require_object_id(level, "inventory_item_id")
        location_id = require_object_id(level, "location_id")
        available = level.get("available")

        await upsert_record(
            ctx.session,
            InventoryLevel,
            {"provider": self.provider, "inventory_item_id": item_id, "location_id": location_id},
            {
                "user_id": ctx.user_id,
                "available": available,
                "shop_domain": ctx.account_id,
                "updated_at": parse_timestamp(level.get("updated_at")) or utcnow(),
                "last_synced_at": utcnow(),
            },
        )
        actions = ["inventory_updated", "stock_checked"]

        if available is not None and available <= self.low_stock_threshold:
            await self.queue_notification(
                ctx,
                audience="merchant",
                notification_type="low_stock",
                title="Low Stock Alert",
                message=f"Inventory item {item_id} at location {location_id} is down to {available} units",
                data={
                    "inventory_item_id": item_id,
                    "location_id": location_id,
                    "current_level": available,
                    "threshold": self.low_stock_threshold,
                },
            )
            actions.append("low_stock_alert")
        return actions

    async def _app_uninstalled(self, ctx: WebhookContext, payload: Dict[str, Any]) -> List[str]:
        await ctx.session.execute(
            update(Integration)
            .where(and_(Integration.provider == self.provider, Integration.account_id == ctx.account_id))
            .values(status="inactive", updated_at=utcnow())
        )
        logger.warning(
            f"Shopify app uninstalled for {ctx.account_id}",
            extra={"provider": self.provider, "user_id": ctx.user_id}
        )
        return ["app_uninstalled"]


# Global instance
shopify_webhook_processor = ShopifyWebhookProcessor()

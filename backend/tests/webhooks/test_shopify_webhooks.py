"""
Tests for the Shopify webhook endpoint

Each test posts a signed delivery through the ASGI app and checks the rows
the delivery left behind.
"""

import pytest
from sqlalchemy import func
from sqlalchemy.future import select

from app.core.config import settings
from app.models.events import InventoryLevel, Notification, OrderEvent, SyncTask, WebhookEvent, WorkflowTrigger
from app.models.integration import Integration
from app.models.synced import SyncedContact, SyncedOrder, SyncedProduct

SHOPIFY_URL = "/api/webhooks/shopify"

ORDER_PAYLOAD = {
    "id": 820982911946154508,
    "order_number": 1001,
    "name": "#1001",
    "email": "jane@example.com",
    "total_price": "59.99",
    "currency": "USD",
    "financial_status": "paid",
    "fulfillment_status": None,
    "created_at": "2026-10-01T10:00:00-04:00",
    "customer": {"id": 115310627314723954, "email": "jane@example.com", "first_name": "Jane", "last_name": "Doe"},
    "line_items": [{"title": "Blue Widget", "quantity": 2, "price": "19.99", "sku": "BW-1"}],
}


async def count(session, model, *criteria):
    result = await session.execute(select(func.count(model.id)).where(*criteria))
    return result.scalar()


class TestShopifyGates:

    @pytest.mark.asyncio
    async def test_invalid_signature_rejected_without_writes(self, client, db_session, connected_tenant, shopify_request):
        body, headers = shopify_request("orders/create", ORDER_PAYLOAD, secret="wrong-secret")

        response = await client.post(SHOPIFY_URL, content=body, headers=headers)

        assert response.status_code == 401
        assert response.json()["code"] == "UNAUTHORIZED"
        assert await count(db_session, SyncedOrder) == 0
        assert await count(db_session, WebhookEvent) == 0

    @pytest.mark.asyncio
    async def test_missing_headers(self, client, db_session, shopify_request):
        body, headers = shopify_request("orders/create", ORDER_PAYLOAD)
        del headers["X-Shopify-Topic"]

        response = await client.post(SHOPIFY_URL, content=body, headers=headers)

        assert response.status_code == 400
        assert response.json()["message"] == "Missing required Shopify headers"

    @pytest.mark.asyncio
    async def test_body_must_be_json_object(self, client, db_session, shopify_request):
        body, headers = shopify_request("orders/create", [1, 2, 3])
        response = await client.post(SHOPIFY_URL, content=body, headers=headers)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_unparseable_body(self, client, db_session):
        from app.integrations.signatures import shopify_signature

        body = b"{not json"
        headers = {
            "X-Shopify-Hmac-Sha256": shopify_signature(body, settings.SHOPIFY_WEBHOOK_SECRET),
            "X-Shopify-Topic": "orders/create",
            "X-Shopify-Shop-Domain": "test-shop.myshopify.com",
        }
        response = await client.post(SHOPIFY_URL, content=body, headers=headers)

        assert response.status_code == 400
        assert await count(db_session, WebhookEvent) == 0

    @pytest.mark.asyncio
    async def test_get_not_allowed(self, client):
        response = await client.get(SHOPIFY_URL)
        assert response.status_code == 405

    @pytest.mark.asyncio
    async def test_rate_limit(self, client, monkeypatch):
        monkeypatch.setattr(settings, "SHOPIFY_RATE_LIMIT_REQUESTS", 2)

        statuses = [(await client.post(SHOPIFY_URL, content=b"{}")).status_code for _ in range(3)]

        assert statuses == [400, 400, 429]

    @pytest.mark.asyncio
    async def test_rate_limit_response(self, client, monkeypatch):
        monkeypatch.setattr(settings, "SHOPIFY_RATE_LIMIT_REQUESTS", 1)
        await client.post(SHOPIFY_URL, content=b"{}")

        response = await client.post(SHOPIFY_URL, content=b"{}")

        assert response.status_code == 429
        assert response.headers["Retry-After"] == str(settings.WEBHOOK_RATE_LIMIT_WINDOW)
        assert response.json()["code"] == "RATE_LIMIT_EXCEEDED"

    @pytest.mark.asyncio
    async def test_rate_limit_is_per_source_ip(self, client, monkeypatch):
        monkeypatch.setattr(settings, "SHOPIFY_RATE_LIMIT_REQUESTS", 1)

        first = await client.post(SHOPIFY_URL, content=b"{}", headers={"X-Forwarded-For": "203.0.113.7"})
        other_ip = await client.post(SHOPIFY_URL, content=b"{}", headers={"X-Forwarded-For": "203.0.113.8"})

        assert first.status_code == 400
        assert other_ip.status_code == 400


class TestShopifyOrders:

    @pytest.mark.asyncio
    async def test_order_created(self, client, db_session, connected_tenant, shopify_request):
        body, headers = shopify_request("orders/create", ORDER_PAYLOAD)

        response = await client.post(SHOPIFY_URL, content=body, headers=headers)

        assert response.status_code == 200
        payload = response.json()
        assert payload["success"] is True
        assert payload["processed"] == 1
        assert payload["topic"] == "orders/create"
        assert payload["shop_domain"] == "test-shop.myshopify.com"
        assert payload["results"][0]["event_id"] == "820982911946154508"
        assert payload["results"][0]["actions_triggered"] == ["order_created", "workflow_triggered", "notification_sent"]

        order = (await db_session.execute(select(SyncedOrder))).scalars().one()
        assert order.user_id == "tenant-a"
        assert order.external_id == "820982911946154508"
        assert order.order_number == "1001"
        assert order.total_amount == 59.99
        assert order.status == "paid"
        assert order.customer_name == "Jane Doe"

        trigger = (await db_session.execute(select(WorkflowTrigger))).scalars().one()
        assert trigger.trigger_type == "shopify_new_order"
        assert trigger.user_id == "tenant-a"
        assert trigger.trigger_data["order_id"] == "820982911946154508"
        assert trigger.trigger_data["provider"] == "shopify"

        notification = (await db_session.execute(select(Notification))).scalars().one()
        assert notification.audience == "merchant"
        assert notification.title == "New Order: #1001"

        audit = (await db_session.execute(select(WebhookEvent))).scalars().one()
        assert audit.provider == "shopify"
        assert audit.event_type == "orders/create"
        assert audit.success is True
        assert audit.error_message is None

    @pytest.mark.asyncio
    async def test_redelivery_updates_same_row(self, client, db_session, connected_tenant, shopify_request):
        body, headers = shopify_request("orders/create", ORDER_PAYLOAD)
        await client.post(SHOPIFY_URL, content=body, headers=headers)

        body, headers = shopify_request("orders/updated", {**ORDER_PAYLOAD, "fulfillment_status": "fulfilled"})
        response = await client.post(SHOPIFY_URL, content=body, headers=headers)

        assert response.json()["results"][0]["actions_triggered"] == ["order_updated", "customer_notified"]
        statuses = (await db_session.execute(select(SyncedOrder.status))).scalars().all()
        assert statuses == ["fulfilled"]

    @pytest.mark.asyncio
    async def test_unknown_shop_still_stored(self, client, db_session, shopify_request):
        body, headers = shopify_request("orders/create", ORDER_PAYLOAD, shop_domain="stranger.myshopify.com")

        for _ in range(2):
            response = await client.post(SHOPIFY_URL, content=body, headers=headers)
            assert response.status_code == 200

        user_ids = (await db_session.execute(select(SyncedOrder.user_id))).scalars().all()
        assert user_ids == [None]

    @pytest.mark.asyncio
    async def test_order_paid_and_cancelled(self, client, db_session, connected_tenant, shopify_request):
        body, headers = shopify_request("orders/paid", {**ORDER_PAYLOAD, "gateway": "stripe"})
        paid = await client.post(SHOPIFY_URL, content=body, headers=headers)

        body, headers = shopify_request("orders/cancelled", {
            **ORDER_PAYLOAD, "cancelled_at": "2026-10-02T09:00:00Z", "cancel_reason": "customer",
        })
        cancelled = await client.post(SHOPIFY_URL, content=body, headers=headers)

        assert paid.json()["results"][0]["actions_triggered"] == ["order_paid", "workflow_triggered"]
        assert cancelled.json()["results"][0]["actions_triggered"] == ["order_cancelled", "workflow_triggered"]

        events = (await db_session.execute(select(OrderEvent.event_type).order_by(OrderEvent.id))).scalars().all()
        assert events == ["payment_received", "order_cancelled"]
        triggers = (await db_session.execute(select(WorkflowTrigger.trigger_type).order_by(WorkflowTrigger.id))).scalars().all()
        assert triggers == ["shopify_order_paid", "shopify_order_cancelled"]
        assert (await db_session.execute(select(SyncedOrder.status))).scalar() == "cancelled"

    @pytest.mark.asyncio
    async def test_order_fulfilled(self, client, db_session, connected_tenant, shopify_request):
        body, headers = shopify_request("orders/fulfilled", {
            **ORDER_PAYLOAD,
            "fulfillment_status": "fulfilled",
            "fulfillments": [{"tracking_number": "1Z999"}],
        })

        response = await client.post(SHOPIFY_URL, content=body, headers=headers)

        assert response.json()["results"][0]["actions_triggered"] == ["order_fulfilled", "notification_sent"]
        event = (await db_session.execute(select(OrderEvent))).scalars().one()
        assert event.event_data["tracking_numbers"] == ["1Z999"]
        assert (await db_session.execute(select(SyncedOrder.tracking_number))).scalar() == "1Z999"

    @pytest.mark.asyncio
    async def test_processing_failure_is_audited_and_rolled_back(self, client, db_session, connected_tenant, shopify_request):
        payload = {key: value for key, value in ORDER_PAYLOAD.items() if key != "id"}
        body, headers = shopify_request("orders/create", payload)

        response = await client.post(SHOPIFY_URL, content=body, headers=headers)

        assert response.status_code == 500
        assert response.json()["message"] == "Internal server error"
        assert await count(db_session, SyncedOrder) == 0
        assert await count(db_session, WorkflowTrigger) == 0

        audit = (await db_session.execute(select(WebhookEvent))).scalars().one()
        assert audit.success is False
        assert "id" in audit.error_message

    @pytest.mark.asyncio
    async def test_source_ip_recorded_from_forwarded_header(self, client, db_session, connected_tenant, shopify_request):
        body, headers = shopify_request("orders/create", ORDER_PAYLOAD)
        headers["X-Forwarded-For"] = "203.0.113.7, 10.0.0.1"

        await client.post(SHOPIFY_URL, content=body, headers=headers)

        assert (await db_session.execute(select(WebhookEvent.source_ip))).scalar() == "203.0.113.7"


class TestShopifyCustomersAndCatalog:

    @pytest.mark.asyncio
    async def test_customer_created_syncs_and_subscribes(self, client, db_session, connected_tenant, shopify_request):
        body, headers = shopify_request("customers/create", {
            "id": 207119551,
            "email": "jane@example.com",
            "first_name": "Jane",
            "last_name": "Doe",
            "accepts_marketing": True,
            "orders_count": 0,
            "total_spent": "0.00",
        })

        response = await client.post(SHOPIFY_URL, content=body, headers=headers)

        assert response.json()["results"][0]["actions_triggered"] == ["customer_created", "hubspot_synced", "email_subscribed"]
        contact = (await db_session.execute(select(SyncedContact))).scalars().one()
        assert contact.email == "jane@example.com"
        assert contact.user_id == "tenant-a"

        tasks = (await db_session.execute(select(SyncTask).order_by(SyncTask.id))).scalars().all()
        assert [(t.task_type, t.target_provider) for t in tasks] == [
            ("customer_create", "hubspot"),
            ("add_subscriber", "email_marketing"),
        ]

    @pytest.mark.asyncio
    async def test_customer_update_without_hubspot(self, client, db_session, shopify_request):
        db_session.add(Integration(user_id="tenant-z", provider="shopify", account_id="test-shop.myshopify.com"))
        await db_session.commit()

        body, headers = shopify_request("customers/update", {"id": 207119551, "email": "jane@example.com"})
        response = await client.post(SHOPIFY_URL, content=body, headers=headers)

        assert response.json()["results"][0]["actions_triggered"] == ["customer_updated"]
        assert await count(db_session, SyncTask) == 0

    @pytest.mark.asyncio
    async def test_product_created(self, client, db_session, connected_tenant, shopify_request):
        body, headers = shopify_request("products/create", {
            "id": 632910392,
            "title": "Blue Widget",
            "body_html": "<p>It is blue.</p>",
            "vendor": "Widgets Inc",
            "variants": [{"price": "19.99", "sku": "BW-1", "inventory_quantity": 4}],
        })

        response = await client.post(SHOPIFY_URL, content=body, headers=headers)

        assert response.json()["results"][0]["actions_triggered"] == ["product_created", "ai_knowledge_updated"]
        product = (await db_session.execute(select(SyncedProduct))).scalars().one()
        assert product.name == "Blue Widget"
        assert product.price == 19.99
        assert product.inventory_quantity == 4

    @pytest.mark.asyncio
    async def test_low_stock_alert(self, client, db_session, connected_tenant, shopify_request):
        body, headers = shopify_request("inventory_levels/update", {
            "inventory_item_id": 808950810, "location_id": 905684977, "available": 3,
        })

        response = await client.post(SHOPIFY_URL, content=body, headers=headers)

        assert response.json()["results"][0]["actions_triggered"] == ["inventory_updated", "stock_checked", "low_stock_alert"]
        level = (await db_session.execute(select(InventoryLevel))).scalars().one()
        assert level.available == 3
        notification = (await db_session.execute(select(Notification))).scalars().one()
        assert notification.notification_type == "low_stock"
        assert notification.data["threshold"] == settings.LOW_STOCK_THRESHOLD

    @pytest.mark.asyncio
    async def test_healthy_stock_has_no_alert(self, client, db_session, connected_tenant, shopify_request):
        for available in (3, 50):
            body, headers = shopify_request("inventory_levels/update", {
                "inventory_item_id": 808950810, "location_id": 905684977, "available": available,
            })
            response = await client.post(SHOPIFY_URL, content=body, headers=headers)

        assert "low_stock_alert" not in response.json()["results"][0]["actions_triggered"]
        assert (await db_session.execute(select(InventoryLevel.available))).scalars().all() == [50]

    @pytest.mark.asyncio
    async def test_app_uninstalled(self, client, db_session, connected_tenant, shopify_request):
        body, headers = shopify_request("app/uninstalled", {"id": 548380009, "domain": "test-shop.myshopify.com"})

        response = await client.post(SHOPIFY_URL, content=body, headers=headers)

        assert response.status_code == 200
        rows = (await db_session.execute(
            select(Integration.provider, Integration.status).order_by(Integration.id)
        )).all()
        assert [tuple(row) for row in rows] == [("shopify", "inactive"), ("hubspot", "active")]

    @pytest.mark.asyncio
    async def test_unknown_topic_is_logged(self, client, db_session, connected_tenant, shopify_request):
        body, headers = shopify_request("carts/create", {"id": 1})

        response = await client.post(SHOPIFY_URL, content=body, headers=headers)

        result = response.json()["results"][0]
        assert response.status_code == 200
        assert result["actions_triggered"] == ["event_logged"]
        assert result["processed_records"] == 0
        assert (await db_session.execute(select(WebhookEvent.event_type))).scalar() == "carts/create"

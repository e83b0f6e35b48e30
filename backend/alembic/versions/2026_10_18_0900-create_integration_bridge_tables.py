"""Create integration, synced record and webhook side-effect tables"""

from collections.abc import Sequence
from typing import Optional

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "2026_10_18_0900"
down_revision: Optional[str] = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


SYNCED_TABLES = ("synced_contacts", "synced_orders", "synced_products", "synced_deals", "synced_companies")


def _synced_columns() -> list:
    return [
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(length=255), nullable=True),
        sa.Column("provider", sa.String(length=50), nullable=False),
        sa.Column("external_id", sa.String(length=255), nullable=False),
        sa.Column("data", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("last_synced_at", sa.DateTime(timezone=True), nullable=True),
    ]


def _synced_table(name: str, *columns) -> None:
    op.create_table(
        name,
        *_synced_columns(),
        *columns,
        sa.UniqueConstraint("user_id", "provider", "external_id", name=f"uq_{name}_record"),
    )
    op.create_index(f"ix_{name}_user_id", name, ["user_id"])
    op.create_index(f"ix_{name}_external_id", name, ["external_id"])


def upgrade() -> None:
    op.create_table(
        "integrations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column("provider", sa.String(length=50), nullable=False),
        sa.Column("account_id", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
        sa.Column("settings", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.UniqueConstraint("provider", "account_id", name="uq_integrations_provider_account"),
    )
    op.create_index("ix_integrations_user_id", "integrations", ["user_id"])

    _synced_table(
        "synced_contacts",
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("first_name", sa.String(length=255), nullable=True),
        sa.Column("last_name", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=50), nullable=True),
        sa.Column("company", sa.String(length=255), nullable=True),
        sa.Column("title", sa.String(length=255), nullable=True),
        sa.Column("lead_source", sa.String(length=100), nullable=True),
        sa.Column("lifecycle_stage", sa.String(length=100), nullable=True),
        sa.Column("total_spent", sa.Float(), nullable=True),
        sa.Column("orders_count", sa.Integer(), nullable=True),
        sa.Column("accepts_marketing", sa.Boolean(), nullable=True),
        sa.Column("shop_domain", sa.String(length=255), nullable=True),
        sa.Column("portal_id", sa.String(length=50), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_synced_contacts_email", "synced_contacts", ["email"])

    _synced_table(
        "synced_orders",
        sa.Column("order_number", sa.String(length=100), nullable=True),
        sa.Column("customer_id", sa.String(length=255), nullable=True),
        sa.Column("customer_email", sa.String(length=255), nullable=True),
        sa.Column("customer_name", sa.String(length=255), nullable=True),
        sa.Column("total_amount", sa.Float(), nullable=True),
        sa.Column("currency", sa.String(length=10), nullable=True),
        sa.Column("status", sa.String(length=50), nullable=True),
        sa.Column("financial_status", sa.String(length=50), nullable=True),
        sa.Column("fulfillment_status", sa.String(length=50), nullable=True),
        sa.Column("tracking_number", sa.String(length=255), nullable=True),
        sa.Column("line_items", sa.JSON(), nullable=True),
        sa.Column("shipping_address", sa.JSON(), nullable=True),
        sa.Column("billing_address", sa.JSON(), nullable=True),
        sa.Column("shop_domain", sa.String(length=255), nullable=True),
    )
    op.create_index("ix_synced_orders_order_number", "synced_orders", ["order_number"])
    op.create_index("ix_synced_orders_customer_email", "synced_orders", ["customer_email"])

    _synced_table(
        "synced_products",
        sa.Column("name", sa.String(length=500), nullable=False),
        sa.Column("handle", sa.String(length=255), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("price", sa.Float(), nullable=True),
        sa.Column("currency", sa.String(length=10), nullable=True),
        sa.Column("sku", sa.String(length=255), nullable=True),
        sa.Column("inventory_quantity", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(length=50), nullable=True),
        sa.Column("product_type", sa.String(length=255), nullable=True),
        sa.Column("vendor", sa.String(length=255), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=True),
        sa.Column("images", sa.JSON(), nullable=True),
        sa.Column("variants", sa.JSON(), nullable=True),
        sa.Column("shop_domain", sa.String(length=255), nullable=True),
    )

    _synced_table(
        "synced_deals",
        sa.Column("name", sa.String(length=500), nullable=True),
        sa.Column("amount", sa.Float(), nullable=True),
        sa.Column("currency", sa.String(length=10), nullable=True),
        sa.Column("stage", sa.String(length=100), nullable=True),
        sa.Column("pipeline", sa.String(length=100), nullable=True),
        sa.Column("close_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("probability", sa.Float(), nullable=True),
        sa.Column("deal_type", sa.String(length=100), nullable=True),
        sa.Column("lead_source", sa.String(length=100), nullable=True),
        sa.Column("contact_id", sa.String(length=255), nullable=True),
        sa.Column("contact_name", sa.String(length=255), nullable=True),
        sa.Column("contact_email", sa.String(length=255), nullable=True),
        sa.Column("company_name", sa.String(length=255), nullable=True),
        sa.Column("portal_id", sa.String(length=50), nullable=True),
    )

    _synced_table(
        "synced_companies",
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("domain", sa.String(length=255), nullable=True),
        sa.Column("industry", sa.String(length=255), nullable=True),
        sa.Column("portal_id", sa.String(length=50), nullable=True),
    )

    op.create_table(
        "webhook_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("provider", sa.String(length=50), nullable=False),
        sa.Column("event_type", sa.String(length=100), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=True),
        sa.Column("source_ip", sa.String(length=100), nullable=True),
        sa.Column("processed", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("success", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_webhook_events_provider", "webhook_events", ["provider"])

    op.create_table(
        "workflow_triggers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(length=255), nullable=True),
        sa.Column("trigger_type", sa.String(length=100), nullable=False),
        sa.Column("trigger_data", sa.JSON(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_workflow_triggers_user_id", "workflow_triggers", ["user_id"])
    op.create_index("ix_workflow_triggers_trigger_type", "workflow_triggers", ["trigger_type"])

    op.create_table(
        "order_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(length=255), nullable=True),
        sa.Column("provider", sa.String(length=50), nullable=False),
        sa.Column("order_external_id", sa.String(length=255), nullable=False),
        sa.Column("event_type", sa.String(length=50), nullable=False),
        sa.Column("event_data", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_order_events_user_id", "order_events", ["user_id"])
    op.create_index("ix_order_events_order_external_id", "order_events", ["order_external_id"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(length=255), nullable=True),
        sa.Column("audience", sa.String(length=20), nullable=False),
        sa.Column("notification_type", sa.String(length=50), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("recipient_email", sa.String(length=255), nullable=True),
        sa.Column("data", sa.JSON(), nullable=True),
        sa.Column("read", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])

    op.create_table(
        "inventory_levels",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(length=255), nullable=True),
        sa.Column("provider", sa.String(length=50), nullable=False),
        sa.Column("inventory_item_id", sa.String(length=255), nullable=False),
        sa.Column("location_id", sa.String(length=255), nullable=False),
        sa.Column("available", sa.Integer(), nullable=True),
        sa.Column("shop_domain", sa.String(length=255), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_synced_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("provider", "inventory_item_id", "location_id", name="uq_inventory_levels_item_location"),
    )
    op.create_index("ix_inventory_levels_user_id", "inventory_levels", ["user_id"])

    op.create_table(
        "knowledge_updates",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(length=255), nullable=True),
        sa.Column("provider", sa.String(length=50), nullable=False),
        sa.Column("entity_type", sa.String(length=50), nullable=False),
        sa.Column("entity_id", sa.String(length=255), nullable=False),
        sa.Column("action", sa.String(length=20), nullable=False),
        sa.Column("data", sa.JSON(), nullable=True),
        sa.Column("processed", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_knowledge_updates_user_id", "knowledge_updates", ["user_id"])

    op.create_table(
        "sync_tasks",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(length=255), nullable=True),
        sa.Column("task_type", sa.String(length=50), nullable=False),
        sa.Column("source_provider", sa.String(length=50), nullable=False),
        sa.Column("target_provider", sa.String(length=50), nullable=False),
        sa.Column("entity_id", sa.String(length=255), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_sync_tasks_user_id", "sync_tasks", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_sync_tasks_user_id", table_name="sync_tasks")
    op.drop_table("sync_tasks")
    op.drop_index("ix_knowledge_updates_user_id", table_name="knowledge_updates")
    op.drop_table("knowledge_updates")
    op.drop_index("ix_inventory_levels_user_id", table_name="inventory_levels")
    op.drop_table("inventory_levels")
    op.drop_index("ix_notifications_user_id", table_name="notifications")
    op.drop_table("notifications")
    op.drop_index("ix_order_events_order_external_id", table_name="order_events")
    op.drop_index("ix_order_events_user_id", table_name="order_events")
    op.drop_table("order_events")
    op.drop_index("ix_workflow_triggers_trigger_type", table_name="workflow_triggers")
    op.drop_index("ix_workflow_triggers_user_id", table_name="workflow_triggers")
    op.drop_table("workflow_triggers")
    op.drop_index("ix_webhook_events_provider", table_name="webhook_events")
    op.drop_table("webhook_events")

    op.drop_index("ix_synced_orders_customer_email", table_name="synced_orders")
    op.drop_index("ix_synced_orders_order_number", table_name="synced_orders")
    op.drop_index("ix_synced_contacts_email", table_name="synced_contacts")
    for name in reversed(SYNCED_TABLES):
        op.drop_index(f"ix_{name}_external_id", table_name=name)
        op.drop_index(f"ix_{name}_user_id", table_name=name)
        op.drop_table(name)

    op.drop_index("ix_integrations_user_id", table_name="integrations")
    op.drop_table("integrations")

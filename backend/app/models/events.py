"""
Records written as side effects of inbound webhooks.

Downstream consumers (workflow runner, notifier, knowledge indexer, cross
provider sync) poll these tables; nothing here executes work directly.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, JSON, UniqueConstraint
from sqlalchemy.sql import func
from ..core.database import Base


class WebhookEvent(Base):
    """Audit log of every authenticated webhook delivery"""
    __tablename__ = "webhook_events"

    id = Column(Integer, primary_key=True, index=True)
    provider = Column(String(50), nullable=False, index=True)
    event_type = Column(String(100), nullable=False)
    payload = Column(JSON, nullable=True)
    source_ip = Column(String(100), nullable=True)
    processed = Column(Boolean, default=True, nullable=False)
    success = Column(Boolean, default=True, nullable=False)
    error_message = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<WebhookEvent(provider='{self.provider}', event_type='{self.event_type}', success={self.success})>"


class WorkflowTrigger(Base):
    """Pending workflow execution requested by a webhook"""
    __tablename__ = "workflow_triggers"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(255), nullable=True, index=True)
    trigger_type = Column(String(100), nullable=False, index=True)
    trigger_data = Column(JSON, default=dict)
    status = Column(String(20), default="pending", nullable=False)  # pending, running, done, failed

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    processed_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<WorkflowTrigger(trigger_type='{self.trigger_type}', status='{self.status}')>"


class OrderEvent(Base):
    """Timeline entry for an order (paid, cancelled, fulfilled)"""
    __tablename__ = "order_events"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(255), nullable=True, index=True)
    provider = Column(String(50), nullable=False)
    order_external_id = Column(String(255), nullable=False, index=True)
    event_type = Column(String(50), nullable=False)
    event_data = Column(JSON, default=dict)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class Notification(Base):
    """Outbound notification queued for a merchant or a customer"""
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(255), nullable=True, index=True)
    audience = Column(String(20), nullable=False)  # merchant, customer
    notification_type = Column(String(50), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    recipient_email = Column(String(255), nullable=True)
    data = Column(JSON, default=dict)
    read = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class InventoryLevel(Base):
    """Available quantity per inventory item and location"""
    __tablename__ = "inventory_levels"
    __table_args__ = (
        UniqueConstraint("provider", "inventory_item_id", "location_id", name="uq_inventory_levels_item_location"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(255), nullable=True, index=True)
    provider = Column(String(50), nullable=False)
    inventory_item_id = Column(String(255), nullable=False)
    location_id = Column(String(255), nullable=False)
    available = Column(Integer, nullable=True)
    shop_domain = Column(String(255), nullable=True)

    updated_at = Column(DateTime(timezone=True), nullable=True)
    last_synced_at = Column(DateTime(timezone=True), nullable=True)


class KnowledgeUpdate(Base):
    """Change to catalog or CRM data that the knowledge index should pick up"""
    __tablename__ = "knowledge_updates"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(255), nullable=True, index=True)
    provider = Column(String(50), nullable=False)
    entity_type = Column(String(50), nullable=False)  # product, contact, deal
    entity_id = Column(String(255), nullable=False)
    action = Column(String(20), nullable=False)  # upsert, delete
    data = Column(JSON, default=dict)
    processed = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class SyncTask(Base):
    """Cross-provider propagation request, e.g. a Shopify customer into HubSpot"""
    __tablename__ = "sync_tasks"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(255), nullable=True, index=True)
    task_type = Column(String(50), nullable=False)
    source_provider = Column(String(50), nullable=False)
    target_provider = Column(String(50), nullable=False)
    entity_id = Column(String(255), nullable=False)
    payload = Column(JSON, default=dict)
    status = Column(String(20), default="pending", nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

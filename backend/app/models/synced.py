"""
Provider records mirrored into local tables by webhooks and sync jobs.

Every table carries a ``user_id`` tenant column; bridge queries always filter
on it. Records are unique per (tenant, provider, external id).
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, JSON, Float, UniqueConstraint
from sqlalchemy.sql import func
from ..core.database import Base


class SyncedRecordMixin:
    """Columns shared by every synced provider record"""

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(255), nullable=True, index=True)  # NULL until the account is linked to a tenant
    provider = Column(String(50), nullable=False)
    external_id = Column(String(255), nullable=False, index=True)
    data = Column(JSON, default=dict)  # Provider-specific extras

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    last_synced_at = Column(DateTime(timezone=True), nullable=True)


class SyncedContact(SyncedRecordMixin, Base):
    __tablename__ = "synced_contacts"
    __table_args__ = (
        UniqueConstraint("user_id", "provider", "external_id", name="uq_synced_contacts_record"),
    )

    email = Column(String(255), nullable=True, index=True)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    company = Column(String(255), nullable=True)
    title = Column(String(255), nullable=True)
    lead_source = Column(String(100), nullable=True)
    lifecycle_stage = Column(String(100), nullable=True)
    total_spent = Column(Float, nullable=True)
    orders_count = Column(Integer, nullable=True)
    accepts_marketing = Column(Boolean, nullable=True)

    shop_domain = Column(String(255), nullable=True)
    portal_id = Column(String(50), nullable=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)  # Soft delete

    def __repr__(self):
        return f"<SyncedContact(provider='{self.provider}', external_id='{self.external_id}')>"


class SyncedOrder(SyncedRecordMixin, Base):
    __tablename__ = "synced_orders"
    __table_args__ = (
        UniqueConstraint("user_id", "provider", "external_id", name="uq_synced_orders_record"),
    )

    order_number = Column(String(100), nullable=True, index=True)
    customer_id = Column(String(255), nullable=True)
    customer_email = Column(String(255), nullable=True, index=True)
    customer_name = Column(String(255), nullable=True)
    total_amount = Column(Float, nullable=True)
    currency = Column(String(10), nullable=True)
    status = Column(String(50), nullable=True)  # open, paid, fulfilled, cancelled, ...
    financial_status = Column(String(50), nullable=True)
    fulfillment_status = Column(String(50), nullable=True)
    tracking_number = Column(String(255), nullable=True)
    line_items = Column(JSON, default=list)
    shipping_address = Column(JSON, nullable=True)
    billing_address = Column(JSON, nullable=True)

    shop_domain = Column(String(255), nullable=True)

    def __repr__(self):
        return f"<SyncedOrder(provider='{self.provider}', order_number='{self.order_number}')>"


class SyncedProduct(SyncedRecordMixin, Base):
    __tablename__ = "synced_products"
    __table_args__ = (
        UniqueConstraint("user_id", "provider", "external_id", name="uq_synced_products_record"),
    )

    name = Column(String(500), nullable=False)
    handle = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=True)
    currency = Column(String(10), nullable=True)
    sku = Column(String(255), nullable=True)
    inventory_quantity = Column(Integer, nullable=True)
    status = Column(String(50), nullable=True)
    product_type = Column(String(255), nullable=True)
    vendor = Column(String(255), nullable=True)
    tags = Column(JSON, default=list)
    images = Column(JSON, default=list)
    variants = Column(JSON, default=list)

    shop_domain = Column(String(255), nullable=True)

    def __repr__(self):
        return f"<SyncedProduct(provider='{self.provider}', name='{self.name}')>"


class SyncedDeal(SyncedRecordMixin, Base):
    __tablename__ = "synced_deals"
    __table_args__ = (
        UniqueConstraint("user_id", "provider", "external_id", name="uq_synced_deals_record"),
    )

    name = Column(String(500), nullable=True)
    amount = Column(Float, nullable=True)
    currency = Column(String(10), nullable=True)
    stage = Column(String(100), nullable=True)
    pipeline = Column(String(100), nullable=True)
    close_date = Column(DateTime(timezone=True), nullable=True)
    probability = Column(Float, nullable=True)
    deal_type = Column(String(100), nullable=True)
    lead_source = Column(String(100), nullable=True)
    contact_id = Column(String(255), nullable=True)
    contact_name = Column(String(255), nullable=True)
    contact_email = Column(String(255), nullable=True)
    company_name = Column(String(255), nullable=True)

    portal_id = Column(String(50), nullable=True)

    def __repr__(self):
        return f"<SyncedDeal(provider='{self.provider}', name='{self.name}', stage='{self.stage}')>"


class SyncedCompany(SyncedRecordMixin, Base):
    __tablename__ = "synced_companies"
    __table_args__ = (
        UniqueConstraint("user_id", "provider", "external_id", name="uq_synced_companies_record"),
    )

    name = Column(String(255), nullable=True)
    domain = Column(String(255), nullable=True)
    industry = Column(String(255), nullable=True)

    portal_id = Column(String(50), nullable=True)

    def __repr__(self):
        return f"<SyncedCompany(provider='{self.provider}', name='{self.name}')>"

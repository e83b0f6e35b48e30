"""
Connected provider accounts.

An ``Integration`` row links a tenant (``user_id``) to a provider account:
the Shopify shop domain or the HubSpot portal id. The AI bridge reads it to
learn which providers a tenant has connected, and webhooks read it to learn
which tenant an inbound event belongs to.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON, UniqueConstraint
from sqlalchemy.sql import func
from ..core.database import Base


class IntegrationProvider:
    SHOPIFY = "shopify"
    SALESFORCE = "salesforce"
    HUBSPOT = "hubspot"

    ALL = (SHOPIFY, SALESFORCE, HUBSPOT)


class Integration(Base):
    __tablename__ = "integrations"
    __table_args__ = (
        UniqueConstraint("provider", "account_id", name="uq_integrations_provider_account"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(255), nullable=False, index=True)
    provider = Column(String(50), nullable=False)  # shopify, salesforce, hubspot
    account_id = Column(String(255), nullable=False)  # shop domain, portal id, org id
    status = Column(String(20), nullable=False, default="active")  # active, inactive, error
    settings = Column(JSON, default=dict)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    def __repr__(self):
        return f"<Integration(provider='{self.provider}', account_id='{self.account_id}', status='{self.status}')>"

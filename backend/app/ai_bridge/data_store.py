"""
Read access to synced integration records.

Every query is scoped to one tenant. ``user_id`` is a required argument of
each method and is always part of the WHERE clause; there is no code path
that reads synced rows across tenants.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, desc
from sqlalchemy.future import select

from ..core import database
from ..models.integration import Integration
from ..models.synced import SyncedContact, SyncedDeal, SyncedOrder, SyncedProduct
from .models import (
    IntegrationContact,
    IntegrationDeal,
    IntegrationOrder,
    IntegrationProduct,
    OrderItem,
)

logger = logging.getLogger(__name__)


class IntegrationDataStore(ABC):
    """Tenant-scoped lookups used by the query service"""

    @abstractmethod
    async def list_orders(
        self,
        user_id: str,
        order_number: Optional[str] = None,
        email: Optional[str] = None,
        limit: int = 10
    ) -> List[IntegrationOrder]:
        ...

    @abstractmethod
    async def list_products(self, user_id: str, name: Optional[str] = None, limit: int = 10) -> List[IntegrationProduct]:
        ...

    @abstractmethod
    async def list_contacts(self, user_id: str, email: Optional[str] = None, limit: int = 10) -> List[IntegrationContact]:
        ...

    @abstractmethod
    async def list_deals(self, user_id: str, name: Optional[str] = None, limit: int = 10) -> List[IntegrationDeal]:
        ...

    @abstractmethod
    async def list_active_providers(self, user_id: str) -> List[str]:
        """Providers with an active integration for this tenant"""


class SQLAlchemyIntegrationDataStore(IntegrationDataStore):
    """Store backed by the synced_* tables; one short-lived session per lookup"""

    async def _fetch_all(self, query):
        async with database.AsyncSessionLocal() as session:
            result = await session.execute(query)
            return result.scalars().all()

    async def list_orders(
        self,
        user_id: str,
        order_number: Optional[str] = None,
        email: Optional[str] = None,
        limit: int = 10
    ) -> List[IntegrationOrder]:
        conditions = [SyncedOrder.user_id == user_id]
        if order_number:
            conditions.append(SyncedOrder.order_number.ilike(f"%{order_number}%"))
        if email:
            conditions.append(SyncedOrder.customer_email == email)

        query = (
            select(SyncedOrder)
            .where(and_(*conditions))
            .order_by(desc(SyncedOrder.created_at), desc(SyncedOrder.id))
            .limit(limit)
        )
        rows = await self._fetch_all(query)
        return [order_from_row(row) for row in rows]

    async def list_products(self, user_id: str, name: Optional[str] = None, limit: int = 10) -> List[IntegrationProduct]:
        conditions = [SyncedProduct.user_id == user_id]
        if name:
            conditions.append(SyncedProduct.name.ilike(f"%{name}%"))

        query = (
            select(SyncedProduct)
            .where(and_(*conditions))
            .order_by(desc(SyncedProduct.created_at), desc(SyncedProduct.id))
            .limit(limit)
        )
        rows = await self._fetch_all(query)
        return [product_from_row(row) for row in rows]

    async def list_contacts(self, user_id: str, email: Optional[str] = None, limit: int = 10) -> List[IntegrationContact]:
        conditions = [SyncedContact.user_id == user_id, SyncedContact.deleted_at.is_(None)]
        if email:
            conditions.append(SyncedContact.email == email)

        query = (
            select(SyncedContact)
            .where(and_(*conditions))
            .order_by(desc(SyncedContact.updated_at), desc(SyncedContact.id))
            .limit(limit)
        )
        rows = await self._fetch_all(query)
        return [contact_from_row(row) for row in rows]

    async def list_deals(self, user_id: str, name: Optional[str] = None, limit: int = 10) -> List[IntegrationDeal]:
        conditions = [SyncedDeal.user_id == user_id]
        if name:
            conditions.append(SyncedDeal.name.ilike(f"%{name}%"))

        query = (
            select(SyncedDeal)
            .where(and_(*conditions))
            .order_by(desc(SyncedDeal.created_at), desc(SyncedDeal.id))
            .limit(limit)
        )
        rows = await self._fetch_all(query)
        return [deal_from_row(row) for row in rows]

    async def list_active_providers(self, user_id: str) -> List[str]:
        query = (
            select(Integration)
            .where(and_(Integration.user_id == user_id, Integration.status == "active"))
            .order_by(Integration.id)
        )
        rows = await self._fetch_all(query)

        providers: List[str] = []
        for row in rows:
            if row.provider not in providers:
                providers.append(row.provider)
        return providers


def _order_items(line_items: Optional[List[Dict[str, Any]]]) -> tuple:
    items = []
    for item in line_items or []:
        if not isinstance(item, dict):
            continue
        price = item.get("unit_price", item.get("price"))
        items.append(OrderItem(
            name=item.get("product_name") or item.get("name") or item.get("title") or "Unknown item",
            quantity=int(item.get("quantity") or 1),
            unit_price=float(price) if price not in (None, "") else None,
            sku=item.get("sku"),
            product_id=str(item["product_id"]) if item.get("product_id") is not None else None,
            variant_title=item.get("variant_title"),
        ))
    return tuple(items)


def order_from_row(row: SyncedOrder) -> IntegrationOrder:
    return IntegrationOrder(
        id=row.id,
        provider=row.provider,
        external_id=row.external_id,
        order_number=row.order_number,
        customer_email=row.customer_email,
        customer_name=row.customer_name,
        total_amount=row.total_amount,
        currency=row.currency,
        status=row.status,
        financial_status=row.financial_status,
        fulfillment_status=row.fulfillment_status,
        tracking_number=row.tracking_number,
        items=_order_items(row.line_items),
        shipping_address=row.shipping_address,
        billing_address=row.billing_address,
        data=dict(row.data or {}),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def product_from_row(row: SyncedProduct) -> IntegrationProduct:
    return IntegrationProduct(
        id=row.id,
        provider=row.provider,
        external_id=row.external_id,
        name=row.name,
        description=row.description,
        price=row.price,
        currency=row.currency,
        sku=row.sku,
        inventory_quantity=row.inventory_quantity,
        status=row.status,
        product_type=row.product_type,
        vendor=row.vendor,
        tags=tuple(row.tags or ()),
        data=dict(row.data or {}),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def contact_from_row(row: SyncedContact) -> IntegrationContact:
    return IntegrationContact(
        id=row.id,
        provider=row.provider,
        external_id=row.external_id,
        email=row.email,
        first_name=row.first_name,
        last_name=row.last_name,
        phone=row.phone,
        company=row.company,
        title=row.title,
        lead_source=row.lead_source,
        lifecycle_stage=row.lifecycle_stage,
        total_spent=row.total_spent,
        orders_count=row.orders_count,
        data=dict(row.data or {}),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def deal_from_row(row: SyncedDeal) -> IntegrationDeal:
    return IntegrationDeal(
        id=row.id,
        provider=row.provider,
        external_id=row.external_id,
        name=row.name,
        amount=row.amount,
        currency=row.currency,
        stage=row.stage,
        pipeline=row.pipeline,
        close_date=row.close_date,
        probability=row.probability,
        deal_type=row.deal_type,
        lead_source=row.lead_source,
        contact_name=row.contact_name,
        contact_email=row.contact_email,
        company_name=row.company_name,
        data=dict(row.data or {}),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )

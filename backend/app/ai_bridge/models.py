"""
Value types passed between the bridge stages.

All of them are plain dataclasses built per request; the integration
records are read-only copies of synced rows, never ORM instances, so they
can sit in the process cache and cross task boundaries safely.
"""

from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class QueryIntentType(str, Enum):
    """What the customer is asking about"""
    ORDER_STATUS = "order_status"
    ORDER_TRACKING = "order_tracking"
    PRODUCT_INFO = "product_info"
    PRODUCT_AVAILABILITY = "product_availability"
    PRICING_INFO = "pricing_info"
    CONTACT_INFO = "contact_info"
    ACCOUNT_INFO = "account_info"
    DEAL_INFO = "deal_info"
    DEAL_STATUS = "deal_status"
    PAYMENT_INFO = "payment_info"
    SHIPPING_INFO = "shipping_info"
    RETURN_REFUND = "return_refund"
    GENERAL = "general"


# Intent families drive both entity extraction and data fetching
ORDER_INTENTS = frozenset({
    QueryIntentType.ORDER_STATUS,
    QueryIntentType.ORDER_TRACKING,
    QueryIntentType.PAYMENT_INFO,
    QueryIntentType.SHIPPING_INFO,
    QueryIntentType.RETURN_REFUND,
})
PRODUCT_INTENTS = frozenset({
    QueryIntentType.PRODUCT_INFO,
    QueryIntentType.PRODUCT_AVAILABILITY,
    QueryIntentType.PRICING_INFO,
})
CONTACT_INTENTS = frozenset({
    QueryIntentType.CONTACT_INFO,
    QueryIntentType.ACCOUNT_INFO,
})
DEAL_INTENTS = frozenset({
    QueryIntentType.DEAL_INFO,
    QueryIntentType.DEAL_STATUS,
})


@dataclass(frozen=True)
class DateRange:
    start: Optional[str] = None
    end: Optional[str] = None


@dataclass(frozen=True)
class AmountRange:
    min: Optional[float] = None
    max: Optional[float] = None


@dataclass(frozen=True)
class QueryEntities:
    """Entities mentioned in a message; ``None`` means not mentioned"""
    order_number: Optional[str] = None
    order_id: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    product_name: Optional[str] = None
    product_sku: Optional[str] = None
    deal_name: Optional[str] = None
    deal_id: Optional[str] = None
    contact_name: Optional[str] = None
    company_name: Optional[str] = None
    date_range: Optional[DateRange] = None
    amount_range: Optional[AmountRange] = None

    def to_dict(self) -> Dict[str, Any]:
        """Only the entities that were found; absent ones are omitted entirely"""
        result: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None or value == "":
                continue
            if isinstance(value, (DateRange, AmountRange)):
                nested = {k: v for k, v in vars(value).items() if v is not None}
                if nested:
                    result[f.name] = nested
                continue
            result[f.name] = value
        return result

    def is_empty(self) -> bool:
        return not self.to_dict()


@dataclass(frozen=True)
class QueryIntent:
    """Classified intent of a single message"""
    type: QueryIntentType
    confidence: float
    keywords: Tuple[str, ...] = ()
    entities: QueryEntities = field(default_factory=QueryEntities)
    context: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "confidence": self.confidence,
            "keywords": list(self.keywords),
            "entities": self.entities.to_dict(),
        }


@dataclass(frozen=True)
class OrderItem:
    name: str
    quantity: int = 1
    unit_price: Optional[float] = None
    sku: Optional[str] = None
    product_id: Optional[str] = None
    variant_title: Optional[str] = None


@dataclass(frozen=True)
class IntegrationContact:
    id: int
    provider: str
    external_id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    title: Optional[str] = None
    lead_source: Optional[str] = None
    lifecycle_stage: Optional[str] = None
    total_spent: Optional[float] = None
    orders_count: Optional[int] = None
    data: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class IntegrationOrder:
    id: int
    provider: str
    external_id: str
    order_number: Optional[str] = None
    customer_email: Optional[str] = None
    customer_name: Optional[str] = None
    total_amount: Optional[float] = None
    currency: Optional[str] = None
    status: Optional[str] = None
    financial_status: Optional[str] = None
    fulfillment_status: Optional[str] = None
    tracking_number: Optional[str] = None
    items: Tuple[OrderItem, ...] = ()
    shipping_address: Optional[Dict[str, Any]] = None
    billing_address: Optional[Dict[str, Any]] = None
    data: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class IntegrationProduct:
    id: int
    provider: str
    external_id: str
    name: str
    description: Optional[str] = None
    price: Optional[float] = None
    currency: Optional[str] = None
    sku: Optional[str] = None
    inventory_quantity: Optional[int] = None
    status: Optional[str] = None
    product_type: Optional[str] = None
    vendor: Optional[str] = None
    tags: Tuple[str, ...] = ()
    data: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class IntegrationDeal:
    id: int
    provider: str
    external_id: str
    name: Optional[str] = None
    amount: Optional[float] = None
    currency: Optional[str] = None
    stage: Optional[str] = None
    pipeline: Optional[str] = None
    close_date: Optional[datetime] = None
    probability: Optional[float] = None
    deal_type: Optional[str] = None
    lead_source: Optional[str] = None
    contact_name: Optional[str] = None
    contact_email: Optional[str] = None
    company_name: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class RelevantData:
    """Records fetched for one message; a bucket is ``None`` when it was not fetched or failed"""
    orders: Optional[List[IntegrationOrder]] = None
    products: Optional[List[IntegrationProduct]] = None
    contacts: Optional[List[IntegrationContact]] = None
    deals: Optional[List[IntegrationDeal]] = None

    BUCKETS = ("orders", "products", "contacts", "deals")

    def is_empty(self) -> bool:
        return not any(getattr(self, bucket) for bucket in self.BUCKETS)

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        """Plain-dict view of the non-``None`` buckets, for sanitizing and rendering"""
        result = {}
        for bucket in self.BUCKETS:
            records = getattr(self, bucket)
            if records is None:
                continue
            result[bucket] = [_record_to_dict(record) for record in records]
        return result


def _record_to_dict(record) -> Dict[str, Any]:
    result = {}
    for f in fields(record):
        value = getattr(record, f.name)
        if f.name == "items":
            value = [vars(item).copy() for item in value]
        elif isinstance(value, tuple):
            value = list(value)
        elif isinstance(value, dict):
            value = dict(value)
        result[f.name] = value
    return result


@dataclass
class AIIntegrationContext:
    """Everything the prompt builder needs to know about a tenant's integrations"""
    has_integrations: bool
    available_providers: List[str] = field(default_factory=list)
    relevant_data: Optional[RelevantData] = None
    query_intent: Optional[QueryIntent] = None
    summary: Optional[str] = None
    processing_time_ms: Optional[int] = None


@dataclass
class EnhancedPrompt:
    """System/user prompt pair ready for the completion call"""
    system_prompt: str
    user_prompt: str
    context_summary: str
    has_integration_data: bool
    data_sources_used: List[str] = field(default_factory=list)

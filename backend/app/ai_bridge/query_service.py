"""
Integration Query Service - Fetches the business data a support message needs

Flow for one message:
1. Check the tenant has at least one active integration
2. Classify intent and extract entities
3. Fan out the fetches the intent calls for, in parallel, through the TTL cache
4. Summarize whatever came back

A failed fetch only empties its own bucket; nothing in here raises to the
chat pipeline.
"""

import asyncio
import time
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from ..core.config import settings
from .cache import CacheBackend, InMemoryTTLCache
from .data_store import IntegrationDataStore, SQLAlchemyIntegrationDataStore
from .intent_classifier import IntentClassifier, intent_classifier
from .models import (
    AIIntegrationContext,
    IntegrationContact,
    IntegrationDeal,
    IntegrationOrder,
    IntegrationProduct,
    QueryIntent,
    QueryIntentType,
    RelevantData,
    ORDER_INTENTS,
    PRODUCT_INTENTS,
    CONTACT_INTENTS,
    DEAL_INTENTS,
)
from .summarizer import ContextSummarizer, context_summarizer

logger = logging.getLogger(__name__)

Fetch = Tuple[str, Awaitable[List[Any]]]
FetchPlan = Callable[["IntegrationQueryService", QueryIntent, str], List[Fetch]]


def _filter_slot(field: str, value: Optional[str], unfiltered: str) -> str:
    """Cache key segment; filter values are tagged so they never equal the unfiltered marker"""
    return f"{field}={value}" if value else unfiltered


def _plan_orders(service: "IntegrationQueryService", intent: QueryIntent, user_id: str) -> List[Fetch]:
    entities = intent.entities
    fetches = [("orders", service.fetch_orders(user_id, entities.order_number, entities.email))]
    if entities.email:
        fetches.append(("contacts", service.fetch_contact_by_email(user_id, entities.email)))
    return fetches


def _plan_products(service: "IntegrationQueryService", intent: QueryIntent, user_id: str) -> List[Fetch]:
    return [("products", service.fetch_products(user_id, intent.entities.product_name))]


def _plan_contacts(service: "IntegrationQueryService", intent: QueryIntent, user_id: str) -> List[Fetch]:
    email = intent.entities.email
    if email:
        contacts = service.fetch_contact_by_email(user_id, email)
    else:
        contacts = service.fetch_recent_contacts(user_id)
    return [("contacts", contacts), ("deals", service.fetch_deals(user_id))]


def _plan_deals(service: "IntegrationQueryService", intent: QueryIntent, user_id: str) -> List[Fetch]:
    return [("deals", service.fetch_deals(user_id, intent.entities.deal_name))]


def _plan_general(service: "IntegrationQueryService", intent: QueryIntent, user_id: str) -> List[Fetch]:
    limit = service.general_limit
    return [
        ("orders", service.fetch_orders(user_id, limit=limit)),
        ("contacts", service.fetch_recent_contacts(user_id, limit=limit)),
        ("deals", service.fetch_deals(user_id, limit=limit)),
    ]


def _build_fetch_plans() -> Dict[QueryIntentType, FetchPlan]:
    plans: Dict[QueryIntentType, FetchPlan] = {}
    for intent_type in ORDER_INTENTS:
        plans[intent_type] = _plan_orders
    for intent_type in PRODUCT_INTENTS:
        plans[intent_type] = _plan_products
    for intent_type in CONTACT_INTENTS:
        plans[intent_type] = _plan_contacts
    for intent_type in DEAL_INTENTS:
        plans[intent_type] = _plan_deals
    plans[QueryIntentType.GENERAL] = _plan_general
    return plans


FETCH_PLANS = _build_fetch_plans()


class IntegrationQueryService:
    """Bridge between chat messages and synced CRM / eCommerce records"""

    def __init__(
        self,
        store: Optional[IntegrationDataStore] = None,
        cache: Optional[CacheBackend] = None,
        classifier: Optional[IntentClassifier] = None,
        summarizer: Optional[ContextSummarizer] = None,
        page_size: Optional[int] = None,
        general_limit: Optional[int] = None
    ):
        self.store = store or SQLAlchemyIntegrationDataStore()
        self.cache = cache or InMemoryTTLCache()
        self.classifier = classifier or intent_classifier
        self.summarizer = summarizer or context_summarizer
        self.page_size = page_size or settings.INTEGRATION_QUERY_LIMIT
        self.general_limit = general_limit or settings.INTEGRATION_GENERAL_QUERY_LIMIT

    async def analyze_and_fetch_context(
        self,
        user_message: str,
        user_id: str,
        conversation_id: Optional[str] = None
    ) -> AIIntegrationContext:
        """
        Main entry point: classify the message and gather the matching records.

        Args:
            user_message: Customer message as typed
            user_id: Tenant whose integrations are consulted
            conversation_id: Only used for log correlation

        Returns:
            AIIntegrationContext; ``has_integrations`` is False when the tenant
            has nothing connected or anything unexpected goes wrong
        """
        started = time.perf_counter()
        log_context = {"user_id": user_id, "conversation_id": conversation_id}

        try:
            providers = await self.get_connected_providers(user_id)
            if not providers:
                return AIIntegrationContext(has_integrations=False, available_providers=[])

            intent = self.classifier.classify(user_message)
            logger.info(
                f"Integration query intent: {intent.type.value} ({intent.confidence})",
                extra=log_context
            )

            relevant_data = await self.fetch_relevant_data(intent, user_id, user_message)
            summary = self.summarizer.summarize(relevant_data, intent)

            return AIIntegrationContext(
                has_integrations=True,
                available_providers=providers,
                relevant_data=relevant_data,
                query_intent=intent,
                summary=summary,
                processing_time_ms=int((time.perf_counter() - started) * 1000),
            )

        except Exception as e:
            logger.error(f"Error analyzing integration context: {e}", extra=log_context, exc_info=True)
            return AIIntegrationContext(has_integrations=False, available_providers=[])

    async def fetch_relevant_data(self, intent: QueryIntent, user_id: str, message: str = "") -> RelevantData:
        """Run the fetches for this intent in parallel; failures leave their bucket empty"""
        plan = FETCH_PLANS.get(intent.type, _plan_general)
        fetches = plan(self, intent, user_id)

        buckets = [bucket for bucket, _ in fetches]
        results = await asyncio.gather(*(awaitable for _, awaitable in fetches), return_exceptions=True)

        relevant_data = RelevantData()
        for bucket, result in zip(buckets, results):
            if isinstance(result, BaseException):
                logger.warning(
                    f"Integration fetch for {bucket} failed: {result}",
                    extra={"user_id": user_id}
                )
                continue
            setattr(relevant_data, bucket, result)

        return relevant_data

    async def _cached(self, key: str, loader: Callable[[], Awaitable[List[Any]]]) -> List[Any]:
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        records = await loader()
        self.cache.set(key, records)
        return list(records)

    async def fetch_orders(
        self,
        user_id: str,
        order_number: Optional[str] = None,
        email: Optional[str] = None,
        limit: Optional[int] = None
    ) -> List[IntegrationOrder]:
        limit = limit or self.page_size
        key = (
            f"orders:{user_id}:{_filter_slot('number', order_number, 'recent')}"
            f":{_filter_slot('email', email, 'all')}:{limit}"
        )
        return await self._cached(
            key, lambda: self.store.list_orders(user_id, order_number=order_number, email=email, limit=limit)
        )

    async def fetch_products(
        self,
        user_id: str,
        product_name: Optional[str] = None,
        limit: Optional[int] = None
    ) -> List[IntegrationProduct]:
        limit = limit or self.page_size
        key = f"products:{user_id}:{_filter_slot('name', product_name, 'all')}:{limit}"
        return await self._cached(
            key, lambda: self.store.list_products(user_id, name=product_name, limit=limit)
        )

    async def fetch_recent_contacts(self, user_id: str, limit: Optional[int] = None) -> List[IntegrationContact]:
        limit = limit or self.page_size
        key = f"contacts:{user_id}:recent:{limit}"
        return await self._cached(key, lambda: self.store.list_contacts(user_id, limit=limit))

    async def fetch_contact_by_email(self, user_id: str, email: str) -> List[IntegrationContact]:
        key = f"contacts:{user_id}:email={email}:{self.page_size}"
        return await self._cached(
            key, lambda: self.store.list_contacts(user_id, email=email, limit=self.page_size)
        )

    async def fetch_deals(
        self,
        user_id: str,
        deal_name: Optional[str] = None,
        limit: Optional[int] = None
    ) -> List[IntegrationDeal]:
        limit = limit or self.page_size
        key = f"deals:{user_id}:{_filter_slot('name', deal_name, 'recent')}:{limit}"
        return await self._cached(
            key, lambda: self.store.list_deals(user_id, name=deal_name, limit=limit)
        )

    async def get_connected_providers(self, user_id: str) -> List[str]:
        """Active providers for a tenant; lookup failures count as none connected"""
        key = f"integrations:{user_id}"
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        try:
            providers = await self.store.list_active_providers(user_id)
        except Exception as e:
            logger.error(f"Error fetching integrations: {e}", extra={"user_id": user_id})
            return []

        self.cache.set(key, providers)
        return list(providers)

    def clear_cache(self) -> None:
        """Drop every cached lookup (logout, tests, manual refresh)"""
        self.cache.clear()

    def get_cache_stats(self) -> Dict[str, Any]:
        return self.cache.stats()


# Global instance
integration_query_service = IntegrationQueryService()

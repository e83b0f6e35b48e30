"""
AI-Integration bridge.

Turns a customer message into live CRM / eCommerce context for the chat
model: intent classification, tenant-scoped data fetching through a TTL
cache, summarization and prompt building.
"""

from .models import (
    AIIntegrationContext,
    EnhancedPrompt,
    IntegrationContact,
    IntegrationDeal,
    IntegrationOrder,
    IntegrationProduct,
    OrderItem,
    QueryEntities,
    QueryIntent,
    QueryIntentType,
    RelevantData,
)
from .intent_classifier import IntentClassifier, intent_classifier
from .entity_extractor import EntityExtractor, entity_extractor
from .cache import CacheEntry, InMemoryTTLCache
from .data_store import IntegrationDataStore, SQLAlchemyIntegrationDataStore
from .query_service import IntegrationQueryService, integration_query_service
from .summarizer import ContextSummarizer, context_summarizer
from .sanitizer import sanitize_sensitive_data
from .prompt_enhancer import PromptEnhancer, prompt_enhancer

__all__ = [
    "AIIntegrationContext",
    "EnhancedPrompt",
    "IntegrationContact",
    "IntegrationDeal",
    "IntegrationOrder",
    "IntegrationProduct",
    "OrderItem",
    "QueryEntities",
    "QueryIntent",
    "QueryIntentType",
    "RelevantData",
    "IntentClassifier",
    "intent_classifier",
    "EntityExtractor",
    "entity_extractor",
    "CacheEntry",
    "InMemoryTTLCache",
    "IntegrationDataStore",
    "SQLAlchemyIntegrationDataStore",
    "IntegrationQueryService",
    "integration_query_service",
    "ContextSummarizer",
    "context_summarizer",
    "sanitize_sensitive_data",
    "PromptEnhancer",
    "prompt_enhancer",
]

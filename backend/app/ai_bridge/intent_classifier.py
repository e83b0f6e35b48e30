"""
Intent Classifier - Maps a customer message to the kind of business data it needs

Rule based and deterministic: rules are tried in priority order and the
first rule with a matching pattern wins. Messages that match nothing fall
back to a low-confidence general intent, which still fetches a small mix of
recent records.
"""

import re
import logging
from dataclasses import dataclass
from typing import Optional, Pattern, Tuple

from .models import QueryIntent, QueryIntentType
from .entity_extractor import EntityExtractor, entity_extractor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IntentRule:
    """One row of the classification table"""
    intent_type: QueryIntentType
    confidence: float
    keywords: Tuple[str, ...]
    patterns: Tuple[Pattern[str], ...]

    def matches(self, message: str) -> bool:
        return any(pattern.search(message) for pattern in self.patterns)


def _compile(*patterns: str) -> Tuple[Pattern[str], ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


# Priority order matters: order > product > contact > deal
INTENT_RULES: Tuple[IntentRule, ...] = (
    IntentRule(
        intent_type=QueryIntentType.ORDER_STATUS,
        confidence=0.9,
        keywords=("order", "status", "shipping", "delivery"),
        patterns=_compile(
            r"order.*status",
            r"where.*my.*order",
            r"track.*order",
            r"shipping.*status",
            r"delivery.*status",
            r"order.*#?\d+",
            r"recent.*order",
            r"last.*order",
            r"#\d{4,}",
        ),
    ),
    IntentRule(
        intent_type=QueryIntentType.PRODUCT_INFO,
        confidence=0.8,
        keywords=("product", "price", "inventory", "stock"),
        patterns=_compile(
            r"product.*info",
            r"tell.*about.*product",
            r"price.*of",
            r"available.*stock",
            r"inventory",
            r"product.*details",
        ),
    ),
    IntentRule(
        intent_type=QueryIntentType.CONTACT_INFO,
        confidence=0.8,
        keywords=("account", "manager", "contact", "rep"),
        patterns=_compile(
            r"my.*account",
            r"account.*manager",
            r"contact.*info",
            r"who.*is.*my",
            r"assigned.*to.*me",
            r"my.*rep",
        ),
    ),
    IntentRule(
        intent_type=QueryIntentType.DEAL_INFO,
        confidence=0.8,
        keywords=("deal", "opportunity", "proposal", "quote"),
        patterns=_compile(
            r"deal.*status",
            r"opportunity",
            r"proposal",
            r"quote",
            r"contract",
            r"negotiation",
        ),
    ),
)

GENERAL_CONFIDENCE = 0.3


class IntentClassifier:
    """Pattern-table classifier for customer support messages"""

    def __init__(self, extractor: Optional[EntityExtractor] = None, rules: Tuple[IntentRule, ...] = INTENT_RULES):
        self.extractor = extractor or entity_extractor
        self.rules = rules

    def classify(self, message: str) -> QueryIntent:
        """
        Classify a message and extract the entities its intent cares about.

        Args:
            message: Raw customer message

        Returns:
            QueryIntent; ``general`` with confidence 0.3 when no rule matches
        """
        message = message or ""

        for rule in self.rules:
            if rule.matches(message):
                entities = self.extractor.extract(message, rule.intent_type)
                logger.debug(
                    f"Classified message as {rule.intent_type.value}",
                    extra={"entities": entities.to_dict()}
                )
                return QueryIntent(
                    type=rule.intent_type,
                    confidence=rule.confidence,
                    keywords=rule.keywords,
                    entities=entities,
                )

        return QueryIntent(type=QueryIntentType.GENERAL, confidence=GENERAL_CONFIDENCE)


# Global instance
intent_classifier = IntentClassifier()

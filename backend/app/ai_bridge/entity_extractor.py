"""
Entity extraction for customer support messages.

Each extractor looks for one kind of entity. Which extractors run depends
on the intent family, so an order query never picks up a product name and
a product query never picks up an order number.
"""

import re
from typing import Any, Callable, Dict, Optional, Tuple

from .models import (
    AmountRange,
    QueryEntities,
    QueryIntentType,
    ORDER_INTENTS,
    PRODUCT_INTENTS,
    CONTACT_INTENTS,
    DEAL_INTENTS,
)

ORDER_NUMBER_RE = re.compile(r"#?(\d{4,})")
EMAIL_RE = re.compile(r"([a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,})")
QUOTED_RE = re.compile(r'"([^"]+)"')
PHONE_RE = re.compile(r"(\+?\d[\d\-\s().]{5,}\d)")

_NUMBER = r"(\d+(?:\.\d+)?)"
AMOUNT_BETWEEN_RE = re.compile(rf"between\s+\$?{_NUMBER}\s+and\s+\$?{_NUMBER}", re.IGNORECASE)
AMOUNT_SPAN_RE = re.compile(rf"\${_NUMBER}\s*(?:-|to)\s*\$?{_NUMBER}", re.IGNORECASE)
AMOUNT_UNDER_RE = re.compile(rf"(?:under|below|less than|cheaper than)\s*\$?{_NUMBER}", re.IGNORECASE)
AMOUNT_OVER_RE = re.compile(rf"(?:over|above|more than)\s*\$?{_NUMBER}", re.IGNORECASE)

Extractor = Callable[[str], Dict[str, Any]]


def extract_order_number(message: str) -> Dict[str, Any]:
    match = ORDER_NUMBER_RE.search(message)
    return {"order_number": match.group(1)} if match else {}


def extract_email(message: str) -> Dict[str, Any]:
    match = EMAIL_RE.search(message)
    return {"email": match.group(1)} if match else {}


def extract_product_name(message: str) -> Dict[str, Any]:
    match = QUOTED_RE.search(message)
    return {"product_name": match.group(1)} if match else {}


def extract_deal_name(message: str) -> Dict[str, Any]:
    match = QUOTED_RE.search(message)
    return {"deal_name": match.group(1)} if match else {}


def extract_phone(message: str) -> Dict[str, Any]:
    # Skip anything that is part of an email address
    scrubbed = EMAIL_RE.sub(" ", message)
    match = PHONE_RE.search(scrubbed)
    if not match:
        return {}
    phone = match.group(1).strip()
    digits = re.sub(r"\D", "", phone)
    if len(digits) < 7:
        return {}
    return {"phone": phone}


def extract_amount_range(message: str) -> Dict[str, Any]:
    match = AMOUNT_BETWEEN_RE.search(message) or AMOUNT_SPAN_RE.search(message)
    if match:
        low, high = sorted((float(match.group(1)), float(match.group(2))))
        return {"amount_range": AmountRange(min=low, max=high)}

    match = AMOUNT_UNDER_RE.search(message)
    if match:
        return {"amount_range": AmountRange(max=float(match.group(1)))}

    match = AMOUNT_OVER_RE.search(message)
    if match:
        return {"amount_range": AmountRange(min=float(match.group(1)))}

    return {}


def _table() -> Dict[QueryIntentType, Tuple[Extractor, ...]]:
    table: Dict[QueryIntentType, Tuple[Extractor, ...]] = {}
    for intent_type in ORDER_INTENTS:
        table[intent_type] = (extract_order_number, extract_email)
    for intent_type in PRODUCT_INTENTS:
        table[intent_type] = (extract_product_name, extract_amount_range)
    for intent_type in CONTACT_INTENTS:
        table[intent_type] = (extract_email, extract_phone)
    for intent_type in DEAL_INTENTS:
        table[intent_type] = (extract_deal_name, extract_amount_range)
    table[QueryIntentType.GENERAL] = ()
    return table


EXTRACTORS_BY_INTENT = _table()


class EntityExtractor:
    """Runs the extractors registered for an intent type"""

    def __init__(self, extractors: Optional[Dict[QueryIntentType, Tuple[Extractor, ...]]] = None):
        self.extractors = extractors if extractors is not None else EXTRACTORS_BY_INTENT

    def extract(self, message: str, intent_type: QueryIntentType) -> QueryEntities:
        found: Dict[str, Any] = {}
        for extractor in self.extractors.get(intent_type, ()):
            found.update(extractor(message or ""))
        return QueryEntities(**found)


# Global instance
entity_extractor = EntityExtractor()

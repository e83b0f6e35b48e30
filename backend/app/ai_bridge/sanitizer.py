"""
Removes credentials and payment data before anything reaches a prompt.
"""

import copy
from typing import Any, Iterable, Tuple

SENSITIVE_KEY_TERMS: Tuple[str, ...] = (
    "access_token",
    "refresh_token",
    "password",
    "ssn",
    "credit_card",
    "bank_account",
    "api_key",
    "secret",
    "cvv",
    "card_number",
    "routing_number",
)


def is_sensitive_key(key: Any, terms: Iterable[str] = SENSITIVE_KEY_TERMS) -> bool:
    lowered = str(key).lower()
    return any(term in lowered for term in terms)


def sanitize_sensitive_data(data: Any, terms: Iterable[str] = SENSITIVE_KEY_TERMS) -> Any:
    """
    Return a deep copy of ``data`` without any key containing a sensitive term.

    Matching is a case-insensitive substring test on the key, applied at every
    depth, including dicts nested inside lists. The input is never modified.
    """
    terms = tuple(terms)
    return _strip(copy.deepcopy(data), terms)


def _strip(value: Any, terms: Tuple[str, ...]) -> Any:
    if isinstance(value, dict):
        return {
            key: _strip(item, terms)
            for key, item in value.items()
            if not is_sensitive_key(key, terms)
        }
    if isinstance(value, list):
        return [_strip(item, terms) for item in value]
    if isinstance(value, tuple):
        return tuple(_strip(item, terms) for item in value)
    return value

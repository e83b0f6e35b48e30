"""Small value formatters shared by the summarizer and the prompt builder."""

from datetime import date, datetime
from typing import Any, Optional


def format_number(value: Any) -> str:
    """Render 100.0 as "100" and 59.9 as "59.9" """
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_money(amount: Any, currency: Optional[str] = None) -> str:
    return f"${format_number(amount)} {currency or ''}".rstrip()


def format_date(value: Any) -> str:
    if isinstance(value, (datetime, date)):
        return value.strftime("%Y-%m-%d")
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).strftime("%Y-%m-%d")
        except ValueError:
            return value
    return "Not specified" if value is None else str(value)


def full_name(first: Optional[str], last: Optional[str]) -> str:
    return " ".join(part for part in (first, last) if part)

"""
Context Summarizer - One-line digest of the fetched records

The summary is what gets logged and surfaced as ``context_summary``; the
full field-by-field rendering lives in the prompt builder.
"""

from typing import Callable, List, Optional, Tuple

from .formatting import format_money, full_name
from .models import (
    IntegrationContact,
    IntegrationDeal,
    IntegrationOrder,
    IntegrationProduct,
    QueryIntent,
    RelevantData,
)

NO_DATA_SUMMARY = "No relevant integration data found for this query."
SUMMARY_PREFIX = "Integration Data Available: "


def summarize_order(order: IntegrationOrder) -> str:
    amount = format_money(order.total_amount, order.currency) if order.total_amount else "Amount unknown"
    return f"Order {order.order_number or order.external_id}: {order.status or 'Unknown status'}, {amount}"


def summarize_product(product: IntegrationProduct) -> str:
    price = format_money(product.price, product.currency) if product.price else "Price not available"
    stock = f"Stock: {product.inventory_quantity}" if product.inventory_quantity is not None else "Stock unknown"
    return f"{product.name or product.external_id}: {price}, {stock}"


def summarize_contact(contact: IntegrationContact) -> str:
    line = f"{full_name(contact.first_name, contact.last_name)} ({contact.email or 'No email'})".lstrip()
    if contact.company:
        line += f" at {contact.company}"
    return line


def summarize_deal(deal: IntegrationDeal) -> str:
    amount = format_money(deal.amount) if deal.amount else "Amount unknown"
    return f"{deal.name or deal.external_id}: {deal.stage or 'Unknown stage'}, {amount}"


# Fixed bucket order: orders, products, contacts, deals
SECTIONS: Tuple[Tuple[str, str, Callable], ...] = (
    ("orders", "Recent Orders", summarize_order),
    ("products", "Products", summarize_product),
    ("contacts", "Contacts", summarize_contact),
    ("deals", "Deals", summarize_deal),
)


class ContextSummarizer:
    """Turns relevant data into a single human-readable line"""

    def summarize(self, relevant_data: Optional[RelevantData], intent: Optional[QueryIntent] = None) -> str:
        if relevant_data is None:
            return NO_DATA_SUMMARY

        parts: List[str] = []
        for bucket, label, render in SECTIONS:
            records = getattr(relevant_data, bucket)
            if not records:
                continue
            parts.append(f"{label}: " + "; ".join(render(record) for record in records))

        if not parts:
            return NO_DATA_SUMMARY
        return SUMMARY_PREFIX + " | ".join(parts)


# Global instance
context_summarizer = ContextSummarizer()

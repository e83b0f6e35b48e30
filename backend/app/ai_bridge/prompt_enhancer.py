"""
Prompt Enhancer - Builds the system/user prompt pair for the completion call

Without integration data the prompts only carry the knowledge base. With
data, the system prompt describes the connected providers and how to weigh
live data against the knowledge base, and the user prompt gets a
field-by-field rendering of the fetched records.

Everything here is pure string building. Records are sanitized before they
are rendered.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Union

from .formatting import format_date, format_money, format_number, full_name
from .models import (
    AIIntegrationContext,
    EnhancedPrompt,
    QueryIntent,
    QueryIntentType,
    RelevantData,
    ORDER_INTENTS,
    PRODUCT_INTENTS,
    CONTACT_INTENTS,
    DEAL_INTENTS,
)
from .sanitizer import sanitize_sensitive_data

logger = logging.getLogger(__name__)

DEFAULT_TONE = "helpful and professional"
DEFAULT_BUSINESS_TYPE = "general business"

MAX_RECORDS_PER_SECTION = 10
MAX_ORDER_ITEMS = 3
MAX_DESCRIPTION_LENGTH = 150
QUERY_CONTEXT_MIN_CONFIDENCE = 0.7

INTEGRATION_DATA_HEADER = "REAL-TIME INTEGRATION DATA:"

PROVIDER_CAPABILITIES = {
    "shopify": "- Access to Shopify order history, product catalog, and customer information",
    "hubspot": "- Access to HubSpot contacts, deals, and CRM data",
    "salesforce": "- Access to Salesforce leads, opportunities, and account information",
}


def _not_specified(value: Any) -> str:
    return "Not specified" if value in (None, "") else str(value)


def _extra(record: Dict[str, Any], key: str) -> Any:
    """Typed column first, then the provider blob"""
    value = record.get(key)
    if value in (None, ""):
        value = (record.get("data") or {}).get(key)
    return value


class PromptEnhancer:
    """Builds prompts from a knowledge base and an integration context"""

    def enhance(
        self,
        user_message: str,
        knowledge_base: str,
        integration_context: AIIntegrationContext,
        tone: Optional[str] = None,
        business_type: Optional[str] = None
    ) -> EnhancedPrompt:
        """
        Build the prompt pair for one message.

        Falls back to the knowledge-base-only prompts when the tenant has no
        integrations or nothing relevant was fetched.
        """
        relevant_data = integration_context.relevant_data
        if not integration_context.has_integrations or relevant_data is None or relevant_data.is_empty():
            logger.debug("No integration data for prompt, using knowledge base prompts")
            return EnhancedPrompt(
                system_prompt=self.build_base_system_prompt(tone, business_type),
                user_prompt=self.build_base_user_prompt(user_message, knowledge_base),
                context_summary="No integration data available",
                has_integration_data=False,
            )

        sanitized = sanitize_sensitive_data(relevant_data.to_dict())

        return EnhancedPrompt(
            system_prompt=self.build_enhanced_system_prompt(
                integration_context.available_providers, tone, business_type
            ),
            user_prompt=self.build_enhanced_user_prompt(
                user_message, knowledge_base, sanitized, integration_context.query_intent
            ),
            context_summary=integration_context.summary or "Integration data loaded",
            has_integration_data=True,
            data_sources_used=self._data_sources(sanitized),
        )

    def build_base_system_prompt(self, tone: Optional[str] = None, business_type: Optional[str] = None) -> str:
        tone = tone or DEFAULT_TONE
        business = business_type or DEFAULT_BUSINESS_TYPE

        return f"""You are a {tone} customer service assistant for a {business} business. Your job is to provide natural, conversational answers based ONLY on the provided knowledge base.

CRITICAL INSTRUCTIONS:
1. SPEAK AS IF YOU KNOW THE INFORMATION PERSONALLY - Don't say "I found this" or "according to our information"
2. Answer NATURALLY as if you work for this company and know these policies by heart
3. Use a {tone} tone and be conversational
4. Give CONCISE, direct answers - don't repeat information
5. If no relevant information exists, say "I don't have that information available"
6. NEVER make up information not in the knowledge base
7. Sound human and personal, not like a search engine

IMPORTANT: Sound natural and personal, like you're speaking directly to the customer as a knowledgeable team member."""

    def build_base_user_prompt(self, user_message: str, knowledge_base: str) -> str:
        return f"""CUSTOMER QUESTION:
{user_message}

KNOWLEDGE BASE:
{knowledge_base}

Please provide a helpful answer based on the knowledge base above. If the information isn't available, let me know that you don't have that information."""

    def build_enhanced_system_prompt(
        self,
        providers: List[str],
        tone: Optional[str] = None,
        business_type: Optional[str] = None
    ) -> str:
        tone = tone or DEFAULT_TONE
        business = business_type or DEFAULT_BUSINESS_TYPE
        capabilities = "\n".join(
            PROVIDER_CAPABILITIES[provider] for provider in providers if provider in PROVIDER_CAPABILITIES
        )

        return f"""You are a {tone} customer service assistant for a {business} business. You have access to real-time business data from connected integrations ({', '.join(providers)}).

INTEGRATION CAPABILITIES:
{capabilities}

CRITICAL INSTRUCTIONS:
1. You have REAL-TIME ACCESS to customer data - use it to provide specific, accurate answers
2. When you have relevant integration data, reference it naturally without saying "I found this" or "according to our system"
3. Speak as if you personally know the customer's information and history
4. For order inquiries, provide specific order numbers, statuses, and tracking information when available
5. For product questions, give current pricing, availability, and inventory levels
6. For account questions, reference the customer's actual purchase history and contact details
7. Be conversational and personal - you're not a search engine, you're a knowledgeable team member
8. If integration data contradicts knowledge base info, prioritize the real-time integration data
9. Use a {tone} tone and be conversational
10. NEVER make up information not provided in either the knowledge base or integration data

INTEGRATION DATA PRIORITY:
- For order status, shipping, and purchase history: Use integration data as primary source
- For product pricing and availability: Use integration data as primary source
- For customer account details: Use integration data as primary source
- For general policies and procedures: Use knowledge base as primary source

Remember: You have access to live business data, so provide specific, actionable information when possible."""

    def build_enhanced_user_prompt(
        self,
        user_message: str,
        knowledge_base: str,
        data: Dict[str, List[Dict[str, Any]]],
        intent: Optional[QueryIntent] = None
    ) -> str:
        """Render already-sanitized records under the integration data header"""
        lines = [
            "CUSTOMER QUESTION:",
            user_message,
            "",
            "KNOWLEDGE BASE:",
            knowledge_base,
            "",
            INTEGRATION_DATA_HEADER,
        ]

        sections = (
            ("orders", "ORDER INFORMATION:", self._render_order),
            ("products", "PRODUCT INFORMATION:", self._render_product),
            ("contacts", "CONTACT INFORMATION:", self._render_contact),
            ("deals", "DEAL INFORMATION:", self._render_deal),
        )
        for bucket, title, render in sections:
            records = data.get(bucket) or []
            if not records:
                continue
            lines.extend(["", title])
            for record in records[:MAX_RECORDS_PER_SECTION]:
                lines.extend(render(record))
                lines.append("")

        if intent is not None and intent.confidence > QUERY_CONTEXT_MIN_CONFIDENCE:
            lines.extend([
                "",
                "QUERY CONTEXT:",
                f"- Detected Intent: {intent.type.value}",
                f"- Confidence: {round(intent.confidence * 100)}%",
            ])
            entities = intent.entities.to_dict()
            if entities:
                lines.append(f"- Extracted Entities: {json.dumps(entities)}")

        lines.extend([
            "",
            "Please provide a helpful, specific answer using the real-time integration data above when relevant. "
            "Prioritize integration data for current information like order status, pricing, and customer details.",
        ])
        return "\n".join(lines)

    def _render_order(self, order: Dict[str, Any]) -> List[str]:
        total = order.get("total_amount")
        lines = [
            f"- Order {order.get('order_number') or order.get('external_id')} ({str(order.get('provider', '')).upper()})",
            f"  Status: {order.get('status') or 'Unknown'}",
            f"  Total: {format_money(total, order.get('currency')) if total else 'Not specified'}",
            f"  Customer: {_not_specified(order.get('customer_email'))}",
            f"  Date: {format_date(order.get('created_at'))}",
        ]

        items = order.get("items") or []
        if items:
            lines.append("  Items:")
            for item in items[:MAX_ORDER_ITEMS]:
                name = item.get("name") or item.get("title") or "Unknown item"
                lines.append(f"    - {name} (Qty: {item.get('quantity') or 1})")
            if len(items) > MAX_ORDER_ITEMS:
                lines.append(f"    - ... and {len(items) - MAX_ORDER_ITEMS} more items")

        for key, label in (
            ("financial_status", "Payment Status"),
            ("fulfillment_status", "Fulfillment Status"),
            ("tracking_number", "Tracking"),
        ):
            value = _extra(order, key)
            if value:
                lines.append(f"  {label}: {value}")
        return lines

    def _render_product(self, product: Dict[str, Any]) -> List[str]:
        price = product.get("price")
        stock = product.get("inventory_quantity")
        lines = [
            f"- {product.get('name') or product.get('external_id')} ({str(product.get('provider', '')).upper()})",
            f"  Price: {format_money(price, product.get('currency')) if price else 'Not specified'}",
            f"  SKU: {_not_specified(product.get('sku'))}",
            f"  Stock: {stock if stock is not None else 'Unknown'}",
            f"  Status: {product.get('status') or 'Unknown'}",
        ]

        description = product.get("description")
        if description:
            suffix = "..." if len(description) > MAX_DESCRIPTION_LENGTH else ""
            lines.append(f"  Description: {description[:MAX_DESCRIPTION_LENGTH]}{suffix}")
        return lines

    def _render_contact(self, contact: Dict[str, Any]) -> List[str]:
        name = full_name(contact.get("first_name"), contact.get("last_name"))
        lines = [
            f"- {name} ({str(contact.get('provider', '')).upper()})",
            f"  Email: {_not_specified(contact.get('email'))}",
            f"  Phone: {_not_specified(contact.get('phone'))}",
            f"  Company: {_not_specified(contact.get('company'))}",
            f"  Title: {_not_specified(contact.get('title'))}",
            f"  Lead Source: {_not_specified(contact.get('lead_source'))}",
        ]

        stage = _extra(contact, "lifecycle_stage")
        if stage:
            lines.append(f"  Stage: {stage}")
        spent = _extra(contact, "total_spent")
        if spent:
            lines.append(f"  Total Spent: ${format_number(spent)}")
        orders_count = _extra(contact, "orders_count")
        if orders_count:
            lines.append(f"  Orders: {orders_count}")
        return lines

    def _render_deal(self, deal: Dict[str, Any]) -> List[str]:
        amount = deal.get("amount")
        close_date = deal.get("close_date")
        probability = deal.get("probability")
        lines = [
            f"- {deal.get('name') or deal.get('external_id')} ({str(deal.get('provider', '')).upper()})",
            f"  Stage: {deal.get('stage') or 'Unknown'}",
            f"  Amount: {format_money(amount) if amount else 'Not specified'}",
            f"  Close Date: {format_date(close_date) if close_date else 'Not specified'}",
            f"  Probability: {format_number(probability) + '%' if probability else 'Not specified'}",
        ]

        deal_type = _extra(deal, "deal_type")
        if deal_type:
            lines.append(f"  Type: {deal_type}")
        pipeline = _extra(deal, "pipeline")
        if pipeline:
            lines.append(f"  Pipeline: {pipeline}")
        return lines

    def _data_sources(self, data: Dict[str, List[Dict[str, Any]]]) -> List[str]:
        """Providers that contributed at least one rendered record"""
        sources: List[str] = []
        for records in data.values():
            for record in (records or [])[:MAX_RECORDS_PER_SECTION]:
                provider = record.get("provider")
                if provider and provider not in sources:
                    sources.append(provider)
        return sources

    def format_data_for_query_type(
        self,
        data: Union[RelevantData, Dict[str, Any]],
        intent_type: QueryIntentType
    ) -> str:
        """Short plain-text digest of the records that matter for an intent"""
        if isinstance(data, RelevantData):
            data = data.to_dict()
        data = sanitize_sensitive_data(data or {})

        if intent_type in ORDER_INTENTS:
            return self._format_orders(data)
        if intent_type in PRODUCT_INTENTS:
            return self._format_products(data)
        if intent_type in CONTACT_INTENTS:
            return self._format_contacts(data)
        if intent_type in DEAL_INTENTS:
            return self._format_deals(data)
        return self._format_general(data)

    def _format_orders(self, data: Dict[str, Any]) -> str:
        orders = data.get("orders") or []
        if not orders:
            return "No recent orders found."

        lines = []
        for order in orders[:3]:
            line = f"Order {order.get('order_number') or order.get('external_id')}: {order.get('status') or 'Status unknown'}"
            if order.get("total_amount"):
                line += f", Total: ${format_number(order['total_amount'])}"
            tracking = _extra(order, "tracking_number")
            if tracking:
                line += f", Tracking: {tracking}"
            lines.append(line)
        return "\n".join(lines)

    def _format_products(self, data: Dict[str, Any]) -> str:
        products = data.get("products") or []
        if not products:
            return "No products found."

        lines = []
        for product in products[:5]:
            line = f"{product.get('name') or product.get('external_id')}"
            if product.get("price"):
                line += f": ${format_number(product['price'])}"
            if product.get("inventory_quantity") is not None:
                line += f", Stock: {product['inventory_quantity']}"
            lines.append(line)
        return "\n".join(lines)

    def _format_contacts(self, data: Dict[str, Any]) -> str:
        contacts = data.get("contacts") or []
        if not contacts:
            return "No contact information found."

        lines = []
        for contact in contacts[:3]:
            line = full_name(contact.get("first_name"), contact.get("last_name"))
            if contact.get("email"):
                line += f" ({contact['email']})"
            if contact.get("company"):
                line += f" at {contact['company']}"
            lines.append(line.strip())
        return "\n".join(lines)

    def _format_deals(self, data: Dict[str, Any]) -> str:
        deals = data.get("deals") or []
        if not deals:
            return "No deals found."

        lines = []
        for deal in deals[:3]:
            line = f"{deal.get('name') or deal.get('external_id')}: {deal.get('stage') or 'Unknown stage'}"
            if deal.get("amount"):
                line += f", Value: ${format_number(deal['amount'])}"
            if deal.get("close_date"):
                line += f", Close Date: {format_date(deal['close_date'])}"
            lines.append(line)
        return "\n".join(lines)

    def _format_general(self, data: Dict[str, Any]) -> str:
        sections = []
        for bucket, label in (
            ("orders", "Recent Orders"),
            ("products", "Products"),
            ("contacts", "Contacts"),
            ("deals", "Deals"),
        ):
            records = data.get(bucket) or []
            if records:
                sections.append(f"{label}: {len(records)} found")
        return ", ".join(sections) if sections else "No relevant data found."

    def generate_response_template(self, intent_type: QueryIntentType, has_data: bool) -> str:
        if not has_data:
            return "I don't have that specific information available in our system right now."

        if intent_type in ORDER_INTENTS:
            return "Here's the current status of your order(s):"
        if intent_type in PRODUCT_INTENTS:
            return "Here's the information about our products:"
        if intent_type in CONTACT_INTENTS:
            return "Here's your account information:"
        if intent_type in DEAL_INTENTS:
            return "Here's the status of your deals/opportunities:"
        return "Based on your account information:"


# Global instance
prompt_enhancer = PromptEnhancer()

"""
Tests for prompt construction with and without integration data
"""

from datetime import datetime

import pytest

from app.ai_bridge.models import (
    AIIntegrationContext,
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
from app.ai_bridge.prompt_enhancer import INTEGRATION_DATA_HEADER, PromptEnhancer

KNOWLEDGE_BASE = "Returns are accepted within 30 days."


@pytest.fixture
def enhancer():
    return PromptEnhancer()


def order(**overrides):
    values = dict(
        id=1, provider="shopify", external_id="820982911946154508", order_number="1001",
        customer_email="jane@example.com", total_amount=59.99, currency="USD", status="paid",
        financial_status="paid", fulfillment_status=None, tracking_number="1Z999",
        created_at=datetime(2026, 10, 1, 14, 0),
    )
    values.update(overrides)
    return IntegrationOrder(**values)


def context_with(relevant_data, intent=None, providers=("shopify", "hubspot")):
    return AIIntegrationContext(
        has_integrations=True,
        available_providers=list(providers),
        relevant_data=relevant_data,
        query_intent=intent,
        summary="Integration Data Available: test",
    )


class TestFallback:

    def test_no_integrations(self, enhancer):
        prompt = enhancer.enhance("Do you ship abroad?", KNOWLEDGE_BASE, AIIntegrationContext(has_integrations=False))

        assert prompt.has_integration_data is False
        assert prompt.context_summary == "No integration data available"
        assert prompt.data_sources_used == []
        assert INTEGRATION_DATA_HEADER not in prompt.system_prompt
        assert INTEGRATION_DATA_HEADER not in prompt.user_prompt
        assert KNOWLEDGE_BASE in prompt.user_prompt
        assert "Do you ship abroad?" in prompt.user_prompt

    def test_empty_relevant_data(self, enhancer):
        prompt = enhancer.enhance("Where is my order?", KNOWLEDGE_BASE, context_with(RelevantData(orders=[])))

        assert prompt.has_integration_data is False
        assert INTEGRATION_DATA_HEADER not in prompt.user_prompt

    def test_missing_relevant_data(self, enhancer):
        prompt = enhancer.enhance("Where is my order?", KNOWLEDGE_BASE, context_with(None))
        assert prompt.has_integration_data is False

    def test_tone_and_business_type(self, enhancer):
        prompt = enhancer.enhance(
            "Hi", KNOWLEDGE_BASE, AIIntegrationContext(has_integrations=False),
            tone="friendly", business_type="coffee roastery",
        )
        assert prompt.system_prompt.startswith("You are a friendly customer service assistant for a coffee roastery business.")

    def test_default_tone(self, enhancer):
        prompt = enhancer.enhance("Hi", KNOWLEDGE_BASE, AIIntegrationContext(has_integrations=False))
        assert "helpful and professional" in prompt.system_prompt
        assert "general business" in prompt.system_prompt


class TestEnhancedPrompt:

    def test_system_prompt_lists_providers(self, enhancer):
        prompt = enhancer.enhance("Where is my order?", KNOWLEDGE_BASE, context_with(RelevantData(orders=[order()])))

        assert "connected integrations (shopify, hubspot)" in prompt.system_prompt
        assert "Shopify order history" in prompt.system_prompt
        assert "HubSpot contacts, deals" in prompt.system_prompt
        assert "Salesforce" not in prompt.system_prompt

    def test_order_rendering(self, enhancer):
        items = tuple(OrderItem(name=f"Item {i}", quantity=i) for i in range(1, 6))
        data = RelevantData(orders=[order(items=items)])
        prompt = enhancer.enhance("Where is my order?", KNOWLEDGE_BASE, context_with(data))

        assert prompt.has_integration_data is True
        assert prompt.context_summary == "Integration Data Available: test"
        user_prompt = prompt.user_prompt
        assert "ORDER INFORMATION:" in user_prompt
        assert "- Order 1001 (SHOPIFY)" in user_prompt
        assert "  Status: paid" in user_prompt
        assert "  Customer: jane@example.com" in user_prompt
        assert "  Date: 2026-10-01" in user_prompt
        assert "    - Item 3 (Qty: 3)" in user_prompt
        assert "Item 4" not in user_prompt
        assert "    - ... and 2 more items" in user_prompt
        assert "  Payment Status: paid" in user_prompt
        assert "  Tracking: 1Z999" in user_prompt
        assert "Fulfillment Status" not in user_prompt

    def test_order_without_number_uses_external_id(self, enhancer):
        data = RelevantData(orders=[order(order_number=None, total_amount=None)])
        prompt = enhancer.enhance("Where is my order?", KNOWLEDGE_BASE, context_with(data))

        assert "- Order 820982911946154508 (SHOPIFY)" in prompt.user_prompt
        assert "  Total: Not specified" in prompt.user_prompt

    def test_unnamed_deal_uses_external_id(self, enhancer):
        data = RelevantData(deals=[IntegrationDeal(id=1, provider="hubspot", external_id="902")])
        prompt = enhancer.enhance("Any update on the proposal?", KNOWLEDGE_BASE, context_with(data))

        assert "- 902 (HUBSPOT)" in prompt.user_prompt
        assert "None" not in prompt.user_prompt

        text = enhancer.format_data_for_query_type(data, QueryIntentType.DEAL_STATUS)
        assert text == "902: Unknown stage"

    def test_records_per_section_are_capped(self, enhancer):
        products = [
            IntegrationProduct(id=i, provider="shopify", external_id=str(i), name=f"Product {i:02d}")
            for i in range(12)
        ]
        prompt = enhancer.enhance("Tell me about product info", KNOWLEDGE_BASE, context_with(RelevantData(products=products)))

        rendered = [line for line in prompt.user_prompt.splitlines() if line.startswith("- Product ")]
        assert len(rendered) == 10
        assert "Product 10" not in prompt.user_prompt

    def test_long_descriptions_are_truncated(self, enhancer):
        product = IntegrationProduct(
            id=1, provider="shopify", external_id="p1", name="Blue Widget",
            description="x" * 200, price=19.99, currency="USD", inventory_quantity=0,
        )
        prompt = enhancer.enhance("price of it", KNOWLEDGE_BASE, context_with(RelevantData(products=[product])))

        assert f"  Description: {'x' * 150}..." in prompt.user_prompt
        assert "x" * 151 not in prompt.user_prompt
        assert "  Price: $19.99 USD" in prompt.user_prompt
        assert "  Stock: 0" in prompt.user_prompt
        assert "  SKU: Not specified" in prompt.user_prompt

    def test_contact_and_deal_rendering(self, enhancer):
        contact = IntegrationContact(
            id=1, provider="hubspot", external_id="501", email="jane@example.com",
            first_name="Jane", last_name="Doe", company="Acme", lifecycle_stage="customer",
            total_spent=250.0, orders_count=3,
        )
        deal = IntegrationDeal(
            id=1, provider="hubspot", external_id="901", name="Acme Renewal", stage="closedwon",
            amount=5000.0, close_date=datetime(2026, 12, 31), probability=90.0, data={"pipeline": "default"},
        )
        prompt = enhancer.enhance(
            "Who is my account manager?", KNOWLEDGE_BASE,
            context_with(RelevantData(contacts=[contact], deals=[deal]), providers=("hubspot",)),
        )

        user_prompt = prompt.user_prompt
        assert "- Jane Doe (HUBSPOT)" in user_prompt
        assert "  Phone: Not specified" in user_prompt
        assert "  Stage: customer" in user_prompt
        assert "  Total Spent: $250" in user_prompt
        assert "  Orders: 3" in user_prompt
        assert "- Acme Renewal (HUBSPOT)" in user_prompt
        assert "  Amount: $5000" in user_prompt
        assert "  Close Date: 2026-12-31" in user_prompt
        assert "  Probability: 90%" in user_prompt
        assert "  Pipeline: default" in user_prompt
        assert prompt.data_sources_used == ["hubspot"]

    def test_data_sources_in_order_of_appearance(self, enhancer):
        contact = IntegrationContact(id=1, provider="hubspot", external_id="501", email="jane@example.com")
        data = RelevantData(orders=[order()], contacts=[contact])
        prompt = enhancer.enhance("Where is my order?", KNOWLEDGE_BASE, context_with(data))

        assert prompt.data_sources_used == ["shopify", "hubspot"]

    def test_sensitive_fields_never_reach_prompt(self, enhancer):
        data = RelevantData(orders=[order(data={"payment": {"card_number": "4111111111111111"}, "note": "gift"})])
        enhanced = enhancer.enhance("Where is my order?", KNOWLEDGE_BASE, context_with(data))
        assert "4111111111111111" not in enhanced.user_prompt

    def test_query_context_for_confident_intent(self, enhancer):
        intent = QueryIntent(
            type=QueryIntentType.ORDER_STATUS, confidence=0.9,
            entities=QueryEntities(order_number="1001"),
        )
        prompt = enhancer.enhance("Where is my order #1001?", KNOWLEDGE_BASE, context_with(RelevantData(orders=[order()]), intent))

        assert "QUERY CONTEXT:" in prompt.user_prompt
        assert "- Confidence: 90%" in prompt.user_prompt
        assert '- Extracted Entities: {"order_number": "1001"}' in prompt.user_prompt

    def test_no_query_context_for_weak_intent(self, enhancer):
        intent = QueryIntent(type=QueryIntentType.GENERAL, confidence=0.3)
        prompt = enhancer.enhance("hello", KNOWLEDGE_BASE, context_with(RelevantData(orders=[order()]), intent))

        assert "QUERY CONTEXT:" not in prompt.user_prompt

    def test_entities_line_omitted_when_nothing_extracted(self, enhancer):
        intent = QueryIntent(type=QueryIntentType.CONTACT_INFO, confidence=0.8)
        prompt = enhancer.enhance("my account", KNOWLEDGE_BASE, context_with(RelevantData(orders=[order()]), intent))

        assert "- Detected Intent: contact_info" in prompt.user_prompt
        assert "Extracted Entities" not in prompt.user_prompt


class TestQueryTypeFormatting:

    def test_orders(self, enhancer):
        text = enhancer.format_data_for_query_type(RelevantData(orders=[order()]), QueryIntentType.ORDER_TRACKING)
        assert text == "Order 1001: paid, Total: $59.99, Tracking: 1Z999"

    def test_empty_buckets(self, enhancer):
        assert enhancer.format_data_for_query_type(RelevantData(), QueryIntentType.PRICING_INFO) == "No products found."
        assert enhancer.format_data_for_query_type({}, QueryIntentType.DEAL_STATUS) == "No deals found."
        assert enhancer.format_data_for_query_type({}, QueryIntentType.GENERAL) == "No relevant data found."

    def test_general_counts(self, enhancer):
        text = enhancer.format_data_for_query_type(RelevantData(orders=[order(), order(id=2)]), QueryIntentType.GENERAL)
        assert text == "Recent Orders: 2 found"

    def test_response_templates(self, enhancer):
        assert enhancer.generate_response_template(QueryIntentType.ORDER_STATUS, True) == "Here's the current status of your order(s):"
        assert enhancer.generate_response_template(QueryIntentType.ACCOUNT_INFO, True) == "Here's your account information:"
        assert enhancer.generate_response_template(QueryIntentType.GENERAL, True) == "Based on your account information:"
        assert enhancer.generate_response_template(QueryIntentType.ORDER_STATUS, False).startswith("I don't have")

"""
Global pytest configuration and fixtures.
"""

import os
import sys
import json
from pathlib import Path
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

# Add project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

# Set test environment before any app module reads settings
os.environ["TESTING"] = "1"
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SHOPIFY_WEBHOOK_SECRET"] = "test-shopify-secret"
os.environ["HUBSPOT_WEBHOOK_SECRET"] = "test-hubspot-secret"
os.environ["RATE_LIMIT_BACKEND"] = "memory"

SHOPIFY_SECRET = os.environ["SHOPIFY_WEBHOOK_SECRET"]
HUBSPOT_SECRET = os.environ["HUBSPOT_WEBHOOK_SECRET"]


@pytest_asyncio.fixture
async def test_engine():
    """Fresh in-memory database per test."""
    # Import models so every table is registered on the metadata
    from app.core.database import Base
    import app.models  # noqa: F401

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        echo=False
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine, monkeypatch) -> AsyncGenerator[AsyncSession, None]:
    """Test session; also points the global session factory at the test engine."""
    import app.core.database

    async_session = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )
    monkeypatch.setattr(app.core.database, "AsyncSessionLocal", async_session)

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest.fixture(autouse=True)
def clear_integration_cache():
    """The bridge cache is process-wide; start every test cold."""
    from app.ai_bridge.query_service import integration_query_service

    integration_query_service.clear_cache()
    yield
    integration_query_service.clear_cache()


@pytest.fixture
def rate_limiter():
    """Isolated limiter injected into the webhook routes."""
    from app.core.rate_limiter import InMemoryRateLimiter

    return InMemoryRateLimiter()


@pytest_asyncio.fixture
async def client(db_session, rate_limiter) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the app, on the test database."""
    from main import app
    from app.core.rate_limiter import get_webhook_rate_limiter

    app.dependency_overrides[get_webhook_rate_limiter] = lambda: rate_limiter

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as http_client:
        yield http_client

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def connected_tenant(db_session: AsyncSession):
    """Tenant ``tenant-a`` with Shopify (test-shop.myshopify.com) and HubSpot (portal 62515) connected."""
    from app.models.integration import Integration

    db_session.add_all([
        Integration(user_id="tenant-a", provider="shopify", account_id="test-shop.myshopify.com", status="active"),
        Integration(user_id="tenant-a", provider="hubspot", account_id="62515", status="active"),
    ])
    await db_session.commit()
    return "tenant-a"


@pytest.fixture
def shopify_request():
    """Build (body, headers) for a signed Shopify delivery."""
    from app.integrations.signatures import shopify_signature

    def _build(topic: str, payload, shop_domain: str = "test-shop.myshopify.com", secret: str = SHOPIFY_SECRET):
        body = json.dumps(payload).encode("utf-8")
        headers = {
            "Content-Type": "application/json",
            "X-Shopify-Hmac-Sha256": shopify_signature(body, secret),
            "X-Shopify-Topic": topic,
            "X-Shopify-Shop-Domain": shop_domain,
        }
        return body, headers

    return _build


@pytest.fixture
def hubspot_request():
    """Build (body, headers) for a signed HubSpot batch."""
    from app.integrations.signatures import hubspot_signature

    def _build(events, secret: str = HUBSPOT_SECRET, prefixed: bool = False):
        body = json.dumps(events).encode("utf-8")
        signature = hubspot_signature(body, secret)
        headers = {
            "Content-Type": "application/json",
            "X-HubSpot-Signature": f"sha256={signature}" if prefixed else signature,
            "X-HubSpot-Request-Timestamp": "1700000000000",
        }
        return body, headers

    return _build

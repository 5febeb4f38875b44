import os
import tempfile

_DB_DIR = tempfile.mkdtemp(prefix="coordinator-tests-")

os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_DIR}/coordinator.db"
os.environ.setdefault("INTERNAL_API_KEY", "test-internal-key")
os.environ.setdefault("ADMIN_API_KEY", "test-admin-key")
os.environ["TRACING_ENABLED"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["NOTIFICATION_RETRY_DELAY_SECONDS"] = "0"
os.environ["LOG_LEVEL"] = "WARNING"

import httpx
import pytest

import main
from services.notification_service.service import NotificationService
from services.order_service.schemas import OrderCreate
from services.order_service.service import OrderService
from shared.config.database import AsyncSessionLocal, Base, engine
from sync_client import MarketplaceAPI

API_HEADERS = {"X-Internal-API-Key": os.environ["INTERNAL_API_KEY"]}
ADMIN_HEADERS = {**API_HEADERS, "X-Admin-API-Key": os.environ["ADMIN_API_KEY"]}

REQUESTER = "buyer-1"
FULFILLER = "seller-1"


@pytest.fixture(autouse=True)
async def reset_database():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    await NotificationService.drain(timeout=5)


@pytest.fixture
async def db():
    async with AsyncSessionLocal() as session:
        yield session


@pytest.fixture
async def client():
    transport = httpx.ASGITransport(app=main.app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test", headers=API_HEADERS) as c:
        yield c


@pytest.fixture
async def api(client):
    return MarketplaceAPI(client=client, api_key=os.environ["INTERNAL_API_KEY"])


def order_payload(**overrides) -> dict:
    payload = {
        "requester_id": REQUESTER,
        "requester_name": "Anna Buyer",
        "requester_email": " Anna@Example.com ",
        "fulfiller_id": FULFILLER,
        "fulfiller_name": "Salon Seller",
        "items": [
            {"name": "Haircut", "price": 30.0},
            {"name": "Wash", "price": 12.5, "assignee": "Mia"},
        ],
        "total": 42.5,
        "special_instructions": "Ring twice",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def make_order(db):
    async def _make(**overrides):
        return await OrderService.create_order(db, OrderCreate(**order_payload(**overrides)))
    return _make

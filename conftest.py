import os

# must be set before storefront.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime, timedelta, timezone

import httpx
import pytest
import pytest_asyncio
from dotenv import load_dotenv
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from storefront.main import app
from storefront.database import get_db, Base
from storefront.security import create_access_token
from storefront.client import StorefrontAPI, SessionStore

# Load environment so TEST_DATABASE_URL can be read from .env
load_dotenv()

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL")

if TEST_DATABASE_URL:
    engine = create_engine(TEST_DATABASE_URL, pool_pre_ping=True)
else:
    # one shared in-memory database for the whole run
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# Override the app's DB dependency to use the test engine/session
def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(autouse=True)
def setup_database():
    """Fresh schema for each test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def db_session():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def admin_headers():
    token = create_access_token({"sub": "admin-1", "isAdmin": True})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_headers():
    token = create_access_token({"sub": "shopper-1", "isAdmin": False})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_product(client, admin_headers):
    def _make(name="Kumkumadi Face Oil", price=100.0):
        resp = client.post("/api/admin/products", json={"name": name, "price": price}, headers=admin_headers)
        assert resp.status_code == 201, resp.text
        return resp.json()
    return _make


@pytest.fixture
def make_coupon(client, admin_headers):
    def _make(**overrides):
        now = datetime.now(timezone.utc)
        payload = {
            "code": "welcome10",
            "description": "10% off the first order",
            "discountType": "percentage",
            "discountAmount": 10,
            "minimumCartValue": 0,
            "startDate": (now - timedelta(days=1)).isoformat(),
            "endDate": (now + timedelta(days=30)).isoformat(),
        }
        payload.update(overrides)
        resp = client.post("/api/admin/coupons", json=payload, headers=admin_headers)
        assert resp.status_code == 201, resp.text
        return resp.json()
    return _make


@pytest_asyncio.fixture
async def api():
    """Client API talking to the app in-process."""
    transport = httpx.ASGITransport(app=app)
    async with StorefrontAPI(base_url="http://testserver", transport=transport) as api:
        yield api


@pytest.fixture
def store(tmp_path):
    return SessionStore(tmp_path / "session.json")


@pytest.fixture
def make_free_product(client, admin_headers, make_product):
    def _make(min_order_value, max_order_value=None, name="Travel Kit", price=300.0):
        product = make_product(name=name, price=price)
        resp = client.post("/api/admin/free-products", json={
            "productId": product["id"],
            "minOrderValue": min_order_value,
            "maxOrderValue": max_order_value,
        }, headers=admin_headers)
        assert resp.status_code == 201, resp.text
        return product
    return _make

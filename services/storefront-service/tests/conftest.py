"""Shared fixtures: in-memory database, cart snapshots and provider stubs."""
import json
import os
import tempfile
from datetime import datetime, timedelta

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["TELEMETRY_ENABLED"] = "false"
os.environ["EFI_CLIENT_ID"] = "test-client"
os.environ["EFI_CLIENT_SECRET"] = "test-secret"
os.environ["EFI_SANDBOX"] = "true"
os.environ["APP_URL"] = "http://storefront.test"
os.environ["WEBHOOK_SECRET"] = "whsec-test"
os.environ["RESEND_API_KEY"] = "re_test"
os.environ["SMTP_FROM"] = "pedidos@hypex.test"
os.environ["MEDIA_ROOT"] = tempfile.mkdtemp(prefix="storefront-media-")

import httpx
import pytest
from fastapi.testclient import TestClient

import database
from dependencies import get_cart_registry, get_http_client
from main import app
from models import Address, AuthSession, Base, Order, OrderItem, Product, UserProfile
from security import hash_password, new_session_token
from services.cart_service import CartRegistry, RedisCartSnapshotStore


class MemoryRedis:
    """get/set stand-in for the Redis client used by the snapshot store."""

    def __init__(self):
        self.data = {}

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value):
        self.data[key] = value


class ProviderStub:
    """Answers the PIX provider and email provider endpoints."""

    def __init__(self):
        self.requests = []
        self.charge_status_code = 200
        self.email_status_code = 200
        self.email_body = None
        self.charges = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/v1/payments/pix":
            if self.charge_status_code != 200:
                return httpx.Response(self.charge_status_code, json={"error": "rejected"})
            self.charges += 1
            return httpx.Response(200, json={
                "id": f"pix-{self.charges}",
                "amount": json.loads(request.content)["amount"],
                "qrcode": f"00020126580014br.gov.bcb.pix-copia-{self.charges}",
                "qrcode_text": f"00020126580014br.gov.bcb.pix-{self.charges}",
                "status": "active"
            })
        if request.url.path == "/emails":
            if self.email_body is not None:
                return httpx.Response(self.email_status_code, text=self.email_body)
            return httpx.Response(self.email_status_code, json={"id": "email-1"})
        return httpx.Response(404)

    def calls_to(self, path):
        return [request for request in self.requests if request.url.path == path]


@pytest.fixture
def db():
    Base.metadata.create_all(bind=database.engine)
    session = database.SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=database.engine)


@pytest.fixture
def snapshots():
    return MemoryRedis()


@pytest.fixture
def cart_registry(snapshots):
    return CartRegistry(RedisCartSnapshotStore(snapshots))


@pytest.fixture
def provider():
    return ProviderStub()


@pytest.fixture
def http_client(provider):
    return httpx.AsyncClient(transport=httpx.MockTransport(provider))


@pytest.fixture
def client(db, cart_registry, http_client):
    app.dependency_overrides[get_cart_registry] = lambda: cart_registry
    app.dependency_overrides[get_http_client] = lambda: http_client
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def create_user(db, email, full_name="Cliente Teste", is_admin=False, password="secret123"):
    user = UserProfile(
        email=email,
        full_name=full_name,
        password_hash=hash_password(password),
        is_admin=is_admin
    )
    db.add(user)
    db.commit()
    token = new_session_token()
    db.add(AuthSession(token=token, user_id=user.id))
    db.commit()
    return user, {"Authorization": f"Bearer {token}"}


@pytest.fixture
def customer(db):
    user, headers = create_user(db, "cliente@hypex.test", full_name="Maria Silva")
    return {"user": user, "id": user.id, "headers": headers}


@pytest.fixture
def admin(db):
    user, headers = create_user(db, "admin@hypex.test", full_name="Admin", is_admin=True)
    return {"user": user, "id": user.id, "headers": headers}


@pytest.fixture
def make_product(db):
    def factory(name="Camiseta", price=50.0, stock_quantity=10, status="published", **kwargs):
        product = Product(
            name=name,
            price=price,
            stock_quantity=stock_quantity,
            status=status,
            images=kwargs.pop("images", ["https://cdn.hypex.test/camiseta.png"]),
            **kwargs
        )
        db.add(product)
        db.commit()
        return product
    return factory


@pytest.fixture
def make_address(db):
    def factory(user_id, is_default=False, age_minutes=0, **kwargs):
        fields = {
            "street": "Rua Augusta",
            "number": "100",
            "neighborhood": "Consolação",
            "city": "São Paulo",
            "state": "SP",
            "postal_code": "01305-000",
        }
        fields.update(kwargs)
        address = Address(
            user_id=user_id,
            is_default=is_default,
            created_at=datetime.utcnow() - timedelta(minutes=age_minutes),
            **fields
        )
        db.add(address)
        db.commit()
        return address
    return factory


@pytest.fixture
def make_order(db, make_product, make_address):
    def factory(user_id, status="pending", payment_intent_id=None, payment_status=None,
                price=50.0, quantity=2, age_minutes=0):
        product = make_product(name="Tênis Runner", price=price)
        address = make_address(user_id)
        total = round(price * quantity, 2)
        order = Order(
            user_id=user_id,
            address_id=address.id,
            status=status,
            subtotal=total,
            discount=0.0,
            total=total,
            payment_intent_id=payment_intent_id,
            payment_status=payment_status,
            created_at=datetime.utcnow() - timedelta(minutes=age_minutes)
        )
        db.add(order)
        db.commit()
        db.add(OrderItem(
            order_id=order.id,
            product_id=product.id,
            quantity=quantity,
            unit_price=price,
            total_price=total
        ))
        db.commit()
        return order
    return factory

import asyncio
import json

import pytest

from models import Order
from services.notification_service import format_brl
from services.payment_service import PixChargeService


def test_charge_endpoint_records_charge_on_order(client, db, customer, make_order, provider):
    order = make_order(customer["id"])

    response = client.post("/api/payments/pix", json={
        "orderId": order.id,
        "amount": 100.0,
        "description": "Pedido avulso"
    }, headers=customer["headers"])

    assert response.status_code == 200
    assert response.json() == {
        "qrCodeText": "00020126580014br.gov.bcb.pix-1",
        "copiaECola": "00020126580014br.gov.bcb.pix-copia-1"
    }

    db.expire_all()
    stored = db.query(Order).filter(Order.id == order.id).one()
    assert stored.payment_intent_id == "pix-1"
    assert stored.payment_status == "active"

    payload = json.loads(provider.calls_to("/v1/payments/pix")[0].content)
    assert payload["description"] == "Pedido avulso"


def test_each_call_mints_a_new_charge(client, customer, make_order, provider):
    order = make_order(customer["id"])
    body = {"orderId": order.id, "amount": 100.0, "description": "Pedido"}

    client.post("/api/payments/pix", json=body, headers=customer["headers"])
    client.post("/api/payments/pix", json=body, headers=customer["headers"])

    assert len(provider.calls_to("/v1/payments/pix")) == 2


def test_provider_failure_returns_error_body(client, db, customer, make_order, provider):
    provider.charge_status_code = 500
    order = make_order(customer["id"])

    response = client.post("/api/payments/pix", json={
        "orderId": order.id,
        "amount": 100.0,
        "description": "Pedido"
    }, headers=customer["headers"])

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to create PIX payment"}
    db.expire_all()
    assert db.query(Order).filter(Order.id == order.id).one().payment_intent_id is None


def test_unknown_order_is_not_charged(client, customer, provider):
    response = client.post("/api/payments/pix", json={
        "orderId": "missing",
        "amount": 10.0,
        "description": "Pedido"
    }, headers=customer["headers"])

    assert response.status_code == 500
    assert provider.calls_to("/v1/payments/pix") == []


def test_missing_credentials_fail_before_calling_provider(db, http_client, provider):
    service = PixChargeService(http_client, client_id=None, client_secret=None)

    with pytest.raises(RuntimeError):
        asyncio.run(service.create_charge(db, "any", 10.0, "Pedido"))
    assert provider.requests == []


def test_production_host_without_sandbox(http_client):
    service = PixChargeService(http_client, sandbox=False, app_url="https://loja.hypex.com.br/")

    assert service.api_url == "https://api.efi.com.br"
    assert service.webhook_url == "https://loja.hypex.com.br/api/webhooks/pix"


def test_format_brl():
    assert format_brl(1234.5) == "R$ 1.234,50"
    assert format_brl(0) == "R$ 0,00"


def test_foreign_order_is_not_charged(client, db, customer, admin, make_order, provider):
    order = make_order(admin["id"], payment_intent_id="pix-original")

    response = client.post("/api/payments/pix", json={
        "orderId": order.id,
        "amount": 0.01,
        "description": "Pedido"
    }, headers=customer["headers"])

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to create PIX payment"}
    assert provider.calls_to("/v1/payments/pix") == []
    db.expire_all()
    assert db.query(Order).filter(Order.id == order.id).one().payment_intent_id == "pix-original"

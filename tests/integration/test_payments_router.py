import json
from datetime import datetime, timedelta, timezone

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from backend.app_setup.factory import create_app
from backend.utils.errors import NotCompleted
from backend.utils.security import require_user

CHECKOUT = "/api/v1/payments/checkout-session"
SUCCESS = "/api/v1/payments/checkout-success"


def test_checkout_session_unauthenticated(app, client):
    def _deny():
        raise HTTPException(status_code=401, detail="Non authentifié")
    app.dependency_overrides[require_user] = _deny

    response = client.post(CHECKOUT, json={"products": [{"_id": "p1", "name": "Tee", "price": 10}]})
    assert response.status_code == 401
    assert response.json() == {"detail": "Non authentifié"}


def test_checkout_session_ok(client, store, fake_stripe):
    response = client.post(CHECKOUT, json={"products": [{"_id": "p1", "name": "Tee", "price": 19.99, "quantity": 2}]})

    assert response.status_code == 200
    assert response.json() == {"id": "cs_test_1", "totalAmount": 39.98}
    sent = fake_stripe.created_sessions[0]
    assert sent["metadata"]["user_id"] == "test-user"
    assert sent["success_url"].endswith("/purchase-success?session_id={CHECKOUT_SESSION_ID}")
    assert sent["cancel_url"].endswith("/purchase-cancel")


def test_checkout_session_with_coupon_triggers_bonus(client, store, fake_stripe):
    store.coupons.append({"code": "SAVE10", "user_id": "test-user", "is_active": True, "discount_percentage": 10})

    response = client.post(CHECKOUT, json={
        "products": [{"_id": "p1", "name": "TV", "price": 250, "quantity": 1}],
        "couponCode": "SAVE10",
    })

    assert response.status_code == 200
    assert response.json()["totalAmount"] == 225.0
    assert store.coupons[0]["code"].startswith("GIFT")


@pytest.mark.parametrize("body", [{}, {"products": []}, {"products": "x"}, ["pas", "un", "objet"]])
def test_checkout_session_invalid_cart(client, store, fake_stripe, body):
    response = client.post(CHECKOUT, json=body)
    assert response.status_code == 400
    assert "error" in response.json()
    assert fake_stripe.created_sessions == []


def test_checkout_session_provider_failure_is_500(client, store, monkeypatch):
    from backend.utils.errors import ProviderError

    def _boom(**kwargs):
        raise ProviderError("Invalid API Key provided")
    monkeypatch.setattr("backend.payments.stripe_client.create_session", _boom)

    response = client.post(CHECKOUT, json={"products": [{"_id": "p1", "name": "Tee", "price": 10}]})
    assert response.status_code == 500
    assert response.json() == {
        "message": "Erreur lors de la création du paiement",
        "error": "Invalid API Key provided",
    }


def _paid_session(status="paid", coupon_code="SAVE10"):
    return {
        "id": "cs_test_9",
        "payment_status": status,
        "amount_total": 3998,
        "metadata": {
            "user_id": "test-user",
            "coupon_code": coupon_code,
            "products": json.dumps([{"id": "p1", "quantity": 2, "price": 19.99}]),
        },
    }


def test_checkout_success_paid(client, store, fake_stripe):
    store.coupons.append({"code": "SAVE10", "user_id": "test-user", "is_active": True})
    fake_stripe.sessions["cs_test_9"] = _paid_session()

    response = client.post(SUCCESS, json={"sessionId": "cs_test_9"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["orderId"] == "order-1"
    assert store.orders[0]["total_amount"] == 39.98
    assert store.coupons[0]["is_active"] is False


def test_checkout_success_not_paid_always_answers(client, store, fake_stripe):
    fake_stripe.sessions["cs_test_9"] = _paid_session(status="unpaid")

    response = client.post(SUCCESS, json={"sessionId": "cs_test_9"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is False
    assert body["paymentStatus"] == "unpaid"
    assert store.orders == []


def test_checkout_success_twice_creates_one_order(client, store, fake_stripe):
    fake_stripe.sessions["cs_test_9"] = _paid_session(coupon_code="")

    first = client.post(SUCCESS, json={"sessionId": "cs_test_9"}).json()
    second = client.post(SUCCESS, json={"sessionId": "cs_test_9"}).json()

    assert first["orderId"] == second["orderId"]
    assert len(store.orders) == 1


def test_checkout_success_unknown_session_is_500(client, store, monkeypatch):
    from backend.utils.errors import ProviderError

    def _missing(session_id):
        raise ProviderError("No such checkout.session: cs_nope")
    monkeypatch.setattr("backend.payments.stripe_client.get_session", _missing)

    response = client.post(SUCCESS, json={"sessionId": "cs_nope"})
    assert response.status_code == 500
    assert response.json()["error"] == "No such checkout.session: cs_nope"


def test_checkout_success_requires_session_id(client):
    assert client.post(SUCCESS, json={}).status_code == 422


def test_padded_coupon_code_validates_and_discounts(client, store, fake_stripe):
    expires = (datetime.now(timezone.utc) + timedelta(days=1)).isoformat()
    store.coupons.append({"code": "GIFTAAAAAA", "user_id": "test-user", "is_active": True,
                          "discount_percentage": 10, "expiration_date": expires})

    assert client.post("/api/v1/coupons/validate", json={"code": " GIFTAAAAAA "}).status_code == 200
    response = client.post(CHECKOUT, json={
        "products": [{"_id": "p1", "name": "Casque", "price": 100, "quantity": 1}],
        "couponCode": " GIFTAAAAAA ",
    })

    assert response.status_code == 200
    assert response.json()["totalAmount"] == 90.0
    sent = fake_stripe.created_sessions[0]
    assert sent["discounts"] == [{"coupon": "stripe_coupon_1"}]
    assert sent["metadata"]["coupon_code"] == "GIFTAAAAAA"


def test_checkout_success_other_users_session_is_403(client, store, fake_stripe):
    session = _paid_session()
    session["metadata"]["user_id"] = "someone-else"
    fake_stripe.sessions["cs_test_9"] = session

    response = client.post(SUCCESS, json={"sessionId": "cs_test_9"})

    assert response.status_code == 403
    assert response.json() == {"detail": "Session appartenant à un autre utilisateur"}
    assert store.orders == []


def test_not_completed_escaping_a_view_answers_explicitly():
    app = create_app()

    @app.get("/_settle")
    def _settle():
        raise NotCompleted("unpaid")

    with TestClient(app) as c:
        response = c.get("/_settle")

    assert response.status_code == 200
    assert response.json() == {
        "success": False,
        "message": "Paiement non finalisé (payment_status=unpaid)",
        "paymentStatus": "unpaid",
    }

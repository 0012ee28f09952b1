import os

# Pas de Redis en tests: le lifespan désactive le rate limiting
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

import pytest
from typing import Any, Dict, Generator, List, Optional
from fastapi.testclient import TestClient
from unittest.mock import MagicMock

from backend.app import app as fastapi_app
from backend.utils.security import require_user

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)

@pytest.fixture(scope="session")
def app():
    return fastapi_app

@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c

# Simuler un utilisateur authentifié pour les endpoints protégés
@pytest.fixture(autouse=True)
def _override_require_user(app):
    fake_user: Dict[str, Any] = {
        "id": "test-user",
        "email": "test@example.com",
        "metadata": {"full_name": "Test User"},
    }
    app.dependency_overrides[require_user] = lambda: fake_user
    try:
        yield
    finally:
        app.dependency_overrides.pop(require_user, None)

# Aucun accès réel à Supabase
@pytest.fixture(autouse=True)
def mock_db_dependency(monkeypatch):
    monkeypatch.setattr("backend.infra.supabase_client.get_supabase", lambda: MagicMock())
    monkeypatch.setattr("backend.infra.supabase_client.get_service_supabase", lambda: MagicMock())


class FakeStore:
    """Tables coupons/orders en mémoire, branchées à la place des repositories."""

    def __init__(self):
        self.coupons: List[Dict[str, Any]] = []
        self.orders: List[Dict[str, Any]] = []

    # coupons
    def find_active_coupon(self, code: str, user_id: str) -> Optional[Dict[str, Any]]:
        return next(
            (c for c in self.coupons if c["code"] == code and c["user_id"] == user_id and c["is_active"]),
            None,
        )

    def find_user_active_coupon(self, user_id: str) -> Optional[Dict[str, Any]]:
        return next((c for c in self.coupons if c["user_id"] == user_id and c["is_active"]), None)

    def deactivate_coupon(self, code: str, user_id: str) -> bool:
        matched = [c for c in self.coupons if c["code"] == code and c["user_id"] == user_id]
        for c in matched:
            c["is_active"] = False
        return bool(matched)

    def replace_user_coupon(self, coupon: Dict[str, Any]) -> Dict[str, Any]:
        self.coupons = [c for c in self.coupons if c["user_id"] != coupon["user_id"]]
        self.coupons.append(dict(coupon))
        return dict(coupon)

    # orders
    def get_order_by_session_id(self, stripe_session_id: str) -> Optional[Dict[str, Any]]:
        return next((o for o in self.orders if o["stripe_session_id"] == stripe_session_id), None)

    def insert_order(self, **row) -> Dict[str, Any]:
        order = {"id": f"order-{len(self.orders) + 1}", **row}
        self.orders.append(order)
        return order


@pytest.fixture
def store(monkeypatch) -> FakeStore:
    fake = FakeStore()
    for name in ("find_active_coupon", "find_user_active_coupon", "deactivate_coupon", "replace_user_coupon"):
        monkeypatch.setattr(f"backend.coupons.repository.{name}", getattr(fake, name))
    for name in ("get_order_by_session_id", "insert_order"):
        monkeypatch.setattr(f"backend.orders.repository.{name}", getattr(fake, name))
    return fake


class FakeStripe:
    """Remplace backend.payments.stripe_client: enregistre les appels, sessions paramétrables."""

    def __init__(self):
        self.created_sessions: List[Dict[str, Any]] = []
        self.created_coupons: List[float] = []
        self.sessions: Dict[str, Dict[str, Any]] = {}

    def create_session(self, **kwargs) -> Dict[str, Any]:
        self.created_sessions.append(kwargs)
        return {"id": f"cs_test_{len(self.created_sessions)}", "url": "https://checkout.stripe.test/pay"}

    def create_percent_coupon(self, percent_off: float) -> str:
        self.created_coupons.append(percent_off)
        return f"stripe_coupon_{len(self.created_coupons)}"

    def get_session(self, session_id: str) -> Dict[str, Any]:
        return self.sessions[session_id]


@pytest.fixture
def fake_stripe(monkeypatch) -> FakeStripe:
    fake = FakeStripe()
    for name in ("create_session", "create_percent_coupon", "get_session"):
        monkeypatch.setattr(f"backend.payments.stripe_client.{name}", getattr(fake, name))
    return fake

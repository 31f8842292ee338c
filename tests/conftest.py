import copy
import os
from datetime import datetime, timezone
from typing import Any, Dict, Generator, List, Optional

import pytest

# Désactive l'init du rate limiter (Redis) avant l'import de l'app
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

from fastapi.testclient import TestClient

from boutique import config
from boutique.app import app as fastapi_app
from boutique.utils.errors import NotificationFailed, StorageUnavailable
from boutique.utils.security import get_current_user

GATEWAY_SECRET = "test_gateway_secret"

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)


class FakeStore:
    """Stockage en mémoire qui remplace les repositories Supabase et l'envoi d'emails."""

    def __init__(self):
        self.products: Dict[str, Dict[str, Any]] = {}
        self.carts: Dict[str, Dict[str, Any]] = {}
        self.orders: Dict[str, Dict[str, Any]] = {}
        self.otps: Dict[tuple, Dict[str, Any]] = {}
        self.users: Dict[str, Dict[str, Any]] = {}
        self.passwords: Dict[str, str] = {}
        self.emails: List[Dict[str, Any]] = []
        self.fail_insert = False
        self.fail_email = False
        self._seq = 0

    # --- données de test ---

    def add_product(self, product_id, price, stock, name=None, is_active=True):
        self.products[str(product_id)] = {
            "id": str(product_id),
            "name": name or f"Produit {product_id}",
            "price": price,
            "stock": stock,
            "is_active": is_active,
        }

    def add_user(self, user_id, email, name=None, role="customer", is_active=True):
        self.users[str(user_id)] = {
            "id": str(user_id),
            "email": email.lower(),
            "name": name or user_id,
            "role": role,
            "is_active": is_active,
        }
        return dict(self.users[str(user_id)])

    def set_cart(self, user_id, items):
        self.carts[str(user_id)] = {"user_id": str(user_id), "items": copy.deepcopy(items)}

    def emails_for(self, purpose):
        return [e for e in self.emails if e["purpose"] == purpose]

    def last_code(self, purpose):
        return self.emails_for(purpose)[-1]["payload"]["code"]

    # --- catalogue ---

    def get_product(self, product_id):
        return copy.deepcopy(self.products.get(str(product_id)))

    def get_products_map(self, ids):
        return {str(i): copy.deepcopy(self.products[str(i)]) for i in ids if str(i) in self.products}

    def compare_and_set_stock(self, product_id, expected, new_value):
        product = self.products.get(str(product_id))
        if not product or int(product["stock"]) != int(expected):
            return False
        product["stock"] = int(new_value)
        return True

    # --- panier ---

    def get_cart(self, user_id):
        return copy.deepcopy(self.carts.get(str(user_id)))

    def save_items(self, user_id, items):
        self.set_cart(user_id, items)
        return copy.deepcopy(self.carts[str(user_id)])

    # --- commandes ---

    def insert_order(self, payload):
        if self.fail_insert:
            raise StorageUnavailable()
        self._seq += 1
        order_id = f"order-{self._seq}"
        row = {
            "id": order_id,
            "created_at": datetime(2026, 1, 1, tzinfo=timezone.utc).replace(second=self._seq % 60).isoformat(),
            "gateway_intent_id": None,
            "payment_id": None,
            "gateway_signature": None,
            "tracking_number": None,
            **copy.deepcopy(payload),
        }
        self.orders[order_id] = row
        return copy.deepcopy(row)

    def get_order(self, order_id):
        return copy.deepcopy(self.orders.get(str(order_id)))

    def list_user_orders(self, user_id):
        rows = [o for o in self.orders.values() if o["user_id"] == str(user_id)]
        return copy.deepcopy(sorted(rows, key=lambda o: o["created_at"], reverse=True))

    def list_orders(self, status, offset, limit):
        rows = [o for o in self.orders.values() if not status or o["order_status"] == status]
        rows = sorted(rows, key=lambda o: o["created_at"], reverse=True)
        return copy.deepcopy(rows[offset:offset + limit]), len(rows)

    def update_order(self, order_id, changes, payment_status_in=None, intent_id=None, stock_released=None):
        order = self.orders.get(str(order_id))
        if not order:
            return None
        if payment_status_in is not None and order["payment_status"] not in list(payment_status_in):
            return None
        if intent_id is not None and order.get("gateway_intent_id") != intent_id:
            return None
        if stock_released is not None and bool(order.get("stock_released")) != stock_released:
            return None
        order.update(copy.deepcopy(changes))
        return copy.deepcopy(order)

    # --- OTP ---

    def upsert_code(self, owner_id, purpose, code_hash, expires_at):
        self.otps[(owner_id, purpose)] = {
            "owner_id": owner_id,
            "purpose": purpose,
            "code_hash": code_hash,
            "expires_at": expires_at,
            "attempts": 0,
        }

    def get_code(self, owner_id, purpose):
        return copy.deepcopy(self.otps.get((owner_id, purpose)))

    def consume_code(self, owner_id, purpose, code_hash):
        row = self.otps.get((owner_id, purpose))
        if not row or row["code_hash"] != code_hash:
            return False
        del self.otps[(owner_id, purpose)]
        return True

    def delete_code(self, owner_id, purpose):
        self.otps.pop((owner_id, purpose), None)

    def increment_attempts(self, owner_id, purpose, attempts):
        if (owner_id, purpose) in self.otps:
            self.otps[(owner_id, purpose)]["attempts"] = attempts

    # --- utilisateurs ---

    def get_user_by_id(self, user_id):
        return copy.deepcopy(self.users.get(str(user_id))) if user_id else None

    def get_user_by_email(self, email):
        email = (email or "").strip().lower()
        return next((dict(u) for u in self.users.values() if u["email"] == email), None)

    def set_user_role(self, user_id, role):
        user = self.users.get(str(user_id))
        if not user:
            return None
        user["role"] = role
        return dict(user)

    def has_admin(self):
        return any(u["role"] == "admin" for u in self.users.values())

    def get_auth_user(self, access_token):
        # Convention de test: token = "token-<user_id>"
        user_id = access_token[len("token-"):] if access_token.startswith("token-") else None
        user = self.users.get(user_id or "")
        return {"id": user["id"], "email": user["email"]} if user else {}

    def update_auth_password(self, user_id, new_password):
        self.passwords[str(user_id)] = new_password

    # --- emails ---

    def send(self, contact, purpose, payload):
        if self.fail_email:
            raise NotificationFailed()
        self.emails.append({"to": contact.get("email"), "purpose": purpose, "payload": copy.deepcopy(payload)})


@pytest.fixture(autouse=True)
def store(monkeypatch) -> FakeStore:
    """Remplace tous les accès Supabase/Brevo par un FakeStore (aucun appel réseau en test)."""
    fake = FakeStore()
    targets = {
        "boutique.catalog.repository": ["get_product", "get_products_map", "compare_and_set_stock"],
        "boutique.cart.repository": ["get_cart", "save_items"],
        "boutique.orders.repository": ["insert_order", "get_order", "list_user_orders", "list_orders", "update_order"],
        "boutique.otp.repository": ["upsert_code", "get_code", "consume_code", "delete_code", "increment_attempts"],
        "boutique.auth.repository": [
            "get_user_by_id", "get_user_by_email", "set_user_role", "has_admin",
            "get_auth_user", "update_auth_password",
        ],
        "boutique.notifications.service": ["send"],
    }
    for module, names in targets.items():
        for name in names:
            monkeypatch.setattr(f"{module}.{name}", getattr(fake, name))

    # Passerelle: clés de test, signature calculable dans les tests
    monkeypatch.setattr(config, "RAZORPAY_KEY_ID", "rzp_test_key")
    monkeypatch.setattr(config, "RAZORPAY_KEY_SECRET", GATEWAY_SECRET)
    monkeypatch.setattr(config, "BREVO_API_KEY", "brevo-test")
    monkeypatch.setattr(config, "BREVO_SENDER_EMAIL", "shop@example.com")
    return fake

@pytest.fixture
def customer(store) -> Dict[str, Any]:
    return store.add_user("u1", "alice@example.com", name="Alice")

@pytest.fixture
def admin(store) -> Dict[str, Any]:
    return store.add_user("admin-1", "boss@example.com", name="Boss", role="admin")

@pytest.fixture(scope="session")
def app():
    return fastapi_app

@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()

@pytest.fixture
def login(app, store):
    """Authentifie les requêtes suivantes en tant que `user` (même forme que get_current_user)."""
    def _login(user: Optional[Dict[str, Any]]):
        if user is None:
            app.dependency_overrides.pop(get_current_user, None)
            return
        current = {
            "id": user["id"],
            "email": user["email"],
            "name": user.get("name"),
            "role": user.get("role", "customer"),
            "is_active": True,
            "token": f"token-{user['id']}",
        }
        app.dependency_overrides[get_current_user] = lambda: current
    yield _login
    app.dependency_overrides.pop(get_current_user, None)

from datetime import datetime, timedelta, timezone

import bcrypt
import pytest

from boutique.auth import service as auth_service
from boutique.otp import service as otp_service
from boutique.utils.errors import Forbidden, InvalidOrExpiredOTP, NotFound, NotificationFailed, Unauthorized

NEW_PASSWORD = "N0uveau!Pass"


def test_get_user_from_token_merges_profile(store):
    store.add_user("u1", "alice@example.com", name="Alice", role="admin", is_active=False)

    user = auth_service.get_user_from_token("token-u1")

    assert user == {
        "id": "u1",
        "email": "alice@example.com",
        "name": "Alice",
        "role": "admin",
        "is_active": False,
        "token": "token-u1",
    }

def test_forgot_password_unknown_email(store):
    with pytest.raises(NotFound):
        auth_service.forgot_password("ghost@example.com")
    assert store.emails == []

def test_forgot_password_email_failure_revokes_code(store, customer):
    store.fail_email = True
    with pytest.raises(NotificationFailed):
        auth_service.forgot_password("alice@example.com")
    assert store.otps == {}

def test_password_reset_end_to_end_with_clock(store, customer, monkeypatch):
    t0 = datetime(2026, 3, 1, 9, 0, 0, tzinfo=timezone.utc)
    clock = {"now": t0}
    real_verify = otp_service.verify
    monkeypatch.setattr(otp_service, "verify", lambda o, p, c, now=None: real_verify(o, p, c, now=clock["now"]))

    otp_service.issue_and_deliver(customer, otp_service.PURPOSE_PASSWORD_RESET, now=t0)
    code = store.last_code("password-reset")

    clock["now"] = t0 + timedelta(minutes=9, seconds=59)
    auth_service.reset_password("Alice@Example.com", code, NEW_PASSWORD)

    assert store.passwords["u1"] == NEW_PASSWORD
    assert store.otps == {}
    # Code déjà consommé
    assert real_verify("u1", otp_service.PURPOSE_PASSWORD_RESET, code, now=clock["now"]).error == otp_service.OTP_NOT_FOUND
    with pytest.raises(InvalidOrExpiredOTP):
        auth_service.reset_password("alice@example.com", code, NEW_PASSWORD)

def test_reset_password_wrong_code_or_unknown_email(store, customer):
    auth_service.forgot_password("alice@example.com")
    code = store.last_code("password-reset")
    wrong = "000000" if code != "000000" else "111111"

    with pytest.raises(InvalidOrExpiredOTP):
        auth_service.reset_password("alice@example.com", wrong, NEW_PASSWORD)
    with pytest.raises(InvalidOrExpiredOTP):
        auth_service.reset_password("ghost@example.com", code, NEW_PASSWORD)
    assert store.passwords == {}

def test_reset_password_expired_code(store, customer):
    t0 = datetime.now(timezone.utc) - timedelta(minutes=11)
    otp_service.issue_and_deliver(customer, otp_service.PURPOSE_PASSWORD_RESET, now=t0)

    with pytest.raises(InvalidOrExpiredOTP):
        auth_service.reset_password("alice@example.com", store.last_code("password-reset"), NEW_PASSWORD)

# --- premier admin ---

@pytest.fixture
def setup_key(monkeypatch):
    key = "first-admin-key"
    hashed = bcrypt.hashpw(key.encode("utf-8"), bcrypt.gensalt(rounds=4)).decode("utf-8")
    monkeypatch.setattr(auth_service.config, "ADMIN_SETUP_KEY_HASH", hashed)
    return key

def test_setup_admin_promotes_first_user(store, customer, setup_key):
    profile = auth_service.setup_admin(customer, setup_key)
    assert profile["role"] == "admin"

def test_setup_admin_wrong_key(store, customer, setup_key):
    with pytest.raises(Unauthorized):
        auth_service.setup_admin(customer, "nope")
    assert store.users["u1"]["role"] == "customer"

def test_setup_admin_closed_once_admin_exists(store, customer, admin, setup_key):
    with pytest.raises(Forbidden):
        auth_service.setup_admin(customer, setup_key)

def test_setup_admin_without_configured_hash(store, customer, monkeypatch):
    monkeypatch.setattr(auth_service.config, "ADMIN_SETUP_KEY_HASH", "")
    with pytest.raises(Unauthorized):
        auth_service.setup_admin(customer, "anything")

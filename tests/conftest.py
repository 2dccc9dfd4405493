"""
Fixtures for the API and service tests.

Setup: one admin, one supplier identity linked to supplier SUP-001, and one
unlinked supplier SUP-002.
"""
import pytest

from milkflow import create_app
from milkflow.extensions import db as _db
from milkflow.models import Profile, Supplier, User, UserRole
from milkflow.services.access import build_context
from milkflow.settings import TestingConfig
from milkflow.utils.passwords import hash_password

PASSWORD = "secret-pass-1"

ADMIN_PHONE = "9876500001"
SUPPLIER_PHONE = "9876500002"
OTHER_PHONE = "9876500003"


class FakeResponse:
    def __init__(self, status_code, payload):
        self.status_code = status_code
        self._payload = payload

    def json(self):
        return self._payload


class StubTransport:
    """Stands in for requests.post; records every outbound message."""

    def __init__(self, fail_for=(), raise_for=()):
        self.calls = []
        self.fail_for = set(fail_for)
        self.raise_for = set(raise_for)

    def __call__(self, url, data=None, auth=None, timeout=None):
        self.calls.append({"url": url, **(data or {})})
        to = (data or {}).get("To")
        if to in self.raise_for:
            raise RuntimeError("connection reset")
        if to in self.fail_for:
            return FakeResponse(400, {"message": "The 'To' number is not a valid phone number."})
        return FakeResponse(201, {"sid": f"SM{len(self.calls):04d}"})


@pytest.fixture(scope="session")
def app():
    app = create_app(TestingConfig)
    yield app


@pytest.fixture(scope="function")
def db(app):
    """Fresh schema for every test."""
    with app.app_context():
        _db.create_all()
        yield _db
        _db.session.remove()
        _db.drop_all()


def make_user(phone, role, full_name="Test User", password=PASSWORD):
    user = User(email=f"{phone}@milkflow.in", password_hash=hash_password(password), is_active=True)
    user.profile = Profile(full_name=full_name, phone=phone)
    user.roles.append(UserRole(role=role))
    _db.session.add(user)
    _db.session.commit()
    return user


def make_supplier(code, full_name, phone, user=None, is_active=True):
    supplier = Supplier(
        supplier_code=code,
        full_name=full_name,
        phone=phone,
        user_id=user.id if user else None,
        is_active=is_active,
    )
    _db.session.add(supplier)
    _db.session.commit()
    return supplier


@pytest.fixture
def admin_user(db):
    return make_user(ADMIN_PHONE, "admin", "Asha Admin")


@pytest.fixture
def supplier_user(db):
    return make_user(SUPPLIER_PHONE, "supplier", "Ravi Kumar")


@pytest.fixture
def supplier(db, supplier_user):
    return make_supplier("SUP-001", "Ravi Kumar", SUPPLIER_PHONE, user=supplier_user)


@pytest.fixture
def other_supplier(db):
    return make_supplier("SUP-002", "Meena Devi", OTHER_PHONE)


@pytest.fixture
def admin_ctx(admin_user):
    return build_context(admin_user.id)


@pytest.fixture
def supplier_ctx(supplier_user, supplier):
    return build_context(supplier_user.id)


def login(client, phone, password=PASSWORD):
    return client.post("/api/auth/login", json={"phone": phone, "password": password})


@pytest.fixture
def client(app, db):
    return app.test_client()


@pytest.fixture
def admin_client(app, admin_user):
    client = app.test_client()
    resp = login(client, ADMIN_PHONE)
    assert resp.status_code == 200
    return client


@pytest.fixture
def supplier_client(app, supplier_user, supplier):
    client = app.test_client()
    resp = login(client, SUPPLIER_PHONE)
    assert resp.status_code == 200
    return client


@pytest.fixture
def sms_stub(app):
    """Route outbound SMS through a stub transport for the duration of a test."""
    from milkflow.services.sms_service import SMSService

    transport = StubTransport()
    app.extensions["sms"] = SMSService(
        account_sid="ACtest",
        auth_token="token",
        from_number="+15005550006",
        transport=transport,
    )
    yield transport
    app.extensions.pop("sms", None)

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["JWT_SECRET"] = "test-secret-with-enough-bytes-for-hs256"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
os.environ["CELERY_BROKER_URL"] = "redis://127.0.0.1:1/0"

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from storefront.data.database import Base, SessionLocal, engine
from storefront.data.models import (
    CategoryModel,
    ProductModel,
    ShippingAddressModel,
    UserModel,
)
from storefront.domain.enums import ProductStatus, Role
from storefront.security import Principal, create_access_token


class RecordingNotifier:
    """Stands in for the Celery-backed notifier and remembers what it was asked to send."""

    def __init__(self):
        self.calls = []

    def user_registered(self, user_id, email):
        self.calls.append(("user_registered", user_id, email))
        return True

    def order_placed(self, user_id, order_id, order_number):
        self.calls.append(("order_placed", user_id, order_id, order_number))
        return True

    def order_status_changed(self, user_id, order_id, previous, new):
        self.calls.append(("order_status_changed", user_id, order_id, previous, new))
        return True


def _foreign_keys(enabled: bool) -> None:
    # PRAGMA foreign_keys is ignored inside a transaction, so go through the raw connection
    raw = engine.raw_connection()
    try:
        cursor = raw.cursor()
        cursor.execute(f"PRAGMA foreign_keys={'ON' if enabled else 'OFF'}")
        cursor.close()
    finally:
        raw.close()


def drop_schema() -> None:
    """Drop every table whatever rows are left, self-referencing categories included."""
    _foreign_keys(False)
    try:
        Base.metadata.drop_all(bind=engine)
    finally:
        _foreign_keys(True)


@pytest.fixture(autouse=True)
def schema():
    Base.metadata.create_all(bind=engine)
    yield
    drop_schema()


@pytest.fixture
def reset_schema():
    def _reset():
        drop_schema()
        Base.metadata.create_all(bind=engine)

    return _reset


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(role=Role.CUSTOMER, email=None):
        counter["n"] += 1
        user = UserModel(
            email=email or f"user{counter['n']}@example.com",
            name=f"User {counter['n']}",
            role=Role(role).value,
        )
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def customer(make_user):
    return make_user()


@pytest.fixture
def admin(make_user):
    return make_user(role=Role.ADMIN, email="admin@example.com")


@pytest.fixture
def principal_for():
    def _principal(user):
        return Principal(user_id=user.id, role=Role(user.role))

    return _principal


@pytest.fixture
def category(db):
    cat = CategoryModel(name="Books", slug="books")
    db.add(cat)
    db.commit()
    return cat


@pytest.fixture
def make_product(db, category):
    counter = {"n": 0}

    def _make(price="10.00", stock=5, status=ProductStatus.ACTIVE, allow_backorder=False, name=None):
        counter["n"] += 1
        name = name or f"Product {counter['n']}"
        product = ProductModel(
            name=name,
            slug=f"product-{counter['n']}",
            price=Decimal(price),
            status=ProductStatus(status).value,
            inventory_quantity=stock,
            allow_backorder=allow_backorder,
            category_id=category.id,
        )
        db.add(product)
        db.commit()
        return product

    return _make


@pytest.fixture
def make_address(db):
    def _make(user, is_default=True):
        address = ShippingAddressModel(
            user_id=user.id,
            first_name="Ada",
            last_name="Lovelace",
            address_line_1="1 Analytical Way",
            city="London",
            state="Greater London",
            postal_code="N1 9GU",
            country="UK",
            is_default=is_default,
        )
        db.add(address)
        db.commit()
        return address

    return _make


@pytest.fixture
def auth_headers():
    def _headers(user) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}

    return _headers


@pytest.fixture
def client(notifier):
    from storefront.api.deps import get_notifier
    from storefront.main import create_app

    app = create_app()
    app.dependency_overrides[get_notifier] = lambda: notifier
    with TestClient(app) as c:
        yield c

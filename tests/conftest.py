# tests/conftest.py
import os

# musi byc ustawione przed importem cartorder (settings czyta env przy imporcie)
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOCK_BACKEND"] = "local"
os.environ["ORDER_EXPIRY_PER_ORDER_TASK"] = "false"

import pytest
from fastapi.testclient import TestClient

from cartorder.data.database import Base, SessionLocal, engine
from cartorder.data import models  # noqa: F401
from cartorder.services.cart_service import CartService
from cartorder.services.lock_service import LocalLockService
from cartorder.services.order_service import OrderService


class RecordingScheduler:
    """Stands in for ExpiryScheduler; remembers what would have been sent to Celery."""

    def __init__(self):
        self.calls = []

    def schedule(self, order_id, expire_at):
        self.calls.append((order_id, expire_at))
        return True


@pytest.fixture(autouse=True)
def tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db(tables):
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def scheduler():
    return RecordingScheduler()


@pytest.fixture
def lock_service():
    return LocalLockService(wait=1)


@pytest.fixture
def order_service(db, scheduler):
    return OrderService(db, scheduler=scheduler)


@pytest.fixture
def cart_service(db, lock_service, order_service):
    return CartService(db, lock_service=lock_service, order_service=order_service)


@pytest.fixture
def make_order(order_service):
    """
    Create an order with sensible defaults.
    Usage: order_id = make_order(user_id="u1", ttl_seconds=1)
    """
    def _fn(user_id="user-1", currency="USD", ttl_seconds=None, **overrides):
        svc = order_service
        if ttl_seconds is not None:
            svc = OrderService(order_service.repo.db, scheduler=order_service.scheduler, ttl_seconds=ttl_seconds)
        payload = {
            "address": {"street": "1 Main St", "city": "Springfield"},
            "email": "buyer@example.com",
            "order_items": [{"product_id": "p1", "quantity": 1, "price": "10.00", "product_name": "Widget"}],
        }
        payload.update(overrides)
        return svc.create_order(user_id=user_id, currency=currency, **payload).order_id
    return _fn


@pytest.fixture
def client(tables):
    from cartorder.main import app

    with TestClient(app) as c:
        yield c

from datetime import datetime, timezone, timedelta

import pytest
from sqlalchemy.exc import OperationalError

from cartorder.celery_worker import celery_app
from cartorder.domain.errors import PersistenceError
from cartorder.repos.order_repo import OrderRepo
from cartorder.services.expiration_service import OrderExpirationService
from cartorder.services.scheduler_service import EXPIRE_ORDER_TASK, ExpiryScheduler
from cartorder.tasks import expire


def later(seconds):
    return datetime.now(timezone.utc) + timedelta(seconds=seconds)


@pytest.fixture
def expiration(db):
    return OrderExpirationService(db)


def test_order_is_cancelled_after_ttl(make_order, order_service, expiration):
    order_id = make_order(ttl_seconds=1)

    assert expiration.expire_due_orders(now=later(2)) == 1
    assert order_service.get_order(order_id)["status"] == "cancelled"


def test_sweep_only_cancels_due_pending_orders(make_order, order_service, expiration):
    due = make_order(ttl_seconds=1)
    not_due = make_order(ttl_seconds=3600)
    completed = make_order(ttl_seconds=1)
    order_service.update_order(completed, {"status": "completed"})

    assert expiration.expire_due_orders(now=later(2)) == 1

    assert order_service.get_order(due)["status"] == "cancelled"
    assert order_service.get_order(not_due)["status"] == "pending"
    assert order_service.get_order(completed)["status"] == "completed"


def test_sweep_is_idempotent(make_order, expiration):
    make_order(ttl_seconds=1)
    make_order(ttl_seconds=1)

    now = later(2)
    assert expiration.expire_due_orders(now=now) == 2
    assert expiration.expire_due_orders(now=now) == 0


def test_per_order_expiry_before_deadline_is_noop(make_order, order_service, expiration):
    order_id = make_order(ttl_seconds=3600)

    assert expiration.expire_order(order_id) is False
    assert order_service.get_order(order_id)["status"] == "pending"


def test_per_order_then_sweep(make_order, order_service, expiration):
    order_id = make_order(ttl_seconds=1)
    now = later(2)

    assert expiration.expire_order(order_id, now=now) is True
    assert expiration.expire_order(order_id, now=now) is False
    assert expiration.expire_due_orders(now=now) == 0
    assert order_service.get_order(order_id)["status"] == "cancelled"


def test_sweep_then_per_order(make_order, expiration):
    order_id = make_order(ttl_seconds=1)
    now = later(2)

    assert expiration.expire_due_orders(now=now) == 1
    assert expiration.expire_order(order_id, now=now) is False


def test_expire_missing_order(expiration):
    assert expiration.expire_order("missing") is False


def test_expire_orders_task(make_order, order_service):
    order_id = make_order(ttl_seconds=0)

    assert expire.expire_orders_task() == 1
    assert expire.expire_orders_task() == 0
    assert order_service.get_order(order_id)["status"] == "cancelled"


def test_expire_orders_task_survives_store_failure(monkeypatch):
    def broken(self, now=None):
        raise PersistenceError("Failed to cancel expired orders")

    monkeypatch.setattr(OrderExpirationService, "expire_due_orders", broken)

    assert expire.expire_orders_task() == 0


def test_expire_order_task(make_order, order_service):
    order_id = make_order(ttl_seconds=0)

    assert expire.expire_order_task(order_id) is True
    assert expire.expire_order_task(order_id) is False
    assert order_service.get_order(order_id)["status"] == "cancelled"


def test_expire_order_task_does_not_raise(monkeypatch):
    def broken(self, order_id, now=None):
        raise PersistenceError(f"Failed to cancel order {order_id}")

    monkeypatch.setattr(OrderExpirationService, "expire_order", broken)

    assert expire.expire_order_task("any") is False


def test_scheduler_sends_task_with_eta(monkeypatch):
    sent = []
    monkeypatch.setattr(celery_app, "send_task", lambda name, **kwargs: sent.append((name, kwargs)))
    eta = later(60)

    assert ExpiryScheduler(enabled=True).schedule("order-1", eta) is True
    assert sent == [(EXPIRE_ORDER_TASK, {"args": ["order-1"], "eta": eta})]


def test_disabled_scheduler_sends_nothing(monkeypatch):
    sent = []
    monkeypatch.setattr(celery_app, "send_task", lambda name, **kwargs: sent.append(name))

    assert ExpiryScheduler(enabled=False).schedule("order-1", later(60)) is False
    assert sent == []


def test_beat_runs_sweep():
    entry = celery_app.conf.beat_schedule["expire-orders"]
    assert entry["task"] == expire.expire_orders_task.name


def cancel_fails(self, now, order_id=None):
    raise OperationalError("UPDATE orders", {}, Exception("connection refused"))


def test_sweep_store_failure_leaves_orders_pending(make_order, order_service, expiration, monkeypatch):
    order_id = make_order(ttl_seconds=1)
    monkeypatch.setattr(OrderRepo, "cancel_expired", cancel_fails)

    with pytest.raises(PersistenceError):
        expiration.expire_due_orders(now=later(2))

    monkeypatch.undo()
    assert order_service.get_order(order_id)["status"] == "pending"


def test_per_order_store_failure(make_order, expiration, monkeypatch):
    order_id = make_order(ttl_seconds=0)
    monkeypatch.setattr(OrderRepo, "cancel_expired", cancel_fails)

    with pytest.raises(PersistenceError):
        expiration.expire_order(order_id)

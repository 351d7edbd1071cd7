import threading
import time

import pytest
import redis

from cartorder.domain.errors import ConcurrencyError, PersistenceError
from cartorder.services.lock_service import LocalLockService, LockService


class FakeRedis:
    """Just enough of redis.Redis for SET NX EX and the release script."""

    def __init__(self):
        self.data = {}

    def set(self, name, value, nx=False, ex=None):
        if nx and name in self.data:
            return None
        self.data[name] = value
        return True

    def eval(self, script, numkeys, key, token):
        if self.data.get(key) == token:
            del self.data[key]
            return 1
        return 0


@pytest.fixture
def redis_lock():
    svc = LockService(url="redis://localhost:6379/0", ttl=5, wait=0.2)
    svc.redis = FakeRedis()
    return svc


def test_local_lock_serializes_same_user():
    lock = LocalLockService(wait=5)
    counter = {"value": 0}

    def bump():
        for _ in range(20):
            with lock.user_lock("user-1"):
                current = counter["value"]
                time.sleep(0.001)
                counter["value"] = current + 1

    threads = [threading.Thread(target=bump) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert counter["value"] == 80


def test_local_lock_times_out():
    lock = LocalLockService(wait=0.05)

    with lock.user_lock("user-1"):
        with pytest.raises(ConcurrencyError):
            with lock.user_lock("user-1"):
                pass


def test_local_lock_is_per_user():
    lock = LocalLockService(wait=0.05)

    with lock.user_lock("user-1"):
        with lock.user_lock("user-2"):
            pass


def test_redis_lock_acquire_and_release(redis_lock):
    with redis_lock.user_lock("user-1"):
        assert "cart:user:user-1:lock" in redis_lock.redis.data

    assert redis_lock.redis.data == {}


def test_redis_lock_times_out_when_held(redis_lock):
    with redis_lock.user_lock("user-1"):
        with pytest.raises(ConcurrencyError):
            with redis_lock.user_lock("user-1"):
                pass


def test_redis_lock_release_requires_owner_token(redis_lock):
    assert redis_lock.acquire_user_lock("user-1", "owner") is True

    assert redis_lock.release_user_lock("user-1", "intruder") is False
    assert redis_lock.release_user_lock("user-1", "owner") is True


def test_redis_outage_is_persistence_error(redis_lock):
    class DownRedis(FakeRedis):
        def set(self, *args, **kwargs):
            raise redis.ConnectionError("connection refused")

    redis_lock.redis = DownRedis()

    with pytest.raises(PersistenceError):
        with redis_lock.user_lock("user-1"):
            pass


class ReleaseFailsRedis(FakeRedis):
    def eval(self, *args, **kwargs):
        raise redis.ConnectionError("connection reset")


def test_redis_release_failure_does_not_fail_committed_work(redis_lock):
    redis_lock.redis = ReleaseFailsRedis()
    done = []

    with redis_lock.user_lock("user-1"):
        done.append("committed")

    assert done == ["committed"]


def test_redis_release_failure_keeps_body_error(redis_lock):
    redis_lock.redis = ReleaseFailsRedis()

    with pytest.raises(ConcurrencyError, match="version"):
        with redis_lock.user_lock("user-1"):
            raise ConcurrencyError("Cart version changed")


def test_local_lock_forgets_released_users():
    lock = LocalLockService(wait=1)

    for i in range(1000):
        with lock.user_lock(f"user-{i}"):
            assert f"user-{i}" in lock._locks

    assert lock._locks == {}


def test_local_lock_entry_survives_while_contended():
    lock = LocalLockService(wait=5)
    holding = threading.Event()
    release = threading.Event()

    def holder():
        with lock.user_lock("user-1"):
            holding.set()
            release.wait(5)

    t = threading.Thread(target=holder)
    t.start()
    holding.wait(5)

    waiter_done = []

    def waiter():
        with lock.user_lock("user-1"):
            waiter_done.append(True)

    w = threading.Thread(target=waiter)
    w.start()
    time.sleep(0.05)
    release.set()
    t.join()
    w.join()

    assert waiter_done == [True]
    assert lock._locks == {}


def test_local_lock_timeout_does_not_leak_entry():
    lock = LocalLockService(wait=0.05)

    with lock.user_lock("user-1"):
        with pytest.raises(ConcurrencyError):
            with lock.user_lock("user-1"):
                pass
        assert lock._locks["user-1"][1] == 1

    assert lock._locks == {}


class FlakyRedis(FakeRedis):
    def __init__(self, failures):
        super().__init__()
        self.failures = failures

    def set(self, *args, **kwargs):
        if self.failures:
            self.failures -= 1
            raise redis.ConnectionError("connection reset")
        return super().set(*args, **kwargs)


def test_redis_blip_is_retried(redis_lock):
    redis_lock.redis = FlakyRedis(failures=1)

    with redis_lock.user_lock("user-1"):
        assert redis_lock.redis.data

    assert redis_lock.redis.data == {}


def test_lock_wait_gives_up_after_wait(redis_lock):
    redis_lock.redis.data[redis_lock._key("user-1")] = "someone-else"

    started = time.monotonic()
    with pytest.raises(ConcurrencyError):
        with redis_lock.user_lock("user-1"):
            pass

    assert time.monotonic() - started < 2

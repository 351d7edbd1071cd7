import threading
import uuid
from contextlib import contextmanager

import redis

from cartorder.domain.errors import ConcurrencyError, PersistenceError
from cartorder.utils.retry import lock_wait_retry, redis_retry
from cartorder.utils.settings import (
    CART_LOCK_TTL_SECONDS,
    CART_LOCK_WAIT_SECONDS,
    LOCK_BACKEND,
    REDIS_URL,
)
from cartorder.utils.logging import get_logger

logger = get_logger(__name__)

#LUA porownaj i usun, atomicity
_RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""

#redis wykonuje atomowo przez lua, skrypt dziala jako jedna nieprzerywalna operacja
#nie mozna wcisnac sie miedzy GET a DEL, wiec tu jest get + porownanie + del wszystko naraz


def _wait_for(acquire, wait: float):
    return lock_wait_retry(wait)(acquire)()


class LockService:
    """
    -lock per user na czas read-modify-write koszyka
    -zwalnianie locka tylko przez wlasciciela (token)
    -atomowosc przy pomocy lua
    """

    def __init__(
        self,
        url: str | None = None,
        ttl: int = CART_LOCK_TTL_SECONDS,
        wait: float = CART_LOCK_WAIT_SECONDS,
    ):
        self.redis = redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )
        self.ttl = ttl
        self.wait = wait

    @staticmethod
    def _key(user_id: str) -> str:
        return f"cart:user:{user_id}:lock"

    @redis_retry()
    def acquire_user_lock(self, user_id: str, token: str) -> bool:
        #SET cart:user:u1:lock "<token>" NX EX 10
        return bool(self.redis.set(name=self._key(user_id), value=token, nx=True, ex=self.ttl))

    @redis_retry()
    def release_user_lock(self, user_id: str, token: str) -> bool:
        res = self.redis.eval(_RELEASE_LUA, 1, self._key(user_id), token)
        return bool(res)

    @contextmanager
    def user_lock(self, user_id: str):
        token = uuid.uuid4().hex
        try:
            acquired = _wait_for(lambda: self.acquire_user_lock(user_id, token), self.wait)
        except redis.RedisError as e:
            logger.error(f"Redis unavailable while locking cart of user {user_id}: {e}")
            raise PersistenceError("Lock backend unavailable") from e
        if not acquired:
            raise ConcurrencyError(f"Cart of user {user_id} is locked by another operation")
        logger.debug(f"Acquired lock {self._key(user_id)}")
        try:
            yield
        finally:
            try:
                released = self.release_user_lock(user_id, token)
            except redis.RedisError as e:
                # zapis juz jest w bazie, lock wygasnie sam po ttl
                logger.warning(f"Could not release lock {self._key(user_id)}, it will expire by ttl: {e}")
            else:
                if not released:
                    # klucz wygasl (ttl) zanim skonczylismy
                    logger.warning(f"Lock {self._key(user_id)} expired before release")


class LocalLockService:
    """
    Wariant LockService w pamieci procesu (jeden worker).
    Wpis dla usera istnieje tylko dopoki ktos trzyma albo czeka na lock.
    """

    def __init__(self, wait: float = CART_LOCK_WAIT_SECONDS):
        self.wait = wait
        # user_id -> [lock, liczba trzymajacych/czekajacych]
        self._locks: dict[str, list] = {}
        self._guard = threading.Lock()

    def _checkout(self, user_id: str) -> threading.Lock:
        with self._guard:
            entry = self._locks.setdefault(user_id, [threading.Lock(), 0])
            entry[1] += 1
            return entry[0]

    def _checkin(self, user_id: str) -> None:
        with self._guard:
            entry = self._locks[user_id]
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[user_id]

    @contextmanager
    def user_lock(self, user_id: str):
        lock = self._checkout(user_id)
        try:
            if not lock.acquire(timeout=self.wait):
                raise ConcurrencyError(f"Cart of user {user_id} is locked by another operation")
            try:
                yield
            finally:
                lock.release()
        finally:
            self._checkin(user_id)


_lock_service = None


def get_lock_service():
    global _lock_service
    if _lock_service is None:
        if LOCK_BACKEND == "local":
            _lock_service = LocalLockService()
        else:
            _lock_service = LockService()
        logger.info(f"Using {type(_lock_service).__name__} for cart locks")
    return _lock_service

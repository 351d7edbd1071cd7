# cartorder/utils/retry.py
from tenacity import (
    retry,
    retry_if_exception_type,
    retry_if_result,
    stop_after_attempt,
    stop_after_delay,
    wait_exponential,
    wait_fixed,
)
import redis

from cartorder.utils.settings import REDIS_RETRY_ATTEMPTS


def redis_retry(attempts: int = REDIS_RETRY_ATTEMPTS):
    # tylko bledy polaczenia/protokolu redisa, wynik operacji nie jest ponawiany
    return retry(
        reraise=True,
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
        retry=retry_if_exception_type(redis.RedisError),
    )


def lock_wait_retry(wait: float, poll: float = 0.05):
    """Ponawia proby wziecia locka az do skutku albo `wait` sekund; potem zwraca False."""
    return retry(
        retry=retry_if_result(lambda acquired: not acquired),
        stop=stop_after_delay(wait),
        wait=wait_fixed(poll),
        retry_error_callback=lambda state: False,
    )

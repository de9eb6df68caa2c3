# storefront/utils/retry.py
import redis
from tenacity import retry, retry_if_exception, retry_if_exception_type, stop_after_attempt, wait_exponential, wait_random

from storefront.utils.db_errors import is_unique_violation
from storefront.utils.settings import ORDER_NUMBER_MAX_ATTEMPTS


def order_number_retry():
    """Regenerate-and-insert loop for order numbers that hit the unique constraint."""
    return retry(
        reraise=True,
        stop=stop_after_attempt(ORDER_NUMBER_MAX_ATTEMPTS),
        wait=wait_random(min=0.001, max=0.01),
        retry=retry_if_exception(lambda exc: is_unique_violation(exc, "order_number")),
    )


def redis_retry():
    return retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
        retry=retry_if_exception_type(redis.RedisError),
    )

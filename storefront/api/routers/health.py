# storefront/api/routers/health.py
import redis
from redis.backoff import NoBackoff
from redis.retry import Retry
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from storefront.data.database import get_db
from storefront.domain.schemas import ok
from storefront.utils.logging import get_logger
from storefront.utils.retry import redis_retry
from storefront.utils.settings import CELERY_BROKER_URL

logger = get_logger(__name__)

router = APIRouter(tags=["health"])


@redis_retry()
def _ping_broker() -> bool:
    # single attempt per call, retrying is left to redis_retry
    client = redis.Redis.from_url(
        CELERY_BROKER_URL, socket_connect_timeout=1, socket_timeout=1, retry=Retry(NoBackoff(), 0)
    )
    try:
        return bool(client.ping())
    finally:
        client.close()


def broker_status() -> str:
    try:
        _ping_broker()
        return "ok"
    except redis.RedisError as e:
        # notifications are best effort, a missing broker only degrades the service
        logger.warning(f"Notification broker unreachable: {e}")
        return "unavailable"


@router.get("/health")
def health(db: Session = Depends(get_db)):
    db.execute(text("SELECT 1"))
    return ok("Service is healthy", {"status": "ok", "database": "ok", "broker": broker_status()})

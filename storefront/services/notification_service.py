# storefront/services/notification_service.py
from storefront.celery_worker import celery_app
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Hands customer notifications to the Celery queue.
    Callers never wait on delivery and a failed enqueue never fails the request.
    """

    def __init__(self, log=None):
        self.log = log or logger

    def _enqueue(self, task, *args) -> bool:
        try:
            task.delay(*args)
            return True
        except Exception as e:
            # broker down or misconfigured, the request itself already succeeded
            self.log.warning(f"Could not enqueue {task.name}{args}: {e}")
            return False

    def user_registered(self, user_id: int, email: str) -> bool:
        return self._enqueue(send_welcome_email_task, user_id, email)

    def order_placed(self, user_id: int, order_id: int, order_number: str) -> bool:
        return self._enqueue(send_order_placed_task, user_id, order_id, order_number)

    def order_status_changed(self, user_id: int, order_id: int, previous: str, new: str) -> bool:
        return self._enqueue(send_order_status_task, user_id, order_id, previous, new)


@celery_app.task(name="storefront.services.notification_service.send_welcome_email_task")
def send_welcome_email_task(user_id: int, email: str):
    # delivery goes through the mail provider configured on the worker, here it is only logged
    logger.info(f"[NOTIFICATION] Welcome email for user {user_id} <{email}>")
    return {"user_id": user_id, "type": "welcome", "status": "sent"}


@celery_app.task(name="storefront.services.notification_service.send_order_placed_task")
def send_order_placed_task(user_id: int, order_id: int, order_number: str):
    logger.info(f"[NOTIFICATION] User {user_id}: order {order_number} ({order_id}) received")
    return {"user_id": user_id, "order_id": order_id, "type": "order_placed", "status": "sent"}


@celery_app.task(name="storefront.services.notification_service.send_order_status_task")
def send_order_status_task(user_id: int, order_id: int, previous: str, new: str):
    logger.info(f"[NOTIFICATION] User {user_id}: order {order_id} moved {previous} -> {new}")
    return {"user_id": user_id, "order_id": order_id, "type": "order_status", "status": "sent"}

# storefront/services/notification_service.py
from storefront.celery_worker import celery_app
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Queues customer notifications on Celery. A broker outage must not undo
    an order or payment that is already committed, so enqueue failures are
    only logged.
    """

    @staticmethod
    def send_order_notification(user_id: int, order_id: int):
        try:
            send_order_notification_task.delay(user_id, order_id)
        except Exception as e:
            logger.warning(f"Could not queue order notification for order {order_id}: {e}")

    @staticmethod
    def send_payment_notification(user_id: int, order_id: int, status: str):
        try:
            send_payment_notification_task.delay(user_id, order_id, status)
        except Exception as e:
            logger.warning(f"Could not queue payment notification for order {order_id}: {e}")


@celery_app.task(name="storefront.services.notification_service.send_order_notification_task")
def send_order_notification_task(user_id: int, order_id: int):
    logger.info(f"[NOTIFICATION] User {user_id}: order {order_id} placed")
    return {"user_id": user_id, "order_id": order_id, "status": "sent"}


@celery_app.task(name="storefront.services.notification_service.send_payment_notification_task")
def send_payment_notification_task(user_id: int, order_id: int, status: str):
    logger.info(f"[NOTIFICATION] User {user_id}: payment for order {order_id} is {status}")
    return {"user_id": user_id, "order_id": order_id, "payment_status": status, "status": "sent"}

# storefront/tasks/sweep.py
from storefront.celery_worker import celery_app
from storefront.data.database import SessionLocal
from storefront.services.order_service import OrderService
from storefront.utils.settings import ORPHAN_ORDER_TTL_SECONDS
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


@celery_app.task(name="storefront.tasks.sweep.sweep_orphaned_orders_task")
def sweep_orphaned_orders_task(ttl_seconds: int | None = None):
    """
    Cancels pending orders that never got a payment (payment url request
    failed after the order was created). Runs from celery beat only.
    """
    ttl = ttl_seconds if ttl_seconds is not None else ORPHAN_ORDER_TTL_SECONDS
    logger.info(f"Orphaned order sweep started (ttl {ttl}s)")

    db = SessionLocal()
    try:
        cancelled = OrderService(db).sweep_orphaned_orders(ttl)
        logger.info(f"Orphaned order sweep cancelled {len(cancelled)} orders")
        return cancelled
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

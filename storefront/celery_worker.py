# storefront/celery_worker.py
from celery import Celery

from storefront.utils.settings import (
    CELERY_BROKER_URL,
    CELERY_RESULT_BACKEND,
    ORPHAN_SWEEP_INTERVAL_SECONDS,
)

celery_app = Celery(
    "storefront",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# register task modules explicitly
celery_app.conf.imports = (
    "storefront.tasks.sweep",
    "storefront.services.notification_service",
)

celery_app.conf.beat_schedule = {
    "sweep-orphaned-orders": {
        "task": "storefront.tasks.sweep.sweep_orphaned_orders_task",
        "schedule": ORPHAN_SWEEP_INTERVAL_SECONDS,
    },
}

celery_app.conf.timezone = "UTC"

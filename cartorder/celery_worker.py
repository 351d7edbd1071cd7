# cartorder/celery_worker.py
from celery import Celery

from cartorder.utils.settings import (
    CELERY_BROKER_URL,
    CELERY_RESULT_BACKEND,
    ORDER_EXPIRY_SWEEP_SECONDS,
)

celery_app = Celery(
    "cartorder",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# taski musza byc zaimportowane, zeby worker je zarejestrowal
celery_app.conf.imports = (
    "cartorder.tasks.expire",
)

celery_app.conf.beat_schedule = {
    "expire-orders": {
        "task": "cartorder.tasks.expire.expire_orders_task",
        "schedule": ORDER_EXPIRY_SWEEP_SECONDS,
    },
}

celery_app.conf.timezone = "UTC"

# cartorder/services/scheduler_service.py
from datetime import datetime

from cartorder.celery_worker import celery_app
from cartorder.utils.settings import ORDER_EXPIRY_PER_ORDER_TASK
from cartorder.utils.logging import get_logger

logger = get_logger(__name__)

EXPIRE_ORDER_TASK = "cartorder.tasks.expire.expire_order_task"


class ExpiryScheduler:
    """
    Planuje jednorazowy task wygaszajacy pojedyncze zamowienie (eta = expire_at).
    Okresowy sweep z beat dziala niezaleznie i jest glowna sciezka wygaszania.
    """

    def __init__(self, enabled: bool = ORDER_EXPIRY_PER_ORDER_TASK):
        self.enabled = enabled

    def schedule(self, order_id: str, expire_at: datetime) -> bool:
        if not self.enabled:
            return False

        celery_app.send_task(EXPIRE_ORDER_TASK, args=[order_id], eta=expire_at)
        logger.info(f"Scheduled expiry of order {order_id} at {expire_at.isoformat()}")
        return True

# cartorder/tasks/expire.py
from cartorder.celery_worker import celery_app
from cartorder.data.database import SessionLocal
from cartorder.domain.errors import PersistenceError
from cartorder.services.expiration_service import OrderExpirationService
from cartorder.utils.logging import get_logger

logger = get_logger(__name__)


@celery_app.task(name="cartorder.tasks.expire.expire_orders_task")
def expire_orders_task() -> int:
    logger.info("Expire orders task started")

    db = SessionLocal()
    try:
        return OrderExpirationService(db).expire_due_orders()
    except PersistenceError as e:
        # kolejny tick beat sprobuje ponownie
        logger.error(f"Expire orders task failed, will retry on next tick: {e}")
        return 0
    finally:
        db.close()


@celery_app.task(name="cartorder.tasks.expire.expire_order_task")
def expire_order_task(order_id: str) -> bool:
    db = SessionLocal()
    try:
        return OrderExpirationService(db).expire_order(order_id)
    except PersistenceError as e:
        # bez retry, zamowienie zostaje pending do nastepnego sweepa
        logger.error(f"Expire task for order {order_id} failed: {e}")
        return False
    finally:
        db.close()

# cartorder/services/expiration_service.py
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cartorder.domain.errors import PersistenceError
from cartorder.repos.order_repo import OrderRepo
from cartorder.utils.logging import get_logger

logger = get_logger(__name__)


class OrderExpirationService:
    """
    Wygaszanie zamowien pending po expire_at.

    Obie sciezki (sweep i pojedyncze zamowienie) uzywaja tego samego warunku
    status = 'pending' AND expire_at <= now, wiec drugie wykonanie to no-op.
    """

    def __init__(self, db: Session):
        self.repo = OrderRepo(db)

    def expire_due_orders(self, now: datetime | None = None) -> int:
        now = now or datetime.now(timezone.utc)
        logger.info(f"Checking for expired orders at {now.isoformat()}")

        try:
            due = self.repo.count_expired(now)
            logger.info(f"Found {due} orders to cancel")

            cancelled = self.repo.cancel_expired(now)
            self.repo.commit()
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Bulk cancel of expired orders failed: {e}")
            raise PersistenceError("Failed to cancel expired orders") from e

        logger.info(f"Cancelled {cancelled} expired orders")
        return cancelled

    def expire_order(self, order_id: str, now: datetime | None = None) -> bool:
        now = now or datetime.now(timezone.utc)

        try:
            cancelled = self.repo.cancel_expired(now, order_id=order_id)
            self.repo.commit()
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Cancel of expired order {order_id} failed: {e}")
            raise PersistenceError(f"Failed to cancel order {order_id}") from e

        if cancelled:
            logger.info(f"Order {order_id} expired and was cancelled")
        else:
            logger.info(f"Order {order_id} not cancelled (not pending or not yet expired)")
        return bool(cancelled)

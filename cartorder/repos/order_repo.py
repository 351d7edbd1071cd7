# cartorder/repos/order_repo.py
from datetime import datetime
from typing import Any, Dict

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from cartorder.data.models.order import OrderModel
from cartorder.domain.schemas import OrderStatus


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def create_order(self, order: OrderModel) -> OrderModel:
        self.db.add(order)
        self.db.flush()
        return order

    def get_order(self, order_id: str) -> OrderModel | None:
        return self.db.get(OrderModel, order_id)

    def update_pending_order(self, order_id: str, values: Dict[str, Any]) -> int:
        result = self.db.execute(
            update(OrderModel)
            .where(
                OrderModel.order_id == order_id,
                OrderModel.status == OrderStatus.PENDING.value,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def _expired_clause(self, now: datetime):
        return (
            OrderModel.status == OrderStatus.PENDING.value,
            OrderModel.expire_at <= now,
        )

    def count_expired(self, now: datetime) -> int:
        return self.db.execute(
            select(func.count()).select_from(OrderModel).where(*self._expired_clause(now))
        ).scalar_one()

    def cancel_expired(self, now: datetime, order_id: str | None = None) -> int:
        conditions = list(self._expired_clause(now))
        if order_id is not None:
            conditions.append(OrderModel.order_id == order_id)

        result = self.db.execute(
            update(OrderModel)
            .where(*conditions)
            .values(status=OrderStatus.CANCELLED.value, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()

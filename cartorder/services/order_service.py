# cartorder/services/order_service.py
import uuid
from datetime import datetime, timezone, timedelta
from typing import Any, Dict, List, Mapping

from pydantic import ValidationError as SchemaError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cartorder.data.models.order import OrderModel
from cartorder.domain.errors import (
    CorruptDataError,
    NotFoundError,
    NotModifiableError,
    PersistenceError,
    ValidationError,
)
from cartorder.domain.schemas import OrderItem, OrderResult, OrderStatus
from cartorder.repos.order_repo import OrderRepo
from cartorder.services.scheduler_service import ExpiryScheduler
from cartorder.utils import jsonfield
from cartorder.utils.settings import ORDER_TTL_SECONDS
from cartorder.utils.logging import get_logger

logger = get_logger(__name__)

# pola, ktore mozna zmienic przez update_order; reszta jest ignorowana
_STRING_FIELDS = ("status", "email", "currency", "user_id")


class OrderService:
    """
    Serwis odpowiedzialny za domenę zamówień:
    tworzenie, aktualizacja (tylko pending), odczyt.
    Wygaszanie zamówień jest w OrderExpirationService.
    """

    def __init__(
        self,
        db: Session,
        scheduler: ExpiryScheduler | None = None,
        ttl_seconds: int = ORDER_TTL_SECONDS,
    ):
        self.repo = OrderRepo(db)
        self.scheduler = scheduler or ExpiryScheduler()
        self.ttl = timedelta(seconds=ttl_seconds)

    def _normalize_items(self, order_items: List[Any]) -> List[Dict[str, Any]]:
        normalized = []
        for raw in order_items:
            try:
                item = raw if isinstance(raw, OrderItem) else OrderItem.model_validate(raw)
            except SchemaError as e:
                raise ValidationError(f"Invalid order item: {e}") from e
            normalized.append(item.model_dump(exclude_none=True))
        return normalized

    def create_order(
        self,
        user_id: str,
        currency: str,
        address: Mapping[str, Any] | None,
        email: str,
        order_items: List[Any] | None,
    ) -> OrderResult:
        """
        Use Case: Tworzenie zamówienia.

        1. Walidacja user_id, currency, order_items
        2. Zapis z status=pending i expire_at = now + TTL (jedna transakcja)
        3. Zaplanowanie wygaszenia (jesli wlaczone)
        """
        if not user_id or not currency:
            raise ValidationError("user_id and currency are required")

        if order_items is None:
            raise ValidationError("order_items are required")

        if len(order_items) == 0:
            raise ValidationError("order_items must not be empty")

        items = self._normalize_items(order_items)

        now = datetime.now(timezone.utc)
        order = OrderModel(
            order_id=str(uuid.uuid4()),
            user_id=user_id,
            currency=currency,
            address=jsonfield.dumps(dict(address) if address is not None else None),
            email=email or "",
            order_items=jsonfield.dumps(items),
            status=OrderStatus.PENDING.value,
            created_at=now,
            updated_at=now,
            expire_at=now + self.ttl,
        )

        try:
            self.repo.create_order(order)
            self.repo.commit()
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Failed to create order for user {user_id}: {e}")
            raise PersistenceError("Failed to create order") from e

        logger.info(f"Order {order.order_id} created for user {user_id}, expires at {order.expire_at.isoformat()}")

        try:
            self.scheduler.schedule(order.order_id, order.expire_at)
        except Exception as e:
            # sweep i tak wygasi zamowienie
            logger.warning(f"Could not schedule expiry of order {order.order_id}: {e}")

        return OrderResult(order_id=order.order_id)

    def _clean_updates(self, updates: Mapping[str, Any]) -> Dict[str, Any]:
        clean: Dict[str, Any] = {}

        address = updates.get("address")
        if isinstance(address, Mapping):
            clean["address"] = jsonfield.dumps(dict(address))

        order_items = updates.get("order_items")
        if isinstance(order_items, list):
            if not order_items:
                raise ValidationError("order_items must not be empty")
            clean["order_items"] = jsonfield.dumps(self._normalize_items(order_items))

        for field in _STRING_FIELDS:
            value = updates.get(field)
            if isinstance(value, str):
                clean[field] = value

        if "status" in clean:
            try:
                OrderStatus(clean["status"])
            except ValueError as e:
                raise ValidationError(f"Unknown order status: {clean['status']}") from e

        return clean

    def update_order(self, order_id: str, updates: Mapping[str, Any]) -> None:
        """
        Use Case: Aktualizacja zamówienia.
        Warunkowy UPDATE ... WHERE order_id = ? AND status = 'pending';
        0 rows -> zamowienie nie istnieje albo nie jest juz pending.
        """
        values = self._clean_updates(updates or {})
        values["updated_at"] = datetime.now(timezone.utc)

        try:
            rowcount = self.repo.update_pending_order(order_id, values)
            if rowcount == 0:
                self.repo.rollback()
                raise NotModifiableError(f"Order {order_id} does not exist or can no longer be modified")
            self.repo.commit()
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Failed to update order {order_id}: {e}")
            raise PersistenceError("Failed to update order") from e

        logger.info(f"Order {order_id} updated: {sorted(k for k in values if k != 'updated_at')}")

    def get_order(self, order_id: str) -> Dict[str, Any]:
        """
        Use Case: Pobranie zamówienia (Query).
        """
        try:
            order = self.repo.get_order(order_id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to read order {order_id}: {e}")
            raise PersistenceError("Failed to read order") from e

        if not order:
            raise NotFoundError(f"Order {order_id} not found")

        try:
            address = jsonfield.loads(order.address)
            order_items = jsonfield.loads(order.order_items)
            if not isinstance(order_items, list) or not all(isinstance(i, dict) for i in order_items):
                raise ValueError("order_items is not a list of objects")
            if not isinstance(address, (dict, type(None))):
                raise ValueError("unexpected document shape")
        except ValueError as e:
            logger.error(f"Order {order_id} has corrupt stored JSON: {e}")
            raise CorruptDataError(f"Order {order_id} has corrupt stored data") from e

        return {
            "order_id": order.order_id,
            "user_id": order.user_id,
            "address": address,
            "email": order.email,
            "order_items": order_items,
            "currency": order.currency,
            "status": order.status,
            "created_at": order.created_at,
            "updated_at": order.updated_at,
            "expire_at": order.expire_at,
        }

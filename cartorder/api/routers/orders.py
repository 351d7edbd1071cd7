# cartorder/api/routers/orders.py
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from cartorder.api.errors import to_http_error
from cartorder.data.database import get_db
from cartorder.domain.errors import CartOrderError
from cartorder.domain.schemas import OrderOut, OrderResult, PlaceOrderIn
from cartorder.services.order_service import OrderService
from cartorder.services.scheduler_service import ExpiryScheduler

router = APIRouter(prefix="/orders", tags=["orders"])


def get_service(db: Session = Depends(get_db)) -> OrderService:
    return OrderService(db, scheduler=ExpiryScheduler())


@router.post("", response_model=OrderResult)
def create_order(payload: PlaceOrderIn, svc: OrderService = Depends(get_service)):
    """
    Tworzy zamówienie ze statusem pending; wygasa po ORDER_TTL_SECONDS.
    """
    try:
        return svc.create_order(
            user_id=payload.user_id,
            currency=payload.user_currency,
            address=payload.address,
            email=payload.email,
            order_items=payload.order_items,
        )
    except CartOrderError as e:
        raise to_http_error(e)


@router.put("/{order_id}")
def update_order(
    order_id: str,
    updates: Dict[str, Any] = Body(...),
    svc: OrderService = Depends(get_service),
):
    try:
        svc.update_order(order_id, updates)
    except CartOrderError as e:
        raise to_http_error(e)
    return {"message": "Order updated", "order_id": order_id}


@router.get("/{order_id}", response_model=OrderOut)
def get_order(order_id: str, svc: OrderService = Depends(get_service)):
    try:
        return svc.get_order(order_id)
    except CartOrderError as e:
        raise to_http_error(e)

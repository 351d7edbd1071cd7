# cartorder/api/routers/carts.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from cartorder.api.errors import to_http_error
from cartorder.data.database import get_db
from cartorder.domain.errors import CartOrderError
from cartorder.domain.schemas import (
    AddToCartIn,
    CartSnapshot,
    CheckoutIn,
    CheckoutOut,
    QuantityIn,
)
from cartorder.services.cart_service import CartService
from cartorder.services.lock_service import get_lock_service
from cartorder.services.order_service import OrderService
from cartorder.services.scheduler_service import ExpiryScheduler

router = APIRouter(prefix="/carts", tags=["carts"])


def get_service(db: Session = Depends(get_db)) -> CartService:
    return CartService(
        db=db,
        lock_service=get_lock_service(),
        order_service=OrderService(db, scheduler=ExpiryScheduler()),
    )


@router.post("", response_model=CartSnapshot)
def add_item(payload: AddToCartIn, svc: CartService = Depends(get_service)):
    try:
        return svc.add_item(payload.user_id, payload.currency, payload.item.model_dump())
    except CartOrderError as e:
        raise to_http_error(e)


@router.get("/{user_id}", response_model=CartSnapshot)
def get_cart(user_id: str, svc: CartService = Depends(get_service)):
    try:
        return svc.get_cart(user_id)
    except CartOrderError as e:
        raise to_http_error(e)


@router.delete("/{user_id}")
def clear_cart(user_id: str, svc: CartService = Depends(get_service)):
    try:
        svc.clear_cart(user_id)
    except CartOrderError as e:
        raise to_http_error(e)
    return {"message": "Cart cleared", "user_id": user_id}


@router.delete("/{user_id}/items/{product_id}")
def remove_item(user_id: str, product_id: str, svc: CartService = Depends(get_service)):
    try:
        svc.remove_item(user_id, product_id)
    except CartOrderError as e:
        raise to_http_error(e)
    return {"message": "Item removed from cart", "user_id": user_id, "product_id": product_id}


@router.put("/{user_id}/items/{product_id}")
def update_item_quantity(
    user_id: str,
    product_id: str,
    payload: QuantityIn,
    svc: CartService = Depends(get_service),
):
    try:
        svc.update_item_quantity(user_id, product_id, payload.quantity)
    except CartOrderError as e:
        raise to_http_error(e)
    return {
        "message": "Item quantity updated",
        "user_id": user_id,
        "product_id": product_id,
        "quantity": payload.quantity,
    }


@router.post("/{user_id}/checkout", response_model=CheckoutOut)
def checkout(user_id: str, payload: CheckoutIn, svc: CartService = Depends(get_service)):
    try:
        result = svc.convert_to_order(user_id, payload.address, payload.email)
    except CartOrderError as e:
        raise to_http_error(e)
    return CheckoutOut(message="Cart converted to order", order_id=result.order_id)

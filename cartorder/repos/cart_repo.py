# cartorder/repos/cart_repo.py
from typing import Any, Dict

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from cartorder.data.models.cart import CartModel


class CartRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_cart_by_user(self, user_id: str) -> CartModel | None:
        return self.db.execute(
            select(CartModel).where(CartModel.user_id == user_id).order_by(CartModel.created_at)
        ).scalars().first()

    def create_cart(self, cart: CartModel) -> CartModel:
        self.db.add(cart)
        self.db.flush()
        return cart

    def update_cart_version(self, cart_id: str, old_version: int, new_data: Dict[str, Any]) -> int:
        # UPDATE carts SET ... WHERE cart_id = ? AND version = ?
        result = self.db.execute(
            update(CartModel)
            .where(CartModel.cart_id == cart_id, CartModel.version == old_version)
            .values(**new_data)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()

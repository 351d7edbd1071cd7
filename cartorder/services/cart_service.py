import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping

from pydantic import ValidationError as SchemaError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cartorder.data.models.cart import CartModel
from cartorder.domain.errors import (
    CartOrderError,
    ConcurrencyError,
    CorruptDataError,
    EmptyCartError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from cartorder.domain.money import items_total, round_for_display
from cartorder.domain.schemas import CartItem, CartSnapshot, OrderResult
from cartorder.repos.cart_repo import CartRepo
from cartorder.services.order_service import OrderService
from cartorder.utils import jsonfield
from cartorder.utils.logging import get_logger

logger = get_logger(__name__)


class CartService:
    """
    Use case'y dla domeny cart:
    commands (add, remove, update quantity, clear, checkout) modyfikuja stan
    pod lockiem per user, query (get) tylko odczyt.
    """

    def __init__(self, db: Session, lock_service, order_service: OrderService):
        self.repo = CartRepo(db)
        self.lock_service = lock_service
        self.order_service = order_service

    # helpers

    def _find_cart(self, user_id: str) -> CartModel | None:
        try:
            return self.repo.get_cart_by_user(user_id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to read cart of user {user_id}: {e}")
            raise PersistenceError("Failed to read cart") from e

    def _require_cart(self, user_id: str) -> CartModel:
        cart = self._find_cart(user_id)
        if not cart:
            raise NotFoundError(f"Cart of user {user_id} not found")
        return cart

    def _load_items(self, cart: CartModel) -> List[CartItem]:
        try:
            raw = jsonfield.loads(cart.items)
            if not isinstance(raw, list):
                raise ValueError("cart items is not a list")
            return [CartItem.model_validate(entry) for entry in raw]
        except (ValueError, SchemaError) as e:
            logger.error(f"Cart {cart.cart_id} has corrupt stored items: {e}")
            raise CorruptDataError(f"Cart {cart.cart_id} has corrupt stored data") from e

    @staticmethod
    def _dump_items(items: List[CartItem]) -> str:
        return jsonfield.dumps([i.model_dump(exclude_none=True) for i in items])

    def _write_items(self, cart_id: str, version: int, items: List[CartItem], **extra) -> None:
        new_data: Dict[str, Any] = {
            "items": self._dump_items(items),
            "version": version + 1,
            "updated_at": datetime.now(timezone.utc),
            **extra,
        }
        try:
            # Optimistic locking, UPDATE ... WHERE cart_id = ? AND version = ?
            rowcount = self.repo.update_cart_version(cart_id, version, new_data)
            if rowcount == 0:
                self.repo.rollback()
                raise ConcurrencyError(f"Cart {cart_id} was modified by another operation")
            self.repo.commit()
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Failed to save cart {cart_id}: {e}")
            raise PersistenceError("Failed to save cart") from e

    @staticmethod
    def _snapshot(cart_id: str, user_id: str, currency: str, items: List[CartItem]) -> CartSnapshot:
        return CartSnapshot(
            cart_id=cart_id,
            user_id=user_id,
            currency=currency,
            items=items,
            total=round_for_display(items_total(items), currency),
        )

    @staticmethod
    def _coerce_item(item: CartItem | Mapping[str, Any]) -> CartItem:
        if not isinstance(item, CartItem):
            try:
                item = CartItem.model_validate(item)
            except SchemaError as e:
                raise ValidationError(f"Invalid cart item: {e}") from e

        if not item.product_id:
            raise ValidationError("item.product_id is required")
        if item.quantity <= 0:
            raise ValidationError("item.quantity must be greater than 0")
        return item

    @staticmethod
    def _to_order_item(item: CartItem) -> Dict[str, Any]:
        order_item = {
            "product_id": item.product_id,
            "quantity": item.quantity,
            "price": item.price,
            "product_name": item.product_name,
        }
        if item.image_url:
            order_item["image_url"] = item.image_url
        return order_item

    #query - odczyt

    def get_cart(self, user_id: str) -> CartSnapshot:
        if not user_id:
            raise ValidationError("user_id is required")

        cart = self._require_cart(user_id)
        items = self._load_items(cart)
        return self._snapshot(cart.cart_id, cart.user_id, cart.currency, items)

    #commands

    def add_item(self, user_id: str, currency: str, item: CartItem | Mapping[str, Any]) -> CartSnapshot:
        """
        Dodaje produkt do koszyka usera albo zwieksza ilosc, jesli produkt juz jest
        (merge, nie nadpisanie). Koszyk jest tworzony przy pierwszym dodaniu.
        """
        if not user_id:
            raise ValidationError("user_id is required")
        if not currency:
            raise ValidationError("currency is required")
        item = self._coerce_item(item)

        with self.lock_service.user_lock(user_id):
            cart = self._find_cart(user_id)

            if cart:
                items = self._load_items(cart)
                cart_id = cart.cart_id

                for existing in items:
                    if existing.product_id == item.product_id:
                        logger.info(
                            f"Product {item.product_id} already in cart {cart_id}, quantity "
                            f"{existing.quantity} -> {existing.quantity + item.quantity}"
                        )
                        existing.quantity += item.quantity
                        break
                else:
                    logger.info(f"Adding product {item.product_id} to cart {cart_id}")
                    items.append(item)

                self._write_items(cart_id, cart.version, items, currency=currency)
            else:
                items = [item]
                now = datetime.now(timezone.utc)
                cart = CartModel(
                    cart_id=str(uuid.uuid4()),
                    user_id=user_id,
                    items=self._dump_items(items),
                    currency=currency,
                    version=1,
                    created_at=now,
                    updated_at=now,
                )
                cart_id = cart.cart_id

                try:
                    self.repo.create_cart(cart)
                    self.repo.commit()
                except SQLAlchemyError as e:
                    self.repo.rollback()
                    logger.error(f"Failed to create cart for user {user_id}: {e}")
                    raise PersistenceError("Failed to create cart") from e

                logger.info(f"Created cart {cart_id} for user {user_id}")

        return self._snapshot(cart_id, user_id, currency, items)

    def clear_cart(self, user_id: str) -> None:
        if not user_id:
            raise ValidationError("user_id is required")

        with self.lock_service.user_lock(user_id):
            cart = self._require_cart(user_id)
            self._write_items(cart.cart_id, cart.version, [])

        logger.info(f"Cart of user {user_id} cleared")

    def remove_item(self, user_id: str, product_id: str) -> None:
        if not user_id or not product_id:
            raise ValidationError("user_id and product_id are required")

        with self.lock_service.user_lock(user_id):
            cart = self._require_cart(user_id)
            items = self._load_items(cart)

            remaining = list(items)
            for index, existing in enumerate(remaining):
                if existing.product_id == product_id:
                    del remaining[index]
                    break

            self._write_items(cart.cart_id, cart.version, remaining)

        logger.info(f"Product {product_id} removed from cart of user {user_id}")

    def update_item_quantity(self, user_id: str, product_id: str, quantity: int) -> None:
        if not user_id or not product_id:
            raise ValidationError("user_id and product_id are required")
        if quantity is None or quantity <= 0:
            raise ValidationError("quantity must be greater than 0")

        with self.lock_service.user_lock(user_id):
            cart = self._require_cart(user_id)
            items = self._load_items(cart)

            for existing in items:
                if existing.product_id == product_id:
                    existing.quantity = quantity
                    break
            else:
                raise NotFoundError(f"Product {product_id} is not in the cart")

            self._write_items(cart.cart_id, cart.version, items)

        logger.info(f"Quantity of {product_id} in cart of user {user_id} set to {quantity}")

    def convert_to_order(self, user_id: str, address: Mapping[str, Any] | None, email: str) -> OrderResult:
        """
        Checkout: koszyk -> zamowienie, potem czyszczenie koszyka.

        Zamowienie jest juz zapisane, gdy czyscimy koszyk; blad czyszczenia to
        tylko warning, zamowienie zostaje.
        """
        if not user_id:
            raise ValidationError("user_id is required")

        with self.lock_service.user_lock(user_id):
            cart = self._require_cart(user_id)
            items = self._load_items(cart)

            if not items:
                raise EmptyCartError(f"Cart of user {user_id} is empty")

            cart_id, version, currency = cart.cart_id, cart.version, cart.currency
            order_items = [self._to_order_item(i) for i in items]

            result = self.order_service.create_order(
                user_id=user_id,
                currency=currency,
                address=address,
                email=email,
                order_items=order_items,
            )

            try:
                self._write_items(cart_id, version, [])
            except CartOrderError as e:
                logger.warning(f"Order {result.order_id} created but clearing cart {cart_id} failed: {e}")

        logger.info(f"Cart {cart_id} converted to order {result.order_id}")
        return result

# cartorder/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict
from typing import Any, Dict, List, Optional
from decimal import Decimal
from datetime import datetime
from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "pending"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class CartItem(BaseModel):
    """Produkt w koszyku (tak samo zapisywany w kolumnie carts.items)."""

    product_id: str = Field(..., min_length=1, description="ID produktu")
    quantity: int = Field(..., gt=0, description="Ilość produktu (musi być > 0)")
    price: Decimal = Field(Decimal("0"), ge=0, description="Cena jednostkowa")
    product_name: str = ""
    image_url: Optional[str] = None


class OrderItem(BaseModel):
    """Pozycja zamówienia."""

    product_id: str = Field(..., min_length=1)
    quantity: int = Field(..., gt=0)
    price: Decimal = Field(Decimal("0"), ge=0)
    product_name: str = ""
    image_url: Optional[str] = None


class CartItemIn(BaseModel):
    """Produkt z requestu; reguly (product_id, quantity > 0, price >= 0) sprawdza CartService."""

    product_id: str = ""
    quantity: int = 0
    price: Decimal = Decimal("0")
    product_name: str = ""
    image_url: Optional[str] = None


class AddToCartIn(BaseModel):
    """Schema dla dodawania produktu do koszyka."""

    user_id: str = ""
    currency: str = ""
    item: CartItemIn


class QuantityIn(BaseModel):
    quantity: int


class CheckoutIn(BaseModel):
    address: Optional[Dict[str, Any]] = None
    email: str = ""


class CartSnapshot(BaseModel):
    """Schema dla koszyka (response); total liczony przy kazdym odczycie."""

    cart_id: str
    user_id: str
    currency: str
    items: List[CartItem]
    total: Decimal

    model_config = ConfigDict(from_attributes=True)


class PlaceOrderIn(BaseModel):
    """Schema dla tworzenia zamówienia."""

    user_id: str = ""
    user_currency: str = ""
    address: Optional[Dict[str, Any]] = None
    email: str = ""
    # pozycje waliduje OrderService (400, nie 422)
    order_items: Optional[List[Dict[str, Any]]] = None


class OrderResult(BaseModel):
    order_id: str


class CheckoutOut(BaseModel):
    message: str
    order_id: str


class OrderOut(BaseModel):
    """Schema dla zamówienia (response)."""

    order_id: str
    user_id: str
    address: Optional[Dict[str, Any]] = None
    email: str
    order_items: List[Dict[str, Any]]
    currency: str
    status: OrderStatus
    created_at: datetime
    updated_at: datetime
    expire_at: datetime

    model_config = ConfigDict(from_attributes=True)

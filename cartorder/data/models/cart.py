# cartorder/data/models/cart.py
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Text, DateTime

from cartorder.data.database import Base


class CartModel(Base):
    __tablename__ = "carts"

    cart_id = Column(String(36), primary_key=True)
    # jeden koszyk na usera pilnuje serwis (lock per user), nie constraint w bazie
    user_id = Column(String(36), nullable=False, index=True)

    items = Column(Text, nullable=False, default="[]")
    currency = Column(String(10), nullable=False)
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

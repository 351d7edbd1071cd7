# cartorder/data/models/order.py
from sqlalchemy import Column, String, Text, DateTime, Index

from cartorder.data.database import Base


class OrderModel(Base):
    __tablename__ = "orders"

    order_id = Column(String(36), primary_key=True)
    user_id = Column(String(36), nullable=False, index=True)

    address = Column(Text, nullable=False)
    email = Column(String(255), nullable=False, default="")
    order_items = Column(Text, nullable=False)
    currency = Column(String(10), nullable=False)

    status = Column(String(20), nullable=False, default="pending")  # pending, cancelled, completed
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
    expire_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (Index("ix_orders_status_expire_at", "status", "expire_at"),)

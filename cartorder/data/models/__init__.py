#import wszystkich modeli zeby SQLAlchemy je zarejestrowal w Base.metadata

from cartorder.data.models.cart import CartModel
from cartorder.data.models.order import OrderModel

__all__ = ["CartModel", "OrderModel"]

"""Cart package: models, mutation rules, and engine."""
from .models import LineItem, ShippingInfo, Cart
from .service import CartEngine

__all__ = [
    "LineItem",
    "ShippingInfo",
    "Cart",
    "CartEngine",
]

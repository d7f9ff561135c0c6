"""
Cart mutation rules.

Pure functions over Cart objects: quantity validation, the merge rule for
repeated adds, quantity updates and shipping application. Totals and tax
are properties of Cart, so they are current after every mutation here.
"""
from decimal import Decimal
from typing import Any

from cartstore.catalogue import Product
from cartstore.config import SHIPPING_ACCUMULATE, SHIPPING_REPLACE
from cartstore.errors import (
    ERROR_QTY_NEGATIVE,
    ERROR_QTY_NOT_A_NUMBER,
    ERROR_QTY_NOT_POSITIVE,
    ERROR_QTY_TOO_LARGE,
    ERROR_SHIPPING_INVALID,
    ERROR_SHIPPING_MISSING,
    InvalidArgument,
)
from cartstore.money import MAX_AMOUNT, parse_decimal

from .models import MAX_QTY, Cart, LineItem, ShippingInfo

SHIPPING_FIELDS = ("distance", "cost", "location")


def parse_quantity(raw: Any, allow_zero: bool) -> int:
    """
    Parse a quantity from a path parameter or int.

    Add requires qty >= 1; update allows 0 (meaning remove). Nothing above
    MAX_QTY is accepted.

    Raises:
        InvalidArgument: not an integer, or outside the allowed range
    """
    if isinstance(raw, bool):
        raise InvalidArgument(ERROR_QTY_NOT_A_NUMBER)
    if isinstance(raw, int):
        qty = raw
    else:
        try:
            qty = int(str(raw).strip())
        except ValueError:
            raise InvalidArgument(ERROR_QTY_NOT_A_NUMBER)

    if allow_zero and qty < 0:
        raise InvalidArgument(ERROR_QTY_NEGATIVE)
    if not allow_zero and qty < 1:
        raise InvalidArgument(ERROR_QTY_NOT_POSITIVE)
    if qty > MAX_QTY:
        raise InvalidArgument(ERROR_QTY_TOO_LARGE)
    return qty


def merge_item(cart: Cart, product: Product, qty: int) -> LineItem:
    """
    Add qty of product to the cart.

    An existing line keeps its pinned price and name and only grows in
    quantity; otherwise a new line is appended from the catalogue snapshot.

    Raises:
        InvalidArgument: the merged quantity would exceed MAX_QTY
    """
    existing = cart.find_item(product.sku)
    if existing is not None:
        if existing.qty + qty > MAX_QTY:
            raise InvalidArgument(ERROR_QTY_TOO_LARGE)
        existing.qty += qty
        return existing

    item = LineItem(sku=product.sku, name=product.name, price=product.price, qty=qty)
    cart.items.append(item)
    return item


def set_quantity(cart: Cart, index: int, qty: int) -> None:
    """Set the quantity of the item at index; zero removes it."""
    if qty == 0:
        del cart.items[index]
    else:
        cart.items[index].qty = qty


def find_index(cart: Cart, sku: str) -> int:
    """Position of sku in cart items, or -1."""
    return next((idx for idx, item in enumerate(cart.items) if item.sku == sku), -1)


def parse_shipping(payload: Any) -> ShippingInfo:
    """
    Validate a shipping payload.

    Fields are checked for presence explicitly, so a zero cost or distance
    is accepted. Null counts as missing.

    Raises:
        InvalidArgument: missing field, non-numeric or negative amount,
            or empty location
    """
    if not isinstance(payload, dict):
        raise InvalidArgument(ERROR_SHIPPING_MISSING)
    missing = [name for name in SHIPPING_FIELDS if payload.get(name) is None]
    if missing:
        raise InvalidArgument(f"{ERROR_SHIPPING_MISSING}: {', '.join(missing)}")

    try:
        distance = parse_decimal(payload["distance"])
        cost = parse_decimal(payload["cost"])
    except ValueError:
        raise InvalidArgument(f"{ERROR_SHIPPING_INVALID}: distance and cost must be numbers")
    if distance < 0 or cost < 0:
        raise InvalidArgument(f"{ERROR_SHIPPING_INVALID}: distance and cost must not be negative")
    if distance > MAX_AMOUNT or cost > MAX_AMOUNT:
        raise InvalidArgument(f"{ERROR_SHIPPING_INVALID}: distance and cost must not exceed {MAX_AMOUNT}")

    location = payload["location"]
    if not isinstance(location, str) or not location.strip():
        raise InvalidArgument(f"{ERROR_SHIPPING_INVALID}: location must be a non-empty string")

    return ShippingInfo(distance=distance, cost=cost, location=location)


def apply_shipping(cart: Cart, shipping: ShippingInfo, policy: str) -> ShippingInfo:
    """
    Attach shipping to the cart according to policy.

    accumulate: cost and distance add into the existing record and the
        latest location wins (multi-leg delivery)
    replace: the new record overwrites the existing one

    Raises:
        InvalidArgument: the accumulated amounts would exceed MAX_AMOUNT
    """
    if cart.shipping is None or policy == SHIPPING_REPLACE:
        cart.shipping = shipping
    elif policy == SHIPPING_ACCUMULATE:
        distance = cart.shipping.distance + shipping.distance
        cost = cart.shipping.cost + shipping.cost
        if distance > MAX_AMOUNT or cost > MAX_AMOUNT:
            raise InvalidArgument(f"{ERROR_SHIPPING_INVALID}: accumulated shipping exceeds {MAX_AMOUNT}")
        cart.shipping = ShippingInfo(distance=distance, cost=cost, location=shipping.location)
    else:
        raise ValueError(f"unknown shipping policy {policy!r}")
    return cart.shipping


def empty_cart(tax_rate: Decimal) -> Cart:
    return Cart(items=[], shipping=None, tax_rate=tax_rate)

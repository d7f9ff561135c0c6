"""Cart models with Decimal-based pricing."""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional, List

from cartstore.money import MAX_AMOUNT, parse_decimal, round_money, multiply, to_float

# Largest quantity a single line may hold
MAX_QTY = 1_000_000


@dataclass
class LineItem:
    """One SKU's quantity and pinned price within a cart."""
    sku: str
    name: str
    price: Decimal
    qty: int

    def __post_init__(self):
        self.price = parse_decimal(self.price)

    @property
    def subtotal(self) -> Decimal:
        """Always derived from the pinned price and current quantity."""
        return round_money(multiply(self.price, self.qty))

    def to_dict(self) -> dict:
        """Convert to dictionary for Redis storage."""
        return {
            "sku": self.sku,
            "name": self.name,
            "price": str(self.price),
            "qty": self.qty,
            "subtotal": str(self.subtotal),
        }

    def to_response(self) -> dict:
        return {
            "sku": self.sku,
            "name": self.name,
            "price": to_float(self.price),
            "qty": self.qty,
            "subtotal": to_float(self.subtotal),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LineItem":
        """
        Create from a stored dictionary. The stored subtotal is ignored.

        Raises:
            ValueError: when a field is missing or invalid
        """
        qty = data["qty"]
        if isinstance(qty, bool) or not isinstance(qty, int) or not 1 <= qty <= MAX_QTY:
            raise ValueError(f"invalid qty {qty!r}")
        sku = data["sku"]
        if not isinstance(sku, str) or not sku:
            raise ValueError(f"invalid sku {sku!r}")
        price = parse_decimal(data["price"])
        if not 0 <= price <= MAX_AMOUNT:
            raise ValueError(f"price out of range {price}")
        return cls(sku=sku, name=str(data.get("name", "")), price=price, qty=qty)


@dataclass
class ShippingInfo:
    """Delivery distance, cost and destination folded into the cart total."""
    distance: Decimal
    cost: Decimal
    location: str

    def __post_init__(self):
        self.distance = parse_decimal(self.distance)
        self.cost = parse_decimal(self.cost)

    def to_dict(self) -> dict:
        return {
            "distance": str(self.distance),
            "cost": str(self.cost),
            "location": self.location,
        }

    def to_response(self) -> dict:
        return {
            "distance": to_float(self.distance),
            "cost": to_float(self.cost),
            "location": self.location,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ShippingInfo":
        location = data["location"]
        if not isinstance(location, str):
            raise ValueError(f"invalid location {location!r}")
        distance = parse_decimal(data["distance"])
        cost = parse_decimal(data["cost"])
        if not (0 <= distance <= MAX_AMOUNT and 0 <= cost <= MAX_AMOUNT):
            raise ValueError("shipping amount out of range")
        return cls(distance=distance, cost=cost, location=location)


@dataclass
class Cart:
    """Shopping cart: ordered line items plus optional shipping."""
    items: List[LineItem] = field(default_factory=list)
    shipping: Optional[ShippingInfo] = None
    tax_rate: Decimal = Decimal("0")

    @property
    def items_total(self) -> Decimal:
        """Sum of all item subtotals."""
        return sum((item.subtotal for item in self.items), Decimal("0"))

    @property
    def shipping_cost(self) -> Decimal:
        return self.shipping.cost if self.shipping is not None else Decimal("0")

    @property
    def total(self) -> Decimal:
        """Item subtotals plus shipping cost."""
        return round_money(self.items_total + self.shipping_cost)

    @property
    def tax(self) -> Decimal:
        """Tax charged on top of the total."""
        return round_money(multiply(self.total, self.tax_rate))

    def find_item(self, sku: str) -> Optional[LineItem]:
        return next((item for item in self.items if item.sku == sku), None)

    def to_dict(self) -> dict:
        """Convert to dictionary for Redis storage."""
        return {
            "items": [item.to_dict() for item in self.items],
            "shipping": self.shipping.to_dict() if self.shipping else None,
            "total": str(self.total),
            "tax": str(self.tax),
        }

    def to_response(self) -> dict:
        """JSON body returned to HTTP callers (money as numbers)."""
        return {
            "items": [item.to_response() for item in self.items],
            "shipping": self.shipping.to_response() if self.shipping else None,
            "total": to_float(self.total),
            "tax": to_float(self.tax),
        }

    @classmethod
    def from_dict(cls, data: dict, tax_rate: Decimal = Decimal("0")) -> "Cart":
        """
        Create from a stored dictionary. Stored total and tax are recomputed.

        Raises:
            ValueError: when the document is not a valid cart
        """
        if not isinstance(data, dict):
            raise ValueError("cart document must be an object")
        raw_items = data["items"]
        if not isinstance(raw_items, list):
            raise ValueError("items must be a list")

        items = [LineItem.from_dict(item) for item in raw_items]
        skus = [item.sku for item in items]
        if len(set(skus)) != len(skus):
            raise ValueError("duplicate sku in items")

        raw_shipping = data.get("shipping")
        shipping = ShippingInfo.from_dict(raw_shipping) if raw_shipping is not None else None
        return cls(items=items, shipping=shipping, tax_rate=tax_rate)

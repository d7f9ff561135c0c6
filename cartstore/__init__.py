"""Cart store service: cart state in Redis with catalogue price/stock lookups."""

__version__ = "1.0.0"

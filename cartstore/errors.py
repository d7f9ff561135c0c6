"""
Cart Errors

Centralized error messages and the exception taxonomy raised by the engine.
Each exception carries the HTTP status the façade answers with.
"""

# Cart errors
ERROR_CART_NOT_FOUND = "Cart not found"
ERROR_ITEM_NOT_FOUND = "Item not in cart"
ERROR_CORRUPT_CART = "Cart data is corrupt"

# Product errors
ERROR_PRODUCT_NOT_FOUND = "Product not found"
ERROR_PRODUCT_OUT_OF_STOCK = "Out of stock"

# Input errors
ERROR_QTY_NOT_A_NUMBER = "Quantity must be a number"
ERROR_QTY_NOT_POSITIVE = "Quantity must be greater than zero"
ERROR_QTY_NEGATIVE = "Negative quantity not allowed"
ERROR_QTY_TOO_LARGE = "Quantity too large"
ERROR_SHIPPING_MISSING = "Shipping data missing"
ERROR_SHIPPING_INVALID = "Shipping data invalid"

# Upstream errors
ERROR_STORE_UNAVAILABLE = "Cart store unavailable"
ERROR_CATALOGUE_UNAVAILABLE = "Catalogue unavailable"

# Generic errors
ERROR_INVALID_REQUEST = "Invalid request"
ERROR_INTERNAL = "Internal server error"


class CartError(Exception):
    """Base class for all engine failures."""

    status_code = 500

    def __init__(self, message: str = ERROR_INTERNAL):
        super().__init__(message)
        self.message = message


class InvalidArgument(CartError):
    """Bad quantity or malformed shipping payload."""

    status_code = 400


class NotFound(CartError):
    status_code = 404


class CartNotFound(NotFound):
    def __init__(self, cart_id: str):
        super().__init__(ERROR_CART_NOT_FOUND)
        self.cart_id = cart_id


class ItemNotFound(NotFound):
    def __init__(self, cart_id: str, sku: str):
        super().__init__(ERROR_ITEM_NOT_FOUND)
        self.cart_id = cart_id
        self.sku = sku


class ProductNotFound(NotFound):
    def __init__(self, sku: str):
        super().__init__(ERROR_PRODUCT_NOT_FOUND)
        self.sku = sku


class OutOfStock(CartError):
    """Product exists but is not available. Surfaced as 404 like NotFound."""

    status_code = 404

    def __init__(self, sku: str):
        super().__init__(ERROR_PRODUCT_OUT_OF_STOCK)
        self.sku = sku


class UpstreamUnavailable(CartError):
    """Catalogue or store transport failure."""

    status_code = 500


class CorruptData(CartError):
    """Stored value does not decode as a cart."""

    status_code = 500

    def __init__(self, cart_id: str, reason: str = ""):
        super().__init__(ERROR_CORRUPT_CART)
        self.cart_id = cart_id
        self.reason = reason

"""Cart engine: load, mutate and store carts in Redis.

Every mutating operation reads the whole cart document, changes it in
memory and writes it back as the last step. There is no locking: two
concurrent writers to the same cart id race and the last write wins.
"""
import json
from decimal import Decimal
from typing import Any, List, Optional, Union

from cartstore.catalogue import CatalogueClient
from cartstore.config import SHIPPING_ACCUMULATE, SHIPPING_POLICIES, TAX_RATE
from cartstore.context import RequestContext
from cartstore.db import ConnectionState, cart_key
from cartstore.errors import (
    ERROR_STORE_UNAVAILABLE,
    CartNotFound,
    CorruptData,
    ItemNotFound,
    OutOfStock,
    ProductNotFound,
    UpstreamUnavailable,
)
from cartstore.logging import bind_logger, get_logger, sanitize_id_for_logging
from cartstore.metrics import ITEMS_ADDED

from .models import Cart, LineItem
from .pricing import (
    apply_shipping,
    empty_cart,
    find_index,
    merge_item,
    parse_quantity,
    parse_shipping,
    set_quantity,
)

logger = get_logger(__name__)


class CartEngine:
    """
    Cart operations against a key-value store and the catalogue.

    Features:
    - Upsert-creating add with price pinned at first add
    - Quantity update where zero removes the line
    - Shipping folded into the total (accumulate or replace policy)
    - Rename as move
    """

    def __init__(
        self,
        store: Any,
        catalogue: CatalogueClient,
        tax_rate: Decimal = TAX_RATE,
        shipping_policy: str = SHIPPING_ACCUMULATE,
        items_added: Any = ITEMS_ADDED,
    ):
        if shipping_policy not in SHIPPING_POLICIES:
            raise ValueError(f"unknown shipping policy {shipping_policy!r}")
        self.store = store
        self.catalogue = catalogue
        self.tax_rate = tax_rate
        self.shipping_policy = shipping_policy
        self.items_added = items_added
        self.connection = ConnectionState(store)

    # ==================== STORE ACCESS ====================

    async def _read(self, cart_id: str, ctx: RequestContext) -> Optional[Union[str, bytes]]:
        try:
            data = await self.store.get(cart_key(cart_id))
        except Exception as e:
            bind_logger(logger, ctx).error(
                "Failed to read cart %s from Redis: %s", sanitize_id_for_logging(cart_id), e
            )
            raise UpstreamUnavailable(ERROR_STORE_UNAVAILABLE) from e
        return data

    def _decode(self, cart_id: str, data: Union[str, bytes], ctx: RequestContext) -> Cart:
        try:
            if isinstance(data, bytes):
                data = data.decode("utf-8")
            return Cart.from_dict(json.loads(data), tax_rate=self.tax_rate)
        except (json.JSONDecodeError, UnicodeDecodeError, KeyError, TypeError, ValueError) as e:
            bind_logger(logger, ctx).error(
                "Corrupt cart data for %s: %s", sanitize_id_for_logging(cart_id), e
            )
            raise CorruptData(cart_id, str(e)) from e

    async def _load(self, cart_id: str, ctx: RequestContext) -> Optional[Cart]:
        """Load a cart, or None when absent."""
        data = await self._read(cart_id, ctx)
        if data is None:
            return None
        return self._decode(cart_id, data, ctx)

    async def _require(self, cart_id: str, ctx: RequestContext) -> Cart:
        cart = await self._load(cart_id, ctx)
        if cart is None:
            raise CartNotFound(cart_id)
        return cart

    async def _save(self, cart_id: str, cart: Cart, ctx: RequestContext) -> None:
        bind_logger(logger, ctx).info(
            "Saving cart %s (%d items, total %s)",
            sanitize_id_for_logging(cart_id), len(cart.items), cart.total,
        )
        try:
            await self.store.set(cart_key(cart_id), json.dumps(cart.to_dict()))
        except Exception as e:
            bind_logger(logger, ctx).error(
                "Failed to save cart %s to Redis: %s", sanitize_id_for_logging(cart_id), e
            )
            raise UpstreamUnavailable(ERROR_STORE_UNAVAILABLE) from e

    # ==================== OPERATIONS ====================

    async def get_cart(self, cart_id: str, ctx: Optional[RequestContext] = None) -> Cart:
        """Get a cart; CartNotFound when absent, CorruptData when undecodable."""
        return await self._require(cart_id, ctx or RequestContext())

    async def get_items(self, cart_id: str, ctx: Optional[RequestContext] = None) -> List[LineItem]:
        """Get only the line items of a cart."""
        cart = await self._require(cart_id, ctx or RequestContext())
        return cart.items

    async def delete_cart(self, cart_id: str, ctx: Optional[RequestContext] = None) -> bool:
        """Delete a cart. Returns whether one existed."""
        ctx = ctx or RequestContext()
        try:
            removed = await self.store.delete(cart_key(cart_id))
        except Exception as e:
            bind_logger(logger, ctx).error(
                "Failed to delete cart %s from Redis: %s", sanitize_id_for_logging(cart_id), e
            )
            raise UpstreamUnavailable(ERROR_STORE_UNAVAILABLE) from e
        return bool(removed)

    async def rename_cart(
        self, from_id: str, to_id: str, ctx: Optional[RequestContext] = None
    ) -> Cart:
        """
        Move a cart to a new id (e.g. at login).

        The destination is overwritten, then the source is deleted.
        """
        ctx = ctx or RequestContext()
        cart = await self._require(from_id, ctx)
        if from_id == to_id:
            return cart

        await self._save(to_id, cart, ctx)
        await self.delete_cart(from_id, ctx)
        bind_logger(logger, ctx).info(
            "Renamed cart %s to %s", sanitize_id_for_logging(from_id), sanitize_id_for_logging(to_id)
        )
        return cart

    async def add_item(
        self, cart_id: str, sku: str, qty: Any, ctx: Optional[RequestContext] = None
    ) -> Cart:
        """
        Add qty of sku to the cart, creating the cart when absent.

        The catalogue is consulted before the cart is read, so a catalogue
        failure never leaves a partial write behind.
        """
        ctx = ctx or RequestContext()
        quantity = parse_quantity(qty, allow_zero=False)

        product = await self.catalogue.get_product(sku)
        if product is None:
            raise ProductNotFound(sku)
        if not product.available:
            raise OutOfStock(sku)

        cart = await self._load(cart_id, ctx)
        if cart is None:
            cart = empty_cart(self.tax_rate)

        merge_item(cart, product, quantity)
        await self._save(cart_id, cart, ctx)
        self.items_added.inc(quantity)
        return cart

    async def update_item(
        self, cart_id: str, sku: str, qty: Any, ctx: Optional[RequestContext] = None
    ) -> Cart:
        """Set the quantity of sku; zero removes the line."""
        ctx = ctx or RequestContext()
        quantity = parse_quantity(qty, allow_zero=True)

        cart = await self._require(cart_id, ctx)
        index = find_index(cart, sku)
        if index == -1:
            raise ItemNotFound(cart_id, sku)

        set_quantity(cart, index, quantity)
        await self._save(cart_id, cart, ctx)
        return cart

    async def add_shipping(
        self, cart_id: str, payload: Any, ctx: Optional[RequestContext] = None
    ) -> Cart:
        """Attach shipping to the cart using the configured policy."""
        ctx = ctx or RequestContext()
        shipping = parse_shipping(payload)

        cart = await self._require(cart_id, ctx)
        apply_shipping(cart, shipping, self.shipping_policy)
        await self._save(cart_id, cart, ctx)
        return cart

    async def health(self) -> dict:
        """Service status with a live Redis check."""
        return {"app": "OK", "redis": await self.connection.check()}

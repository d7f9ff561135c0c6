"""
Shared Dependencies for Routers

Lazy-loaded singletons: the Redis client, the catalogue client and the
engine are created on first use and shared by all requests.
"""

from typing import Optional

from fastapi import Request

from cartstore.cart import CartEngine
from cartstore.catalogue import CatalogueClient
from cartstore.config import get_settings
from cartstore.context import REQUEST_ID_HEADER, RequestContext
from cartstore.db import create_redis


# ==================== LAZY SINGLETONS ====================

_catalogue_client: Optional[CatalogueClient] = None
_cart_engine: Optional[CartEngine] = None


def get_catalogue_client() -> CatalogueClient:
    """Get or create CatalogueClient singleton."""
    global _catalogue_client
    if _catalogue_client is None:
        settings = get_settings()
        _catalogue_client = CatalogueClient(
            settings.catalogue_url,
            timeout=settings.catalogue_timeout,
            retry_attempts=settings.catalogue_retry_attempts,
        )
    return _catalogue_client


def get_cart_engine() -> CartEngine:
    """Get or create CartEngine singleton."""
    global _cart_engine
    if _cart_engine is None:
        settings = get_settings()
        _cart_engine = CartEngine(
            store=create_redis(settings),
            catalogue=get_catalogue_client(),
            tax_rate=settings.tax_rate,
            shipping_policy=settings.shipping_policy,
        )
    return _cart_engine


def get_request_context(request: Request) -> RequestContext:
    """Context set by the request-id middleware, or a fresh one."""
    ctx = getattr(request.state, "ctx", None)
    if ctx is None:
        ctx = RequestContext.from_header(request.headers.get(REQUEST_ID_HEADER))
        request.state.ctx = ctx
    return ctx


# ==================== SHUTDOWN HELPERS ====================

async def shutdown_services():
    """Cleanly close singleton services (http clients)."""
    global _catalogue_client, _cart_engine
    if _catalogue_client is not None:
        await _catalogue_client.aclose()
    _catalogue_client = None
    _cart_engine = None

"""
Cart API Router

Thin façade over CartEngine: path parameters in, cart JSON out.
Engine errors are translated to HTTP responses by the handlers
registered in api/index.py.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends
from fastapi.responses import PlainTextResponse

from cartstore.cart import CartEngine
from cartstore.context import RequestContext
from cartstore.errors import CartNotFound

from .deps import get_cart_engine, get_request_context

router = APIRouter(tags=["cart"])


@router.get("/cart/{cart_id}")
async def get_cart(
    cart_id: str,
    engine: CartEngine = Depends(get_cart_engine),
    ctx: RequestContext = Depends(get_request_context),
):
    """Get cart by ID"""
    cart = await engine.get_cart(cart_id, ctx=ctx)
    return cart.to_response()


@router.get("/cart/{cart_id}/items")
async def get_cart_items(
    cart_id: str,
    engine: CartEngine = Depends(get_cart_engine),
    ctx: RequestContext = Depends(get_request_context),
):
    """Get all items in cart"""
    items = await engine.get_items(cart_id, ctx=ctx)
    return [item.to_response() for item in items]


@router.delete("/cart/{cart_id}")
async def delete_cart(
    cart_id: str,
    engine: CartEngine = Depends(get_cart_engine),
    ctx: RequestContext = Depends(get_request_context),
):
    """Delete cart by ID"""
    if not await engine.delete_cart(cart_id, ctx=ctx):
        raise CartNotFound(cart_id)
    return PlainTextResponse("OK")


@router.get("/rename/{from_id}/{to_id}")
async def rename_cart(
    from_id: str,
    to_id: str,
    engine: CartEngine = Depends(get_cart_engine),
    ctx: RequestContext = Depends(get_request_context),
):
    """Rename cart, i.e. at login"""
    cart = await engine.rename_cart(from_id, to_id, ctx=ctx)
    return cart.to_response()


@router.get("/add/{cart_id}/{sku}/{qty}")
async def add_item(
    cart_id: str,
    sku: str,
    qty: str,
    engine: CartEngine = Depends(get_cart_engine),
    ctx: RequestContext = Depends(get_request_context),
):
    """Add to or create cart"""
    cart = await engine.add_item(cart_id, sku, qty, ctx=ctx)
    return cart.to_response()


@router.get("/update/{cart_id}/{sku}/{qty}")
async def update_item(
    cart_id: str,
    sku: str,
    qty: str,
    engine: CartEngine = Depends(get_cart_engine),
    ctx: RequestContext = Depends(get_request_context),
):
    """Update quantity - remove item when qty == 0"""
    cart = await engine.update_item(cart_id, sku, qty, ctx=ctx)
    return cart.to_response()


@router.post("/shipping/{cart_id}")
async def add_shipping(
    cart_id: str,
    payload: Any = Body(default=None),
    engine: CartEngine = Depends(get_cart_engine),
    ctx: RequestContext = Depends(get_request_context),
):
    """Add shipping: {distance, cost, location}"""
    cart = await engine.add_shipping(cart_id, payload, ctx=ctx)
    return cart.to_response()

"""
Cart Service - Main FastAPI Application

Single entry point for the cart HTTP API, health check and metrics.
"""
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException
from prometheus_client import CONTENT_TYPE_LATEST
from starlette.middleware.base import BaseHTTPMiddleware

from cartstore import __version__
from cartstore.cart import CartEngine
from cartstore.context import REQUEST_ID_HEADER, RequestContext
from cartstore.errors import ERROR_INTERNAL, ERROR_INVALID_REQUEST, CartError
from cartstore.logging import bind_logger, get_logger, sanitize_id_for_logging
from cartstore.metrics import render_latest
from cartstore.routers import cart_router
from cartstore.routers.deps import get_cart_engine, shutdown_services

logger = get_logger(__name__)


# ==================== MIDDLEWARE ====================

class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assigns the correlation id and the timing/CORS headers to every response."""

    async def dispatch(self, request: Request, call_next):
        ctx = RequestContext.from_header(request.headers.get(REQUEST_ID_HEADER))
        request.state.ctx = ctx

        response: Response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = ctx.correlation_id
        response.headers["Timing-Allow-Origin"] = "*"
        response.headers["Access-Control-Allow-Origin"] = "*"
        return response


def _request_ctx(request: Request) -> RequestContext:
    ctx = getattr(request.state, "ctx", None)
    return ctx if ctx is not None else RequestContext()


def _describe(request: Request) -> str:
    """Cart id, sku and qty of the request, for error logs."""
    params = request.path_params
    cart_id = params.get("cart_id") or params.get("from_id")
    parts = [f"{request.method} {request.url.path}", f"cart={sanitize_id_for_logging(cart_id)}"]
    if "to_id" in params:
        parts.append(f"to={sanitize_id_for_logging(params['to_id'])}")
    if "sku" in params:
        parts.append(f"sku={sanitize_id_for_logging(params['sku'])}")
    if "qty" in params:
        parts.append(f"qty={sanitize_id_for_logging(params['qty'])}")
    return " ".join(parts)


# ==================== FASTAPI APP ====================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler"""
    logger.info("Cart service starting")
    yield
    await shutdown_services()


app = FastAPI(
    title="Cart Service",
    description="Shopping cart state backed by Redis",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestContextMiddleware)

app.include_router(cart_router)


# ==================== ERROR HANDLERS ====================

@app.exception_handler(CartError)
async def cart_error_handler(request: Request, exc: CartError):
    log = bind_logger(logger, _request_ctx(request))
    if exc.status_code >= 500:
        log.error("%s failed: %s (%s)", _describe(request), exc.message, type(exc).__name__)
    else:
        log.warning("%s rejected: %s", _describe(request), exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    bind_logger(logger, _request_ctx(request)).warning(
        "%s invalid request: %s", _describe(request), exc.errors()
    )
    return JSONResponse(status_code=400, content={"detail": ERROR_INVALID_REQUEST})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    bind_logger(logger, _request_ctx(request)).exception("%s unhandled error", _describe(request))
    return JSONResponse(status_code=500, content={"detail": ERROR_INTERNAL})


# ==================== HEALTH & METRICS ====================

@app.get("/health")
async def health_check(engine: CartEngine = Depends(get_cart_engine)):
    """Health check endpoint"""
    return await engine.health()


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint"""
    return Response(content=render_latest(), media_type=CONTENT_TYPE_LATEST)

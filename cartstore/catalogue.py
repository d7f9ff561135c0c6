"""
Catalogue Client

Looks up product name, price and stock level in the catalogue service:

    GET {catalogue_url}/product/{sku} -> {sku, name, price, instock}

Transport errors are retried by the client (tenacity); the engine never
retries. A 4xx answer means the product does not exist, anything else that
is not a usable 200 means the catalogue is unavailable.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional
from urllib.parse import quote

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from cartstore.errors import ERROR_CATALOGUE_UNAVAILABLE, UpstreamUnavailable
from cartstore.logging import get_logger, sanitize_id_for_logging
from cartstore.money import MAX_AMOUNT, parse_decimal

logger = get_logger(__name__)


@dataclass(frozen=True)
class Product:
    """Catalogue entry, consumed transiently to snapshot name and price."""
    sku: str
    name: str
    price: Decimal
    instock: int

    @property
    def available(self) -> bool:
        return self.instock > 0

    @classmethod
    def from_dict(cls, data: dict) -> "Product":
        """
        Parse a catalogue response body.

        Raises:
            ValueError: when a field is missing or has the wrong type
        """
        try:
            sku = data["sku"]
            name = data["name"]
            instock = data["instock"]
            price = parse_decimal(data["price"])
        except (KeyError, TypeError) as e:
            raise ValueError(f"malformed product: {e}")
        if not isinstance(sku, str) or not isinstance(name, str):
            raise ValueError("malformed product: sku and name must be strings")
        if isinstance(instock, bool) or not isinstance(instock, int):
            raise ValueError("malformed product: instock must be an integer")
        if not 0 <= price <= MAX_AMOUNT:
            raise ValueError(f"malformed product: price out of range {price}")
        return cls(sku=sku, name=name, price=price, instock=instock)


class CatalogueClient:
    """Async client for the catalogue service."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        retry_attempts: int = 3,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        retry_wait: Any = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.retry_attempts = max(1, retry_attempts)
        self._transport = transport
        self._retry_wait = retry_wait or wait_exponential(multiplier=0.2, min=0.2, max=2)
        self._http_client: httpx.AsyncClient | None = None

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Lazy creation of shared httpx client with timeouts."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout, connect=min(self.timeout, 2.0)),
                limits=httpx.Limits(max_connections=20, max_keepalive_connections=10),
                transport=self._transport,
            )
        return self._http_client

    async def _fetch(self, path: str) -> httpx.Response:
        client = await self._get_http_client()
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.retry_attempts),
            wait=self._retry_wait,
            retry=retry_if_exception_type(httpx.TransportError),
            reraise=True,
        ):
            with attempt:
                return await client.get(path)
        raise AssertionError("unreachable")

    async def get_product(self, sku: str) -> Optional[Product]:
        """
        Fetch a product by SKU.

        Returns:
            The product, or None when the catalogue has no such SKU

        Raises:
            UpstreamUnavailable: transport failure, 5xx, or undecodable body
        """
        safe_sku = sanitize_id_for_logging(sku)
        try:
            response = await self._fetch(f"/product/{quote(sku, safe='')}")
        except httpx.HTTPError as e:
            logger.error("Catalogue request failed for sku %s: %s", safe_sku, e)
            raise UpstreamUnavailable(ERROR_CATALOGUE_UNAVAILABLE) from e

        if response.status_code >= 500:
            logger.error("Catalogue returned %s for sku %s", response.status_code, safe_sku)
            raise UpstreamUnavailable(ERROR_CATALOGUE_UNAVAILABLE)
        if response.status_code != 200:
            logger.info("Catalogue has no product %s (status %s)", safe_sku, response.status_code)
            return None

        try:
            product = Product.from_dict(response.json())
        except ValueError as e:
            logger.error("Catalogue sent an unusable body for sku %s: %s", safe_sku, e)
            raise UpstreamUnavailable(ERROR_CATALOGUE_UNAVAILABLE) from e

        logger.info("Got product %s", safe_sku)
        return product

    async def aclose(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

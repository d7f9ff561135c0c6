"""
Service Configuration

All settings come from environment variables. Two deployment constants
drive the cart arithmetic:

- TAX_RATE: tax is charged on top of the total, tax = total * TAX_RATE
- SHIPPING_POLICY: what a repeated shipping submission does
  ("accumulate" adds cost and distance, "replace" overwrites the record)
"""

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from functools import lru_cache

SHIPPING_ACCUMULATE = "accumulate"
SHIPPING_REPLACE = "replace"
SHIPPING_POLICIES = (SHIPPING_ACCUMULATE, SHIPPING_REPLACE)

# Deployment defaults
TAX_RATE = Decimal("0.20")
SHIPPING_POLICY = SHIPPING_ACCUMULATE


def _parse_tax_rate(raw: str) -> Decimal:
    try:
        rate = Decimal(raw)
    except InvalidOperation:
        raise ValueError(f"CART_TAX_RATE must be a decimal, got {raw!r}")
    if not rate.is_finite() or rate < 0 or rate >= 1:
        raise ValueError(f"CART_TAX_RATE must be in [0, 1), got {raw!r}")
    return rate


def _parse_shipping_policy(raw: str) -> str:
    policy = raw.strip().lower()
    if policy not in SHIPPING_POLICIES:
        raise ValueError(f"CART_SHIPPING_POLICY must be one of {SHIPPING_POLICIES}, got {raw!r}")
    return policy


@dataclass(frozen=True)
class Settings:
    """Resolved service settings."""
    redis_url: str = ""
    redis_token: str = ""
    catalogue_host: str = "catalogue"
    catalogue_port: str = "8080"
    catalogue_timeout: float = 5.0
    catalogue_retry_attempts: int = 3
    tax_rate: Decimal = TAX_RATE
    shipping_policy: str = SHIPPING_POLICY

    @property
    def catalogue_url(self) -> str:
        return f"http://{self.catalogue_host}:{self.catalogue_port}"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment."""
        return cls(
            # Upstash names are accepted as well as the generic ones
            redis_url=os.environ.get("REDIS_REST_URL") or os.environ.get("UPSTASH_REDIS_REST_URL", ""),
            redis_token=os.environ.get("REDIS_REST_TOKEN") or os.environ.get("UPSTASH_REDIS_REST_TOKEN", ""),
            catalogue_host=os.environ.get("CATALOGUE_HOST", "catalogue"),
            catalogue_port=os.environ.get("CATALOGUE_PORT", "8080"),
            catalogue_timeout=float(os.environ.get("CATALOGUE_TIMEOUT", "5")),
            catalogue_retry_attempts=max(1, int(os.environ.get("CATALOGUE_RETRY_ATTEMPTS", "3"))),
            tax_rate=_parse_tax_rate(os.environ.get("CART_TAX_RATE", str(TAX_RATE))),
            shipping_policy=_parse_shipping_policy(os.environ.get("CART_SHIPPING_POLICY", SHIPPING_POLICY)),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get Settings singleton (read once per process)."""
    return Settings.from_env()

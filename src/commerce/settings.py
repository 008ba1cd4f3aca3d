"""Business settings for pricing, checkout and gateway calls.

Values are read from the environment once per call to ``get_settings()`` so
tests can override them with ``monkeypatch.setenv``. Infrastructure settings
(databases, brokers, event store) live in ``domain.toml``.
"""

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class CommerceSettings:
    """Pricing and checkout policy."""

    currency: str = "KES"
    tax_rate: float = 0.16
    shipping_fee: float = 300.0
    free_shipping_threshold: float = 5000.0
    order_number_prefix: str = "ORD"
    gateway_timeout_seconds: float = 5.0


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return float(raw)


def get_settings() -> CommerceSettings:
    return CommerceSettings(
        currency=os.getenv("COMMERCE_CURRENCY", CommerceSettings.currency),
        tax_rate=_float_env("COMMERCE_TAX_RATE", CommerceSettings.tax_rate),
        shipping_fee=_float_env("COMMERCE_SHIPPING_FEE", CommerceSettings.shipping_fee),
        free_shipping_threshold=_float_env(
            "COMMERCE_FREE_SHIPPING_THRESHOLD",
            CommerceSettings.free_shipping_threshold,
        ),
        order_number_prefix=os.getenv("COMMERCE_ORDER_PREFIX", CommerceSettings.order_number_prefix),
        gateway_timeout_seconds=_float_env(
            "COMMERCE_GATEWAY_TIMEOUT",
            CommerceSettings.gateway_timeout_seconds,
        ),
    )

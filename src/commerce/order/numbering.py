"""Order number generation.

Numbers look like ``ORD17297000000001234``: the configured prefix, the UTC
epoch in milliseconds, then four random digits. A candidate is checked
against stored orders before use; the ``order_number`` field is also unique
in the store, so a collision that slips past the check fails the commit.
"""

import secrets
import time

import structlog
from protean.utils.globals import current_domain

from commerce.order.order import Order
from commerce.settings import get_settings

logger = structlog.get_logger(__name__)

MAX_ATTEMPTS = 5


def _candidate(prefix: str) -> str:
    return f"{prefix}{int(time.time() * 1000)}{secrets.randbelow(10_000):04d}"


def order_number_taken(order_number: str) -> bool:
    return current_domain.repository_for(Order).find_by_number(order_number) is not None


def generate_order_number(prefix: str | None = None, is_taken=order_number_taken) -> str:
    prefix = prefix or get_settings().order_number_prefix
    for attempt in range(1, MAX_ATTEMPTS + 1):
        candidate = _candidate(prefix)
        if not is_taken(candidate):
            return candidate
        logger.warning("Order number collision", order_number=candidate, attempt=attempt)

    raise RuntimeError(f"Could not generate a unique order number after {MAX_ATTEMPTS} attempts")

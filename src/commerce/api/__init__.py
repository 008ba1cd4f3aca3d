"""Commerce domain API package."""

from commerce.api.errors import register_envelope_handlers
from commerce.api.routes import cart_router, coupon_router, inventory_router, order_router

__all__ = [
    "cart_router",
    "coupon_router",
    "inventory_router",
    "order_router",
    "register_envelope_handlers",
]

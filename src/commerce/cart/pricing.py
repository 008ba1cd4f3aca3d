"""Cart and order pricing policy.

Derives the money summary from line prices and applied coupon snapshots:

    subtotal = sum(unit_price * quantity)
    shipping = flat fee, waived above the free-shipping threshold, 0 for an empty cart
    tax      = subtotal * tax rate
    discount = sum of coupon discounts, capped at subtotal + shipping
    total    = subtotal - discount + shipping + tax

The summary is never stored for carts; it is recomputed on every read.
"""

from collections.abc import Iterable
from dataclasses import asdict, dataclass

from commerce.settings import CommerceSettings, get_settings


@dataclass(frozen=True)
class PriceSummary:
    subtotal: float = 0.0
    discount: float = 0.0
    shipping: float = 0.0
    tax: float = 0.0
    total: float = 0.0
    item_count: int = 0
    unique_items: int = 0
    currency: str = "KES"

    def to_dict(self) -> dict:
        return asdict(self)


def coupon_discount(coupon: dict, subtotal: float, shipping: float) -> float:
    """Discount granted by one coupon snapshot ({code, kind, value})."""
    kind = coupon.get("kind")
    value = float(coupon.get("value") or 0.0)
    if kind == "percentage":
        return round(subtotal * value / 100.0, 2)
    if kind == "fixed":
        return round(min(value, subtotal), 2)
    if kind == "free_shipping":
        return round(shipping, 2)
    return 0.0


def compute_summary(
    lines: Iterable[tuple[float, int]],
    coupons: Iterable[dict] = (),
    settings: CommerceSettings | None = None,
) -> PriceSummary:
    """Price a list of ``(unit_price, quantity)`` lines."""
    settings = settings or get_settings()
    lines = list(lines)

    subtotal = round(sum(price * quantity for price, quantity in lines), 2)
    item_count = sum(quantity for _, quantity in lines)

    if not lines or subtotal > settings.free_shipping_threshold:
        shipping = 0.0
    else:
        shipping = round(settings.shipping_fee, 2)

    tax = round(subtotal * settings.tax_rate, 2)

    discount = sum(coupon_discount(coupon, subtotal, shipping) for coupon in coupons) if lines else 0.0
    discount = round(min(discount, subtotal + shipping), 2)

    total = round(subtotal - discount + shipping + tax, 2)

    return PriceSummary(
        subtotal=subtotal,
        discount=discount,
        shipping=shipping,
        tax=tax,
        total=total,
        item_count=item_count,
        unique_items=len(lines),
        currency=settings.currency,
    )

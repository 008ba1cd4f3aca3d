"""Coupon aggregate (CQRS): discount codes redeemable on carts and orders.

A coupon is redeemable while it is active, not expired, and the subtotal it
is applied to meets its minimum. Redeemability is re-checked at checkout; an
order never fails because of a coupon, the coupon is simply dropped.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, String

from commerce.domain import commerce


class CouponKind(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"
    FREE_SHIPPING = "free_shipping"


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


def _aware(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


@commerce.aggregate
class Coupon:
    code = String(required=True, max_length=50, unique=True)
    kind = String(required=True, choices=CouponKind)
    value = Float(default=0.0, min_value=0.0)
    min_subtotal = Float(default=0.0, min_value=0.0)
    expires_at = DateTime()
    active = Boolean(default=True)
    created_at = DateTime()

    @invariant.post
    def percentage_cannot_exceed_hundred(self):
        if self.kind == CouponKind.PERCENTAGE.value and (self.value or 0.0) > 100.0:
            raise ValidationError({"value": ["Percentage coupons cannot exceed 100"]})

    @classmethod
    def create(cls, code, kind, value=0.0, min_subtotal=0.0, expires_at=None):
        code = normalize_code(code)
        if not code:
            raise ValidationError({"code": ["Coupon code is required"]})
        return cls(
            id=code,
            code=code,
            kind=kind,
            value=value,
            min_subtotal=min_subtotal or 0.0,
            expires_at=_aware(expires_at),
            active=True,
            created_at=datetime.now(UTC),
        )

    def rejection_reason(self, subtotal, at=None):
        """Why this coupon cannot be redeemed against ``subtotal``, or None."""
        at = at or datetime.now(UTC)
        if not self.active:
            return "Coupon is no longer active"
        expires_at = _aware(self.expires_at)
        if expires_at is not None and expires_at <= at:
            return "Coupon has expired"
        if subtotal < (self.min_subtotal or 0.0):
            return f"Coupon requires a minimum subtotal of {self.min_subtotal}"
        return None

    def is_redeemable(self, subtotal, at=None):
        return self.rejection_reason(subtotal, at) is None

    def deactivate(self):
        self.active = False

    def snapshot(self):
        return {"code": self.code, "kind": self.kind, "value": self.value}

"""Coupon management: commands, handler and lookup helpers."""

from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, Float, String
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.promotions.coupon import Coupon, normalize_code
from commerce.utils.db import serialized


@commerce.command(part_of="Coupon")
class DefineCoupon:
    code = String(required=True, max_length=50)
    kind = String(required=True, max_length=20)
    value = Float(default=0.0)
    min_subtotal = Float(default=0.0)
    expires_at = DateTime()


@commerce.command(part_of="Coupon")
class DeactivateCoupon:
    code = String(required=True, max_length=50)


@commerce.command_handler(part_of=Coupon)
class CouponHandler:
    @serialized
    @handle(DefineCoupon)
    def define_coupon(self, command):
        coupon = Coupon.create(
            code=command.code,
            kind=command.kind,
            value=command.value or 0.0,
            min_subtotal=command.min_subtotal or 0.0,
            expires_at=command.expires_at,
        )
        current_domain.repository_for(Coupon).add(coupon)
        return coupon.code

    @serialized
    @handle(DeactivateCoupon)
    def deactivate_coupon(self, command):
        repo = current_domain.repository_for(Coupon)
        coupon = repo.get(normalize_code(command.code))
        coupon.deactivate()
        repo.add(coupon)


def find_coupon(code):
    """Return the coupon for ``code``, or None when no such coupon exists."""
    code = normalize_code(code)
    if not code:
        return None
    try:
        return current_domain.repository_for(Coupon).get(code)
    except ObjectNotFoundError:
        return None

"""Plain-dict views of aggregates for API responses."""


def cart_view(cart) -> dict:
    return {
        "cart_id": str(cart.id),
        "customer_id": str(cart.customer_id),
        "items": [
            {
                **line,
                "line_total": round(line["unit_price"] * line["quantity"], 2),
            }
            for line in cart.snapshot()
        ],
        "coupons": cart.coupons(),
        "summary": cart.summary().to_dict(),
        "updated_at": cart.updated_at,
    }


def _value_object(vo) -> dict | None:
    return vo.to_dict() if vo is not None else None


def order_view(order) -> dict:
    return {
        "order_id": str(order.id),
        "order_number": order.order_number,
        "customer_id": str(order.customer_id),
        "status": order.status,
        "items": [
            {
                "product_id": str(item.product_id),
                "variant": item.variant,
                "name": item.name,
                "sku": item.sku,
                "unit_price": item.unit_price,
                "quantity": item.quantity,
                "line_total": item.line_total,
                "image_url": item.image_url,
            }
            for item in order.items
        ],
        "summary": _value_object(order.summary),
        "coupons": order.applied_coupons(),
        "shipping_address": _value_object(order.shipping_address),
        "billing_address": _value_object(order.billing_address),
        "payment": _value_object(order.payment),
        "tracking": _value_object(order.tracking),
        "cancellation": _value_object(order.cancellation),
        "refund": _value_object(order.refund),
        "notes": order.notes,
        "status_history": order.audit_trail(),
        "created_at": order.created_at,
        "updated_at": order.updated_at,
    }


def stock_view(record) -> dict:
    return {
        "product_id": str(record.product_id),
        "variant": record.variant,
        "quantity": record.quantity,
        "reserved": record.reserved,
        "available": record.available,
    }


def coupon_view(coupon) -> dict:
    return {
        "code": coupon.code,
        "kind": coupon.kind,
        "value": coupon.value,
        "min_subtotal": coupon.min_subtotal,
        "expires_at": coupon.expires_at,
        "active": coupon.active,
    }

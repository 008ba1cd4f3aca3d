"""FastAPI routes for the commerce domain: carts, orders, inventory, coupons.

Every route answers with the result envelope. Commands are processed
synchronously and the route then reads the updated aggregate back, so the
caller always receives the current state and derived summary.

Routes are plain functions: FastAPI runs them in its worker threadpool, so a
slow gateway call during checkout holds a worker rather than the event loop.
"""

import json

from fastapi import APIRouter, Header, HTTPException
from protean.utils.globals import current_domain

from commerce.api.schemas import (
    AddToCartRequest,
    ApplyCouponRequest,
    CancelOrderRequest,
    CompleteRefundRequest,
    DefineCouponRequest,
    Envelope,
    InitializeStockRequest,
    PaymentCallbackRequest,
    PlaceOrderRequest,
    ReceiveStockRequest,
    RefundOrderRequest,
    ShipOrderRequest,
    TransitionRequest,
    UpdateCartQuantityRequest,
    UpdateOrderStatusRequest,
)
from commerce.api.views import cart_view, coupon_view, order_view, stock_view
from commerce.cart.coupons import ApplyCouponToCart, RemoveCouponFromCart
from commerce.cart.items import AddToCart, RemoveFromCart, UpdateCartQuantity
from commerce.cart.management import ClearCart, cart_for
from commerce.errors import NotFound
from commerce.gateway import get_gateway
from commerce.inventory.guard import InventoryGuard
from commerce.inventory.stock import StockRecord, stock_key
from commerce.inventory.stocking import InitializeStock, ReceiveStock
from commerce.order.cancellation import CancelOrder, RefundOrder
from commerce.order.creation import PlaceOrder
from commerce.order.fulfillment import (
    ConfirmOrder,
    DeliverOrder,
    ShipOrder,
    StartProcessing,
    UpdateOrderStatus,
)
from commerce.order.payment import CompleteRefund, RecordPaymentCallback
from commerce.order.queries import find_by_number, load_order, orders_for_customer
from commerce.projections.order_timeline import timeline_for
from commerce.promotions.management import DeactivateCoupon, DefineCoupon, find_coupon


def _process(command):
    return current_domain.process(command, asynchronous=False)


def _cart_envelope(customer_id) -> Envelope:
    return Envelope(data=cart_view(cart_for(customer_id)))


def _order_envelope(order_id) -> Envelope:
    return Envelope(data=order_view(load_order(order_id)))


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/carts", tags=["carts"])


@cart_router.get("/{customer_id}", response_model=Envelope)
def get_cart(customer_id: str) -> Envelope:
    return _cart_envelope(customer_id)


@cart_router.post("/{customer_id}/items", response_model=Envelope)
def add_cart_item(customer_id: str, body: AddToCartRequest) -> Envelope:
    _process(
        AddToCart(
            customer_id=customer_id,
            product_id=body.product_id,
            variant=body.variant,
            quantity=body.quantity,
        )
    )
    return _cart_envelope(customer_id)


@cart_router.put("/{customer_id}/items/{product_id}", response_model=Envelope)
def update_cart_item(customer_id: str, product_id: str, body: UpdateCartQuantityRequest) -> Envelope:
    _process(
        UpdateCartQuantity(
            customer_id=customer_id,
            product_id=product_id,
            variant=body.variant,
            new_quantity=body.quantity,
        )
    )
    return _cart_envelope(customer_id)


@cart_router.delete("/{customer_id}/items/{product_id}", response_model=Envelope)
def remove_cart_item(customer_id: str, product_id: str, variant: str | None = None) -> Envelope:
    _process(RemoveFromCart(customer_id=customer_id, product_id=product_id, variant=variant))
    return _cart_envelope(customer_id)


@cart_router.post("/{customer_id}/clear", response_model=Envelope)
def clear_cart(customer_id: str) -> Envelope:
    _process(ClearCart(customer_id=customer_id))
    return _cart_envelope(customer_id)


@cart_router.post("/{customer_id}/coupons", response_model=Envelope)
def apply_cart_coupon(customer_id: str, body: ApplyCouponRequest) -> Envelope:
    _process(ApplyCouponToCart(customer_id=customer_id, coupon_code=body.coupon_code))
    return _cart_envelope(customer_id)


@cart_router.delete("/{customer_id}/coupons/{code}", response_model=Envelope)
def remove_cart_coupon(customer_id: str, code: str) -> Envelope:
    _process(RemoveCouponFromCart(customer_id=customer_id, coupon_code=code))
    return _cart_envelope(customer_id)


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=Envelope)
def place_order(body: PlaceOrderRequest) -> Envelope:
    order_id = _process(
        PlaceOrder(
            customer_id=body.customer_id,
            shipping_address=json.dumps(body.shipping_address.model_dump()) if body.shipping_address else None,
            billing_address=json.dumps(body.billing_address.model_dump()) if body.billing_address else None,
            payment_method=body.payment_method,
            notes=body.notes,
            coupon_code=body.coupon_code,
        )
    )
    return _order_envelope(order_id)


@order_router.get("", response_model=Envelope)
def list_orders(customer_id: str) -> Envelope:
    return Envelope(data=[order_view(order) for order in orders_for_customer(customer_id)])


@order_router.get("/number/{order_number}", response_model=Envelope)
def get_order_by_number(order_number: str) -> Envelope:
    return Envelope(data=order_view(find_by_number(order_number)))


@order_router.get("/{order_id}", response_model=Envelope)
def get_order(order_id: str) -> Envelope:
    return _order_envelope(order_id)


@order_router.get("/{order_id}/history", response_model=Envelope)
def get_order_history(order_id: str) -> Envelope:
    order = load_order(order_id)
    return Envelope(
        data={
            "order_id": str(order.id),
            "status_history": order.audit_trail(),
            "timeline": [
                {
                    "event_type": entry.event_type,
                    "description": entry.description,
                    "occurred_at": entry.occurred_at,
                }
                for entry in timeline_for(order.id)
            ],
        }
    )


@order_router.post("/{order_id}/confirm", response_model=Envelope)
def confirm_order(order_id: str, body: TransitionRequest) -> Envelope:
    _process(ConfirmOrder(order_id=order_id, note=body.note, actor=body.actor))
    return _order_envelope(order_id)


@order_router.post("/{order_id}/processing", response_model=Envelope)
def start_processing(order_id: str, body: TransitionRequest) -> Envelope:
    _process(StartProcessing(order_id=order_id, note=body.note, actor=body.actor))
    return _order_envelope(order_id)


@order_router.post("/{order_id}/ship", response_model=Envelope)
def ship_order(order_id: str, body: ShipOrderRequest) -> Envelope:
    _process(
        ShipOrder(
            order_id=order_id,
            carrier=body.carrier,
            tracking_number=body.tracking_number,
            tracking_url=body.tracking_url,
            estimated_delivery=body.estimated_delivery,
            note=body.note,
            actor=body.actor,
        )
    )
    return _order_envelope(order_id)


@order_router.post("/{order_id}/deliver", response_model=Envelope)
def deliver_order(order_id: str, body: TransitionRequest) -> Envelope:
    _process(DeliverOrder(order_id=order_id, note=body.note, actor=body.actor))
    return _order_envelope(order_id)


@order_router.put("/{order_id}/status", response_model=Envelope)
def update_order_status(order_id: str, body: UpdateOrderStatusRequest) -> Envelope:
    _process(
        UpdateOrderStatus(
            order_id=order_id,
            status=body.status,
            note=body.note,
            actor=body.actor,
            carrier=body.carrier,
            tracking_number=body.tracking_number,
            amount=body.amount,
        )
    )
    return _order_envelope(order_id)


@order_router.post("/{order_id}/cancel", response_model=Envelope)
def cancel_order(order_id: str, body: CancelOrderRequest) -> Envelope:
    _process(CancelOrder(order_id=order_id, reason=body.reason, actor=body.actor))
    return _order_envelope(order_id)


@order_router.post("/{order_id}/refund", response_model=Envelope)
def refund_order(order_id: str, body: RefundOrderRequest) -> Envelope:
    _process(
        RefundOrder(
            order_id=order_id,
            reason=body.reason,
            actor=body.actor,
            amount=body.amount,
            restock=body.restock,
        )
    )
    return _order_envelope(order_id)


@order_router.post("/{order_id}/refund/complete", response_model=Envelope)
def complete_refund(order_id: str, body: CompleteRefundRequest) -> Envelope:
    _process(CompleteRefund(order_id=order_id, amount=body.amount, reference=body.reference))
    return _order_envelope(order_id)


@order_router.post("/{order_id}/payment/callback", response_model=Envelope)
def payment_callback(
    order_id: str,
    body: PaymentCallbackRequest,
    x_gateway_signature: str = Header(default=""),
) -> Envelope:
    """Inbound gateway callback; safe to replay."""
    gateway = get_gateway()
    if not gateway.verify_callback_signature(json.dumps(body.model_dump()), x_gateway_signature):
        raise HTTPException(status_code=401, detail="Invalid callback signature")

    _process(
        RecordPaymentCallback(
            order_id=order_id,
            transaction_id=body.transaction_id,
            status=body.status,
            amount=body.amount,
            reason=body.reason,
        )
    )
    return _order_envelope(order_id)


# ---------------------------------------------------------------------------
# Inventory Router
# ---------------------------------------------------------------------------
inventory_router = APIRouter(prefix="/inventory", tags=["inventory"])


def _stock_envelope(product_id, variant) -> Envelope:
    record = current_domain.repository_for(StockRecord).get(stock_key(product_id, variant))
    return Envelope(data=stock_view(record))


@inventory_router.post("", status_code=201, response_model=Envelope)
def initialize_stock(body: InitializeStockRequest) -> Envelope:
    _process(InitializeStock(product_id=body.product_id, variant=body.variant, quantity=body.quantity))
    return _stock_envelope(body.product_id, body.variant)


@inventory_router.post("/receive", response_model=Envelope)
def receive_stock(body: ReceiveStockRequest) -> Envelope:
    _process(
        ReceiveStock(
            product_id=body.product_id,
            variant=body.variant,
            quantity=body.quantity,
            reference=body.reference,
        )
    )
    return _stock_envelope(body.product_id, body.variant)


@inventory_router.get("/{product_id}/availability", response_model=Envelope)
def check_availability(product_id: str, variant: str | None = None) -> Envelope:
    available = InventoryGuard().check_availability(product_id, variant)
    return Envelope(data={"product_id": product_id, "variant": variant or "", "available": available})


# ---------------------------------------------------------------------------
# Coupon Router
# ---------------------------------------------------------------------------
coupon_router = APIRouter(prefix="/coupons", tags=["coupons"])


def _coupon_envelope(code) -> Envelope:
    coupon = find_coupon(code)
    if coupon is None:
        raise NotFound(f"Coupon {code} not found", code=code)
    return Envelope(data=coupon_view(coupon))


@coupon_router.post("", status_code=201, response_model=Envelope)
def define_coupon(body: DefineCouponRequest) -> Envelope:
    code = _process(
        DefineCoupon(
            code=body.code,
            kind=body.kind,
            value=body.value,
            min_subtotal=body.min_subtotal,
            expires_at=body.expires_at,
        )
    )
    return _coupon_envelope(code)


@coupon_router.get("/{code}", response_model=Envelope)
def get_coupon(code: str) -> Envelope:
    return _coupon_envelope(code)


@coupon_router.delete("/{code}", response_model=Envelope)
def deactivate_coupon(code: str) -> Envelope:
    _process(DeactivateCoupon(code=code))
    return _coupon_envelope(code)

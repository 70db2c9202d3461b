"""FastAPI routes for the Commerce domain.

Buyer-facing endpoints (checkout, tracking, receipt confirmation), vendor
actions (order status, cart recovery) and the service endpoints called by
the scheduler and the event dispatcher, which require the service key.
"""

import json

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from commerce.abandoned_cart.capture import CaptureAbandonedCart, UpdateAbandonedCartContact
from commerce.abandoned_cart.recovery import RecoverAbandonedCart
from commerce.api.context import in_domain_context
from commerce.api.errors import require_service_key
from commerce.api.schemas import (
    CaptureCartRequest,
    CheckoutBody,
    CheckoutResponse,
    ConfirmReceiptRequest,
    ConfirmReceiptResponse,
    DisputeRequest,
    EventEnvelope,
    IdResponse,
    LegSchema,
    PaymentOutcomeRequest,
    PlacedOrderSchema,
    RecoverCartRequest,
    RedeemCouponRequest,
    ResolveDisputeRequest,
    RetrySweepRequest,
    StatusChangeRequest,
    StatusResponse,
    UpdateContactRequest,
)
from commerce.checkout.cart import Cart
from commerce.checkout.forms import CheckoutRequest
from commerce.checkout.orchestrator import CheckoutOrchestrator
from commerce.coupon.redemption import RedeemCoupon
from commerce.escrow.auto_release import ReleaseDueEscrows
from commerce.escrow.management import DisputeEscrow, ResolveDispute
from commerce.event_log.maintenance import TimeoutStaleEvents
from commerce.event_log.processing import ProcessEvent
from commerce.event_log.recording import dispatch_event
from commerce.event_log.retry import run_retry_sweep
from commerce.order.lifecycle import (
    CancelOrder,
    ConfirmOrder,
    MarkOrderDelivered,
    MarkOrderPacked,
    MarkOrderShipped,
    OpenDispute,
    RefundOrder,
    ResolveOrderDispute,
)
from commerce.order.payment import RecordPaymentFailure, RecordPaymentSuccess
from commerce.order.receipt import ConfirmReceipt
from commerce.order.tracking import find_order_by_tracking_token

# ---------------------------------------------------------------------------
# Checkout Router
# ---------------------------------------------------------------------------
checkout_router = APIRouter(tags=["checkout"])


@checkout_router.post("/checkout", status_code=201, response_model=CheckoutResponse)
@in_domain_context
def checkout(body: CheckoutBody):
    """Place one order per store in the cart.

    Responds 201 when at least one order was created, 409 when none was
    (for instance the first store ran out of stock).
    """
    request = CheckoutRequest(
        customer=body.customer,
        delivery=body.delivery,
        payment_method=body.payment_method,
        session_id=body.session_id,
        attribution=body.attribution,
        success_url=body.success_url,
        cancel_url=body.cancel_url,
    )
    result = CheckoutOrchestrator().place(request, Cart(body.items))

    response = CheckoutResponse(
        orders=[PlacedOrderSchema(**vars(order)) for order in result.orders],
        legs=[
            LegSchema(
                store_id=leg.store_id,
                store_name=leg.store_name,
                status=leg.status.value,
                product_name=leg.product_name,
                error=leg.error,
            )
            for leg in result.legs
        ],
        succeeded=result.succeeded,
        partially_succeeded=result.partially_succeeded,
        message=result.message,
        payment_url=result.payment_url,
        payment_error=result.payment_error,
    )
    if not result.orders:
        return JSONResponse(status_code=409, content=response.model_dump())
    return response


@checkout_router.get("/track")
@in_domain_context
def track_order(token: str = ""):
    return find_order_by_tracking_token(token)


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("/confirm-receipt", response_model=ConfirmReceiptResponse)
@in_domain_context
def confirm_receipt(body: ConfirmReceiptRequest) -> ConfirmReceiptResponse:
    result = current_domain.process(
        ConfirmReceipt(order_id=body.order_id, order_number=body.order_number, phone=body.phone),
        asynchronous=False,
    )
    dispatch_event(result["event_id"])
    return ConfirmReceiptResponse(
        order_id=result["order_id"],
        order_number=result["order_number"],
        net_amount=result["net_amount"],
    )


_SIMPLE_TRANSITIONS = {
    "confirm": ConfirmOrder,
    "pack": MarkOrderPacked,
    "ship": MarkOrderShipped,
    "deliver": MarkOrderDelivered,
}


@order_router.put("/{order_id}/status/{action}", response_model=StatusResponse)
@in_domain_context
def change_order_status(order_id: str, action: str, body: StatusChangeRequest | None = None) -> StatusResponse:
    body = body or StatusChangeRequest()

    if action in _SIMPLE_TRANSITIONS:
        current_domain.process(_SIMPLE_TRANSITIONS[action](order_id=order_id), asynchronous=False)
    elif action == "cancel":
        event_id = current_domain.process(
            CancelOrder(order_id=order_id, reason=body.reason or "Cancelled by the store"),
            asynchronous=False,
        )
        dispatch_event(event_id)
    elif action == "refund":
        current_domain.process(RefundOrder(order_id=order_id, reason=body.reason), asynchronous=False)
    elif action == "dispute":
        current_domain.process(OpenDispute(order_id=order_id, reason=body.reason), asynchronous=False)
    elif action == "resolve-dispute":
        current_domain.process(
            ResolveOrderDispute(
                order_id=order_id,
                in_favour_of_buyer=body.in_favour_of_buyer,
                reason=body.reason,
            ),
            asynchronous=False,
        )
    else:
        raise ValidationError({"action": [f"Unknown status action: {action}"]})

    return StatusResponse(status=action)


@order_router.post("/{order_id}/payment", response_model=StatusResponse, dependencies=[Depends(require_service_key)])
@in_domain_context
def record_payment_outcome(order_id: str, body: PaymentOutcomeRequest) -> StatusResponse:
    """Payment provider callback, relayed by the payment function."""
    if body.status == "paid":
        event_id = current_domain.process(
            RecordPaymentSuccess(order_id=order_id, payment_reference=body.payment_reference),
            asynchronous=False,
        )
        dispatch_event(event_id)
    else:
        current_domain.process(
            RecordPaymentFailure(order_id=order_id, reason=body.reason or "Payment declined"),
            asynchronous=False,
        )
    return StatusResponse(status=body.status)


# ---------------------------------------------------------------------------
# Abandoned Cart Router
# ---------------------------------------------------------------------------
abandoned_cart_router = APIRouter(prefix="/abandoned-carts", tags=["abandoned-carts"])


@abandoned_cart_router.post("/capture", response_model=IdResponse)
@in_domain_context
def capture_cart(body: CaptureCartRequest) -> IdResponse:
    cart_id = current_domain.process(
        CaptureAbandonedCart(
            session_id=body.session_id,
            store_id=body.store_id,
            items=json.dumps(body.items),
            currency=body.currency,
            customer_email=body.customer_email,
            customer_phone=body.customer_phone,
            customer_name=body.customer_name,
        ),
        asynchronous=False,
    )
    return IdResponse(id=cart_id)


@abandoned_cart_router.put("/contact")
@in_domain_context
def update_cart_contact(body: UpdateContactRequest):
    updated = current_domain.process(
        UpdateAbandonedCartContact(
            session_id=body.session_id,
            customer_email=body.email,
            customer_phone=body.phone,
            customer_name=body.name,
        ),
        asynchronous=False,
    )
    return {"updated": updated}


@abandoned_cart_router.post("/{cart_id}/recover")
@in_domain_context
def recover_cart(cart_id: str, body: RecoverCartRequest | None = None):
    body = body or RecoverCartRequest()
    return current_domain.process(
        RecoverAbandonedCart(
            cart_id=cart_id,
            with_discount=body.with_discount,
            discount_percent=body.discount_percent,
        ),
        asynchronous=False,
    )


# ---------------------------------------------------------------------------
# Coupon Router
# ---------------------------------------------------------------------------
coupon_router = APIRouter(prefix="/coupons", tags=["coupons"])


@coupon_router.post("/redeem")
@in_domain_context
def redeem_coupon(body: RedeemCouponRequest):
    return current_domain.process(RedeemCoupon(store_id=body.store_id, code=body.code), asynchronous=False)


# ---------------------------------------------------------------------------
# Service Router (event processor, scheduler hooks, escrow administration)
# ---------------------------------------------------------------------------
service_router = APIRouter(tags=["service"], dependencies=[Depends(require_service_key)])


@service_router.post("/process-event")
@in_domain_context
def process_event(body: EventEnvelope):
    return current_domain.process(ProcessEvent.from_envelope(body.model_dump()), asynchronous=False)


@service_router.post("/maintenance/retry-failed-events")
@in_domain_context
def retry_failed_events(body: RetrySweepRequest | None = None):
    body = body or RetrySweepRequest()
    return run_retry_sweep(batch_size=body.batch_size, worker_id=body.worker_id)


@service_router.post("/maintenance/timeout-stale-events")
@in_domain_context
def timeout_stale_events():
    timed_out = current_domain.process(TimeoutStaleEvents(), asynchronous=False)
    return {"timed_out": timed_out}


@service_router.post("/maintenance/release-escrows")
@in_domain_context
def release_due_escrows():
    released = current_domain.process(ReleaseDueEscrows(), asynchronous=False)
    return {"released": released}


@service_router.post("/escrows/{order_id}/dispute", response_model=StatusResponse)
@in_domain_context
def dispute_escrow(order_id: str, body: DisputeRequest) -> StatusResponse:
    current_domain.process(DisputeEscrow(order_id=order_id, reason=body.reason), asynchronous=False)
    return StatusResponse(status="disputed")


@service_router.post("/escrows/{order_id}/resolve", response_model=StatusResponse)
@in_domain_context
def resolve_escrow_dispute(order_id: str, body: ResolveDisputeRequest) -> StatusResponse:
    current_domain.process(
        ResolveDispute(order_id=order_id, outcome=body.outcome, reason=body.reason),
        asynchronous=False,
    )
    return StatusResponse(status=body.outcome)

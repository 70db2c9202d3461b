"""Pydantic request/response schemas for the Commerce API.

These are external contracts (anti-corruption layer), separate from
internal Protean commands.
"""

from pydantic import BaseModel, Field

from commerce.checkout.cart import CartItem
from commerce.checkout.forms import Attribution
from commerce.order.order import PaymentMethod


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------
class CheckoutBody(BaseModel):
    items: list[CartItem]
    customer: dict
    delivery: dict
    payment_method: PaymentMethod = PaymentMethod.COD
    session_id: str | None = None
    attribution: Attribution | None = None
    success_url: str | None = None
    cancel_url: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "items": [
                        {
                            "product_id": "prod-001",
                            "name": "Wax print dress",
                            "price": 15000,
                            "currency": "XOF",
                            "quantity": 1,
                            "store_id": "store-001",
                            "store_name": "Awa Couture",
                        }
                    ],
                    "customer": {"first_name": "Awa", "phone": "+221770000000"},
                    "delivery": {"method": "home", "city": "Dakar", "shipping_fee": 2000},
                    "payment_method": "cod",
                }
            ]
        }
    }


class PlacedOrderSchema(BaseModel):
    order_id: str
    order_number: str
    store_id: str
    total: float
    tracking_token: str


class LegSchema(BaseModel):
    store_id: str
    store_name: str | None = None
    status: str
    product_name: str | None = None
    error: str | None = None


class CheckoutResponse(BaseModel):
    orders: list[PlacedOrderSchema]
    legs: list[LegSchema]
    succeeded: bool
    partially_succeeded: bool
    message: str
    payment_url: str | None = None
    payment_error: str | None = None


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class ConfirmReceiptRequest(BaseModel):
    order_id: str | None = None
    order_number: str | None = None
    phone: str | None = None


class ConfirmReceiptResponse(BaseModel):
    order_id: str
    order_number: str
    net_amount: float


class StatusChangeRequest(BaseModel):
    reason: str | None = None
    in_favour_of_buyer: bool | None = None


class PaymentOutcomeRequest(BaseModel):
    status: str = Field(pattern="^(paid|failed)$")
    reason: str | None = None
    payment_reference: str | None = None


# ---------------------------------------------------------------------------
# Abandoned carts & coupons
# ---------------------------------------------------------------------------
class CaptureCartRequest(BaseModel):
    session_id: str
    store_id: str
    items: list[dict]
    currency: str = "XOF"
    customer_email: str | None = None
    customer_phone: str | None = None
    customer_name: str | None = None


class UpdateContactRequest(BaseModel):
    session_id: str
    email: str | None = None
    phone: str | None = None
    name: str | None = None


class RecoverCartRequest(BaseModel):
    with_discount: bool = False
    discount_percent: int = Field(default=10, ge=1, le=100)


class RedeemCouponRequest(BaseModel):
    store_id: str
    code: str


# ---------------------------------------------------------------------------
# Events & maintenance
# ---------------------------------------------------------------------------
class EventEnvelope(BaseModel):
    event_type: str
    aggregate_type: str | None = None
    aggregate_id: str
    store_id: str | None = None
    payload: dict = Field(default_factory=dict)


class RetrySweepRequest(BaseModel):
    batch_size: int | None = Field(default=None, ge=1)
    worker_id: str | None = None


class DisputeRequest(BaseModel):
    reason: str


class ResolveDisputeRequest(BaseModel):
    outcome: str = Field(pattern="^(release|refund)$")
    reason: str | None = None


# ---------------------------------------------------------------------------
# Generic
# ---------------------------------------------------------------------------
class StatusResponse(BaseModel):
    status: str = "ok"


class IdResponse(BaseModel):
    id: str

"""Checkout form and delivery selection validation.

Pydantic does the parsing; failures are re-raised as Protean
ValidationErrors keyed by field name so the API maps them like any other
domain rule violation.
"""

import pydantic
from protean.exceptions import ValidationError
from pydantic import BaseModel, Field, field_validator

from commerce.order.order import DeliveryMethod, PaymentMethod


def _looks_like_email(value: str) -> bool:
    if any(ch.isspace() for ch in value) or value.count("@") != 1:
        return False
    local_part, domain_part = value.split("@", 1)
    if not local_part or local_part.startswith(".") or local_part.endswith("."):
        return False
    if "." not in domain_part or domain_part.startswith(".") or domain_part.endswith("."):
        return False
    return ".." not in value


class CustomerForm(BaseModel):
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    email: str | None = Field(default=None, max_length=254)
    phone: str = Field(min_length=8, max_length=20)
    address: str | None = Field(default=None, max_length=500)
    quarter: str | None = Field(default=None, max_length=100)
    notes: str | None = Field(default=None, max_length=1000)

    model_config = {"str_strip_whitespace": True}

    @field_validator("email")
    @classmethod
    def email_is_valid(cls, value):
        if not value:
            return None
        if not _looks_like_email(value):
            raise ValueError("Invalid email address")
        return value.lower()

    @field_validator("last_name", "address", "quarter", "notes")
    @classmethod
    def blank_is_none(cls, value):
        return value or None


class DeliverySelection(BaseModel):
    method: DeliveryMethod = DeliveryMethod.HOME
    city: str | None = None
    relay_point_id: str | None = None
    shipping_fee: float = Field(default=0.0, ge=0)

    model_config = {"str_strip_whitespace": True}


class Attribution(BaseModel):
    utm_source: str | None = None
    utm_medium: str | None = None
    utm_campaign: str | None = None
    referrer: str | None = None

    @property
    def is_empty(self) -> bool:
        return not any((self.utm_source, self.utm_medium, self.utm_campaign, self.referrer))


class CheckoutRequest(BaseModel):
    customer: dict
    delivery: dict
    payment_method: PaymentMethod = PaymentMethod.COD
    session_id: str | None = None
    attribution: Attribution | None = None
    success_url: str | None = None
    cancel_url: str | None = None


def _to_domain_error(exc: pydantic.ValidationError, default_field: str) -> ValidationError:
    messages: dict[str, list[str]] = {}
    for error in exc.errors():
        field = str(error["loc"][0]) if error["loc"] else default_field
        message = error["msg"].removeprefix("Value error, ")
        messages.setdefault(field, []).append(message)
    return ValidationError(messages)


def _parse(model: type[BaseModel], data, default_field: str):
    if isinstance(data, model):
        return data
    if data is None:
        raise ValidationError({default_field: ["This field is required"]})
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as exc:
        raise _to_domain_error(exc, default_field) from exc


def validate_customer(data) -> CustomerForm:
    return _parse(CustomerForm, data, "customer")


def validate_delivery(data) -> DeliverySelection:
    """Parse the selection and check the destination matches the method."""
    delivery = _parse(DeliverySelection, data, "delivery")
    if delivery.method == DeliveryMethod.HOME and not delivery.city:
        raise ValidationError({"city": ["A delivery city is required for home delivery"]})
    if delivery.method == DeliveryMethod.RELAY and not delivery.relay_point_id:
        raise ValidationError({"relay_point_id": ["A relay point is required for relay delivery"]})
    return delivery

"""Checkout outcome — one record per store leg plus the payment step."""

from dataclasses import dataclass, field
from enum import Enum

from commerce.checkout.side_effects import SideEffectFailure


class LegStatus(Enum):
    COMMITTED = "committed"
    STOCK_CONFLICT = "stock_conflict"
    FAILED = "failed"
    NOT_ATTEMPTED = "not_attempted"


@dataclass
class PlacedOrder:
    order_id: str
    order_number: str
    store_id: str
    total: float
    tracking_token: str


@dataclass
class LegOutcome:
    store_id: str
    store_name: str | None
    status: LegStatus
    order: PlacedOrder | None = None
    product_name: str | None = None
    error: str | None = None


@dataclass
class CheckoutResult:
    legs: list[LegOutcome] = field(default_factory=list)
    payment_url: str | None = None
    payment_session_id: str | None = None
    payment_error: str | None = None
    side_effect_failures: list[SideEffectFailure] = field(default_factory=list)

    @property
    def orders(self) -> list[PlacedOrder]:
        return [leg.order for leg in self.legs if leg.status == LegStatus.COMMITTED]

    @property
    def succeeded(self) -> bool:
        return bool(self.legs) and all(leg.status == LegStatus.COMMITTED for leg in self.legs)

    @property
    def partially_succeeded(self) -> bool:
        return bool(self.orders) and not self.succeeded

    @property
    def failed_leg(self) -> LegOutcome | None:
        return next((leg for leg in self.legs if leg.status in (LegStatus.STOCK_CONFLICT, LegStatus.FAILED)), None)

    @property
    def total(self) -> float:
        return sum(order.total for order in self.orders)

    @property
    def message(self) -> str:
        failed = self.failed_leg
        if failed is None:
            count = len(self.orders)
            return f"{count} order{'s' if count != 1 else ''} placed"

        if failed.status == LegStatus.STOCK_CONFLICT:
            reason = f"Insufficient stock for {failed.product_name}"
        else:
            reason = "Your order could not be placed, please try again"

        if self.orders:
            placed = ", ".join(order.order_number for order in self.orders)
            return f"{reason}. Orders already placed: {placed}"
        return reason

"""Payment session port (abstract interface).

Online payment methods redirect the buyer to a hosted checkout page. The
provider returns the page URL for the combined total of the orders created
by one checkout.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

ONLINE_PAYMENT_METHODS = frozenset({"card", "mobile_money"})


@dataclass(frozen=True)
class PaymentSession:
    """A hosted checkout page the buyer must be sent to."""

    session_id: str
    url: str


class PaymentSessionProvider(ABC):
    """Abstract payment session provider."""

    @abstractmethod
    def create_session(
        self,
        amount: float,
        currency: str,
        order_ids: list[str],
        customer_email: str | None = None,
        success_url: str | None = None,
        cancel_url: str | None = None,
    ) -> PaymentSession:
        """Create a hosted payment session. Raises PaymentSessionError on failure."""
        ...


def requires_redirect(payment_method: str) -> bool:
    return payment_method in ONLINE_PAYMENT_METHODS

"""Fake payment session provider — records sessions for testing."""

from uuid import uuid4

from commerce.payment.port import PaymentSession, PaymentSessionProvider
from commerce.shared.errors import PaymentSessionError


class FakePaymentSessionProvider(PaymentSessionProvider):
    """Payment provider that hands out local URLs and records every request."""

    def __init__(self):
        self.sessions: list[dict] = []
        self.should_succeed = True
        self.failure_reason = "Payment provider unavailable"

    def configure(self, should_succeed: bool = True, failure_reason: str = "Payment provider unavailable"):
        """Configure the fake provider behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def create_session(
        self,
        amount: float,
        currency: str,
        order_ids: list[str],
        customer_email: str | None = None,
        success_url: str | None = None,
        cancel_url: str | None = None,
    ) -> PaymentSession:
        if not self.should_succeed:
            raise PaymentSessionError(self.failure_reason)

        session_id = f"ps-{uuid4().hex[:12]}"
        self.sessions.append(
            {
                "session_id": session_id,
                "amount": amount,
                "currency": currency,
                "order_ids": list(order_ids),
                "customer_email": customer_email,
            }
        )
        return PaymentSession(session_id=session_id, url=f"https://pay.local/checkout/{session_id}")

    def reset(self):
        self.sessions.clear()
        self.should_succeed = True
        self.failure_reason = "Payment provider unavailable"

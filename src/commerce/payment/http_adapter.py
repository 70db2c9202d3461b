"""HTTP payment session provider — calls the deployed create-checkout-session function."""

import requests
import structlog

from commerce.payment.port import PaymentSession, PaymentSessionProvider
from commerce.shared.errors import PaymentSessionError

logger = structlog.get_logger(__name__)


class HttpPaymentSessionProvider(PaymentSessionProvider):
    def __init__(self, base_url: str, service_key: str, timeout: float = 10.0, session: requests.Session | None = None):
        self.base_url = base_url.rstrip("/")
        self.service_key = service_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def create_session(
        self,
        amount: float,
        currency: str,
        order_ids: list[str],
        customer_email: str | None = None,
        success_url: str | None = None,
        cancel_url: str | None = None,
    ) -> PaymentSession:
        body = {
            "amount": amount,
            "currency": currency,
            "order_ids": list(order_ids),
            "customer_email": customer_email,
            "success_url": success_url,
            "cancel_url": cancel_url,
        }
        try:
            response = self.session.post(
                f"{self.base_url}/create-checkout-session",
                json=body,
                headers={"Authorization": f"Bearer {self.service_key}"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise PaymentSessionError(f"Checkout session request failed: {exc}") from exc

        url = data.get("url")
        if not url:
            raise PaymentSessionError(data.get("error") or "Checkout session response has no url")

        return PaymentSession(session_id=str(data.get("session_id") or data.get("id") or ""), url=url)

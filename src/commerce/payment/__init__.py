"""Payment session provider factory.

Provides get_payment_provider() / set_payment_provider() to swap implementations:
- FakePaymentSessionProvider for development and testing
- HttpPaymentSessionProvider when the functions gateway is configured
"""

from commerce.config import get_settings
from commerce.payment.fake_adapter import FakePaymentSessionProvider
from commerce.payment.port import PaymentSessionProvider

_current_provider: PaymentSessionProvider | None = None


def get_payment_provider() -> PaymentSessionProvider:
    """Return the current payment session provider."""
    global _current_provider
    if _current_provider is None:
        settings = get_settings()
        if settings.functions_configured:
            from commerce.payment.http_adapter import HttpPaymentSessionProvider

            _current_provider = HttpPaymentSessionProvider(
                settings.functions_url,
                settings.service_key,
                timeout=settings.http_timeout_seconds,
            )
        else:
            _current_provider = FakePaymentSessionProvider()
    return _current_provider


def set_payment_provider(provider: PaymentSessionProvider) -> None:
    """Override the active provider (useful for tests)."""
    global _current_provider
    _current_provider = provider


def reset_payment_provider() -> None:
    """Reset to the default provider."""
    global _current_provider
    _current_provider = None

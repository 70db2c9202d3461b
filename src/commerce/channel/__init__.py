"""Email channel registry.

Uses the fake adapter by default; the HTTP adapter is selected when the
functions gateway (FEYXA_FUNCTIONS_URL + FEYXA_SERVICE_KEY) is configured.
"""

from commerce.channel.email_port import EmailPort
from commerce.config import get_settings

_email_channel: EmailPort | None = None


def get_email_channel() -> EmailPort:
    """Return the configured email adapter (singleton)."""
    global _email_channel
    if _email_channel is None:
        settings = get_settings()
        if settings.functions_configured:
            from commerce.channel.http_email import HttpEmailAdapter

            _email_channel = HttpEmailAdapter(
                settings.functions_url,
                settings.service_key,
                timeout=settings.http_timeout_seconds,
            )
        else:
            from commerce.channel.fake_email import FakeEmailAdapter

            _email_channel = FakeEmailAdapter()
    return _email_channel


def set_email_channel(adapter: EmailPort) -> None:
    global _email_channel
    _email_channel = adapter


def reset_channels():
    """Reset the channel singleton (useful for testing)."""
    global _email_channel
    _email_channel = None

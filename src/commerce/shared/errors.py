"""Errors raised by integration adapters (HTTP functions gateway, payment provider)."""


class IntegrationError(Exception):
    """An outbound call to a collaborator service failed."""


class DispatchError(IntegrationError):
    """The event processor could not be reached or rejected the event."""


class PaymentSessionError(IntegrationError):
    """A payment session could not be created."""


class EmailDeliveryError(IntegrationError):
    """The email provider rejected or failed a message."""

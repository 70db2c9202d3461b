"""Fake email adapter that records sent emails for testing."""

from uuid import uuid4

from commerce.channel.email_port import EmailPort
from commerce.shared.errors import EmailDeliveryError


class FakeEmailAdapter(EmailPort):
    """Email adapter that records messages in memory for test assertions.

    ``configure(raise_error=True)`` simulates a provider outage (the call
    itself blows up) as opposed to a polite ``"failed"`` response.
    """

    def __init__(self):
        self.sent_emails: list[dict] = []
        self.should_succeed = True
        self.raise_error = False
        self.failure_reason = "Email delivery failed"

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Email delivery failed",
        raise_error: bool = False,
    ):
        """Configure the fake adapter behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.raise_error = raise_error

    def send(
        self,
        to: str,
        subject: str,
        body: str,
        html_body: str | None = None,
    ) -> dict:
        if self.raise_error:
            raise EmailDeliveryError(self.failure_reason)

        if not self.should_succeed:
            return {
                "message_id": None,
                "status": "failed",
                "error": self.failure_reason,
            }

        message_id = f"email-{uuid4().hex[:12]}"
        self.sent_emails.append(
            {
                "message_id": message_id,
                "to": to,
                "subject": subject,
                "body": body,
                "html_body": html_body,
            }
        )

        return {"message_id": message_id, "status": "sent"}

    def reset(self):
        """Clear sent emails (useful between tests)."""
        self.sent_emails.clear()
        self.should_succeed = True
        self.raise_error = False
        self.failure_reason = "Email delivery failed"

"""Email channel port — order confirmations and abandoned-cart recovery mails."""

from abc import ABC, abstractmethod


class EmailPort(ABC):
    """Abstract interface for transactional email adapters.

    Adapters report delivery problems in the returned dict rather than raising,
    except when the provider cannot be reached at all.
    """

    @abstractmethod
    def send(self, to: str, subject: str, body: str, html_body: str | None = None) -> dict:
        """Send one message.

        Returns:
            dict with keys: message_id, status ("sent" or "failed"), error (optional)
        """
        ...

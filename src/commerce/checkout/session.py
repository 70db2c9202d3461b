"""Checkout session — records the cart as abandoned while the buyer is on checkout.

A snapshot per store is captured shortly after the checkout page opens.
Contact details are patched in as the buyer types, debounced so only the
last edit in a burst is written. Leaving the page cancels whatever is
still pending; placing the orders completes the rows.

Timer callbacks run outside the request that created the session, so each
one enters the domain context explicitly. Failures are logged only: the
recorder must never get in the way of the checkout itself.
"""

import json
import threading

import structlog

from commerce.abandoned_cart.capture import CaptureAbandonedCart, CompleteAbandonedCarts, UpdateAbandonedCartContact
from commerce.checkout.cart import Cart
from commerce.checkout.timers import ThreadingTimerFactory, TimerFactory, TimerHandle

logger = structlog.get_logger(__name__)

CAPTURE_DELAY_SECONDS = 2.0
CONTACT_DEBOUNCE_SECONDS = 1.5


class CheckoutSession:
    def __init__(
        self,
        session_id: str,
        cart: Cart,
        domain,
        timers: TimerFactory | None = None,
        capture_delay: float = CAPTURE_DELAY_SECONDS,
        contact_delay: float = CONTACT_DEBOUNCE_SECONDS,
    ):
        self.session_id = session_id
        self.cart = cart
        self.domain = domain
        self.timers = timers or ThreadingTimerFactory()
        self.capture_delay = capture_delay
        self.contact_delay = contact_delay

        self._lock = threading.Lock()
        self._capture_timer: TimerHandle | None = None
        self._contact_timer: TimerHandle | None = None
        self._contact: dict = {}
        self._closed = False

    # -------------------------------------------------------------------
    # Page lifecycle
    # -------------------------------------------------------------------
    def start(self) -> bool:
        """Schedule the snapshot capture. Returns False for an empty cart."""
        if self.cart.is_empty:
            return False
        with self._lock:
            if self._closed:
                return False
            self._cancel(self._capture_timer)
            self._capture_timer = self.timers.schedule(self.capture_delay, self._capture)
        return True

    def update_contact(self, email: str | None = None, phone: str | None = None, name: str | None = None) -> bool:
        """Debounce a contact patch. Returns False when nothing would be written."""
        contact = {"email": email or None, "phone": phone or None, "name": name or None}
        with self._lock:
            if self._closed:
                return False
            self._cancel(self._contact_timer)
            self._contact_timer = None
            self._contact = contact
            if not any(contact.values()):
                return False
            self._contact_timer = self.timers.schedule(self.contact_delay, self._flush_contact)
        return True

    def mark_completed(self) -> None:
        self.close()
        self._run("complete", CompleteAbandonedCarts(session_id=self.session_id))

    def close(self) -> None:
        """Cancel every pending timer; nothing fires after this returns."""
        with self._lock:
            self._closed = True
            self._cancel(self._capture_timer)
            self._cancel(self._contact_timer)
            self._capture_timer = None
            self._contact_timer = None

    @property
    def closed(self) -> bool:
        return self._closed

    # -------------------------------------------------------------------
    # Timer callbacks
    # -------------------------------------------------------------------
    def _capture(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._capture_timer = None
            contact = dict(self._contact)

        for store_id, items in self.cart.items_by_store().items():
            self._run(
                "capture",
                CaptureAbandonedCart(
                    session_id=self.session_id,
                    store_id=store_id,
                    items=json.dumps([item.model_dump() for item in items]),
                    currency=items[0].currency,
                    customer_email=contact.get("email"),
                    customer_phone=contact.get("phone"),
                    customer_name=contact.get("name"),
                ),
            )

    def _flush_contact(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._contact_timer = None
            contact = dict(self._contact)

        self._run(
            "contact",
            UpdateAbandonedCartContact(
                session_id=self.session_id,
                customer_email=contact.get("email"),
                customer_phone=contact.get("phone"),
                customer_name=contact.get("name"),
            ),
        )

    def _run(self, step: str, command) -> None:
        try:
            with self.domain.domain_context():
                self.domain.process(command, asynchronous=False)
        except Exception as exc:
            logger.warning("Abandoned cart recording failed", step=step, error=str(exc))

    @staticmethod
    def _cancel(timer: TimerHandle | None) -> None:
        if timer is not None:
            timer.cancel()

import pytest
from commerce.channel import set_email_channel
from commerce.channel.fake_email import FakeEmailAdapter
from commerce.checkout.timers import TimerFactory, TimerHandle
from commerce.event_log.dispatch import set_dispatcher
from commerce.event_log.dispatch.fake_dispatcher import FakeEventDispatcher
from commerce.event_log.dispatch.local_dispatcher import LocalEventDispatcher
from commerce.payment import set_payment_provider
from commerce.payment.fake_adapter import FakePaymentSessionProvider
from commerce.stock import set_stock_guard
from commerce.stock.memory_adapter import InMemoryStockGuard
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def commerce_bed():
    from commerce.domain import commerce

    bed = DomainFixture(commerce)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(commerce_bed):
    with commerce_bed.domain_context():
        yield


@pytest.fixture(autouse=True)
def stock():
    guard = InMemoryStockGuard()
    set_stock_guard(guard)
    return guard


@pytest.fixture(autouse=True)
def payments():
    provider = FakePaymentSessionProvider()
    set_payment_provider(provider)
    return provider


@pytest.fixture(autouse=True)
def dispatcher():
    fake = FakeEventDispatcher()
    set_dispatcher(fake)
    return fake


@pytest.fixture(autouse=True)
def email():
    adapter = FakeEmailAdapter()
    set_email_channel(adapter)
    return adapter


@pytest.fixture()
def local_dispatch():
    """Process dispatched events in-process instead of recording them."""
    set_dispatcher(LocalEventDispatcher())


class _ManualHandle(TimerHandle):
    def __init__(self, due_at, callback):
        self.due_at = due_at
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualTimerFactory(TimerFactory):
    """Fires callbacks only when the clock is advanced."""

    def __init__(self):
        self.now = 0.0
        self._handles = []

    def schedule(self, delay, callback):
        handle = _ManualHandle(self.now + delay, callback)
        self._handles.append(handle)
        return handle

    def advance(self, seconds):
        """Move the clock forward and fire every timer that became due. Returns how many fired."""
        self.now += seconds
        self._handles = [h for h in self._handles if not h.cancelled]
        due = sorted((h for h in self._handles if h.due_at <= self.now), key=lambda h: h.due_at)
        self._handles = [h for h in self._handles if h.due_at > self.now]
        fired = 0
        for handle in due:
            if not handle.cancelled:
                handle.callback()
                fired += 1
        return fired

    @property
    def pending(self):
        return sum(1 for h in self._handles if not h.cancelled)


@pytest.fixture()
def timers():
    return ManualTimerFactory()

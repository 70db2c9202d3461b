import os
from pathlib import Path

import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Pytest hook to run before collecting tests.

    Fetch and activate the domain by pushing the associated domain_context. The activated domain can then be referred to elsewhere as `current_domain`
    """
    os.environ["PROTEAN_ENV"] = session.config.option.env

    # Tests never talk to the deployed functions gateway
    os.environ.pop("FEYXA_FUNCTIONS_URL", None)
    os.environ["FEYXA_SERVICE_KEY"] = "test-service-key"

    from commerce.domain import commerce

    commerce.init()
    commerce.domain_context().push()


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = Path(item.fspath)

        if "/domain/" in str(test_path):
            item.add_marker(pytest.mark.domain)
        elif "/application/" in str(test_path):
            item.add_marker(pytest.mark.application)
        elif "/integration/" in str(test_path):
            item.add_marker(pytest.mark.integration)
            # Integration tests are often slower
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture(scope="session", autouse=True)
def setup_db(request):
    from commerce.domain import commerce
    from commerce.utils.db import drop_db, setup_db

    setup_db(commerce)

    yield

    drop_db(commerce)


@pytest.fixture(autouse=True)
def run_around_tests():
    """Fixture to automatically cleanup infrastructure after every test"""
    yield

    from commerce.channel import reset_channels
    from commerce.event_log.dispatch import reset_dispatcher
    from commerce.payment import reset_payment_provider
    from commerce.stock import reset_stock_guard
    from protean import current_domain

    # Clear all databases
    for _, provider in current_domain.providers.items():
        provider._data_reset()

    # Drain event stores
    current_domain.event_store.store._data_reset()

    # Forget adapters swapped in by the test
    reset_stock_guard()
    reset_payment_provider()
    reset_dispatcher()
    reset_channels()

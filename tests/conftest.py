import os
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from protean.integrations.pytest import DomainFixture


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Select the Protean config environment before any domain is imported."""
    os.environ["PROTEAN_ENV"] = session.config.option.env


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


@pytest.fixture(scope="session")
def ordering_bed():
    from ordering.domain import ordering

    bed = DomainFixture(ordering)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(ordering_bed):
    with ordering_bed.domain_context():
        yield


@pytest.fixture(autouse=True)
def run_around_tests(_ctx):
    """Fixture to automatically cleanup infrastructure after every test"""
    yield

    from protean import current_domain

    # Clear all databases
    for _, provider in current_domain.providers.items():
        provider._data_reset()

    # Drain event stores
    current_domain.event_store.store._data_reset()


# ---------------------------------------------------------------------------
# API fixtures
# ---------------------------------------------------------------------------
ALICE_TOKEN = "token-alice"
BOB_TOKEN = "token-bob"
ADMIN_TOKEN = "token-admin"


@pytest.fixture()
def identity():
    from identity.provider.memory import InMemoryIdentityProvider
    from identity.provider.port import Identity

    provider = InMemoryIdentityProvider()
    provider.register(
        ALICE_TOKEN,
        Identity(
            user_id="user-alice",
            name="Alice",
            email="alice@example.com",
            phone_number="+33 1 23 45 67 89",
            delivery_address="1 Rue de Rivoli, Paris",
        ),
    )
    provider.register(BOB_TOKEN, Identity(user_id="user-bob", name="Bob", email="bob@example.com"))
    provider.register(ADMIN_TOKEN, Identity(user_id="admin-1", role="admin", name="Admin"))
    return provider


@pytest.fixture()
def stock_levels():
    from ordering.stock.memory import InMemoryStockLevels

    return InMemoryStockLevels({"prod-001": 3, "prod-002": 25, "prod-003": 9, "prod-004": 10})


@pytest.fixture()
def processors():
    from payments.gateway import ProcessorRegistry

    return ProcessorRegistry.fake()


@pytest.fixture()
def services(identity, stock_levels, processors):
    from composition import build_services
    from settings import Settings

    return build_services(
        Settings(frontend_url="https://shop.example.com"),
        identity=identity,
        stock_levels=stock_levels,
        processors=processors,
    )


@pytest.fixture()
def client(services):
    from composition import install
    from ordering.api.routes import order_router
    from payments.api.routes import payment_router
    from shared.http import register_error_handlers

    app = FastAPI()
    register_error_handlers(app)
    install(app, services)
    app.include_router(order_router)
    app.include_router(payment_router)
    return TestClient(app)

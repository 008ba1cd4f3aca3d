import os

import pytest


@pytest.fixture(scope="session")
def _commerce_domain(request):
    """Initialize the commerce domain once per session."""
    os.environ["PROTEAN_ENV"] = request.config.option.env

    from commerce.domain import commerce

    commerce.init()
    return commerce


@pytest.fixture(scope="session", autouse=True)
def setup_db(_commerce_domain):
    from commerce.utils.db import drop_db, setup_db

    setup_db(_commerce_domain)

    yield

    drop_db(_commerce_domain)


@pytest.fixture(autouse=True)
def run_around_tests(_commerce_domain):
    """Push domain context before each test, cleanup after."""
    from commerce.catalogue import reset_catalogue
    from commerce.gateway import reset_gateway
    from commerce.notifications import reset_notifier

    ctx = _commerce_domain.domain_context()
    ctx.push()

    yield

    from protean import current_domain

    for _, provider in current_domain.providers.items():
        provider._data_reset()

    for _, broker in current_domain.brokers.items():
        broker._data_reset()

    current_domain.event_store.store._data_reset()
    ctx.pop()

    reset_catalogue()
    reset_gateway()
    reset_notifier()


@pytest.fixture()
def catalogue():
    from commerce.catalogue import get_catalogue

    return get_catalogue()


@pytest.fixture()
def gateway():
    from commerce.gateway import get_gateway

    return get_gateway()


@pytest.fixture()
def notifier():
    from commerce.notifications import get_notifier

    return get_notifier()


@pytest.fixture()
def stock_product(catalogue):
    """Register a catalogue product and initialize its stock counter."""
    from protean import current_domain

    from commerce.inventory.stocking import InitializeStock

    def _stock(product_id="P1", price=500.0, quantity=5, name=None, variants=None, variant=None):
        catalogue.add_product(
            product_id=product_id,
            name=name or f"Product {product_id}",
            sku=f"SKU-{product_id}",
            price=price,
            current_stock=quantity,
            variants=variants,
        )
        current_domain.process(
            InitializeStock(product_id=product_id, variant=variant, quantity=quantity),
            asynchronous=False,
        )

    return _stock

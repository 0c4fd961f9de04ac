import json

import pytest
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def fulfillment_bed():
    from fulfillment.domain import fulfillment

    bed = DomainFixture(fulfillment)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(fulfillment_bed):
    with fulfillment_bed.domain_context():
        yield


@pytest.fixture(autouse=True)
def run_around_tests(_ctx):
    """Start every test with empty stores and fresh adapters."""
    from fulfillment.orders import reset_order_ledger
    from fulfillment.providers import reset_provider_directory

    reset_order_ledger()
    reset_provider_directory()

    yield

    from protean import current_domain

    for _, provider in current_domain.providers.items():
        provider._data_reset()
    current_domain.event_store.store._data_reset()


@pytest.fixture()
def ledger():
    from fulfillment.orders import get_order_ledger

    return get_order_ledger()


@pytest.fixture()
def providers():
    from fulfillment.providers import get_provider_directory

    return get_provider_directory()


@pytest.fixture()
def paid_order(ledger):
    """Register a paid, confirmed order with two items (qty 3 and qty 5)."""
    return ledger.register_order(
        "ord-001",
        items=[
            {"id": "oi-1", "quantity": 3, "sku": "SKU-001", "weight": 0.5},
            {"id": "oi-2", "quantity": 5, "sku": "SKU-002", "weight": 1.0},
        ],
        shipping_address={
            "first_name": "Ada",
            "last_name": "Lovelace",
            "address_line_1": "12 Analytical Way",
            "city": "London",
            "postal_code": "N1 9GU",
            "country": "GB",
        },
    )


@pytest.fixture()
def carrier(providers):
    """An active provider that accepts UPS-style tracking numbers."""
    return providers.register_provider(
        "prov-ups",
        "UPS",
        code="UPS",
        tracking_url="https://track.example.com/{tracking_number}",
        tracking_number_pattern=r"1Z[0-9A-Z]{16}",
    )


@pytest.fixture()
def new_fulfillment(paid_order):
    """Factory that creates a fulfillment on ``ord-001`` and returns its id."""
    from fulfillment.fulfillment.creation import CreateFulfillment
    from protean import current_domain

    def _create(items=None, **fields):
        items = items or [{"order_item_id": "oi-1", "quantity": 1}]
        command = CreateFulfillment(order_id="ord-001", items=json.dumps(items), **fields)
        return current_domain.process(command, asynchronous=False)

    return _create

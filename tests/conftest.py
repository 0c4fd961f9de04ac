import os

import pytest

# Test layer directory → marker
LAYER_MARKERS = {
    "domain": "domain",
    "application": "application",
    "bdd": "bdd",
    "integration": "integration",
}


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Protean config environment (domain.toml overlay) to run tests against",
    )


def pytest_sessionstart(session):
    """Select the config overlay and the in-memory adapters before the domain is imported."""
    os.environ["PROTEAN_ENV"] = session.config.option.env
    os.environ.setdefault("ORDER_ADAPTER", "memory")
    os.environ.setdefault("SHIPPING_PROVIDER_ADAPTER", "memory")


def pytest_collection_modifyitems(config, items):
    for item in items:
        layer = next((part for part in item.path.parts if part in LAYER_MARKERS), None)
        if layer is None:
            continue
        item.add_marker(getattr(pytest.mark, LAYER_MARKERS[layer]))
        # HTTP round trips through TestClient
        if layer == "integration" and item.get_closest_marker("fast") is None:
            item.add_marker(pytest.mark.slow)

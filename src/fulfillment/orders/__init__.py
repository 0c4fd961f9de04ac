"""Order ledger adapter abstraction — pluggable access to the Ordering system."""

import os

_ledger_instance = None


def get_order_ledger():
    """Return the configured order ledger adapter (singleton).

    Uses the in-memory ledger by default. In production, configure via
    ORDER_ADAPTER environment variable.
    """
    global _ledger_instance
    if _ledger_instance is None:
        adapter = os.environ.get("ORDER_ADAPTER", "memory")
        if adapter == "memory":
            from fulfillment.orders.fake_adapter import InMemoryOrderLedger

            _ledger_instance = InMemoryOrderLedger()
        else:
            raise ValueError(f"Unknown order adapter: {adapter}")
    return _ledger_instance


def reset_order_ledger():
    """Reset the order ledger singleton (useful for testing)."""
    global _ledger_instance
    _ledger_instance = None

"""In-memory order ledger — deterministic order store for testing and development.

Claims are serialized with a lock so that two concurrent fulfillment requests
for the same order item cannot both pass the pending-quantity check.
"""

import threading

from protean.exceptions import InvalidOperationError

from fulfillment.orders.port import (
    OrderItemRecord,
    OrderPort,
    OrderRecord,
    OrderStatus,
    PaymentStatus,
)


class InMemoryOrderLedger(OrderPort):
    """Order ledger held in process memory."""

    def __init__(self):
        self._orders: dict[str, OrderRecord] = {}
        self._items: dict[str, OrderItemRecord] = {}
        self._lock = threading.Lock()
        self.status_updates: list[tuple[str, str]] = []

    def register_order(
        self,
        order_id: str,
        items: list[dict],
        status: str = OrderStatus.CONFIRMED.value,
        payment_status: str = PaymentStatus.PAID.value,
        shipping_address: dict | None = None,
    ) -> OrderRecord:
        """Register an order and its items.

        Each item dict needs ``id`` and ``quantity``; ``fulfilled_quantity``,
        ``sku`` and ``weight`` are optional.
        """
        order_items = [
            OrderItemRecord(
                id=item["id"],
                order_id=order_id,
                quantity=item["quantity"],
                fulfilled_quantity=item.get("fulfilled_quantity", 0),
                sku=item.get("sku"),
                weight=item.get("weight"),
            )
            for item in items
        ]
        order = OrderRecord(
            id=order_id,
            status=status,
            payment_status=payment_status,
            items=order_items,
            shipping_address=shipping_address,
        )
        with self._lock:
            self._orders[order_id] = order
            for item in order_items:
                self._items[item.id] = item
        return order

    def find_order_by_id(self, order_id: str) -> OrderRecord | None:
        return self._orders.get(str(order_id))

    def find_order_item_by_id(self, order_item_id: str) -> OrderItemRecord | None:
        return self._items.get(str(order_item_id))

    def update_order_status(self, order_id: str, status: str) -> None:
        order = self._orders.get(str(order_id))
        if order is None:
            return
        order.status = status
        self.status_updates.append((order.id, status))

    def claim_quantities(self, claims: dict[str, int]) -> None:
        with self._lock:
            for order_item_id, quantity in claims.items():
                item = self._items.get(order_item_id)
                if item is None or quantity > item.pending_quantity:
                    available = item.pending_quantity if item else 0
                    raise InvalidOperationError(
                        f"Cannot fulfill {quantity} items. Only {available} items are available for fulfillment"
                    )
            for order_item_id, quantity in claims.items():
                self._items[order_item_id].fulfilled_quantity += quantity

    def release_quantities(self, claims: dict[str, int]) -> None:
        with self._lock:
            for order_item_id, quantity in claims.items():
                item = self._items.get(order_item_id)
                if item is not None:
                    item.fulfilled_quantity = max(0, item.fulfilled_quantity - quantity)

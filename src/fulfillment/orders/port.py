"""Order port — interface to the Ordering system's order item ledger.

Fulfillment only reads orders and order items, claims quantities against
order items, and pushes order status changes back. Adapters are swapped via
configuration.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum


class OrderStatus(Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"
    RETURNED = "Returned"
    REFUNDED = "Refunded"


class PaymentStatus(Enum):
    PENDING = "Pending"
    PAID = "Paid"
    PARTIALLY_PAID = "Partially_Paid"
    FAILED = "Failed"
    REFUNDED = "Refunded"


@dataclass
class OrderItemRecord:
    """Snapshot of one order line as seen by fulfillment."""

    id: str
    order_id: str
    quantity: int
    fulfilled_quantity: int = 0
    sku: str | None = None
    weight: float | None = None

    @property
    def pending_quantity(self) -> int:
        return self.quantity - self.fulfilled_quantity


@dataclass
class OrderRecord:
    """Snapshot of an order as seen by fulfillment."""

    id: str
    status: str
    payment_status: str
    items: list[OrderItemRecord] = field(default_factory=list)
    shipping_address: dict | None = None

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.PAID.value

    @property
    def is_cancelled(self) -> bool:
        return self.status == OrderStatus.CANCELLED.value

    @property
    def is_refunded(self) -> bool:
        return self.status == OrderStatus.REFUNDED.value or self.payment_status == PaymentStatus.REFUNDED.value

    @property
    def is_fully_fulfilled(self) -> bool:
        return bool(self.items) and all(item.pending_quantity <= 0 for item in self.items)

    @property
    def fulfillment_blocker(self) -> str | None:
        """Why no new fulfillment may be created for this order, or None."""
        if not self.is_paid:
            return "Order must be paid before it can be fulfilled"
        if self.is_cancelled:
            return "Cannot fulfill a cancelled order"
        if self.is_refunded:
            return "Cannot fulfill a refunded order"
        if self.is_fully_fulfilled:
            return "Order is already fully fulfilled"
        return None

    @property
    def can_create_fulfillment(self) -> bool:
        return self.fulfillment_blocker is None


class OrderPort(ABC):
    """Abstract interface for order ledger adapters."""

    @abstractmethod
    def find_order_by_id(self, order_id: str) -> OrderRecord | None:
        """Return the order with its items, or None if it does not exist."""
        ...

    @abstractmethod
    def find_order_item_by_id(self, order_item_id: str) -> OrderItemRecord | None:
        """Return a single order item, or None if it does not exist."""
        ...

    @abstractmethod
    def update_order_status(self, order_id: str, status: str) -> None:
        """Persist a new status on the order."""
        ...

    @abstractmethod
    def claim_quantities(self, claims: dict[str, int]) -> None:
        """Atomically add ``claims`` (order_item_id -> quantity) to fulfilled quantities.

        Either every claim fits within its item's pending quantity and all are
        applied, or none is applied and InvalidOperationError is raised.
        """
        ...

    @abstractmethod
    def release_quantities(self, claims: dict[str, int]) -> None:
        """Give previously claimed quantities back to their order items."""
        ...

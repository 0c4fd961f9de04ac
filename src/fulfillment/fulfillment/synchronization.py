"""Status synchronization rules.

Pure derivations that keep fulfillment, item and order statuses consistent:

    items      → fulfillment   (derive_status_from_items)
    tracking   → fulfillment   (derive_status_from_tracking)
    fulfillments → order       (derive_order_status)

Each function takes plain status values and returns the status that should
be written, or None when nothing needs to change. Callers persist the result.
"""

from fulfillment.fulfillment.statuses import (
    COMPLETED_STATUSES,
    FULFILLMENT_PROGRESSION,
    ITEM_PROGRESSION,
    TERMINAL_FULFILLMENT_STATUSES,
    TRACKING_TO_FULFILLMENT,
    FulfillmentItemStatus,
    FulfillmentStatus,
    TrackingStatus,
)
from fulfillment.orders.port import OrderStatus


def _item_reached(status: FulfillmentItemStatus, level: FulfillmentItemStatus) -> bool:
    # Returned items have been through the whole pipeline
    if status == FulfillmentItemStatus.RETURNED:
        return True
    return status in ITEM_PROGRESSION and ITEM_PROGRESSION[status] >= ITEM_PROGRESSION[level]


def derive_status_from_items(
    current_status: str, item_statuses: list[str], has_tracking_number: bool = True
) -> str | None:
    """Fulfillment status implied by the statuses of its items.

    The terminal-most condition is checked first. Derived statuses never move
    a fulfillment backwards and never leave a terminal status. Without a
    tracking number the derivation stops at PACKED.
    """
    if not item_statuses:
        return None

    current = FulfillmentStatus(current_status)
    if current in TERMINAL_FULFILLMENT_STATUSES:
        return None

    statuses = [FulfillmentItemStatus(s) for s in item_statuses]

    if all(s == FulfillmentItemStatus.DELIVERED for s in statuses):
        target = FulfillmentStatus.DELIVERED
    elif all(_item_reached(s, FulfillmentItemStatus.SHIPPED) for s in statuses):
        target = FulfillmentStatus.SHIPPED
    elif all(_item_reached(s, FulfillmentItemStatus.PACKED) for s in statuses):
        target = FulfillmentStatus.PACKED
    elif all(_item_reached(s, FulfillmentItemStatus.PICKED) for s in statuses) and current == FulfillmentStatus.PENDING:
        target = FulfillmentStatus.PROCESSING
    else:
        return None

    # Shipping always needs a tracking number
    if not has_tracking_number and target in (FulfillmentStatus.SHIPPED, FulfillmentStatus.DELIVERED):
        target = FulfillmentStatus.PACKED

    if FULFILLMENT_PROGRESSION[target] <= FULFILLMENT_PROGRESSION[current]:
        return None
    return target.value


def derive_status_from_tracking(current_status: str, tracking_status: str) -> str | None:
    """Fulfillment status implied by a carrier tracking event.

    Only pickup, transit, out-for-delivery and delivery events move the
    fulfillment; everything else is informational.
    """
    current = FulfillmentStatus(current_status)
    if current in TERMINAL_FULFILLMENT_STATUSES:
        return None

    target = TRACKING_TO_FULFILLMENT.get(TrackingStatus(tracking_status))
    if target is None or target == current:
        return None
    return target.value


def derive_order_status(current_order_status: str, fulfillment_statuses: list[str]) -> str | None:
    """Order status implied by the set of its fulfillments."""
    if not fulfillment_statuses:
        return None

    statuses = [FulfillmentStatus(s) for s in fulfillment_statuses]

    if all(s == FulfillmentStatus.DELIVERED for s in statuses):
        target = OrderStatus.DELIVERED
    elif all(s in (FulfillmentStatus.CANCELLED, FulfillmentStatus.RETURNED) for s in statuses):
        target = OrderStatus.CANCELLED
    elif any(s not in COMPLETED_STATUSES and s != FulfillmentStatus.CANCELLED for s in statuses):
        target = OrderStatus.PROCESSING
    else:
        return None

    if target.value == current_order_status:
        return None
    return target.value

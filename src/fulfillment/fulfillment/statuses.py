"""Status enums and transition tables for fulfillments, items and tracking events."""

from enum import Enum


class FulfillmentStatus(Enum):
    PENDING = "Pending"
    PROCESSING = "Processing"
    PACKED = "Packed"
    SHIPPED = "Shipped"
    IN_TRANSIT = "In_Transit"
    OUT_FOR_DELIVERY = "Out_For_Delivery"
    DELIVERED = "Delivered"
    FAILED = "Failed"
    CANCELLED = "Cancelled"
    RETURNED = "Returned"


class FulfillmentItemStatus(Enum):
    PENDING = "Pending"
    PICKED = "Picked"
    PACKED = "Packed"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    RETURNED = "Returned"
    DAMAGED = "Damaged"
    MISSING = "Missing"
    CANCELLED = "Cancelled"


class TrackingStatus(Enum):
    LABEL_CREATED = "Label_Created"
    PICKUP_SCHEDULED = "Pickup_Scheduled"
    PICKED_UP = "Picked_Up"
    IN_TRANSIT = "In_Transit"
    OUT_FOR_DELIVERY = "Out_For_Delivery"
    DELIVERED = "Delivered"
    FAILED_ATTEMPT = "Failed_Attempt"
    EXCEPTION = "Exception"
    RETURNED = "Returned"
    LOST = "Lost"


class PriorityLevel(Enum):
    LOW = "Low"
    NORMAL = "Normal"
    HIGH = "High"
    URGENT = "Urgent"


class PackagingType(Enum):
    ENVELOPE = "Envelope"
    BOX = "Box"
    CRATE = "Crate"
    PALLET = "Pallet"
    CUSTOM = "Custom"


# ---------------------------------------------------------------------------
# Fulfillment state machine
# ---------------------------------------------------------------------------
_AFTER_SHIPMENT = {
    FulfillmentStatus.IN_TRANSIT,
    FulfillmentStatus.OUT_FOR_DELIVERY,
    FulfillmentStatus.DELIVERED,
    FulfillmentStatus.FAILED,
    FulfillmentStatus.RETURNED,
}

FULFILLMENT_TRANSITIONS = {
    FulfillmentStatus.PENDING: {FulfillmentStatus.PROCESSING, FulfillmentStatus.PACKED, FulfillmentStatus.CANCELLED},
    FulfillmentStatus.PROCESSING: {FulfillmentStatus.PACKED, FulfillmentStatus.SHIPPED, FulfillmentStatus.CANCELLED},
    FulfillmentStatus.PACKED: {FulfillmentStatus.SHIPPED, FulfillmentStatus.CANCELLED},
    FulfillmentStatus.SHIPPED: set(_AFTER_SHIPMENT),
    FulfillmentStatus.IN_TRANSIT: _AFTER_SHIPMENT - {FulfillmentStatus.IN_TRANSIT},
    FulfillmentStatus.OUT_FOR_DELIVERY: _AFTER_SHIPMENT - {FulfillmentStatus.OUT_FOR_DELIVERY},
    FulfillmentStatus.DELIVERED: set(),  # terminal
    FulfillmentStatus.CANCELLED: set(),  # terminal
    FulfillmentStatus.RETURNED: set(),  # terminal
    FulfillmentStatus.FAILED: set(),  # terminal
}

TERMINAL_FULFILLMENT_STATUSES = {
    FulfillmentStatus.DELIVERED,
    FulfillmentStatus.CANCELLED,
    FulfillmentStatus.RETURNED,
    FulfillmentStatus.FAILED,
}

CANCELLABLE_STATUSES = {
    FulfillmentStatus.PENDING,
    FulfillmentStatus.PROCESSING,
    FulfillmentStatus.PACKED,
}

ACTIVE_STATUSES = {
    FulfillmentStatus.PENDING,
    FulfillmentStatus.PROCESSING,
    FulfillmentStatus.PACKED,
    FulfillmentStatus.SHIPPED,
    FulfillmentStatus.IN_TRANSIT,
    FulfillmentStatus.OUT_FOR_DELIVERY,
}

# Fulfillments in these statuses are finished for reporting purposes
COMPLETED_STATUSES = {FulfillmentStatus.DELIVERED, FulfillmentStatus.RETURNED}

# Position along the happy path, used to keep derived transitions moving forward
FULFILLMENT_PROGRESSION = {
    FulfillmentStatus.PENDING: 0,
    FulfillmentStatus.PROCESSING: 1,
    FulfillmentStatus.PACKED: 2,
    FulfillmentStatus.SHIPPED: 3,
    FulfillmentStatus.IN_TRANSIT: 4,
    FulfillmentStatus.OUT_FOR_DELIVERY: 5,
    FulfillmentStatus.DELIVERED: 6,
}


# ---------------------------------------------------------------------------
# Item state machine
# ---------------------------------------------------------------------------
ITEM_PROGRESSION = {
    FulfillmentItemStatus.PENDING: 0,
    FulfillmentItemStatus.PICKED: 1,
    FulfillmentItemStatus.PACKED: 2,
    FulfillmentItemStatus.SHIPPED: 3,
    FulfillmentItemStatus.DELIVERED: 4,
}

ITEM_SIDE_BRANCHES = {
    FulfillmentItemStatus.RETURNED,
    FulfillmentItemStatus.DAMAGED,
    FulfillmentItemStatus.MISSING,
    FulfillmentItemStatus.CANCELLED,
}

TERMINAL_ITEM_STATUSES = set(ITEM_SIDE_BRANCHES)


def can_transition_item(current: FulfillmentItemStatus, target: FulfillmentItemStatus) -> bool:
    """Forward along the happy path, or sideways into a problem/closing status."""
    if current in TERMINAL_ITEM_STATUSES:
        return False
    if current == FulfillmentItemStatus.DELIVERED:
        return target == FulfillmentItemStatus.RETURNED
    if target in ITEM_SIDE_BRANCHES:
        return True
    return ITEM_PROGRESSION[target] > ITEM_PROGRESSION[current]


# ---------------------------------------------------------------------------
# Tracking statuses
# ---------------------------------------------------------------------------
EXCEPTION_TRACKING_STATUSES = {
    TrackingStatus.EXCEPTION,
    TrackingStatus.FAILED_ATTEMPT,
    TrackingStatus.LOST,
}

TRACKING_TO_FULFILLMENT = {
    TrackingStatus.PICKED_UP: FulfillmentStatus.SHIPPED,
    TrackingStatus.IN_TRANSIT: FulfillmentStatus.IN_TRANSIT,
    TrackingStatus.OUT_FOR_DELIVERY: FulfillmentStatus.OUT_FOR_DELIVERY,
    TrackingStatus.DELIVERED: FulfillmentStatus.DELIVERED,
}

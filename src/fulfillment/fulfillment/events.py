"""Fulfillment domain events — immutable facts about fulfillment state changes.

All events are past tense and versioned. Status values are carried as their
string representation.
"""

from protean.fields import Boolean, DateTime, Identifier, Integer, String, Text

from fulfillment.domain import fulfillment


@fulfillment.event(part_of="Fulfillment")
class FulfillmentCreated:
    """A fulfillment was created for some of an order's items."""

    __version__ = 1

    fulfillment_id = Identifier(required=True)
    fulfillment_number = String(required=True)
    order_id = Identifier(required=True)
    items = Text(required=True)  # JSON list of {order_item_id, quantity}
    item_count = Integer(required=True)
    shipping_provider_id = Identifier()
    created_at = DateTime(required=True)


@fulfillment.event(part_of="Fulfillment")
class FulfillmentDetailsUpdated:
    """Descriptive fields of a fulfillment were changed."""

    __version__ = 1

    fulfillment_id = Identifier(required=True)
    changed_fields = Text(required=True)  # JSON list of field names
    updated_at = DateTime(required=True)


@fulfillment.event(part_of="Fulfillment")
class FulfillmentStatusChanged:
    """A fulfillment moved to a new status."""

    __version__ = 1

    fulfillment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    source = String(required=True)  # manual, items, tracking
    changed_at = DateTime(required=True)


@fulfillment.event(part_of="Fulfillment")
class TrackingNumberAssigned:
    """A carrier tracking number was attached and the fulfillment shipped."""

    __version__ = 1

    fulfillment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    tracking_number = String(required=True)
    shipping_provider_id = Identifier()
    shipped_at = DateTime(required=True)


@fulfillment.event(part_of="Fulfillment")
class TrackingEventRecorded:
    """A carrier milestone was appended to the fulfillment's tracking history."""

    __version__ = 1

    fulfillment_id = Identifier(required=True)
    tracking_event_id = Identifier(required=True)
    tracking_number = String(required=True)
    status = String(required=True)
    location = String()
    is_delivered = Boolean(default=False)
    is_exception = Boolean(default=False)
    event_date = DateTime(required=True)


@fulfillment.event(part_of="Fulfillment")
class FulfillmentDelivered:
    """The shipment reached the customer."""

    __version__ = 1

    fulfillment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    actual_delivery_date = DateTime(required=True)
    recipient_name = String()


@fulfillment.event(part_of="Fulfillment")
class FulfillmentCancelled:
    """A fulfillment was cancelled before shipment."""

    __version__ = 1

    fulfillment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    reason = String()
    cancelled_at = DateTime(required=True)


@fulfillment.event(part_of="Fulfillment")
class FulfillmentDiscarded:
    """A pending fulfillment was deleted and its claimed quantities released."""

    __version__ = 1

    fulfillment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    released = Text(required=True)  # JSON map of order_item_id -> quantity
    discarded_at = DateTime(required=True)


# ---------------------------------------------------------------------------
# Item events
# ---------------------------------------------------------------------------
@fulfillment.event(part_of="Fulfillment")
class ItemStatusChanged:
    __version__ = 1

    fulfillment_id = Identifier(required=True)
    item_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    changed_at = DateTime(required=True)


@fulfillment.event(part_of="Fulfillment")
class ItemFulfilledQuantityUpdated:
    __version__ = 1

    fulfillment_id = Identifier(required=True)
    item_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)
    updated_at = DateTime(required=True)


@fulfillment.event(part_of="Fulfillment")
class ItemQualityChecked:
    __version__ = 1

    fulfillment_id = Identifier(required=True)
    item_id = Identifier(required=True)
    checked_by = String(required=True)
    notes = String()
    checked_at = DateTime(required=True)


@fulfillment.event(part_of="Fulfillment")
class ItemDamageReported:
    __version__ = 1

    fulfillment_id = Identifier(required=True)
    item_id = Identifier(required=True)
    quantity = Integer(required=True)
    damaged_quantity = Integer(required=True)
    notes = String()
    reported_at = DateTime(required=True)


@fulfillment.event(part_of="Fulfillment")
class ItemMissingReported:
    __version__ = 1

    fulfillment_id = Identifier(required=True)
    item_id = Identifier(required=True)
    quantity = Integer(required=True)
    missing_quantity = Integer(required=True)
    notes = String()
    reported_at = DateTime(required=True)

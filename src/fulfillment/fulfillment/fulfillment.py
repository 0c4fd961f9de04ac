"""Fulfillment aggregate (CQRS) — the core of the fulfillment domain.

A Fulfillment is one physical shipment covering some of an order's items.
It owns its items (per-line quantity and condition) and an append-only
history of carrier tracking events. Status changes come from four places:

    explicit updates    → FULFILLMENT_TRANSITIONS
    item progress       → derive_status_from_items
    carrier tracking    → derive_status_from_tracking
    terminal actions    → cancel, mark_delivered

State Machine:
    PENDING → PROCESSING → PACKED → SHIPPED → IN_TRANSIT ⇄ OUT_FOR_DELIVERY → DELIVERED
    {SHIPPED, IN_TRANSIT, OUT_FOR_DELIVERY} → {FAILED, RETURNED}
    {PENDING, PROCESSING, PACKED} → CANCELLED
"""

import json
from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import InvalidOperationError, ObjectNotFoundError, ValidationError
from protean.fields import (
    Boolean,
    Date,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from fulfillment.domain import fulfillment
from fulfillment.fulfillment.events import (
    FulfillmentCancelled,
    FulfillmentCreated,
    FulfillmentDelivered,
    FulfillmentDetailsUpdated,
    FulfillmentDiscarded,
    FulfillmentStatusChanged,
    ItemDamageReported,
    ItemFulfilledQuantityUpdated,
    ItemMissingReported,
    ItemQualityChecked,
    ItemStatusChanged,
    TrackingEventRecorded,
    TrackingNumberAssigned,
)
from fulfillment.fulfillment.statuses import (
    CANCELLABLE_STATUSES,
    EXCEPTION_TRACKING_STATUSES,
    FULFILLMENT_TRANSITIONS,
    TERMINAL_FULFILLMENT_STATUSES,
    FulfillmentItemStatus,
    FulfillmentStatus,
    PackagingType,
    PriorityLevel,
    TrackingStatus,
    can_transition_item,
)
from fulfillment.fulfillment.synchronization import (
    derive_status_from_items,
    derive_status_from_tracking,
)

# Fields that update_details may change directly
DETAIL_FIELDS = (
    "shipping_provider_id",
    "tracking_number",
    "estimated_delivery_date",
    "shipping_cost",
    "insurance_cost",
    "packaging_type",
    "package_weight",
    "package_dimensions",
    "shipping_address",
    "notes",
    "internal_notes",
    "delivery_instructions",
    "priority_level",
    "fulfilled_by",
    "signature_received",
)


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@fulfillment.value_object(part_of="Fulfillment")
class Address:
    """Snapshot of a postal address, copied onto the fulfillment."""

    first_name = String(max_length=100)
    last_name = String(max_length=100)
    company = String(max_length=200)
    address_line_1 = String(required=True, max_length=255)
    address_line_2 = String(max_length=255)
    city = String(required=True, max_length=100)
    state = String(max_length=100)
    postal_code = String(max_length=20)
    country = String(required=True, max_length=100)
    phone = String(max_length=30)


ADDRESS_FIELDS = (
    "first_name",
    "last_name",
    "company",
    "address_line_1",
    "address_line_2",
    "city",
    "state",
    "postal_code",
    "country",
    "phone",
)


def build_address(data: dict | str | None) -> Address | None:
    """Address from a dict or its JSON text. Unknown keys are dropped."""
    if not data:
        return None
    if isinstance(data, str):
        data = json.loads(data)
    return Address(**{key: data[key] for key in ADDRESS_FIELDS if data.get(key) is not None})


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@fulfillment.entity(part_of="Fulfillment")
class FulfillmentItem:
    """Quantity and condition of one order line within a shipment."""

    order_item_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    fulfilled_quantity = Integer(default=0, min_value=0)
    returned_quantity = Integer(default=0, min_value=0)
    damaged_quantity = Integer(default=0, min_value=0)
    missing_quantity = Integer(default=0, min_value=0)
    status = String(
        max_length=50,
        choices=FulfillmentItemStatus,
        default=FulfillmentItemStatus.PENDING.value,
    )
    location_picked_from = String(max_length=255)
    batch_number = String(max_length=100)
    serial_numbers = Text()  # JSON list of serial numbers
    expiry_date = Date()
    condition_notes = Text()
    packaging_notes = Text()
    weight = Float(min_value=0.0)
    notes = Text()
    quality_check = Boolean(default=False)
    quality_check_by = String(max_length=100)
    quality_check_at = DateTime()

    @invariant.post
    def fulfilled_quantity_within_quantity(self):
        if self.fulfilled_quantity is not None and self.quantity is not None:
            if self.fulfilled_quantity > self.quantity:
                raise ValidationError({"fulfilled_quantity": ["Fulfilled quantity cannot exceed item quantity"]})

    @invariant.post
    def problem_quantities_within_quantity(self):
        if self.quantity is None:
            return
        if (self.damaged_quantity or 0) + (self.missing_quantity or 0) > self.quantity:
            raise ValidationError({"quantity": ["Damaged and missing quantities cannot exceed item quantity"]})

    @property
    def available_quantity(self) -> int:
        return self.quantity - (self.damaged_quantity or 0) - (self.missing_quantity or 0)


# Fields a caller may supply when creating an item
ITEM_FIELDS = (
    "order_item_id",
    "quantity",
    "location_picked_from",
    "batch_number",
    "serial_numbers",
    "expiry_date",
    "condition_notes",
    "packaging_notes",
    "weight",
    "notes",
)


@fulfillment.entity(part_of="Fulfillment")
class TrackingEvent:
    """A carrier-reported milestone. Never modified once recorded."""

    tracking_number = String(required=True, max_length=255)
    status = String(required=True, max_length=50, choices=TrackingStatus)
    location = String(max_length=255)
    description = Text()
    event_date = DateTime(required=True)
    estimated_delivery_date = DateTime()
    recipient_name = String(max_length=200)
    relationship = String(max_length=100)
    photo_url = String(max_length=500)
    notes = Text()
    exception_reason = Text()
    is_delivered = Boolean(default=False)
    is_exception = Boolean(default=False)


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@fulfillment.aggregate
class Fulfillment:
    fulfillment_number = String(required=True, max_length=50, unique=True)
    order_id = Identifier(required=True)
    status = String(
        max_length=50,
        choices=FulfillmentStatus,
        default=FulfillmentStatus.PENDING.value,
    )
    priority_level = String(max_length=20, choices=PriorityLevel, default=PriorityLevel.NORMAL.value)
    packaging_type = String(max_length=20, choices=PackagingType, default=PackagingType.BOX.value)
    shipping_address = ValueObject(Address)
    pickup_address = ValueObject(Address)
    shipping_provider_id = Identifier()
    tracking_number = String(max_length=255)
    shipped_date = DateTime()
    estimated_delivery_date = DateTime()
    actual_delivery_date = DateTime()
    shipping_cost = Float(default=0.0, min_value=0.0)
    insurance_cost = Float(default=0.0, min_value=0.0)
    package_weight = Float(min_value=0.0)
    package_dimensions = String(max_length=100)
    notes = Text()
    internal_notes = Text()
    delivery_instructions = Text()
    signature_required = Boolean(default=False)
    signature_received = Boolean(default=False)
    gift_wrap = Boolean(default=False)
    gift_message = Text()
    fulfilled_by = String(max_length=100)
    cancel_reason = Text()
    cancelled_at = DateTime()
    items = HasMany(FulfillmentItem)
    tracking_events = HasMany(TrackingEvent)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        fulfillment_number: str,
        order_id: str,
        items_data: list[dict],
        **details,
    ):
        """Create a new fulfillment covering ``items_data``.

        Each item dict carries ``order_item_id`` and ``quantity`` plus any of
        the optional FulfillmentItem fields. ``serial_numbers`` may be a list.
        """
        if not items_data:
            raise ValidationError({"items": ["At least one item is required to create a fulfillment"]})

        now = datetime.now(UTC)
        ff = cls(
            fulfillment_number=fulfillment_number,
            order_id=order_id,
            status=FulfillmentStatus.PENDING.value,
            created_at=now,
            updated_at=now,
            **{key: value for key, value in details.items() if value is not None},
        )
        for item_data in items_data:
            item_data = {key: value for key, value in item_data.items() if key in ITEM_FIELDS and value is not None}
            if isinstance(item_data.get("serial_numbers"), list):
                item_data["serial_numbers"] = json.dumps(item_data["serial_numbers"])
            ff.add_items(FulfillmentItem(**item_data))

        summary = [{"order_item_id": str(i.order_item_id), "quantity": i.quantity} for i in ff.items]
        ff.raise_(
            FulfillmentCreated(
                fulfillment_id=str(ff.id),
                fulfillment_number=fulfillment_number,
                order_id=str(order_id),
                items=json.dumps(summary),
                item_count=len(summary),
                shipping_provider_id=ff.shipping_provider_id,
                created_at=now,
            )
        )
        return ff

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _current_status(self) -> FulfillmentStatus:
        return FulfillmentStatus(self.status)

    def _assert_not_terminal(self, action: str) -> None:
        current = self._current_status()
        if current in TERMINAL_FULFILLMENT_STATUSES:
            raise InvalidOperationError(f"Cannot {action} a fulfillment in {current.value} status")

    def _change_status(self, target: FulfillmentStatus, source: str, now: datetime) -> None:
        previous = self.status
        self.status = target.value
        self.updated_at = now
        self.raise_(
            FulfillmentStatusChanged(
                fulfillment_id=str(self.id),
                order_id=str(self.order_id),
                previous_status=previous,
                new_status=target.value,
                source=source,
                changed_at=now,
            )
        )

    def _stamp_delivery(self, delivered_at: datetime, recipient_name: str | None = None) -> None:
        self.actual_delivery_date = delivered_at
        self.raise_(
            FulfillmentDelivered(
                fulfillment_id=str(self.id),
                order_id=str(self.order_id),
                actual_delivery_date=delivered_at,
                recipient_name=recipient_name,
            )
        )

    def _set_item_status(self, item: FulfillmentItem, target: FulfillmentItemStatus, now: datetime) -> None:
        previous = item.status
        item.status = target.value
        self.raise_(
            ItemStatusChanged(
                fulfillment_id=str(self.id),
                item_id=str(item.id),
                previous_status=previous,
                new_status=target.value,
                changed_at=now,
            )
        )

    def _append_tracking_event(self, status: TrackingStatus, event_date: datetime, **details) -> TrackingEvent:
        event = TrackingEvent(
            tracking_number=self.tracking_number,
            status=status.value,
            event_date=event_date,
            is_delivered=status == TrackingStatus.DELIVERED,
            is_exception=status in EXCEPTION_TRACKING_STATUSES,
            **{key: value for key, value in details.items() if value is not None},
        )
        self.add_tracking_events(event)
        self.raise_(
            TrackingEventRecorded(
                fulfillment_id=str(self.id),
                tracking_event_id=str(event.id),
                tracking_number=self.tracking_number,
                status=status.value,
                location=event.location,
                is_delivered=event.is_delivered,
                is_exception=event.is_exception,
                event_date=event_date,
            )
        )
        return event

    def find_item(self, item_id: str) -> FulfillmentItem:
        item = next((i for i in (self.items or []) if str(i.id) == str(item_id)), None)
        if item is None:
            raise ObjectNotFoundError(f"Fulfillment item {item_id} not found in fulfillment {self.id}")
        return item

    def claimed_quantities(self) -> dict[str, int]:
        """Quantity this fulfillment holds against each order item."""
        claims: dict[str, int] = {}
        for item in self.items or []:
            key = str(item.order_item_id)
            claims[key] = claims.get(key, 0) + item.quantity
        return claims

    # -------------------------------------------------------------------
    # Details and explicit status changes
    # -------------------------------------------------------------------
    def update_details(self, **changes) -> list[str]:
        """Apply descriptive changes. ``None`` values are ignored."""
        changed = []
        for field_name, value in changes.items():
            if field_name not in DETAIL_FIELDS:
                raise ValidationError({field_name: ["Field cannot be updated"]})
            if value is None or getattr(self, field_name) == value:
                continue
            setattr(self, field_name, value)
            changed.append(field_name)

        if changed:
            now = datetime.now(UTC)
            self.updated_at = now
            self.raise_(
                FulfillmentDetailsUpdated(
                    fulfillment_id=str(self.id),
                    changed_fields=json.dumps(changed),
                    updated_at=now,
                )
            )
        return changed

    def change_status(self, status: str, reason: str | None = None) -> None:
        """Move to ``status`` following the transition table.

        CANCELLED runs the cancellation cascade and DELIVERED the delivery
        cascade. Requesting the current status is a no-op.
        """
        target = FulfillmentStatus(status)
        current = self._current_status()
        if target == current:
            return

        if target == FulfillmentStatus.CANCELLED:
            self.cancel(reason)
            return

        if target == FulfillmentStatus.SHIPPED and not self.tracking_number:
            raise InvalidOperationError("Tracking number is required to mark a fulfillment as shipped")
        if target not in FULFILLMENT_TRANSITIONS.get(current, set()):
            raise InvalidOperationError(f"Cannot transition fulfillment from {current.value} to {target.value}")

        if target == FulfillmentStatus.DELIVERED:
            self.mark_delivered()
            return

        now = datetime.now(UTC)
        if target == FulfillmentStatus.SHIPPED:
            self.shipped_date = now
        self._change_status(target, "manual", now)

    # -------------------------------------------------------------------
    # Tracking
    # -------------------------------------------------------------------
    def assign_tracking_number(self, tracking_number: str) -> None:
        """Attach a carrier tracking number; the fulfillment is now shipped."""
        self._assert_not_terminal("add a tracking number to")

        now = datetime.now(UTC)
        self.tracking_number = tracking_number
        self.shipped_date = now
        if self._current_status() != FulfillmentStatus.SHIPPED:
            self._change_status(FulfillmentStatus.SHIPPED, "tracking", now)
        self.updated_at = now

        self._append_tracking_event(
            TrackingStatus.LABEL_CREATED,
            now,
            description="Tracking number assigned",
        )
        self.raise_(
            TrackingNumberAssigned(
                fulfillment_id=str(self.id),
                order_id=str(self.order_id),
                tracking_number=tracking_number,
                shipping_provider_id=self.shipping_provider_id,
                shipped_at=now,
            )
        )

    def record_tracking_event(
        self,
        status: str,
        event_date: datetime | None = None,
        location: str | None = None,
        description: str | None = None,
        estimated_delivery_date: datetime | None = None,
        recipient_name: str | None = None,
        relationship: str | None = None,
        photo_url: str | None = None,
        notes: str | None = None,
        exception_reason: str | None = None,
    ) -> TrackingEvent:
        """Record a carrier milestone and apply the status it implies."""
        if not self.tracking_number:
            raise InvalidOperationError("Fulfillment has no tracking number")

        now = datetime.now(UTC)
        tracking_status = TrackingStatus(status)
        event = self._append_tracking_event(
            tracking_status,
            event_date or now,
            location=location,
            description=description,
            estimated_delivery_date=estimated_delivery_date,
            recipient_name=recipient_name,
            relationship=relationship,
            photo_url=photo_url,
            notes=notes,
            exception_reason=exception_reason,
        )

        if estimated_delivery_date is not None:
            self.estimated_delivery_date = estimated_delivery_date

        target = derive_status_from_tracking(self.status, tracking_status.value)
        if target is not None:
            target = FulfillmentStatus(target)
            self._change_status(target, "tracking", now)
            if target == FulfillmentStatus.DELIVERED:
                self._stamp_delivery(event.event_date, recipient_name)

        self.updated_at = now
        return event

    # -------------------------------------------------------------------
    # Terminal actions
    # -------------------------------------------------------------------
    def mark_delivered(
        self,
        actual_delivery_date: datetime | None = None,
        recipient_name: str | None = None,
        photo_url: str | None = None,
    ) -> None:
        """Confirm delivery and close out every open item."""
        self._assert_not_terminal("deliver")

        now = datetime.now(UTC)
        delivered_at = actual_delivery_date or now
        self._change_status(FulfillmentStatus.DELIVERED, "manual", now)

        if self.tracking_number:
            self._append_tracking_event(
                TrackingStatus.DELIVERED,
                delivered_at,
                description="Package delivered",
                recipient_name=recipient_name,
                photo_url=photo_url,
            )

        for item in self.items or []:
            item_status = FulfillmentItemStatus(item.status)
            if item_status != FulfillmentItemStatus.DELIVERED and can_transition_item(
                item_status, FulfillmentItemStatus.DELIVERED
            ):
                self._set_item_status(item, FulfillmentItemStatus.DELIVERED, now)

        self._stamp_delivery(delivered_at, recipient_name)

    def cancel(self, reason: str | None) -> None:
        """Cancel the fulfillment (only before shipment).

        Items are cancelled with it. Quantities claimed on the order stay
        claimed.
        """
        current = self._current_status()
        if current not in CANCELLABLE_STATUSES:
            raise InvalidOperationError(f"Cannot cancel fulfillment in {current.value} status")

        now = datetime.now(UTC)
        self._change_status(FulfillmentStatus.CANCELLED, "manual", now)
        self.cancel_reason = reason
        self.cancelled_at = now

        for item in self.items or []:
            if can_transition_item(FulfillmentItemStatus(item.status), FulfillmentItemStatus.CANCELLED):
                self._set_item_status(item, FulfillmentItemStatus.CANCELLED, now)

        self.raise_(
            FulfillmentCancelled(
                fulfillment_id=str(self.id),
                order_id=str(self.order_id),
                reason=reason,
                cancelled_at=now,
            )
        )

    def discard(self) -> dict[str, int]:
        """Strip a pending fulfillment for deletion.

        Removes tracking events, then items, and returns the quantities they
        held so the caller can release them on the order.
        """
        current = self._current_status()
        if current != FulfillmentStatus.PENDING:
            raise InvalidOperationError(f"Only pending fulfillments can be deleted, this one is {current.value}")

        released = self.claimed_quantities()
        for event in list(self.tracking_events or []):
            self.remove_tracking_events(event)
        for item in list(self.items or []):
            self.remove_items(item)

        self.raise_(
            FulfillmentDiscarded(
                fulfillment_id=str(self.id),
                order_id=str(self.order_id),
                released=json.dumps(released),
                discarded_at=datetime.now(UTC),
            )
        )
        return released

    # -------------------------------------------------------------------
    # Items
    # -------------------------------------------------------------------
    def apply_item_derived_status(self) -> None:
        """Advance the fulfillment to the status its items imply, if any."""
        target = derive_status_from_items(
            self.status,
            [i.status for i in (self.items or [])],
            has_tracking_number=bool(self.tracking_number),
        )
        if target is None:
            return

        now = datetime.now(UTC)
        target = FulfillmentStatus(target)
        self._change_status(target, "items", now)
        if target == FulfillmentStatus.SHIPPED and not self.shipped_date:
            self.shipped_date = now
        if target == FulfillmentStatus.DELIVERED:
            self._stamp_delivery(now)

    def update_item_status(self, item_id: str, status: str) -> None:
        item = self.find_item(item_id)
        current = FulfillmentItemStatus(item.status)
        target = FulfillmentItemStatus(status)
        if target == current:
            return
        if not can_transition_item(current, target):
            raise InvalidOperationError(f"Cannot transition item from {current.value} to {target.value}")

        now = datetime.now(UTC)
        self._set_item_status(item, target, now)
        self.updated_at = now
        self.apply_item_derived_status()

    def update_fulfilled_quantity(self, item_id: str, fulfilled_quantity: int) -> None:
        item = self.find_item(item_id)
        if fulfilled_quantity < 0:
            raise ValidationError({"fulfilled_quantity": ["Fulfilled quantity cannot be negative"]})
        if fulfilled_quantity > item.quantity:
            raise ValidationError({"fulfilled_quantity": ["Fulfilled quantity cannot exceed item quantity"]})

        now = datetime.now(UTC)
        previous = item.fulfilled_quantity
        item.fulfilled_quantity = fulfilled_quantity
        self.updated_at = now
        self.raise_(
            ItemFulfilledQuantityUpdated(
                fulfillment_id=str(self.id),
                item_id=str(item.id),
                previous_quantity=previous,
                new_quantity=fulfilled_quantity,
                updated_at=now,
            )
        )
        self.apply_item_derived_status()

    def perform_quality_check(self, item_id: str, checked_by: str, condition_notes: str | None = None) -> None:
        item = self.find_item(item_id)
        if item.quality_check:
            raise InvalidOperationError("Item has already undergone quality check")

        now = datetime.now(UTC)
        item.quality_check = True
        item.quality_check_by = checked_by
        item.quality_check_at = now
        if condition_notes:
            item.condition_notes = condition_notes
        self.updated_at = now
        self.raise_(
            ItemQualityChecked(
                fulfillment_id=str(self.id),
                item_id=str(item.id),
                checked_by=checked_by,
                notes=condition_notes,
                checked_at=now,
            )
        )
        self.apply_item_derived_status()

    def _assert_reportable(self, item: FulfillmentItem, field_name: str, quantity: int, message: str) -> None:
        if quantity < 1:
            raise ValidationError({field_name: ["Quantity must be at least 1"]})
        if quantity > item.available_quantity:
            raise ValidationError({field_name: [message]})

    def report_damaged(self, item_id: str, quantity: int, notes: str | None = None) -> None:
        item = self.find_item(item_id)
        self._assert_reportable(item, "damaged_quantity", quantity, "Cannot damage more items than available")

        now = datetime.now(UTC)
        item.damaged_quantity = (item.damaged_quantity or 0) + quantity
        if notes:
            item.notes = notes
        self.updated_at = now
        self.raise_(
            ItemDamageReported(
                fulfillment_id=str(self.id),
                item_id=str(item.id),
                quantity=quantity,
                damaged_quantity=item.damaged_quantity,
                notes=notes,
                reported_at=now,
            )
        )
        self.apply_item_derived_status()

    def report_missing(self, item_id: str, quantity: int, notes: str | None = None) -> None:
        item = self.find_item(item_id)
        self._assert_reportable(
            item, "missing_quantity", quantity, "Cannot mark more items as missing than available"
        )

        now = datetime.now(UTC)
        item.missing_quantity = (item.missing_quantity or 0) + quantity
        if notes:
            item.notes = notes
        self.updated_at = now
        self.raise_(
            ItemMissingReported(
                fulfillment_id=str(self.id),
                item_id=str(item.id),
                quantity=quantity,
                missing_quantity=item.missing_quantity,
                notes=notes,
                reported_at=now,
            )
        )
        self.apply_item_derived_status()

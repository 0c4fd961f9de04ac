"""Pydantic API schemas for the Fulfillment domain.

These are the external API contracts — separate from domain commands.
The API layer translates between these schemas and domain commands, and
builds responses from aggregates plus the values derived at read time.
"""

from datetime import date, datetime

from pydantic import BaseModel

from fulfillment.fulfillment import computed


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------
class AddressModel(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    company: str | None = None
    address_line_1: str
    address_line_2: str | None = None
    city: str
    state: str | None = None
    postal_code: str | None = None
    country: str
    phone: str | None = None


class FulfillmentItemRequest(BaseModel):
    order_item_id: str
    quantity: int
    location_picked_from: str | None = None
    batch_number: str | None = None
    serial_numbers: list[str] | None = None
    expiry_date: date | None = None
    condition_notes: str | None = None
    packaging_notes: str | None = None
    weight: float | None = None
    notes: str | None = None


class CreateFulfillmentRequest(BaseModel):
    order_id: str
    items: list[FulfillmentItemRequest]
    shipping_provider_id: str | None = None
    tracking_number: str | None = None
    priority_level: str | None = None
    packaging_type: str | None = None
    shipping_address: AddressModel | None = None
    pickup_address: AddressModel | None = None
    estimated_delivery_date: datetime | None = None
    shipping_cost: float | None = None
    insurance_cost: float | None = None
    package_weight: float | None = None
    package_dimensions: str | None = None
    notes: str | None = None
    internal_notes: str | None = None
    delivery_instructions: str | None = None
    signature_required: bool | None = None
    gift_wrap: bool | None = None
    gift_message: str | None = None
    fulfilled_by: str | None = None


class UpdateFulfillmentRequest(BaseModel):
    status: str | None = None
    cancel_reason: str | None = None
    shipping_provider_id: str | None = None
    tracking_number: str | None = None
    estimated_delivery_date: datetime | None = None
    shipping_cost: float | None = None
    insurance_cost: float | None = None
    packaging_type: str | None = None
    package_weight: float | None = None
    package_dimensions: str | None = None
    shipping_address: AddressModel | None = None
    notes: str | None = None
    internal_notes: str | None = None
    delivery_instructions: str | None = None
    priority_level: str | None = None
    fulfilled_by: str | None = None
    signature_received: bool | None = None


class AddTrackingNumberRequest(BaseModel):
    tracking_number: str


class AddTrackingEventRequest(BaseModel):
    status: str
    event_date: datetime | None = None
    location: str | None = None
    description: str | None = None
    estimated_delivery_date: datetime | None = None
    recipient_name: str | None = None
    relationship: str | None = None
    photo_url: str | None = None
    notes: str | None = None
    exception_reason: str | None = None


class MarkDeliveredRequest(BaseModel):
    actual_delivery_date: datetime | None = None
    recipient_name: str | None = None
    photo_url: str | None = None


class CancelFulfillmentRequest(BaseModel):
    reason: str | None = None


class UpdateItemStatusRequest(BaseModel):
    status: str


class UpdateFulfilledQuantityRequest(BaseModel):
    fulfilled_quantity: int


class QualityCheckRequest(BaseModel):
    checked_by: str
    condition_notes: str | None = None


class ReportQuantityRequest(BaseModel):
    quantity: int
    notes: str | None = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------
class FulfillmentIdResponse(BaseModel):
    fulfillment_id: str


class TrackingEventIdResponse(BaseModel):
    tracking_event_id: str


class StatusResponse(BaseModel):
    status: str


class AddressResponse(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    company: str | None = None
    address_line_1: str | None = None
    address_line_2: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    country: str | None = None
    phone: str | None = None

    @classmethod
    def from_value(cls, address) -> "AddressResponse | None":
        if address is None:
            return None
        return cls(**{name: getattr(address, name) for name in cls.model_fields})


class FulfillmentItemResponse(BaseModel):
    id: str
    order_item_id: str
    quantity: int
    fulfilled_quantity: int
    returned_quantity: int
    damaged_quantity: int
    missing_quantity: int
    status: str
    location_picked_from: str | None = None
    batch_number: str | None = None
    serial_numbers: list[str] = []
    expiry_date: date | None = None
    condition_notes: str | None = None
    packaging_notes: str | None = None
    weight: float | None = None
    notes: str | None = None
    quality_check: bool
    quality_check_by: str | None = None
    quality_check_at: datetime | None = None
    progress: int
    quality_score: int
    is_expired: bool
    is_expiring_soon: bool
    needs_attention: bool
    attention_reasons: list[str]

    @classmethod
    def from_entity(cls, item) -> "FulfillmentItemResponse":
        return cls(
            id=str(item.id),
            order_item_id=str(item.order_item_id),
            quantity=item.quantity,
            fulfilled_quantity=item.fulfilled_quantity or 0,
            returned_quantity=item.returned_quantity or 0,
            damaged_quantity=item.damaged_quantity or 0,
            missing_quantity=item.missing_quantity or 0,
            status=item.status,
            location_picked_from=item.location_picked_from,
            batch_number=item.batch_number,
            serial_numbers=computed.serial_numbers(item),
            expiry_date=item.expiry_date,
            condition_notes=item.condition_notes,
            packaging_notes=item.packaging_notes,
            weight=item.weight,
            notes=item.notes,
            quality_check=bool(item.quality_check),
            quality_check_by=item.quality_check_by,
            quality_check_at=item.quality_check_at,
            progress=computed.item_progress(item),
            quality_score=computed.quality_score(item),
            is_expired=computed.is_expired(item),
            is_expiring_soon=computed.is_expiring_soon(item),
            needs_attention=computed.needs_attention(item),
            attention_reasons=computed.attention_reasons(item),
        )


class ItemWithFulfillmentResponse(FulfillmentItemResponse):
    fulfillment_id: str
    fulfillment_number: str

    @classmethod
    def from_pair(cls, ff, item) -> "ItemWithFulfillmentResponse":
        base = FulfillmentItemResponse.from_entity(item).model_dump()
        return cls(fulfillment_id=str(ff.id), fulfillment_number=ff.fulfillment_number, **base)


class TrackingEventResponse(BaseModel):
    id: str
    tracking_number: str
    status: str
    location: str | None = None
    description: str | None = None
    event_date: datetime
    estimated_delivery_date: datetime | None = None
    recipient_name: str | None = None
    relationship: str | None = None
    photo_url: str | None = None
    notes: str | None = None
    exception_reason: str | None = None
    is_delivered: bool
    is_exception: bool

    @classmethod
    def from_entity(cls, event) -> "TrackingEventResponse":
        return cls(
            id=str(event.id),
            tracking_number=event.tracking_number,
            status=event.status,
            location=event.location,
            description=event.description,
            event_date=event.event_date,
            estimated_delivery_date=event.estimated_delivery_date,
            recipient_name=event.recipient_name,
            relationship=event.relationship,
            photo_url=event.photo_url,
            notes=event.notes,
            exception_reason=event.exception_reason,
            is_delivered=bool(event.is_delivered),
            is_exception=bool(event.is_exception),
        )


class FulfillmentResponse(BaseModel):
    id: str
    fulfillment_number: str
    order_id: str
    status: str
    priority_level: str
    packaging_type: str
    shipping_address: AddressResponse | None = None
    pickup_address: AddressResponse | None = None
    shipping_provider_id: str | None = None
    tracking_number: str | None = None
    tracking_url: str | None = None
    shipped_date: datetime | None = None
    estimated_delivery_date: datetime | None = None
    actual_delivery_date: datetime | None = None
    shipping_cost: float
    insurance_cost: float
    total_cost: float
    package_weight: float | None = None
    package_dimensions: str | None = None
    notes: str | None = None
    internal_notes: str | None = None
    delivery_instructions: str | None = None
    signature_required: bool
    signature_received: bool
    gift_wrap: bool
    gift_message: str | None = None
    fulfilled_by: str | None = None
    cancel_reason: str | None = None
    cancelled_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    is_overdue: bool
    days_overdue: int
    days_in_transit: int
    progress: int
    total_items: int
    items: list[FulfillmentItemResponse] = []
    tracking_events: list[TrackingEventResponse] = []
    latest_tracking_event: TrackingEventResponse | None = None

    @classmethod
    def from_aggregate(cls, ff, provider=None) -> "FulfillmentResponse":
        latest = computed.latest_tracking_event(ff)
        tracking_url = provider.tracking_url_for(ff.tracking_number) if provider and ff.tracking_number else None
        return cls(
            id=str(ff.id),
            fulfillment_number=ff.fulfillment_number,
            order_id=str(ff.order_id),
            status=ff.status,
            priority_level=ff.priority_level,
            packaging_type=ff.packaging_type,
            shipping_address=AddressResponse.from_value(ff.shipping_address),
            pickup_address=AddressResponse.from_value(ff.pickup_address),
            shipping_provider_id=str(ff.shipping_provider_id) if ff.shipping_provider_id else None,
            tracking_number=ff.tracking_number,
            tracking_url=tracking_url,
            shipped_date=ff.shipped_date,
            estimated_delivery_date=ff.estimated_delivery_date,
            actual_delivery_date=ff.actual_delivery_date,
            shipping_cost=ff.shipping_cost or 0.0,
            insurance_cost=ff.insurance_cost or 0.0,
            total_cost=computed.total_cost(ff),
            package_weight=ff.package_weight,
            package_dimensions=ff.package_dimensions,
            notes=ff.notes,
            internal_notes=ff.internal_notes,
            delivery_instructions=ff.delivery_instructions,
            signature_required=bool(ff.signature_required),
            signature_received=bool(ff.signature_received),
            gift_wrap=bool(ff.gift_wrap),
            gift_message=ff.gift_message,
            fulfilled_by=ff.fulfilled_by,
            cancel_reason=ff.cancel_reason,
            cancelled_at=ff.cancelled_at,
            created_at=ff.created_at,
            updated_at=ff.updated_at,
            is_overdue=computed.is_overdue(ff),
            days_overdue=computed.days_overdue(ff),
            days_in_transit=computed.days_in_transit(ff),
            progress=computed.fulfillment_progress(ff),
            total_items=computed.total_items(ff),
            items=[FulfillmentItemResponse.from_entity(item) for item in ff.items or []],
            tracking_events=[TrackingEventResponse.from_entity(e) for e in computed.sorted_tracking_events(ff)],
            latest_tracking_event=TrackingEventResponse.from_entity(latest) if latest else None,
        )


class FulfillmentListResponse(BaseModel):
    items: list[FulfillmentResponse]
    total: int
    page: int
    limit: int
    total_pages: int


class ShippingProviderRanking(BaseModel):
    shipping_provider_id: str
    name: str | None = None
    fulfillment_count: int
    delivered_count: int
    delivery_rate: float


class FulfillmentStatsResponse(BaseModel):
    total: int
    overdue: int
    pending: int
    processing: int
    packed: int
    shipped: int
    in_transit: int
    out_for_delivery: int
    delivered: int
    failed: int
    cancelled: int
    returned: int
    by_status: dict[str, int]
    by_priority: dict[str, int]
    recent: list[FulfillmentResponse]
    top_shipping_providers: list[ShippingProviderRanking]


class ItemStatsResponse(BaseModel):
    total: int
    by_status: dict[str, int]
    with_damage: int
    with_missing: int
    quality_check_pending: int
    expiring_soon: int
    expired: int
    by_location: dict[str, int]

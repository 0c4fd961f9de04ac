"""FastAPI routes for the Fulfillment domain."""

import json
from datetime import datetime

from fastapi import APIRouter, Query
from protean.utils.globals import current_domain

from fulfillment.api.schemas import (
    AddTrackingEventRequest,
    AddTrackingNumberRequest,
    CancelFulfillmentRequest,
    CreateFulfillmentRequest,
    FulfillmentIdResponse,
    FulfillmentListResponse,
    FulfillmentResponse,
    FulfillmentStatsResponse,
    ItemStatsResponse,
    ItemWithFulfillmentResponse,
    MarkDeliveredRequest,
    QualityCheckRequest,
    ReportQuantityRequest,
    StatusResponse,
    TrackingEventIdResponse,
    UpdateFulfilledQuantityRequest,
    UpdateFulfillmentRequest,
    UpdateItemStatusRequest,
)
from fulfillment.fulfillment import queries, stats
from fulfillment.fulfillment.cancellation import CancelFulfillment
from fulfillment.fulfillment.creation import CreateFulfillment
from fulfillment.fulfillment.deletion import DeleteFulfillment
from fulfillment.fulfillment.delivery import MarkDelivered
from fulfillment.fulfillment.items import (
    PerformQualityCheck,
    ReportItemDamage,
    ReportItemMissing,
    UpdateItemFulfilledQuantity,
    UpdateItemStatus,
)
from fulfillment.fulfillment.tracking import AddTrackingEvent, AddTrackingNumber
from fulfillment.fulfillment.updating import UpdateFulfillment
from fulfillment.providers import get_provider_directory

# ---------------------------------------------------------------------------
# Fulfillment Router
# ---------------------------------------------------------------------------
fulfillment_router = APIRouter(prefix="/fulfillments", tags=["fulfillments"])


def _to_response(ff) -> FulfillmentResponse:
    provider = None
    if ff.shipping_provider_id:
        provider = get_provider_directory().find_provider_by_id(str(ff.shipping_provider_id))
    return FulfillmentResponse.from_aggregate(ff, provider)


def _fresh(fulfillment_id: str) -> FulfillmentResponse:
    return _to_response(queries.get_fulfillment(fulfillment_id))


def _address_json(address) -> str | None:
    return address.model_dump_json(exclude_none=True) if address else None


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------
@fulfillment_router.post("", status_code=201, response_model=FulfillmentIdResponse)
async def create_fulfillment(body: CreateFulfillmentRequest) -> FulfillmentIdResponse:
    """Create a fulfillment for some of an order's items."""
    items_json = json.dumps([item.model_dump(mode="json", exclude_none=True) for item in body.items])
    details = body.model_dump(exclude={"order_id", "items", "shipping_address", "pickup_address"}, exclude_none=True)
    command = CreateFulfillment(
        order_id=body.order_id,
        items=items_json,
        shipping_address=_address_json(body.shipping_address),
        pickup_address=_address_json(body.pickup_address),
        **details,
    )
    result = current_domain.process(command, asynchronous=False)
    return FulfillmentIdResponse(fulfillment_id=result)


@fulfillment_router.patch("/{fulfillment_id}", response_model=FulfillmentResponse)
async def update_fulfillment(fulfillment_id: str, body: UpdateFulfillmentRequest) -> FulfillmentResponse:
    """Patch a fulfillment; only the supplied fields change."""
    details = body.model_dump(exclude={"shipping_address"}, exclude_none=True)
    command = UpdateFulfillment(
        fulfillment_id=fulfillment_id,
        shipping_address=_address_json(body.shipping_address),
        **details,
    )
    current_domain.process(command, asynchronous=False)
    return _fresh(fulfillment_id)


@fulfillment_router.delete("/{fulfillment_id}", response_model=StatusResponse)
async def delete_fulfillment(fulfillment_id: str) -> StatusResponse:
    """Delete a pending fulfillment and release its quantities."""
    current_domain.process(DeleteFulfillment(fulfillment_id=fulfillment_id), asynchronous=False)
    return StatusResponse(status="deleted")


@fulfillment_router.put("/{fulfillment_id}/tracking-number", response_model=FulfillmentResponse)
async def add_tracking_number(fulfillment_id: str, body: AddTrackingNumberRequest) -> FulfillmentResponse:
    """Attach a tracking number and mark the fulfillment shipped."""
    command = AddTrackingNumber(fulfillment_id=fulfillment_id, tracking_number=body.tracking_number)
    current_domain.process(command, asynchronous=False)
    return _fresh(fulfillment_id)


@fulfillment_router.post(
    "/{fulfillment_id}/tracking-events",
    status_code=201,
    response_model=TrackingEventIdResponse,
)
async def add_tracking_event(fulfillment_id: str, body: AddTrackingEventRequest) -> TrackingEventIdResponse:
    """Record a carrier tracking event."""
    command = AddTrackingEvent(fulfillment_id=fulfillment_id, **body.model_dump(exclude_none=True))
    result = current_domain.process(command, asynchronous=False)
    return TrackingEventIdResponse(tracking_event_id=result)


@fulfillment_router.put("/{fulfillment_id}/deliver", response_model=FulfillmentResponse)
async def mark_delivered(fulfillment_id: str, body: MarkDeliveredRequest) -> FulfillmentResponse:
    """Confirm delivery of the shipment."""
    command = MarkDelivered(fulfillment_id=fulfillment_id, **body.model_dump(exclude_none=True))
    current_domain.process(command, asynchronous=False)
    return _fresh(fulfillment_id)


@fulfillment_router.put("/{fulfillment_id}/cancel", response_model=FulfillmentResponse)
async def cancel_fulfillment(fulfillment_id: str, body: CancelFulfillmentRequest) -> FulfillmentResponse:
    """Cancel a fulfillment that has not shipped."""
    command = CancelFulfillment(fulfillment_id=fulfillment_id, reason=body.reason)
    current_domain.process(command, asynchronous=False)
    return _fresh(fulfillment_id)


# ---------------------------------------------------------------------------
# Item commands
# ---------------------------------------------------------------------------
@fulfillment_router.put("/{fulfillment_id}/items/{item_id}/status", response_model=FulfillmentResponse)
async def update_item_status(fulfillment_id: str, item_id: str, body: UpdateItemStatusRequest) -> FulfillmentResponse:
    command = UpdateItemStatus(fulfillment_id=fulfillment_id, item_id=item_id, status=body.status)
    current_domain.process(command, asynchronous=False)
    return _fresh(fulfillment_id)


@fulfillment_router.put("/{fulfillment_id}/items/{item_id}/fulfilled-quantity", response_model=FulfillmentResponse)
async def update_fulfilled_quantity(
    fulfillment_id: str, item_id: str, body: UpdateFulfilledQuantityRequest
) -> FulfillmentResponse:
    command = UpdateItemFulfilledQuantity(
        fulfillment_id=fulfillment_id,
        item_id=item_id,
        fulfilled_quantity=body.fulfilled_quantity,
    )
    current_domain.process(command, asynchronous=False)
    return _fresh(fulfillment_id)


@fulfillment_router.put("/{fulfillment_id}/items/{item_id}/quality-check", response_model=FulfillmentResponse)
async def perform_quality_check(fulfillment_id: str, item_id: str, body: QualityCheckRequest) -> FulfillmentResponse:
    command = PerformQualityCheck(
        fulfillment_id=fulfillment_id,
        item_id=item_id,
        checked_by=body.checked_by,
        condition_notes=body.condition_notes,
    )
    current_domain.process(command, asynchronous=False)
    return _fresh(fulfillment_id)


@fulfillment_router.post("/{fulfillment_id}/items/{item_id}/damage", response_model=FulfillmentResponse)
async def report_item_damage(fulfillment_id: str, item_id: str, body: ReportQuantityRequest) -> FulfillmentResponse:
    command = ReportItemDamage(fulfillment_id=fulfillment_id, item_id=item_id, quantity=body.quantity, notes=body.notes)
    current_domain.process(command, asynchronous=False)
    return _fresh(fulfillment_id)


@fulfillment_router.post("/{fulfillment_id}/items/{item_id}/missing", response_model=FulfillmentResponse)
async def report_item_missing(fulfillment_id: str, item_id: str, body: ReportQuantityRequest) -> FulfillmentResponse:
    command = ReportItemMissing(fulfillment_id=fulfillment_id, item_id=item_id, quantity=body.quantity, notes=body.notes)
    current_domain.process(command, asynchronous=False)
    return _fresh(fulfillment_id)


# ---------------------------------------------------------------------------
# Queries (static paths first so they are not captured by /{fulfillment_id})
# ---------------------------------------------------------------------------
@fulfillment_router.get("", response_model=FulfillmentListResponse)
async def list_fulfillments(
    order_id: str | None = None,
    status: str | None = None,
    priority_level: str | None = None,
    shipping_provider_id: str | None = None,
    fulfilled_by: str | None = None,
    tracking_number: str | None = None,
    has_tracking_number: bool | None = None,
    is_overdue: bool | None = None,
    shipped_from: datetime | None = None,
    shipped_to: datetime | None = None,
    estimated_from: datetime | None = None,
    estimated_to: datetime | None = None,
    search: str | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    sort_by: str = "created_at",
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
) -> FulfillmentListResponse:
    result = queries.list_fulfillments(
        order_id=order_id,
        status=status,
        priority_level=priority_level,
        shipping_provider_id=shipping_provider_id,
        fulfilled_by=fulfilled_by,
        tracking_number=tracking_number,
        has_tracking_number=has_tracking_number,
        is_overdue=is_overdue,
        shipped_from=shipped_from,
        shipped_to=shipped_to,
        estimated_from=estimated_from,
        estimated_to=estimated_to,
        search=search,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    result["items"] = [_to_response(ff) for ff in result["items"]]
    return FulfillmentListResponse(**result)


@fulfillment_router.get("/active", response_model=list[FulfillmentResponse])
async def active_fulfillments() -> list[FulfillmentResponse]:
    return [_to_response(ff) for ff in queries.find_active()]


@fulfillment_router.get("/overdue", response_model=list[FulfillmentResponse])
async def overdue_fulfillments() -> list[FulfillmentResponse]:
    return [_to_response(ff) for ff in queries.find_overdue()]


@fulfillment_router.get("/search", response_model=list[FulfillmentResponse])
async def search_fulfillments(q: str = Query(..., min_length=1)) -> list[FulfillmentResponse]:
    """Search by tracking or fulfillment number."""
    return [_to_response(ff) for ff in queries.search(q)]


@fulfillment_router.get("/stats", response_model=FulfillmentStatsResponse)
async def fulfillment_stats() -> FulfillmentStatsResponse:
    result = stats.fulfillment_stats()
    result["recent"] = [_to_response(ff) for ff in result["recent"]]
    return FulfillmentStatsResponse(**result)


@fulfillment_router.get("/items/stats", response_model=ItemStatsResponse)
async def item_stats() -> ItemStatsResponse:
    return ItemStatsResponse(**stats.item_stats())


@fulfillment_router.get("/items/attention", response_model=list[ItemWithFulfillmentResponse])
async def items_needing_attention() -> list[ItemWithFulfillmentResponse]:
    return [ItemWithFulfillmentResponse.from_pair(ff, item) for ff, item in queries.items_needing_attention()]


@fulfillment_router.get("/items/quality-check-pending", response_model=list[ItemWithFulfillmentResponse])
async def items_pending_quality_check() -> list[ItemWithFulfillmentResponse]:
    return [ItemWithFulfillmentResponse.from_pair(ff, item) for ff, item in queries.items_pending_quality_check()]


@fulfillment_router.get("/items/search", response_model=list[ItemWithFulfillmentResponse])
async def search_items(
    batch_number: str | None = None, serial_number: str | None = None
) -> list[ItemWithFulfillmentResponse]:
    pairs = queries.search_items(batch_number=batch_number, serial_number=serial_number)
    return [ItemWithFulfillmentResponse.from_pair(ff, item) for ff, item in pairs]


@fulfillment_router.get("/by-order/{order_id}", response_model=list[FulfillmentResponse])
async def fulfillments_for_order(order_id: str) -> list[FulfillmentResponse]:
    return [_to_response(ff) for ff in queries.find_by_order(order_id)]


@fulfillment_router.get("/by-tracking/{tracking_number}", response_model=FulfillmentResponse)
async def fulfillment_by_tracking_number(tracking_number: str) -> FulfillmentResponse:
    return _to_response(queries.find_by_tracking_number(tracking_number))


@fulfillment_router.get("/by-number/{fulfillment_number}", response_model=FulfillmentResponse)
async def fulfillment_by_number(fulfillment_number: str) -> FulfillmentResponse:
    return _to_response(queries.find_by_number(fulfillment_number))


@fulfillment_router.get("/{fulfillment_id}", response_model=FulfillmentResponse)
async def get_fulfillment(fulfillment_id: str) -> FulfillmentResponse:
    return _fresh(fulfillment_id)

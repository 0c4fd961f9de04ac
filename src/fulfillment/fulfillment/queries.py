"""Read-side lookups over the Fulfillment aggregate.

Exact-match filters are pushed to the repository; derived filters (overdue,
date ranges, substrings) and pagination are applied in memory on the
filtered result.
"""

from datetime import datetime

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from fulfillment.fulfillment import computed
from fulfillment.fulfillment.fulfillment import Fulfillment
from fulfillment.fulfillment.statuses import ACTIVE_STATUSES
from fulfillment.utils.settings import setting

SORTABLE_FIELDS = (
    "created_at",
    "updated_at",
    "fulfillment_number",
    "status",
    "priority_level",
    "shipped_date",
    "estimated_delivery_date",
    "actual_delivery_date",
)


def _repo():
    return current_domain.repository_for(Fulfillment)


def scan_fulfillments(**filters) -> list:
    query = _repo()._dao.query
    if filters:
        query = query.filter(**filters)
    return list(query.limit(setting("scan_limit")).all().items)


def _in_range(value: datetime | None, start: datetime | None, end: datetime | None) -> bool:
    if start is None and end is None:
        return True
    if value is None:
        return False
    value = computed.naive_utc(value)
    if start is not None and value < computed.naive_utc(start):
        return False
    if end is not None and value > computed.naive_utc(end):
        return False
    return True


def _matches_term(ff, term: str) -> bool:
    term = term.lower()
    haystack = (ff.fulfillment_number, ff.tracking_number, ff.notes, ff.fulfilled_by)
    return any(value and term in value.lower() for value in haystack)


def sort_fulfillments(fulfillments: list, sort_by: str, sort_order: str) -> list:
    if sort_by not in SORTABLE_FIELDS:
        sort_by = "created_at"
    present = [ff for ff in fulfillments if getattr(ff, sort_by) is not None]
    missing = [ff for ff in fulfillments if getattr(ff, sort_by) is None]

    def key(ff):
        value = getattr(ff, sort_by)
        return computed.naive_utc(value) if isinstance(value, datetime) else value

    present.sort(key=key, reverse=sort_order.lower() == "desc")
    return present + missing


# ---------------------------------------------------------------------------
# Single lookups
# ---------------------------------------------------------------------------
def get_fulfillment(fulfillment_id: str) -> Fulfillment:
    return _repo().get(fulfillment_id)


def find_by_number(fulfillment_number: str) -> Fulfillment:
    record = _repo()._dao.query.filter(fulfillment_number=fulfillment_number).all().first
    if record is None:
        raise ObjectNotFoundError(f"Fulfillment {fulfillment_number} not found")
    return record


def find_by_tracking_number(tracking_number: str) -> Fulfillment:
    record = _repo()._dao.query.filter(tracking_number=tracking_number).all().first
    if record is None:
        raise ObjectNotFoundError(f"No fulfillment with tracking number {tracking_number}")
    return record


def find_by_order(order_id: str) -> list[Fulfillment]:
    return sort_fulfillments(scan_fulfillments(order_id=str(order_id)), "created_at", "asc")


# ---------------------------------------------------------------------------
# Lists
# ---------------------------------------------------------------------------
def list_fulfillments(
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
    page: int = 1,
    limit: int = 20,
    sort_by: str = "created_at",
    sort_order: str = "desc",
) -> dict:
    """Filtered, sorted, paginated fulfillments.

    Returns ``items`` for the requested page together with ``total``,
    ``page``, ``limit`` and ``total_pages``.
    """
    exact = {
        "order_id": order_id,
        "status": status,
        "priority_level": priority_level,
        "shipping_provider_id": shipping_provider_id,
        "fulfilled_by": fulfilled_by,
    }
    fulfillments = scan_fulfillments(**{key: value for key, value in exact.items() if value is not None})

    if tracking_number:
        fulfillments = [
            ff for ff in fulfillments if ff.tracking_number and tracking_number.lower() in ff.tracking_number.lower()
        ]
    if has_tracking_number is not None:
        fulfillments = [ff for ff in fulfillments if bool(ff.tracking_number) == has_tracking_number]
    if is_overdue is not None:
        fulfillments = [ff for ff in fulfillments if computed.is_open_and_overdue(ff) == is_overdue]
    fulfillments = [
        ff
        for ff in fulfillments
        if _in_range(ff.shipped_date, shipped_from, shipped_to)
        and _in_range(ff.estimated_delivery_date, estimated_from, estimated_to)
    ]
    if search:
        fulfillments = [ff for ff in fulfillments if _matches_term(ff, search)]

    fulfillments = sort_fulfillments(fulfillments, sort_by, sort_order)

    page = max(page, 1)
    limit = max(limit, 1)
    total = len(fulfillments)
    start = (page - 1) * limit
    return {
        "items": fulfillments[start : start + limit],
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": (total + limit - 1) // limit,
    }


def find_active() -> list[Fulfillment]:
    active = {status.value for status in ACTIVE_STATUSES}
    return sort_fulfillments([ff for ff in scan_fulfillments() if ff.status in active], "created_at", "desc")


def find_overdue(now: datetime | None = None) -> list[Fulfillment]:
    """Overdue fulfillments, longest overdue first."""
    overdue = [ff for ff in scan_fulfillments() if computed.is_open_and_overdue(ff, now)]
    return sort_fulfillments(overdue, "estimated_delivery_date", "asc")


def search(term: str) -> list[Fulfillment]:
    """Fulfillments whose tracking or fulfillment number contains ``term``."""
    term = term.strip().lower()
    if not term:
        return []
    matches = [
        ff
        for ff in scan_fulfillments()
        if term in (ff.fulfillment_number or "").lower() or term in (ff.tracking_number or "").lower()
    ]
    return sort_fulfillments(matches, "created_at", "desc")[: setting("search_results_limit")]


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------
def all_items() -> list[tuple]:
    """Every (fulfillment, item) pair."""
    return [(ff, item) for ff in scan_fulfillments() for item in ff.items or []]


def items_needing_attention(now: datetime | None = None) -> list[tuple]:
    return [(ff, item) for ff, item in all_items() if computed.needs_attention(item, now)]


def items_pending_quality_check() -> list[tuple]:
    return [(ff, item) for ff, item in all_items() if computed.quality_check_pending(item)]


def search_items(batch_number: str | None = None, serial_number: str | None = None) -> list[tuple]:
    """Items matching a batch number exactly and/or carrying a serial number."""
    results = []
    for ff, item in all_items():
        if batch_number and item.batch_number != batch_number:
            continue
        if serial_number and serial_number not in computed.serial_numbers(item):
            continue
        if batch_number or serial_number:
            results.append((ff, item))
    return results

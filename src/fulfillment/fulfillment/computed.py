"""Values derived from a fulfillment or item at read time.

Nothing here is stored. Datetimes are compared as naive UTC because the
persistence layer hands them back without tzinfo.
"""

import json
from datetime import UTC, date, datetime

from fulfillment.fulfillment.statuses import (
    FulfillmentItemStatus,
    FulfillmentStatus,
)
from fulfillment.utils.settings import setting

# Closed without delivery; left out of overdue listings and counts
_CLOSED_UNDELIVERED_STATUSES = {
    FulfillmentStatus.CANCELLED.value,
    FulfillmentStatus.RETURNED.value,
}


def naive_utc(moment: datetime | None) -> datetime | None:
    if moment is None:
        return None
    if moment.tzinfo is not None:
        moment = moment.astimezone(UTC).replace(tzinfo=None)
    return moment


def _now(now: datetime | None) -> datetime:
    return naive_utc(now or datetime.now(UTC))


# ---------------------------------------------------------------------------
# Fulfillment
# ---------------------------------------------------------------------------
def is_overdue(ff, now: datetime | None = None) -> bool:
    """Past the estimated delivery date and not delivered."""
    if not ff.estimated_delivery_date or ff.status == FulfillmentStatus.DELIVERED.value:
        return False
    return naive_utc(ff.estimated_delivery_date) < _now(now)


def is_open_and_overdue(ff, now: datetime | None = None) -> bool:
    """Overdue and still expected to arrive (not cancelled or returned)."""
    return ff.status not in _CLOSED_UNDELIVERED_STATUSES and is_overdue(ff, now)


def days_overdue(ff, now: datetime | None = None) -> int:
    if not is_overdue(ff, now):
        return 0
    return (_now(now) - naive_utc(ff.estimated_delivery_date)).days


def days_in_transit(ff, now: datetime | None = None) -> int:
    if not ff.shipped_date:
        return 0
    end = naive_utc(ff.actual_delivery_date) if ff.actual_delivery_date else _now(now)
    return max(0, (end - naive_utc(ff.shipped_date)).days)


def total_cost(ff) -> float:
    return (ff.shipping_cost or 0.0) + (ff.insurance_cost or 0.0)


def total_items(ff) -> int:
    return sum(item.quantity for item in ff.items or [])


def total_fulfilled_items(ff) -> int:
    return sum(item.fulfilled_quantity or 0 for item in ff.items or [])


def fulfillment_progress(ff) -> int:
    total = total_items(ff)
    return round(total_fulfilled_items(ff) / total * 100) if total else 0


def awaiting_signature(ff) -> bool:
    return bool(ff.signature_required) and not ff.signature_received


def latest_tracking_event(ff):
    events = list(ff.tracking_events or [])
    if not events:
        return None
    return max(events, key=lambda e: naive_utc(e.event_date))


def sorted_tracking_events(ff) -> list:
    """Tracking history, newest first."""
    return sorted(ff.tracking_events or [], key=lambda e: naive_utc(e.event_date), reverse=True)


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------
def _today(now: datetime | None) -> date:
    return _now(now).date()


def serial_numbers(item) -> list[str]:
    if not item.serial_numbers:
        return []
    try:
        values = json.loads(item.serial_numbers)
    except ValueError:
        return []
    return [str(v) for v in values] if isinstance(values, list) else []


def has_issues(item) -> bool:
    return (item.damaged_quantity or 0) > 0 or (item.missing_quantity or 0) > 0


def is_expired(item, now: datetime | None = None) -> bool:
    if not item.expiry_date:
        return False
    return _today(now) > item.expiry_date


def is_expiring_soon(item, now: datetime | None = None) -> bool:
    """Expiry falls within the warning window, including already expired items."""
    if not item.expiry_date:
        return False
    return days_until_expiry(item, now) <= setting("expiry_warning_days")


def days_until_expiry(item, now: datetime | None = None) -> int:
    if not item.expiry_date:
        return -1
    return (item.expiry_date - _today(now)).days


def quality_check_pending(item) -> bool:
    return not item.quality_check and item.status not in (
        FulfillmentItemStatus.DELIVERED.value,
        FulfillmentItemStatus.RETURNED.value,
    )


def item_progress(item) -> int:
    return round((item.fulfilled_quantity or 0) / item.quantity * 100) if item.quantity else 0


def quality_score(item) -> int:
    if not item.quantity:
        return 100
    good = item.quantity - (item.damaged_quantity or 0) - (item.missing_quantity or 0)
    return round(good / item.quantity * 100)


def attention_reasons(item, now: datetime | None = None) -> list[str]:
    reasons = []
    if has_issues(item):
        reasons.append("Item quality issues")
    if is_expiring_soon(item, now):
        reasons.append("Expiring soon")
    if is_expired(item, now):
        reasons.append("Expired item")
    if not item.quality_check:
        reasons.append("Quality check pending")
    return reasons


def needs_attention(item, now: datetime | None = None) -> bool:
    return bool(attention_reasons(item, now))

"""Dashboard statistics over fulfillments and their items."""

from collections import Counter
from datetime import datetime

from fulfillment.fulfillment import computed
from fulfillment.fulfillment.queries import scan_fulfillments, sort_fulfillments
from fulfillment.fulfillment.statuses import FulfillmentItemStatus, FulfillmentStatus, PriorityLevel
from fulfillment.providers import get_provider_directory
from fulfillment.utils.settings import setting


def fulfillment_stats(now: datetime | None = None) -> dict:
    fulfillments = scan_fulfillments()
    by_status = Counter(ff.status for ff in fulfillments)
    by_priority = Counter(ff.priority_level for ff in fulfillments)

    stats = {
        "total": len(fulfillments),
        "overdue": sum(1 for ff in fulfillments if computed.is_open_and_overdue(ff, now)),
        "by_status": {status.value: by_status.get(status.value, 0) for status in FulfillmentStatus},
        "by_priority": {level.value: by_priority.get(level.value, 0) for level in PriorityLevel},
        "recent": sort_fulfillments(fulfillments, "created_at", "desc")[: setting("recent_fulfillments_limit")],
        "top_shipping_providers": top_shipping_providers(fulfillments),
    }
    for status in FulfillmentStatus:
        stats[status.name.lower()] = stats["by_status"][status.value]
    return stats


def top_shipping_providers(fulfillments: list | None = None) -> list[dict]:
    """Providers ranked by fulfillment count, with their delivery rate."""
    if fulfillments is None:
        fulfillments = scan_fulfillments()

    totals: Counter = Counter()
    delivered: Counter = Counter()
    for ff in fulfillments:
        if not ff.shipping_provider_id:
            continue
        provider_id = str(ff.shipping_provider_id)
        totals[provider_id] += 1
        if ff.status == FulfillmentStatus.DELIVERED.value:
            delivered[provider_id] += 1

    directory = get_provider_directory()
    ranking = []
    for provider_id, count in totals.most_common(setting("top_providers_limit")):
        provider = directory.find_provider_by_id(provider_id)
        ranking.append(
            {
                "shipping_provider_id": provider_id,
                "name": provider.name if provider else None,
                "fulfillment_count": count,
                "delivered_count": delivered[provider_id],
                "delivery_rate": round(delivered[provider_id] / count * 100, 2),
            }
        )
    return ranking


def item_stats(now: datetime | None = None) -> dict:
    items = [item for ff in scan_fulfillments() for item in ff.items or []]
    by_status = Counter(item.status for item in items)
    by_location = Counter(item.location_picked_from for item in items if item.location_picked_from)

    return {
        "total": len(items),
        "by_status": {status.value: by_status.get(status.value, 0) for status in FulfillmentItemStatus},
        "with_damage": sum(1 for item in items if (item.damaged_quantity or 0) > 0),
        "with_missing": sum(1 for item in items if (item.missing_quantity or 0) > 0),
        "quality_check_pending": sum(1 for item in items if computed.quality_check_pending(item)),
        "expiring_soon": sum(
            1 for item in items if computed.is_expiring_soon(item, now) and not computed.is_expired(item, now)
        ),
        "expired": sum(1 for item in items if computed.is_expired(item, now)),
        "by_location": dict(by_location),
    }

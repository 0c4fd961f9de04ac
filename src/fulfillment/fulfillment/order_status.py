"""Push the status implied by an order's fulfillments back to the order."""

from fulfillment.fulfillment.queries import find_by_order
from fulfillment.fulfillment.synchronization import derive_order_status
from fulfillment.orders import get_order_ledger
from fulfillment.utils.logging import get_logger

logger = get_logger(__name__)


def sync_order_status(ff, siblings: list | None = None, include_self: bool = True) -> str | None:
    """Recompute the order status for ``ff``'s order and write it if it changed.

    ``ff`` is the fulfillment the caller just changed. It replaces any stale
    copy of itself among the stored ``siblings``, or is left out entirely when
    ``include_self`` is false (it is being deleted). Returns the new order
    status, or None when nothing was written.
    """
    ledger = get_order_ledger()
    order = ledger.find_order_by_id(str(ff.order_id))
    if order is None:
        logger.warning("Order not found while syncing status", order_id=str(ff.order_id))
        return None

    if siblings is None:
        siblings = find_by_order(str(ff.order_id))
    statuses = [s.status for s in siblings if str(s.id) != str(ff.id)]
    if include_self:
        statuses.insert(0, ff.status)

    previous = order.status
    target = derive_order_status(previous, statuses)
    if target is None:
        return None

    ledger.update_order_status(order.id, target)
    logger.info(
        "Order status synchronized from fulfillments",
        order_id=order.id,
        previous_status=previous,
        new_status=target,
        fulfillment_count=len(statuses),
    )
    return target

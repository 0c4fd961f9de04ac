"""Fulfillment deletion — command and handler.

Only pending fulfillments can be deleted. Their tracking events and items go
first, then the fulfillment itself, and the quantities they held are given
back to the order.
"""

from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from fulfillment.domain import fulfillment
from fulfillment.fulfillment.fulfillment import Fulfillment
from fulfillment.fulfillment.order_status import sync_order_status
from fulfillment.orders import get_order_ledger
from fulfillment.utils.logging import get_logger

logger = get_logger(__name__)


@fulfillment.command(part_of="Fulfillment")
class DeleteFulfillment:
    """Delete a fulfillment that has not started processing."""

    fulfillment_id = Identifier(required=True)


@fulfillment.command_handler(part_of=Fulfillment)
class DeleteFulfillmentHandler:
    @handle(DeleteFulfillment)
    def delete_fulfillment(self, command):
        repo = current_domain.repository_for(Fulfillment)
        ff = repo.get(command.fulfillment_id)

        released = ff.discard()
        repo.add(ff)
        repo._dao.delete(ff)

        get_order_ledger().release_quantities(released)
        sync_order_status(ff, include_self=False)

        logger.info(
            "Fulfillment deleted",
            fulfillment_id=str(ff.id),
            order_id=str(ff.order_id),
            released=released,
        )

"""Fulfillment cancellation — command and handler.

Cancels a fulfillment that has not yet been shipped. Quantities it claimed on
the order stay claimed.
"""

from protean import handle
from protean.fields import Identifier, Text
from protean.utils.globals import current_domain

from fulfillment.domain import fulfillment
from fulfillment.fulfillment.fulfillment import Fulfillment
from fulfillment.fulfillment.order_status import sync_order_status
from fulfillment.utils.logging import get_logger

logger = get_logger(__name__)


@fulfillment.command(part_of="Fulfillment")
class CancelFulfillment:
    """Cancel a fulfillment before it has been shipped."""

    fulfillment_id = Identifier(required=True)
    reason = Text()


@fulfillment.command_handler(part_of=Fulfillment)
class CancelFulfillmentHandler:
    @handle(CancelFulfillment)
    def cancel_fulfillment(self, command):
        repo = current_domain.repository_for(Fulfillment)
        ff = repo.get(command.fulfillment_id)
        ff.cancel(command.reason)
        repo.add(ff)
        sync_order_status(ff)

        logger.info(
            "Fulfillment cancelled",
            fulfillment_id=str(ff.id),
            order_id=str(ff.order_id),
            reason=command.reason,
        )

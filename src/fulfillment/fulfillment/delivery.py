"""Fulfillment delivery — command and handler.

Records delivery confirmation for a fulfillment and closes out its items.
"""

from protean import handle
from protean.fields import DateTime, Identifier, String
from protean.utils.globals import current_domain

from fulfillment.domain import fulfillment
from fulfillment.fulfillment.fulfillment import Fulfillment
from fulfillment.fulfillment.order_status import sync_order_status


@fulfillment.command(part_of="Fulfillment")
class MarkDelivered:
    """Confirm that the shipment reached the customer."""

    fulfillment_id = Identifier(required=True)
    actual_delivery_date = DateTime()
    recipient_name = String(max_length=200)
    photo_url = String(max_length=500)


@fulfillment.command_handler(part_of=Fulfillment)
class DeliveryHandler:
    @handle(MarkDelivered)
    def mark_delivered(self, command):
        repo = current_domain.repository_for(Fulfillment)
        ff = repo.get(command.fulfillment_id)
        ff.mark_delivered(
            actual_delivery_date=command.actual_delivery_date,
            recipient_name=command.recipient_name,
            photo_url=command.photo_url,
        )
        repo.add(ff)
        sync_order_status(ff)

"""Fulfillment tracking — commands and handler.

Attaches carrier tracking numbers and records tracking events reported by
the carrier.
"""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, String, Text
from protean.utils.globals import current_domain

from fulfillment.domain import fulfillment
from fulfillment.fulfillment.fulfillment import Fulfillment
from fulfillment.fulfillment.order_status import sync_order_status
from fulfillment.fulfillment.statuses import TrackingStatus
from fulfillment.providers import require_valid_tracking_number
from fulfillment.utils.logging import get_logger

logger = get_logger(__name__)


@fulfillment.command(part_of="Fulfillment")
class AddTrackingNumber:
    """Attach a tracking number and mark the fulfillment shipped."""

    fulfillment_id = Identifier(required=True)
    tracking_number = String(required=True, max_length=255)


@fulfillment.command(part_of="Fulfillment")
class AddTrackingEvent:
    """Record a tracking event reported by the carrier."""

    fulfillment_id = Identifier(required=True)
    status = String(required=True, max_length=50, choices=TrackingStatus)
    event_date = DateTime()
    location = String(max_length=255)
    description = Text()
    estimated_delivery_date = DateTime()
    recipient_name = String(max_length=200)
    relationship = String(max_length=100)
    photo_url = String(max_length=500)
    notes = Text()
    exception_reason = Text()


@fulfillment.command_handler(part_of=Fulfillment)
class TrackingHandler:
    @handle(AddTrackingNumber)
    def add_tracking_number(self, command):
        repo = current_domain.repository_for(Fulfillment)
        ff = repo.get(command.fulfillment_id)

        tracking_number = command.tracking_number.strip()
        if not tracking_number:
            raise ValidationError({"tracking_number": ["Tracking number is required"]})
        require_valid_tracking_number(ff.shipping_provider_id, tracking_number)

        ff.assign_tracking_number(tracking_number)
        repo.add(ff)
        sync_order_status(ff)

        logger.info(
            "Tracking number assigned",
            fulfillment_id=str(ff.id),
            tracking_number=tracking_number,
        )

    @handle(AddTrackingEvent)
    def add_tracking_event(self, command):
        repo = current_domain.repository_for(Fulfillment)
        ff = repo.get(command.fulfillment_id)
        event = ff.record_tracking_event(
            status=command.status,
            event_date=command.event_date,
            location=command.location,
            description=command.description,
            estimated_delivery_date=command.estimated_delivery_date,
            recipient_name=command.recipient_name,
            relationship=command.relationship,
            photo_url=command.photo_url,
            notes=command.notes,
            exception_reason=command.exception_reason,
        )
        repo.add(ff)
        sync_order_status(ff)

        if event.is_exception:
            logger.warning(
                "Carrier reported a delivery exception",
                fulfillment_id=str(ff.id),
                tracking_status=event.status,
                reason=command.exception_reason,
                location=command.location,
            )
        return str(event.id)

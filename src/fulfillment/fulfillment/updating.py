"""Fulfillment updates — command and handler.

Applies a partial patch of descriptive fields and, optionally, a status
change. The patch is applied first so that a tracking number supplied in the
same request satisfies the SHIPPED precondition.
"""

from protean import handle
from protean.fields import Boolean, DateTime, Float, Identifier, String, Text
from protean.utils.globals import current_domain

from fulfillment.domain import fulfillment
from fulfillment.fulfillment.fulfillment import Fulfillment, build_address
from fulfillment.fulfillment.order_status import sync_order_status
from fulfillment.fulfillment.statuses import FulfillmentStatus, PackagingType, PriorityLevel
from fulfillment.providers import require_active_provider, require_valid_tracking_number


@fulfillment.command(part_of="Fulfillment")
class UpdateFulfillment:
    """Patch a fulfillment. Fields left empty are not changed."""

    fulfillment_id = Identifier(required=True)
    status = String(max_length=50, choices=FulfillmentStatus)
    cancel_reason = Text()
    shipping_provider_id = Identifier()
    tracking_number = String(max_length=255)
    estimated_delivery_date = DateTime()
    shipping_cost = Float(min_value=0.0)
    insurance_cost = Float(min_value=0.0)
    packaging_type = String(max_length=20, choices=PackagingType)
    package_weight = Float(min_value=0.0)
    package_dimensions = String(max_length=100)
    shipping_address = Text()  # JSON address
    notes = Text()
    internal_notes = Text()
    delivery_instructions = Text()
    priority_level = String(max_length=20, choices=PriorityLevel)
    fulfilled_by = String(max_length=100)
    signature_received = Boolean()


@fulfillment.command_handler(part_of=Fulfillment)
class UpdateFulfillmentHandler:
    @handle(UpdateFulfillment)
    def update_fulfillment(self, command):
        repo = current_domain.repository_for(Fulfillment)
        ff = repo.get(command.fulfillment_id)

        if command.shipping_provider_id:
            require_active_provider(command.shipping_provider_id)
        # Changing either the provider or the number re-checks the pair
        if command.shipping_provider_id or command.tracking_number:
            require_valid_tracking_number(
                command.shipping_provider_id or ff.shipping_provider_id,
                command.tracking_number or ff.tracking_number,
            )

        ff.update_details(
            shipping_provider_id=command.shipping_provider_id,
            tracking_number=command.tracking_number,
            estimated_delivery_date=command.estimated_delivery_date,
            shipping_cost=command.shipping_cost,
            insurance_cost=command.insurance_cost,
            packaging_type=command.packaging_type,
            package_weight=command.package_weight,
            package_dimensions=command.package_dimensions,
            shipping_address=build_address(command.shipping_address),
            notes=command.notes,
            internal_notes=command.internal_notes,
            delivery_instructions=command.delivery_instructions,
            priority_level=command.priority_level,
            fulfilled_by=command.fulfilled_by,
            signature_received=command.signature_received,
        )
        if command.status:
            ff.change_status(command.status, reason=command.cancel_reason)

        repo.add(ff)
        sync_order_status(ff)

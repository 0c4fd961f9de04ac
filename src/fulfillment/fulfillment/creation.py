"""Fulfillment creation — command and handler.

Creating a fulfillment claims quantity on the order's items. Everything is
validated before the fulfillment is built, and the claim itself is
all-or-nothing across the requested items.
"""

import json

from protean import handle
from protean.exceptions import InvalidOperationError, ObjectNotFoundError, ValidationError
from protean.fields import Boolean, DateTime, Float, Identifier, String, Text
from protean.utils.globals import current_domain

from fulfillment.domain import fulfillment
from fulfillment.fulfillment.fulfillment import Fulfillment, build_address
from fulfillment.fulfillment.numbering import claim_fulfillment_number
from fulfillment.fulfillment.statuses import PackagingType, PriorityLevel
from fulfillment.orders import get_order_ledger
from fulfillment.orders.port import OrderStatus
from fulfillment.providers import require_active_provider, require_valid_tracking_number
from fulfillment.utils.logging import get_logger

logger = get_logger(__name__)


@fulfillment.command(part_of="Fulfillment")
class CreateFulfillment:
    """Create a new fulfillment for some of an order's items."""

    order_id = Identifier(required=True)
    items = Text(required=True)  # JSON list of item dicts
    shipping_provider_id = Identifier()
    tracking_number = String(max_length=255)
    priority_level = String(max_length=20, choices=PriorityLevel)
    packaging_type = String(max_length=20, choices=PackagingType)
    shipping_address = Text()  # JSON address; defaults to the order's
    pickup_address = Text()  # JSON address
    estimated_delivery_date = DateTime()
    shipping_cost = Float(min_value=0.0)
    insurance_cost = Float(min_value=0.0)
    package_weight = Float(min_value=0.0)
    package_dimensions = String(max_length=100)
    notes = Text()
    internal_notes = Text()
    delivery_instructions = Text()
    signature_required = Boolean()
    gift_wrap = Boolean()
    gift_message = Text()
    fulfilled_by = String(max_length=100)


@fulfillment.command_handler(part_of=Fulfillment)
class CreateFulfillmentHandler:
    @handle(CreateFulfillment)
    def create_fulfillment(self, command):
        items_data = json.loads(command.items) if isinstance(command.items, str) else command.items
        ledger = get_order_ledger()

        order = ledger.find_order_by_id(str(command.order_id))
        if order is None:
            raise ObjectNotFoundError(f"Order {command.order_id} not found")
        blocker = order.fulfillment_blocker
        if blocker:
            raise InvalidOperationError(blocker)

        if command.shipping_provider_id:
            require_active_provider(command.shipping_provider_id)
            require_valid_tracking_number(command.shipping_provider_id, command.tracking_number)

        if not items_data:
            raise ValidationError({"items": ["At least one item is required to create a fulfillment"]})

        # Sum requested quantity per order item and validate ownership
        requested: dict[str, int] = {}
        computed_weight = 0.0
        for item_data in items_data:
            order_item_id = str(item_data.get("order_item_id") or "")
            quantity = item_data.get("quantity")
            if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
                raise ValidationError({"quantity": ["Quantity must be a positive integer"]})

            order_item = ledger.find_order_item_by_id(order_item_id)
            if order_item is None:
                raise ObjectNotFoundError(f"Order item {order_item_id} not found")
            if str(order_item.order_id) != str(order.id):
                raise ValidationError({"items": [f"Order item {order_item_id} does not belong to this order"]})

            requested[order_item_id] = requested.get(order_item_id, 0) + quantity
            computed_weight += (item_data.get("weight") or order_item.weight or 0.0) * quantity

        for order_item_id, quantity in requested.items():
            pending = ledger.find_order_item_by_id(order_item_id).pending_quantity
            if quantity > pending:
                raise InvalidOperationError(
                    f"Cannot fulfill {quantity} items. Only {pending} items are available for fulfillment"
                )

        package_weight = command.package_weight
        if package_weight is None and computed_weight > 0:
            package_weight = computed_weight

        ff = Fulfillment.create(
            fulfillment_number=claim_fulfillment_number(),
            order_id=order.id,
            items_data=items_data,
            shipping_address=build_address(command.shipping_address) or build_address(order.shipping_address),
            pickup_address=build_address(command.pickup_address),
            shipping_provider_id=command.shipping_provider_id,
            tracking_number=command.tracking_number,
            priority_level=command.priority_level,
            packaging_type=command.packaging_type,
            estimated_delivery_date=command.estimated_delivery_date,
            shipping_cost=command.shipping_cost,
            insurance_cost=command.insurance_cost,
            package_weight=package_weight,
            package_dimensions=command.package_dimensions,
            notes=command.notes,
            internal_notes=command.internal_notes,
            delivery_instructions=command.delivery_instructions,
            signature_required=command.signature_required,
            gift_wrap=command.gift_wrap,
            gift_message=command.gift_message,
            fulfilled_by=command.fulfilled_by,
        )
        current_domain.repository_for(Fulfillment).add(ff)

        ledger.claim_quantities(requested)
        if order.status == OrderStatus.CONFIRMED.value:
            ledger.update_order_status(order.id, OrderStatus.PROCESSING.value)

        logger.info(
            "Fulfillment created",
            fulfillment_id=str(ff.id),
            fulfillment_number=ff.fulfillment_number,
            order_id=str(order.id),
            item_count=len(items_data),
        )
        return str(ff.id)

"""Fulfillment item tracking — commands and handler.

Every item change re-evaluates the fulfillment status implied by its items,
then the order status implied by the order's fulfillments.
"""

from protean import handle
from protean.fields import Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from fulfillment.domain import fulfillment
from fulfillment.fulfillment.fulfillment import Fulfillment
from fulfillment.fulfillment.order_status import sync_order_status
from fulfillment.fulfillment.statuses import FulfillmentItemStatus


@fulfillment.command(part_of="Fulfillment")
class UpdateItemStatus:
    fulfillment_id = Identifier(required=True)
    item_id = Identifier(required=True)
    status = String(required=True, max_length=50, choices=FulfillmentItemStatus)


@fulfillment.command(part_of="Fulfillment")
class UpdateItemFulfilledQuantity:
    fulfillment_id = Identifier(required=True)
    item_id = Identifier(required=True)
    fulfilled_quantity = Integer(required=True)


@fulfillment.command(part_of="Fulfillment")
class PerformQualityCheck:
    fulfillment_id = Identifier(required=True)
    item_id = Identifier(required=True)
    checked_by = String(required=True, max_length=100)
    condition_notes = Text()


@fulfillment.command(part_of="Fulfillment")
class ReportItemDamage:
    fulfillment_id = Identifier(required=True)
    item_id = Identifier(required=True)
    quantity = Integer(required=True)
    notes = Text()


@fulfillment.command(part_of="Fulfillment")
class ReportItemMissing:
    fulfillment_id = Identifier(required=True)
    item_id = Identifier(required=True)
    quantity = Integer(required=True)
    notes = Text()


@fulfillment.command_handler(part_of=Fulfillment)
class FulfillmentItemHandler:
    def _load(self, fulfillment_id):
        repo = current_domain.repository_for(Fulfillment)
        return repo, repo.get(fulfillment_id)

    def _save(self, repo, ff):
        repo.add(ff)
        sync_order_status(ff)

    @handle(UpdateItemStatus)
    def update_item_status(self, command):
        repo, ff = self._load(command.fulfillment_id)
        ff.update_item_status(command.item_id, command.status)
        self._save(repo, ff)

    @handle(UpdateItemFulfilledQuantity)
    def update_fulfilled_quantity(self, command):
        repo, ff = self._load(command.fulfillment_id)
        ff.update_fulfilled_quantity(command.item_id, command.fulfilled_quantity)
        self._save(repo, ff)

    @handle(PerformQualityCheck)
    def perform_quality_check(self, command):
        repo, ff = self._load(command.fulfillment_id)
        ff.perform_quality_check(command.item_id, command.checked_by, command.condition_notes)
        self._save(repo, ff)

    @handle(ReportItemDamage)
    def report_damage(self, command):
        repo, ff = self._load(command.fulfillment_id)
        ff.report_damaged(command.item_id, command.quantity, command.notes)
        self._save(repo, ff)

    @handle(ReportItemMissing)
    def report_missing(self, command):
        repo, ff = self._load(command.fulfillment_id)
        ff.report_missing(command.item_id, command.quantity, command.notes)
        self._save(repo, ff)

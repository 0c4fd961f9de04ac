"""Application tests for deleting pending fulfillments."""

import pytest
from fulfillment.fulfillment.deletion import DeleteFulfillment
from fulfillment.fulfillment.fulfillment import Fulfillment, FulfillmentStatus
from fulfillment.fulfillment.updating import UpdateFulfillment
from fulfillment.orders.port import OrderStatus
from protean import current_domain
from protean.exceptions import InvalidOperationError, ObjectNotFoundError


def _delete(ff_id):
    return current_domain.process(DeleteFulfillment(fulfillment_id=ff_id), asynchronous=False)


class TestDeleteFulfillment:
    def test_removes_fulfillment(self, new_fulfillment):
        ff_id = new_fulfillment()
        _delete(ff_id)
        with pytest.raises(ObjectNotFoundError):
            current_domain.repository_for(Fulfillment).get(ff_id)

    def test_releases_claimed_quantities(self, new_fulfillment, ledger):
        ff_id = new_fulfillment(
            items=[{"order_item_id": "oi-1", "quantity": 2}, {"order_item_id": "oi-2", "quantity": 4}]
        )
        assert ledger.find_order_item_by_id("oi-2").pending_quantity == 1

        _delete(ff_id)
        assert ledger.find_order_item_by_id("oi-1").pending_quantity == 3
        assert ledger.find_order_item_by_id("oi-2").pending_quantity == 5

    def test_released_quantity_can_be_claimed_again(self, new_fulfillment, ledger):
        ff_id = new_fulfillment(items=[{"order_item_id": "oi-1", "quantity": 3}])
        _delete(ff_id)
        new_fulfillment(items=[{"order_item_id": "oi-1", "quantity": 3}])
        assert ledger.find_order_item_by_id("oi-1").pending_quantity == 0

    def test_processing_fulfillment_cannot_be_deleted(self, new_fulfillment, ledger):
        ff_id = new_fulfillment()
        current_domain.process(
            UpdateFulfillment(fulfillment_id=ff_id, status=FulfillmentStatus.PROCESSING.value),
            asynchronous=False,
        )
        with pytest.raises(InvalidOperationError):
            _delete(ff_id)
        assert ledger.find_order_item_by_id("oi-1").pending_quantity == 2

    def test_remaining_fulfillments_drive_order_status(self, new_fulfillment, ledger):
        pending = new_fulfillment(items=[{"order_item_id": "oi-1", "quantity": 1}])
        other = new_fulfillment(items=[{"order_item_id": "oi-2", "quantity": 1}])
        current_domain.process(
            UpdateFulfillment(fulfillment_id=other, status=FulfillmentStatus.CANCELLED.value),
            asynchronous=False,
        )
        assert ledger.find_order_by_id("ord-001").status == OrderStatus.PROCESSING.value

        _delete(pending)
        assert ledger.find_order_by_id("ord-001").status == OrderStatus.CANCELLED.value

    def test_unknown_fulfillment_is_not_found(self):
        with pytest.raises(ObjectNotFoundError):
            _delete("missing-id")

"""Application tests for patching fulfillments via UpdateFulfillment."""

import json
from datetime import UTC, datetime, timedelta

import pytest
from fulfillment.fulfillment.fulfillment import Fulfillment, FulfillmentItemStatus, FulfillmentStatus
from fulfillment.fulfillment.updating import UpdateFulfillment
from fulfillment.orders.port import OrderStatus
from protean import current_domain
from protean.exceptions import InvalidOperationError, ObjectNotFoundError, ValidationError


def _update(ff_id, **fields):
    command = UpdateFulfillment(fulfillment_id=ff_id, **fields)
    return current_domain.process(command, asynchronous=False)


def _get(ff_id):
    return current_domain.repository_for(Fulfillment).get(ff_id)


class TestPatchFields:
    def test_updates_supplied_fields_only(self, new_fulfillment):
        ff_id = new_fulfillment(notes="Original")
        _update(ff_id, shipping_cost=12.5, delivery_instructions="Ring twice")
        ff = _get(ff_id)
        assert ff.shipping_cost == 12.5
        assert ff.delivery_instructions == "Ring twice"
        assert ff.notes == "Original"

    def test_updates_shipping_address(self, new_fulfillment):
        ff_id = new_fulfillment()
        address = {"address_line_1": "7 Quay St", "city": "Cork", "country": "IE"}
        _update(ff_id, shipping_address=json.dumps(address))
        assert _get(ff_id).shipping_address.city == "Cork"

    def test_updates_estimated_delivery(self, new_fulfillment):
        ff_id = new_fulfillment()
        eta = datetime.now(UTC) + timedelta(days=3)
        _update(ff_id, estimated_delivery_date=eta)
        assert _get(ff_id).estimated_delivery_date is not None

    def test_rejects_inactive_provider(self, new_fulfillment, providers):
        providers.register_provider("prov-old", "OldPost", is_active=False)
        ff_id = new_fulfillment()
        with pytest.raises(ValidationError):
            _update(ff_id, shipping_provider_id="prov-old")

    def test_rejects_tracking_number_the_provider_does_not_accept(self, new_fulfillment, carrier):
        ff_id = new_fulfillment(shipping_provider_id="prov-ups")
        _update(ff_id, status=FulfillmentStatus.PACKED.value)
        with pytest.raises(ValidationError):
            _update(ff_id, tracking_number="garbage", status=FulfillmentStatus.SHIPPED.value)
        ff = _get(ff_id)
        assert ff.tracking_number is None
        assert ff.status == FulfillmentStatus.PACKED.value

    def test_provider_change_rechecks_stored_tracking_number(self, new_fulfillment, carrier):
        ff_id = new_fulfillment(tracking_number="LOCAL-123")
        with pytest.raises(ValidationError):
            _update(ff_id, shipping_provider_id="prov-ups")
        assert _get(ff_id).shipping_provider_id is None

    def test_tracking_number_is_free_form_without_provider(self, new_fulfillment):
        ff_id = new_fulfillment()
        _update(ff_id, tracking_number="LOCAL-123")
        assert _get(ff_id).tracking_number == "LOCAL-123"

    def test_unknown_fulfillment_is_not_found(self):
        with pytest.raises(ObjectNotFoundError):
            _update("missing-id", notes="x")


class TestStatusChanges:
    def test_moves_along_the_state_machine(self, new_fulfillment):
        ff_id = new_fulfillment()
        _update(ff_id, status=FulfillmentStatus.PROCESSING.value)
        _update(ff_id, status=FulfillmentStatus.PACKED.value)
        assert _get(ff_id).status == FulfillmentStatus.PACKED.value

    def test_rejects_disallowed_transition(self, new_fulfillment):
        ff_id = new_fulfillment(tracking_number="1Z999AA10123456784")
        with pytest.raises(InvalidOperationError):
            _update(ff_id, status=FulfillmentStatus.DELIVERED.value)
        assert _get(ff_id).status == FulfillmentStatus.PENDING.value

    def test_shipped_needs_tracking_number(self, new_fulfillment):
        ff_id = new_fulfillment()
        _update(ff_id, status=FulfillmentStatus.PACKED.value)
        with pytest.raises(InvalidOperationError, match="Tracking number is required"):
            _update(ff_id, status=FulfillmentStatus.SHIPPED.value)

    def test_tracking_number_in_same_patch_allows_shipping(self, new_fulfillment):
        ff_id = new_fulfillment()
        _update(ff_id, status=FulfillmentStatus.PACKED.value)
        _update(ff_id, status=FulfillmentStatus.SHIPPED.value, tracking_number="1Z999AA10123456784")
        ff = _get(ff_id)
        assert ff.status == FulfillmentStatus.SHIPPED.value
        assert ff.shipped_date is not None

    def test_cancel_via_patch_records_reason(self, new_fulfillment):
        ff_id = new_fulfillment()
        _update(ff_id, status=FulfillmentStatus.CANCELLED.value, cancel_reason="Duplicate")
        ff = _get(ff_id)
        assert ff.status == FulfillmentStatus.CANCELLED.value
        assert ff.cancel_reason == "Duplicate"
        assert ff.items[0].status == FulfillmentItemStatus.CANCELLED.value

    def test_order_follows_the_only_fulfillment(self, new_fulfillment, ledger):
        ff_id = new_fulfillment(tracking_number="1Z999AA10123456784")
        _update(ff_id, status=FulfillmentStatus.PACKED.value)
        _update(ff_id, status=FulfillmentStatus.SHIPPED.value)
        _update(ff_id, status=FulfillmentStatus.IN_TRANSIT.value)
        _update(ff_id, status=FulfillmentStatus.DELIVERED.value)
        assert ledger.find_order_by_id("ord-001").status == OrderStatus.DELIVERED.value

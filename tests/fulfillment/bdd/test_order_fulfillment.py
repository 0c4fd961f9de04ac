"""BDD tests for fulfilling an order end to end."""

from fulfillment.fulfillment.cancellation import CancelFulfillment
from fulfillment.fulfillment.fulfillment import Fulfillment
from fulfillment.fulfillment.tracking import AddTrackingEvent, AddTrackingNumber
from protean import current_domain
from protean.exceptions import InvalidOperationError
from pytest_bdd import given, parsers, scenarios, then, when

scenarios("features/order_fulfillment.feature")


def _first(story):
    return current_domain.repository_for(Fulfillment).get(story["ids"][0])


@given(parsers.cfparse('tracking number "{tracking_number}" is added'))
@when(parsers.cfparse('tracking number "{tracking_number}" is added'))
def add_tracking_number(story, tracking_number):
    command = AddTrackingNumber(fulfillment_id=story["ids"][0], tracking_number=tracking_number)
    current_domain.process(command, asynchronous=False)


@when(parsers.cfparse('the carrier reports "{status}"'))
def carrier_reports(story, status):
    command = AddTrackingEvent(fulfillment_id=story["ids"][0], status=status)
    current_domain.process(command, asynchronous=False)


@when(parsers.cfparse('the fulfillment is cancelled with reason "{reason}"'))
def cancel(story, reason):
    command = CancelFulfillment(fulfillment_id=story["ids"][0], reason=reason)
    current_domain.process(command, asynchronous=False)


@when(parsers.cfparse('cancellation is attempted with reason "{reason}"'))
def attempt_cancellation(story, reason):
    try:
        cancel(story, reason)
    except InvalidOperationError as exc:
        story["error"] = exc


@then("the fulfillment has a shipped date")
def has_shipped_date(story):
    assert _first(story).shipped_date is not None


@then(parsers.cfparse('the fulfillment has {count:d} tracking event with status "{status}"'))
def tracking_events(story, count, status):
    events = _first(story).tracking_events
    assert len(events) == count
    assert {event.status for event in events} == {status}

"""Shared BDD fixtures and step definitions for the Fulfillment domain."""

import json
import re

import pytest
from fulfillment.fulfillment.creation import CreateFulfillment
from fulfillment.fulfillment.fulfillment import Fulfillment
from fulfillment.orders import get_order_ledger
from protean import current_domain
from protean.exceptions import InvalidOperationError
from pytest_bdd import given, parsers, then, when

ORDER_ID = "ord-bdd-001"

_LINE = re.compile(r'"(?P<order_item_id>[^"]+)" x(?P<quantity>\d+)')


def parse_lines(text: str) -> list[dict]:
    """``"oi-1" x2 and "oi-2" x5`` -> [{order_item_id, quantity}, ...]"""
    return [
        {"order_item_id": match["order_item_id"], "quantity": int(match["quantity"])}
        for match in _LINE.finditer(text)
    ]


def create_fulfillment(lines: list[dict]) -> str:
    command = CreateFulfillment(order_id=ORDER_ID, items=json.dumps(lines))
    return current_domain.process(command, asynchronous=False)


def load(ff_id: str) -> Fulfillment:
    return current_domain.repository_for(Fulfillment).get(ff_id)


@pytest.fixture()
def story():
    """Fulfillment ids created in the scenario, oldest first, and any captured error."""
    return {"ids": [], "error": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.re(r"a paid order with items (?P<lines>.+)"))
def register_paid_order(lines):
    items = [{"id": line["order_item_id"], "quantity": line["quantity"]} for line in parse_lines(lines)]
    get_order_ledger().register_order(ORDER_ID, items=items)


@given(parsers.re(r"(?:a|another) fulfillment for (?P<lines>.+)"))
@when(parsers.re(r"a fulfillment is created for (?P<lines>.+)"))
def fulfillment_for(story, lines):
    story["ids"].append(create_fulfillment(parse_lines(lines)))


@when(parsers.re(r"a fulfillment is requested for (?P<lines>.+)"))
def request_fulfillment(story, lines):
    try:
        create_fulfillment(parse_lines(lines))
    except InvalidOperationError as exc:
        story["error"] = exc


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the fulfillment is "{status}"'))
def fulfillment_status(story, status):
    assert load(story["ids"][0]).status == status


@then(parsers.cfparse('every item of the fulfillment is "{status}"'))
def every_item_status(story, status):
    assert {item.status for item in load(story["ids"][0]).items} == {status}


@then(parsers.cfparse('the order is "{status}"'))
def order_status(status):
    assert get_order_ledger().find_order_by_id(ORDER_ID).status == status


@then(parsers.cfparse('order item "{order_item_id}" has {pending:d} pending'))
def pending_quantity(order_item_id, pending):
    assert get_order_ledger().find_order_item_by_id(order_item_id).pending_quantity == pending


@then("the request is rejected as a conflict")
def rejected_as_conflict(story):
    assert isinstance(story["error"], InvalidOperationError)

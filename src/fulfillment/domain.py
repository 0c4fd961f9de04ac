"""Fulfillment bounded context — shipment splitting, tracking and status sync.

Splits an order's items into physical shipments, tracks each shipment through
pick/pack/ship/deliver, records carrier tracking events, and keeps the parent
order's status consistent with its fulfillments. Uses CQRS: every operation
is a command processed synchronously inside a Unit of Work.
"""

from protean.domain import Domain

from fulfillment.utils.logging import configure_logging

configure_logging()

fulfillment = Domain(name="fulfillment")

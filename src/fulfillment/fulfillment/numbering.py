"""Fulfillment number generation.

Numbers look like ``FUL{YYYY}{MM}{NNNN}`` and restart at 0001 every calendar
month. The last issued value for each month lives in a FulfillmentSequence
aggregate, which is read, incremented and saved inside the Unit of Work that
creates the fulfillment. Two creations racing for the same month collide on
the sequence's version and one of them fails instead of reusing a number.
"""

from datetime import UTC, datetime

from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, Integer
from protean.utils.globals import current_domain

from fulfillment.domain import fulfillment
from fulfillment.utils.logging import get_logger

logger = get_logger(__name__)

NUMBER_PREFIX = "FUL"


@fulfillment.aggregate
class FulfillmentSequence:
    """Last fulfillment number issued in one calendar month."""

    period = Identifier(identifier=True, required=True)  # YYYYMM
    last_value = Integer(default=0, min_value=0)

    def next_value(self) -> int:
        self.last_value = (self.last_value or 0) + 1
        return self.last_value


def period_for(moment: datetime) -> str:
    return f"{moment.year:04d}{moment.month:02d}"


def format_fulfillment_number(period: str, value: int) -> str:
    return f"{NUMBER_PREFIX}{period}{value:04d}"


def claim_fulfillment_number(now: datetime | None = None) -> str:
    """Reserve the next fulfillment number for the month of ``now``."""
    now = now or datetime.now(UTC)
    period = period_for(now)

    repo = current_domain.repository_for(FulfillmentSequence)
    try:
        sequence = repo.get(period)
    except ObjectNotFoundError:
        sequence = FulfillmentSequence(period=period, last_value=0)

    value = sequence.next_value()
    repo.add(sequence)

    number = format_fulfillment_number(period, value)
    logger.debug("Claimed fulfillment number", fulfillment_number=number)
    return number

"""Business-day adjustment of installment dates.

A theoretical installment date is moved forward until it lands on a valid
payment day for the credit's frequency. The rules are applied repeatedly
until none of them fires:

1. Sunday always moves to Monday.
2. Saturday moves to Monday for frequencies that do not pay on Saturdays
   (daily and biweekly).
3. A holiday moves one day forward for daily credits. For the other
   frequencies a Friday holiday moves to Saturday, a Saturday holiday moves
   to Monday and any other holiday moves one day forward.

Rule 3 sends a biweekly Friday holiday to Saturday although biweekly credits
never pay on Saturdays; the next pass applies rule 2 and the installment
ends on Monday. Historical plans were generated this way.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import AbstractSet, Iterable, Optional

from .config import MAX_ADJUST_ITERATIONS
from .data_models import PaymentFrequency
from .exceptions import DateAdjustmentError
from .logging_config import get_logger
from .utils import parse_holidays

logger = get_logger(__name__)

SATURDAY = 5
SUNDAY = 6


def _next_step(day: date, frequency: PaymentFrequency, holidays: AbstractSet[date]) -> int:
    """Return how many days the first firing rule moves ``day`` (0 if none)."""
    rules = frequency.rules
    weekday = day.weekday()
    if weekday == SUNDAY:
        return 1
    if weekday == SATURDAY and not rules.allows_saturday:
        return 2
    if day in holidays:
        if rules.holiday_weekend_shift and weekday == SATURDAY:
            return 2
        return 1
    return 0


def adjust_to_next_business_day(
    day: date,
    frequency: PaymentFrequency,
    holidays: AbstractSet[date] = frozenset(),
    max_iterations: int = MAX_ADJUST_ITERATIONS,
) -> date:
    """Move ``day`` forward to the next valid payment day.

    Raises
    ------
    DateAdjustmentError
        If the date has not settled after ``max_iterations`` moves.
    """
    current = day
    for _ in range(max_iterations):
        step = _next_step(current, frequency, holidays)
        if step == 0:
            return current
        current += timedelta(days=step)
    if _next_step(current, frequency, holidays) == 0:
        return current
    logger.error(
        "Business-day adjustment did not converge: original=%s frequency=%s holidays=%d",
        day.isoformat(),
        frequency.value,
        len(holidays),
    )
    raise DateAdjustmentError(day, frequency, max_iterations)


class BusinessDayAdjuster:
    """Adjusts dates against a fixed holiday set."""

    def __init__(self, holidays: Optional[Iterable] = None, max_iterations: int = MAX_ADJUST_ITERATIONS) -> None:
        self.holidays = parse_holidays(holidays or ())
        self.max_iterations = max_iterations

    def is_holiday(self, day: date) -> bool:
        return day in self.holidays

    def is_payment_day(self, day: date, frequency: PaymentFrequency) -> bool:
        return _next_step(day, frequency, self.holidays) == 0

    def adjust(self, day: date, frequency: PaymentFrequency) -> date:
        return adjust_to_next_business_day(day, frequency, self.holidays, self.max_iterations)

    def advance(self, day: date, frequency: PaymentFrequency, steps: int = 1) -> date:
        """Move ``steps`` valid payment days past ``day``."""
        for _ in range(steps):
            day = self.adjust(day + timedelta(days=1), frequency)
        return day

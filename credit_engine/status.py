"""Live status and aging of a credit.

``StatusEngine`` reconciles the fixed payment plan of a credit with its
registered payments and reports the figures shown on dashboards, payment
forms and receipts: remaining balance, overdue amount, the installment due
today, days late and the risk category. The snapshot is recomputed from the
plan and the payments on every call.

Every date comparison uses business calendar dates produced by the engine's
``BusinessClock`` timezone, never raw timestamps.
"""

from __future__ import annotations

from datetime import date, datetime, time, timezone, tzinfo
from decimal import Decimal
from typing import Iterable, List, Optional

from .config import BALANCE_EPSILON, BusinessClock
from .data_models import Credit, CreditStatus, CreditStatusSnapshot, RegisteredPayment
from .risk import get_provision_category
from .utils import DateLike, to_business_date

ZERO = Decimal("0")

# credits that never carry a balance
_INACTIVE_STATUSES = frozenset({CreditStatus.REJECTED, CreditStatus.PENDING, CreditStatus.DECEASED})


def counted_payments(payments: Iterable[RegisteredPayment], tz: Optional[tzinfo] = None) -> List[RegisteredPayment]:
    """Payments that count toward the balance, oldest first.

    The sort is stable, so payments sharing a timestamp keep their order.
    """
    valid = [p for p in payments if p.status.counts_toward_balance and p.payment_date is not None]
    return sorted(valid, key=lambda p: _local_timestamp(p.payment_date, tz))


def _local_timestamp(value: datetime, tz: Optional[tzinfo]) -> datetime:
    # aware and naive timestamps cannot be compared directly
    if not isinstance(value, datetime):
        return datetime.combine(value, time.min)
    if value.tzinfo is not None:
        return value.astimezone(tz or timezone.utc).replace(tzinfo=None)
    return value


class StatusEngine:
    """Computes ``CreditStatusSnapshot`` values for one business timezone."""

    def __init__(self, clock: Optional[BusinessClock] = None, epsilon: Decimal = BALANCE_EPSILON) -> None:
        self.clock = clock or BusinessClock()
        self.epsilon = epsilon

    def business_date(self, value: DateLike) -> date:
        return to_business_date(value, self.clock.tz)

    def as_of_date(self, as_of: Optional[DateLike] = None) -> date:
        if as_of is None:
            return self.clock.today()
        return self.business_date(as_of)

    def total_paid(self, credit: Credit) -> Decimal:
        return sum((p.amount for p in credit.payments if p.status.counts_toward_balance), ZERO)

    def remaining_balance(self, credit: Credit) -> Decimal:
        return max(ZERO, credit.total_amount - self.total_paid(credit))

    def final_due_date(self, credit: Credit) -> Optional[date]:
        if credit.installments:
            return max(i.due_date for i in credit.installments)
        return credit.due_date

    def status(self, credit: Credit, as_of: Optional[DateLike] = None) -> CreditStatusSnapshot:
        """Return the status of ``credit`` on ``as_of`` (default: business today)."""
        inactive = CreditStatusSnapshot(total_installment_amount=credit.total_installment_amount)
        if credit.status in _INACTIVE_STATUSES:
            return inactive

        payments = counted_payments(credit.payments, self.clock.tz)
        last_payment_date = payments[-1].payment_date if payments else None
        settled = CreditStatusSnapshot(
            last_payment_date=last_payment_date,
            total_installment_amount=credit.total_installment_amount,
        )
        if credit.status is CreditStatus.PAID:
            return settled

        total_paid = sum((p.amount for p in payments), ZERO)
        remaining_balance = max(ZERO, credit.total_amount - total_paid)
        if remaining_balance < self.epsilon:
            return settled

        today = self.as_of_date(as_of)
        paid_dates = [(self.business_date(p.payment_date), p.amount) for p in payments]

        paid_today = sum((amount for day, amount in paid_dates if day == today), ZERO)
        paid_before_today = sum((amount for day, amount in paid_dates if day < today), ZERO)

        due_before_today = sum((i.amount for i in credit.installments if i.due_date < today), ZERO)
        due_today = [i for i in credit.installments if i.due_date == today]

        surplus = max(ZERO, paid_before_today - due_before_today)
        overdue_amount = max(ZERO, due_before_today - paid_before_today)
        is_due_today = bool(due_today)
        due_today_amount = max(ZERO, due_today[0].amount - surplus) if due_today else ZERO

        late_days = 0
        first_unpaid_date = None
        if overdue_amount > self.epsilon:
            first_unpaid_date = self._first_unpaid_due_date(credit, total_paid, today)
            if first_unpaid_date is not None:
                late_days = max(0, (today - first_unpaid_date).days)

        final_due = self.final_due_date(credit)
        return CreditStatusSnapshot(
            remaining_balance=remaining_balance,
            overdue_amount=overdue_amount,
            due_today_amount=due_today_amount,
            late_days=late_days,
            is_expired=final_due is not None and final_due < today,
            is_due_today=is_due_today,
            paid_today=paid_today,
            last_payment_date=last_payment_date,
            first_unpaid_date=first_unpaid_date,
            risk_category=get_provision_category(late_days),
            total_installment_amount=credit.total_installment_amount,
        )

    def _first_unpaid_due_date(self, credit: Credit, total_paid: Decimal, today: date) -> Optional[date]:
        """Due date of the earliest installment not covered by all payments."""
        cumulative_due = ZERO
        for installment in sorted(credit.installments, key=lambda i: i.number):
            if installment.due_date > today:
                continue
            cumulative_due += installment.amount
            if total_paid < cumulative_due - self.epsilon:
                return installment.due_date
        return None


def calculate_credit_status(
    credit: Credit,
    as_of: Optional[DateLike] = None,
    *,
    clock: Optional[BusinessClock] = None,
) -> CreditStatusSnapshot:
    """Convenience wrapper around ``StatusEngine.status``."""
    return StatusEngine(clock).status(credit, as_of)

"""Detailed account statement of a credit.

The statement walks the plan installment by installment and consumes the
registered payments in date order to decide which installments are paid,
late or pending and how many days late each one was. Each payment is split
into principal and interest using the credit's overall principal to interest
ratio; this is a presentation split, not an amortization-true allocation.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import List, Optional, Tuple

from .config import BALANCE_EPSILON, BusinessClock
from .data_models import (
    Credit,
    FullStatement,
    InstallmentState,
    RegisteredPayment,
    StatementInstallment,
    StatementPayment,
    StatementTotals,
)
from .status import counted_payments
from .utils import DateLike, to_business_date

ZERO = Decimal("0")


class StatementBuilder:
    def __init__(self, clock: Optional[BusinessClock] = None, epsilon: Decimal = BALANCE_EPSILON) -> None:
        self.clock = clock or BusinessClock()
        self.epsilon = epsilon

    def statement(self, credit: Credit, as_of: Optional[DateLike] = None) -> FullStatement:
        today = self.clock.today() if as_of is None else to_business_date(as_of, self.clock.tz)
        payments = counted_payments(credit.payments, self.clock.tz)
        total_paid = sum((p.amount for p in payments), ZERO)

        processed_payments = self._split_payments(credit, payments)
        processed_installments = self._process_installments(credit, payments, total_paid, today)

        installment_total = sum((i.installment.amount for i in processed_installments), ZERO)
        plan_paid = sum((i.paid_amount for i in processed_installments), ZERO)
        totals = StatementTotals(
            installment_total=installment_total,
            plan_paid=plan_paid,
            plan_balance=installment_total - plan_paid,
            payments_total=sum((p.payment.amount for p in processed_payments), ZERO),
            payments_principal=sum((p.principal_applied for p in processed_payments), ZERO),
            payments_interest=sum((p.interest_applied for p in processed_payments), ZERO),
        )
        return FullStatement(installments=processed_installments, payments=processed_payments, totals=totals)

    def _split_payments(self, credit: Credit, payments: List[RegisteredPayment]) -> List[StatementPayment]:
        loan_value = credit.principal_amount + credit.total_interest
        if loan_value > 0:
            principal_ratio = credit.principal_amount / loan_value
            interest_ratio = credit.total_interest / loan_value
        else:
            principal_ratio = interest_ratio = ZERO
        return [
            StatementPayment(
                payment=p,
                principal_applied=p.amount * principal_ratio,
                interest_applied=p.amount * interest_ratio,
            )
            for p in payments
        ]

    def _process_installments(
        self, credit: Credit, payments: List[RegisteredPayment], total_paid: Decimal, today: date
    ) -> List[StatementInstallment]:
        # running totals of payments, used to find the payment that cleared each installment
        running: List[Tuple[date, Decimal]] = []
        cumulative = ZERO
        for p in payments:
            cumulative += p.amount
            running.append((to_business_date(p.payment_date, self.clock.tz), cumulative))

        processed = []
        cumulative_due = ZERO
        for installment in sorted(credit.installments, key=lambda i: i.number):
            due_previously = cumulative_due
            cumulative_due += installment.amount
            paid_amount = max(ZERO, min(installment.amount, total_paid - due_previously))
            paid_in_full = paid_amount >= installment.amount - self.epsilon

            late_days = 0
            if paid_in_full:
                cleared_on = next(
                    (day for day, paid in running if paid >= cumulative_due - self.epsilon), None
                )
                if cleared_on is not None and cleared_on > installment.due_date:
                    late_days = (cleared_on - installment.due_date).days
                state = InstallmentState.PAID
            elif installment.due_date < today:
                late_days = (today - installment.due_date).days
                state = InstallmentState.LATE
            else:
                state = InstallmentState.PENDING

            processed.append(
                StatementInstallment(
                    installment=installment,
                    paid_amount=paid_amount,
                    late_days=late_days,
                    state=state,
                )
            )
        return processed


def generate_full_statement(
    credit: Credit, as_of: Optional[DateLike] = None, *, clock: Optional[BusinessClock] = None
) -> FullStatement:
    """Convenience wrapper around ``StatementBuilder.statement``."""
    return StatementBuilder(clock).statement(credit, as_of)


def calculate_average_payment_delay(
    credit: Credit, as_of: Optional[DateLike] = None, *, clock: Optional[BusinessClock] = None
) -> Tuple[Decimal, int]:
    """Average and total late days over every installment of the plan.

    Installments paid on time count as zero, so the average is the total
    divided by the plan length.
    """
    if not credit.installments:
        return ZERO, 0
    statement = generate_full_statement(credit, as_of, clock=clock)
    total = sum(i.late_days for i in statement.installments)
    return Decimal(total) / len(credit.installments), total

"""Data models for the credit engine.

This module defines the records consumed and produced by the schedule
generator, the status engine and the statement builder: loan terms, the fixed
installment plan, registered payments, the credit that ties them together and
the derived status/statement views. Money values are ``Decimal`` throughout;
calendar values are ``datetime.date`` (installment due dates) or
``datetime.datetime`` (payment timestamps).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple


@dataclass(frozen=True)
class FrequencyRules:
    """Per-frequency constants used by the adjuster and the generator.

    Attributes
    ----------
    periods_per_month: int
        Installments per declared month of term.
    allows_saturday: bool
        Whether a Saturday is a valid payment day for this frequency.
    holiday_weekend_shift: bool
        When True a holiday on Friday moves to Saturday and a holiday on
        Saturday moves to Monday; otherwise a holiday always moves one day.
        Biweekly credits use the Friday→Saturday shift even though they do
        not otherwise allow Saturdays.
    """

    periods_per_month: int
    allows_saturday: bool
    holiday_weekend_shift: bool


class PaymentFrequency(Enum):
    DAILY = "Diario"
    WEEKLY = "Semanal"
    BIWEEKLY = "Catorcenal"  # every 14 calendar days
    SEMI_MONTHLY = "Quincenal"  # two fixed days per month

    @property
    def rules(self) -> FrequencyRules:
        return FREQUENCY_RULES[self]

    @property
    def periods_per_month(self) -> int:
        return FREQUENCY_RULES[self].periods_per_month

    @classmethod
    def parse(cls, value) -> "PaymentFrequency":
        """Resolve a frequency from an enum, a stored value or an alias."""
        if isinstance(value, cls):
            return value
        key = str(value).strip()
        for member in cls:
            if key == member.value or key.upper() == member.name:
                return member
        alias = _FREQUENCY_ALIASES.get(key.lower().replace("-", "").replace("_", ""))
        if alias is None:
            raise ValueError(f"Unknown payment frequency: {value}")
        return alias


FREQUENCY_RULES: Dict[PaymentFrequency, FrequencyRules] = {
    PaymentFrequency.DAILY: FrequencyRules(20, allows_saturday=False, holiday_weekend_shift=False),
    PaymentFrequency.WEEKLY: FrequencyRules(4, allows_saturday=True, holiday_weekend_shift=True),
    PaymentFrequency.BIWEEKLY: FrequencyRules(2, allows_saturday=False, holiday_weekend_shift=True),
    PaymentFrequency.SEMI_MONTHLY: FrequencyRules(2, allows_saturday=True, holiday_weekend_shift=True),
}

_FREQUENCY_ALIASES = {
    "daily": PaymentFrequency.DAILY,
    "weekly": PaymentFrequency.WEEKLY,
    "biweekly": PaymentFrequency.BIWEEKLY,
    "fortnightly": PaymentFrequency.BIWEEKLY,
    "semimonthly": PaymentFrequency.SEMI_MONTHLY,
}


class PaymentStatus(Enum):
    VALID = "VALIDO"
    VOID_PENDING = "ANULACION_PENDIENTE"
    VOID = "ANULADO"

    @property
    def counts_toward_balance(self) -> bool:
        # a payment awaiting void approval still counts until approved
        return self is not PaymentStatus.VOID


class CreditStatus(Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    ACTIVE = "Active"
    PAID = "Paid"
    REJECTED = "Rejected"
    EXPIRED = "Expired"
    DECEASED = "Fallecido"


class RiskCategory(Enum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"
    E = "E"


class InstallmentState(Enum):
    PAID = "PAGADA"
    LATE = "ATRASADA"
    PENDING = "PENDIENTE"


@dataclass(frozen=True)
class LoanTerms:
    """Inputs of the schedule generator.

    Attributes
    ----------
    principal: Decimal
        Amount lent.
    monthly_interest_rate: Decimal
        Flat monthly rate in percent (``Decimal("5")`` means 5 % per month).
    term_months: Decimal
        Declared term; may be fractional (``Decimal("1.5")``).
    payment_frequency: PaymentFrequency
    start_date: date
        Theoretical date of the first installment, before adjustment.
    holidays: frozenset of date
        Non-business days in addition to weekends.
    """

    principal: Decimal
    monthly_interest_rate: Decimal
    term_months: Decimal
    payment_frequency: PaymentFrequency
    start_date: Optional[date]
    holidays: FrozenSet[date] = frozenset()


@dataclass(frozen=True)
class Installment:
    """One scheduled obligation of the payment plan."""

    number: int
    due_date: date
    amount: Decimal
    principal: Decimal
    interest: Decimal
    balance: Decimal


@dataclass(frozen=True)
class PaymentSchedule:
    """A generated payment plan plus its flat-rate totals."""

    periodic_payment: Decimal
    total_payment: Decimal
    total_interest: Decimal
    installments: Tuple[Installment, ...]
    extension_days: int = 0

    @property
    def number_of_installments(self) -> int:
        return len(self.installments)

    @property
    def first_due_date(self) -> Optional[date]:
        return self.installments[0].due_date if self.installments else None

    @property
    def maturity_date(self) -> Optional[date]:
        return self.installments[-1].due_date if self.installments else None


@dataclass(frozen=True)
class RegisteredPayment:
    """A cash receipt applied against a credit."""

    id: str
    payment_date: datetime
    amount: Decimal
    status: PaymentStatus = PaymentStatus.VALID
    managed_by: str = ""
    transaction_number: Optional[str] = None
    void_reason: Optional[str] = None
    void_requested_by: Optional[str] = None


@dataclass(frozen=True)
class Credit:
    """A credit with its persisted plan and payment history.

    The persistence layer is expected to load every installment and every
    registered payment before the credit reaches the engine.
    """

    id: str
    status: CreditStatus
    principal_amount: Decimal
    total_interest: Decimal
    total_amount: Decimal
    total_installment_amount: Decimal
    installments: Tuple[Installment, ...] = ()
    payments: Tuple[RegisteredPayment, ...] = ()
    credit_number: str = ""
    due_date: Optional[date] = None
    client_name: str = ""
    collections_manager: str = ""

    @classmethod
    def from_schedule(
        cls,
        credit_id: str,
        terms: LoanTerms,
        schedule: PaymentSchedule,
        *,
        status: CreditStatus = CreditStatus.ACTIVE,
        payments: Tuple[RegisteredPayment, ...] = (),
        credit_number: str = "",
        client_name: str = "",
        collections_manager: str = "",
    ) -> "Credit":
        return cls(
            id=credit_id,
            status=status,
            principal_amount=terms.principal,
            total_interest=schedule.total_interest,
            total_amount=schedule.total_payment,
            total_installment_amount=schedule.periodic_payment,
            installments=schedule.installments,
            payments=tuple(payments),
            credit_number=credit_number,
            due_date=schedule.maturity_date,
            client_name=client_name,
            collections_manager=collections_manager,
        )

    def find_payment(self, payment_id: str) -> Optional[RegisteredPayment]:
        for payment in self.payments:
            if payment.id == payment_id:
                return payment
        return None


@dataclass(frozen=True)
class CreditStatusSnapshot:
    """Live aging figures of a credit as of one business date.

    Recomputed from the plan and the payment history on every query; never
    persisted.
    """

    remaining_balance: Decimal = Decimal("0")
    overdue_amount: Decimal = Decimal("0")
    due_today_amount: Decimal = Decimal("0")
    late_days: int = 0
    is_expired: bool = False
    is_due_today: bool = False
    paid_today: Decimal = Decimal("0")
    last_payment_date: Optional[datetime] = None
    first_unpaid_date: Optional[date] = None
    risk_category: RiskCategory = RiskCategory.A
    total_installment_amount: Decimal = Decimal("0")

    @property
    def amount_to_pay(self) -> Decimal:
        """Installment due today plus everything already overdue."""
        return self.due_today_amount + self.overdue_amount


@dataclass(frozen=True)
class StatementInstallment:
    installment: Installment
    paid_amount: Decimal
    late_days: int
    state: InstallmentState


@dataclass(frozen=True)
class StatementPayment:
    payment: RegisteredPayment
    principal_applied: Decimal
    interest_applied: Decimal


@dataclass(frozen=True)
class StatementTotals:
    installment_total: Decimal
    plan_paid: Decimal
    plan_balance: Decimal
    payments_total: Decimal
    payments_principal: Decimal
    payments_interest: Decimal


@dataclass
class FullStatement:
    """Per-installment and per-payment breakdown of a credit."""

    installments: List[StatementInstallment] = field(default_factory=list)
    payments: List[StatementPayment] = field(default_factory=list)
    totals: Optional[StatementTotals] = None

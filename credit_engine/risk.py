"""Regulatory risk classification (CONAMI categories A-E).

Each credit falls in one bucket based only on its days late; the bucket fixes
the share of the remaining balance that must be provisioned.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional

from .data_models import Credit, CreditStatus, RiskCategory

if TYPE_CHECKING:
    from .status import StatusEngine


@dataclass(frozen=True)
class ProvisionRule:
    min_days: int
    max_days: Optional[int]  # None means unbounded
    rate: Decimal
    label: str


PROVISION_RULES: Dict[RiskCategory, ProvisionRule] = {
    RiskCategory.A: ProvisionRule(1, 15, Decimal("0.01"), "A (Riesgo Normal)"),
    RiskCategory.B: ProvisionRule(16, 30, Decimal("0.05"), "B (Riesgo Potencial)"),
    RiskCategory.C: ProvisionRule(31, 60, Decimal("0.20"), "C (Riesgo Real)"),
    RiskCategory.D: ProvisionRule(61, 90, Decimal("0.60"), "D (Dudosa Recuperación)"),
    RiskCategory.E: ProvisionRule(91, None, Decimal("1.00"), "E (Irrecuperable)"),
}


def get_provision_category(late_days: int) -> RiskCategory:
    """Bucket for ``late_days``; a credit that is not late is category A."""
    for category, rule in PROVISION_RULES.items():
        if late_days >= rule.min_days and (rule.max_days is None or late_days <= rule.max_days):
            return category
    return RiskCategory.A


def provision_amount(balance: Decimal, category: RiskCategory) -> Decimal:
    return balance * PROVISION_RULES[category].rate


@dataclass(frozen=True)
class ProvisionLine:
    credit_id: str
    credit_number: str
    client_name: str
    remaining_balance: Decimal
    late_days: int
    category: RiskCategory
    provision_amount: Decimal


def build_provisioning_report(
    credits: Iterable[Credit], engine: "StatusEngine", as_of: Optional[date] = None
) -> List[ProvisionLine]:
    """Provision required for every active credit in ``credits``."""
    lines = []
    for credit in credits:
        if credit.status is not CreditStatus.ACTIVE:
            continue
        snapshot = engine.status(credit, as_of)
        lines.append(
            ProvisionLine(
                credit_id=credit.id,
                credit_number=credit.credit_number,
                client_name=credit.client_name,
                remaining_balance=snapshot.remaining_balance,
                late_days=snapshot.late_days,
                category=snapshot.risk_category,
                provision_amount=provision_amount(snapshot.remaining_balance, snapshot.risk_category),
            )
        )
    return lines


def summarize_provisions(lines: Iterable[ProvisionLine]) -> Dict[RiskCategory, Dict[str, Decimal]]:
    """Per-category totals of balances and provisions (every category present)."""
    summary = {
        category: {"credits": Decimal(0), "balance": Decimal(0), "provision": Decimal(0)}
        for category in RiskCategory
    }
    for line in lines:
        bucket = summary[line.category]
        bucket["credits"] += 1
        bucket["balance"] += line.remaining_balance
        bucket["provision"] += line.provision_amount
    return summary

"""Output helpers for the credit engine.

Plans, status snapshots, statements and provisioning summaries are rendered
as plain tab-separated tables so they can be read in a terminal or pasted
into a spreadsheet.
"""

from __future__ import annotations

from typing import Dict, Iterable

from .data_models import CreditStatusSnapshot, FullStatement, Installment
from .risk import PROVISION_RULES


def print_summary(summary: Dict[str, object]) -> None:
    """Print the aggregate figures of a payment plan."""
    print("Summary")
    print("-" * 72)
    print(f"Principal          : {summary['principal']:.2f}")
    print(f"Total interest     : {summary['total_interest']:.2f}")
    print(f"Total payment      : {summary['total_payment']:.2f}")
    print(f"Periodic payment   : {summary['periodic_payment']:.2f}")
    print(f"Installments       : {summary['number_of_installments']}")
    print(f"First due date     : {summary['first_due_date']}")
    print(f"Maturity date      : {summary['maturity_date']}")
    if summary.get("extension_days"):
        print(f"Extension days     : {summary['extension_days']}")
    print("-" * 72)


def print_schedule(installments: Iterable[Installment]) -> None:
    """Print the payment plan as a simple table."""
    headers = ["No", "Date", "Weekday", "Payment", "Principal", "Interest", "Balance"]
    print("\t".join(headers))
    for entry in installments:
        row = [
            str(entry.number),
            entry.due_date.isoformat(),
            entry.due_date.strftime("%a"),
            f"{entry.amount:.2f}",
            f"{entry.principal:.2f}",
            f"{entry.interest:.2f}",
            f"{entry.balance:.2f}",
        ]
        print("\t".join(row))


def print_status(snapshot: CreditStatusSnapshot) -> None:
    print("Status")
    print("-" * 72)
    print(f"Remaining balance  : {snapshot.remaining_balance:.2f}")
    print(f"Overdue amount     : {snapshot.overdue_amount:.2f}")
    print(f"Due today          : {snapshot.due_today_amount:.2f}")
    print(f"Amount to pay      : {snapshot.amount_to_pay:.2f}")
    print(f"Paid today         : {snapshot.paid_today:.2f}")
    print(f"Days late          : {snapshot.late_days}")
    print(f"First unpaid date  : {snapshot.first_unpaid_date or '-'}")
    print(f"Last payment       : {snapshot.last_payment_date or '-'}")
    print(f"Expired            : {'Yes' if snapshot.is_expired else 'No'}")
    print(f"Risk category      : {PROVISION_RULES[snapshot.risk_category].label}")
    print("-" * 72)


def print_statement(statement: FullStatement) -> None:
    """Print the installment and payment sections of a statement with totals."""
    print("Installments")
    print("\t".join(["No", "Date", "Amount", "Paid", "DaysLate", "Status"]))
    for row in statement.installments:
        print(
            "\t".join(
                [
                    str(row.installment.number),
                    row.installment.due_date.isoformat(),
                    f"{row.installment.amount:.2f}",
                    f"{row.paid_amount:.2f}",
                    str(row.late_days),
                    row.state.value,
                ]
            )
        )
    print()
    print("Payments")
    print("\t".join(["Id", "Date", "Amount", "Principal", "Interest"]))
    for row in statement.payments:
        print(
            "\t".join(
                [
                    row.payment.id,
                    row.payment.payment_date.strftime("%Y-%m-%d %H:%M"),
                    f"{row.payment.amount:.2f}",
                    f"{row.principal_applied:.2f}",
                    f"{row.interest_applied:.2f}",
                ]
            )
        )
    totals = statement.totals
    if totals is not None:
        print("-" * 72)
        print(f"Plan total         : {totals.installment_total:.2f}")
        print(f"Plan paid          : {totals.plan_paid:.2f}")
        print(f"Plan balance       : {totals.plan_balance:.2f}")
        print(f"Payments total     : {totals.payments_total:.2f}")
        print(f"  principal        : {totals.payments_principal:.2f}")
        print(f"  interest         : {totals.payments_interest:.2f}")
        print("-" * 72)


def print_provisions(summary: Dict) -> None:
    """Print per-category provisioning totals."""
    print(f"{'Category':28s} {'Credits':>8s} {'Balance':>15s} {'Provision':>15s}")
    for category, bucket in summary.items():
        print(
            f"{PROVISION_RULES[category].label:28s} {int(bucket['credits']):8d} "
            f"{bucket['balance']:15.2f} {bucket['provision']:15.2f}"
        )

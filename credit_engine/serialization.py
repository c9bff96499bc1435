"""Conversion between engine records and JSON-compatible dictionaries.

Credits arrive from the persistence layer or from JSON documents with ISO
dates and amounts given as numbers or strings; these helpers turn them into
the typed records of ``data_models`` and back.
"""

from __future__ import annotations

import csv
import json
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Mapping

from .data_models import (
    Credit,
    CreditStatus,
    CreditStatusSnapshot,
    FullStatement,
    Installment,
    LoanTerms,
    PaymentFrequency,
    PaymentSchedule,
    PaymentStatus,
    RegisteredPayment,
)
from .engine import generate_payment_schedule
from .utils import parse_holidays, parse_iso_date, parse_iso_datetime, to_decimal


def _date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return parse_iso_date(str(value))


def _datetime(value) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, 12)
    text = str(value)
    if len(text) == 10:
        # a bare date; noon keeps it on the same calendar day in any offset near ours
        text += "T12:00:00"
    return parse_iso_datetime(text)


def _money(value: Decimal) -> float:
    return float(round(value, 2))


def terms_from_dict(data: Mapping[str, Any]) -> LoanTerms:
    return LoanTerms(
        principal=to_decimal(data["principal"]),
        monthly_interest_rate=to_decimal(data["monthly_interest_rate"]),
        term_months=to_decimal(data["term_months"]),
        payment_frequency=PaymentFrequency.parse(data["payment_frequency"]),
        start_date=_date(data["start_date"]),
        holidays=parse_holidays(data.get("holidays", ())),
    )


def installment_from_dict(data: Mapping[str, Any]) -> Installment:
    return Installment(
        number=int(data["number"]),
        due_date=_date(data["due_date"]),
        amount=to_decimal(data["amount"]),
        principal=to_decimal(data.get("principal", 0)),
        interest=to_decimal(data.get("interest", 0)),
        balance=to_decimal(data.get("balance", 0)),
    )


def payment_from_dict(data: Mapping[str, Any]) -> RegisteredPayment:
    status = data.get("status", PaymentStatus.VALID.value)
    return RegisteredPayment(
        id=str(data["id"]),
        payment_date=_datetime(data["payment_date"]),
        amount=to_decimal(data["amount"]),
        status=status if isinstance(status, PaymentStatus) else _payment_status(status),
        managed_by=data.get("managed_by", ""),
        transaction_number=data.get("transaction_number"),
        void_reason=data.get("void_reason"),
        void_requested_by=data.get("void_requested_by"),
    )


def _payment_status(value: str) -> PaymentStatus:
    for member in PaymentStatus:
        if value in (member.value, member.name):
            return member
    raise ValueError(f"Unknown payment status: {value}")


def _credit_status(value: str) -> CreditStatus:
    for member in CreditStatus:
        if value in (member.value, member.name):
            return member
    raise ValueError(f"Unknown credit status: {value}")


def credit_from_dict(data: Mapping[str, Any]) -> Credit:
    """Build a ``Credit`` from a JSON document.

    When ``installments`` is missing but ``terms`` is present, the plan is
    generated from the terms.
    """
    installments = tuple(installment_from_dict(i) for i in data.get("installments", ()))
    principal = data.get("principal_amount")
    total_interest = data.get("total_interest")
    total_amount = data.get("total_amount")
    periodic = data.get("total_installment_amount")

    if not installments and "terms" in data:
        terms = terms_from_dict(data["terms"])
        schedule = generate_payment_schedule(terms)
        if schedule is None:
            raise ValueError("The credit terms do not produce a payment schedule")
        installments = schedule.installments
        principal = principal if principal is not None else terms.principal
        total_interest = total_interest if total_interest is not None else schedule.total_interest
        total_amount = total_amount if total_amount is not None else schedule.total_payment
        periodic = periodic if periodic is not None else schedule.periodic_payment

    principal = to_decimal(principal if principal is not None else sum((i.principal for i in installments), Decimal(0)))
    total_interest = to_decimal(
        total_interest if total_interest is not None else sum((i.interest for i in installments), Decimal(0))
    )
    total_amount = to_decimal(total_amount if total_amount is not None else principal + total_interest)
    periodic = to_decimal(periodic if periodic is not None else (installments[0].amount if installments else 0))

    due_date = data.get("due_date")
    return Credit(
        id=str(data["id"]),
        status=_credit_status(data.get("status", CreditStatus.ACTIVE.value)),
        principal_amount=principal,
        total_interest=total_interest,
        total_amount=total_amount,
        total_installment_amount=periodic,
        installments=installments,
        payments=tuple(payment_from_dict(p) for p in data.get("payments", ())),
        credit_number=data.get("credit_number", ""),
        due_date=_date(due_date) if due_date else None,
        client_name=data.get("client_name", ""),
        collections_manager=data.get("collections_manager", ""),
    )


def installment_to_dict(installment: Installment) -> Dict[str, Any]:
    return {
        "number": installment.number,
        "due_date": installment.due_date.isoformat(),
        "amount": _money(installment.amount),
        "principal": _money(installment.principal),
        "interest": _money(installment.interest),
        "balance": _money(installment.balance),
    }


def schedule_to_dict(schedule: PaymentSchedule) -> Dict[str, Any]:
    return {
        "periodic_payment": _money(schedule.periodic_payment),
        "total_payment": _money(schedule.total_payment),
        "total_interest": _money(schedule.total_interest),
        "extension_days": schedule.extension_days,
        "installments": [installment_to_dict(i) for i in schedule.installments],
    }


def snapshot_to_dict(snapshot: CreditStatusSnapshot) -> Dict[str, Any]:
    return {
        "remaining_balance": _money(snapshot.remaining_balance),
        "overdue_amount": _money(snapshot.overdue_amount),
        "due_today_amount": _money(snapshot.due_today_amount),
        "amount_to_pay": _money(snapshot.amount_to_pay),
        "late_days": snapshot.late_days,
        "is_expired": snapshot.is_expired,
        "is_due_today": snapshot.is_due_today,
        "paid_today": _money(snapshot.paid_today),
        "last_payment_date": snapshot.last_payment_date.isoformat() if snapshot.last_payment_date else None,
        "first_unpaid_date": snapshot.first_unpaid_date.isoformat() if snapshot.first_unpaid_date else None,
        "risk_category": snapshot.risk_category.value,
        "total_installment_amount": _money(snapshot.total_installment_amount),
    }


def statement_to_dict(statement: FullStatement) -> Dict[str, Any]:
    totals = statement.totals
    return {
        "installments": [
            dict(
                installment_to_dict(row.installment),
                paid_amount=_money(row.paid_amount),
                late_days=row.late_days,
                status=row.state.value,
            )
            for row in statement.installments
        ],
        "payments": [
            {
                "id": row.payment.id,
                "payment_date": row.payment.payment_date.isoformat(),
                "amount": _money(row.payment.amount),
                "principal_applied": _money(row.principal_applied),
                "interest_applied": _money(row.interest_applied),
            }
            for row in statement.payments
        ],
        "totals": {
            "installment_total": _money(totals.installment_total),
            "plan_paid": _money(totals.plan_paid),
            "plan_balance": _money(totals.plan_balance),
            "payments_total": _money(totals.payments_total),
            "payments_principal": _money(totals.payments_principal),
            "payments_interest": _money(totals.payments_interest),
        }
        if totals
        else None,
    }


def export_schedule_json(path: Path, schedule: PaymentSchedule, summary: Dict[str, Any]) -> None:
    """Export a plan and its summary to a JSON file."""
    data = {"summary": summary, "schedule": schedule_to_dict(schedule)}
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def export_schedule_csv(path: Path, schedule: PaymentSchedule) -> None:
    """Export the installments of a plan to a CSV file."""
    header = ["Number", "Due_Date", "Payment", "Principal", "Interest", "Balance"]
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for i in schedule.installments:
            writer.writerow(
                [
                    i.number,
                    i.due_date.isoformat(),
                    _money(i.amount),
                    _money(i.principal),
                    _money(i.interest),
                    _money(i.balance),
                ]
            )

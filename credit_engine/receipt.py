"""Payment receipt figures and their thermal-printer text.

The figures on a receipt describe the credit just before the payment (what
was due, what was late) and the balance just after it.
"""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from .data_models import Credit, CreditStatus, RegisteredPayment
from .exceptions import PaymentNotFoundError
from .status import StatusEngine

RECEIPT_WIDTH = 42
RECEIPT_COPIES = ("CLIENTE", "CONTROL INTERNO")


@dataclass(frozen=True)
class Receipt:
    credit_number: str
    client_name: str
    payment: RegisteredPayment
    due_today: Decimal
    overdue_amount: Decimal
    late_days: int
    total_to_pay: Decimal
    balance_before: Decimal
    amount_collected: Decimal
    balance_after: Decimal


def build_receipt(credit: Credit, payment_id: str, engine: Optional[StatusEngine] = None) -> Receipt:
    """Compute receipt figures for ``payment_id`` as of the payment's own date."""
    engine = engine or StatusEngine()
    payment = credit.find_payment(payment_id)
    if payment is None:
        raise PaymentNotFoundError(f"Payment {payment_id} does not belong to credit {credit.id}")

    before_credit = replace(credit, payments=tuple(p for p in credit.payments if p.id != payment_id))
    if before_credit.status is CreditStatus.PAID:
        # the payment being printed may be the one that settled the credit
        before_credit = replace(before_credit, status=CreditStatus.ACTIVE)
    as_of = engine.business_date(payment.payment_date)
    before = engine.status(before_credit, as_of)
    after = engine.status(credit, as_of)
    return Receipt(
        credit_number=credit.credit_number,
        client_name=credit.client_name,
        payment=payment,
        due_today=before.due_today_amount,
        overdue_amount=before.overdue_amount,
        late_days=before.late_days,
        total_to_pay=before.amount_to_pay,
        balance_before=before.remaining_balance,
        amount_collected=payment.amount,
        balance_after=after.remaining_balance,
    )


def _sanitize(text: str) -> str:
    # printers only carry ASCII
    normalized = unicodedata.normalize("NFD", text or "")
    return "".join(c for c in normalized if not unicodedata.combining(c)).upper()


def _money(amount: Decimal) -> str:
    return f"{amount:,.2f}"


def _center(text: str) -> str:
    if len(text) >= RECEIPT_WIDTH:
        return text[:RECEIPT_WIDTH]
    return " " * ((RECEIPT_WIDTH - len(text)) // 2) + text


def _left_right(left: str, right: str) -> str:
    return left + " " * max(1, RECEIPT_WIDTH - len(left) - len(right)) + right


def render_receipt_text(
    receipt: Receipt, copy_type: str = "CLIENTE", reprint: bool = False, branch: str = "", company: str = "CrediNica"
) -> str:
    separator = "-" * RECEIPT_WIDTH
    paid_at: datetime = receipt.payment.payment_date
    lines: List[str] = []
    if reprint:
        lines += [_center("*** REIMPRESION ***"), ""]
    lines += [
        _center(company),
        _center(f"COPIA: {copy_type}"),
        separator,
        f"Recibo: {receipt.payment.transaction_number or receipt.payment.id}",
        f"Credito: {receipt.credit_number}",
        f"Fecha/Hora: {paid_at.strftime('%d/%m/%Y %H:%M:%S')}",
        separator,
        "Cliente:",
        _sanitize(receipt.client_name),
        separator,
        _left_right("Cuota del dia:", _money(receipt.due_today)),
        _left_right("Monto atrasado:", _money(receipt.overdue_amount)),
        _left_right("Dias mora:", str(receipt.late_days)),
        _left_right("Total a pagar:", _money(receipt.total_to_pay)),
        separator,
        _left_right("Monto de cancelacion:", _money(receipt.balance_before)),
        separator,
        _left_right("Total cobrado:", _money(receipt.amount_collected)),
        separator,
        "Concepto:",
        "ABONO DE CREDITO",
        _left_right("Saldo anterior:", _money(receipt.balance_before)),
        _left_right("Nuevo saldo:", _money(receipt.balance_after)),
        separator,
        "",
        _center(_sanitize(branch.split(" ")[0] if branch else "")),
        _center(_sanitize(receipt.payment.managed_by)),
        _center("GESTOR DE COBRO"),
    ]
    if reprint:
        lines.append(_center("*** REIMPRESION ***"))
    return "\n".join(lines) + "\n"

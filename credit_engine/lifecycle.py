"""Registered payment lifecycle and the credit status it drives.

A payment is created VALID. A field agent may ask for it to be voided
(VOID_PENDING); an approver then either voids it (VOID) or rejects the
request, which returns it to VALID. A credit whose balance reaches zero
becomes Paid; voiding a payment of a Paid credit brings it back to Active.

All functions return new ``Credit`` values and leave their input untouched.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Optional

from .data_models import Credit, CreditStatus, PaymentStatus, RegisteredPayment
from .exceptions import PaymentNotFoundError, PaymentTransitionError
from .logging_config import get_logger
from .status import StatusEngine

logger = get_logger(__name__)


def _replace_payment(credit: Credit, payment: RegisteredPayment) -> Credit:
    payments = tuple(payment if p.id == payment.id else p for p in credit.payments)
    return replace(credit, payments=payments)


def _require_payment(credit: Credit, payment_id: str) -> RegisteredPayment:
    payment = credit.find_payment(payment_id)
    if payment is None:
        raise PaymentNotFoundError(f"Payment {payment_id} does not belong to credit {credit.id}")
    return payment


def settle_if_paid(credit: Credit, engine: Optional[StatusEngine] = None) -> Credit:
    """Mark an active credit Paid once its remaining balance is within epsilon."""
    engine = engine or StatusEngine()
    if credit.status is not CreditStatus.ACTIVE:
        return credit
    if engine.remaining_balance(credit) <= engine.epsilon:
        logger.info("Credit %s fully paid; status set to %s", credit.id, CreditStatus.PAID.value)
        return replace(credit, status=CreditStatus.PAID)
    return credit


def register_payment(
    credit: Credit, payment: RegisteredPayment, engine: Optional[StatusEngine] = None
) -> Credit:
    """Append a VALID payment and settle the credit if it is now fully paid."""
    if payment.amount <= 0:
        raise PaymentTransitionError(f"Payment amount must be positive, got {payment.amount}")
    if credit.find_payment(payment.id) is not None:
        raise PaymentTransitionError(f"Payment {payment.id} is already registered")
    payment = replace(payment, status=PaymentStatus.VALID)
    updated = replace(credit, payments=credit.payments + (payment,))
    logger.info("Registered payment %s of %.2f on credit %s", payment.id, payment.amount, credit.id)
    return settle_if_paid(updated, engine)


def request_void(credit: Credit, payment_id: str, reason: str, requested_by: str) -> Credit:
    payment = _require_payment(credit, payment_id)
    if payment.status is not PaymentStatus.VALID:
        raise PaymentTransitionError(
            f"Cannot request a void for payment {payment_id} in status {payment.status.value}"
        )
    logger.info("Void requested for payment %s by %s: %s", payment_id, requested_by, reason)
    return _replace_payment(
        credit,
        replace(payment, status=PaymentStatus.VOID_PENDING, void_reason=reason, void_requested_by=requested_by),
    )


def approve_void(credit: Credit, payment_id: str) -> Credit:
    """Void a pending payment; a Paid credit goes back to Active."""
    payment = _require_payment(credit, payment_id)
    if payment.status is not PaymentStatus.VOID_PENDING:
        raise PaymentTransitionError(
            f"Payment {payment_id} has no pending void request (status {payment.status.value})"
        )
    updated = _replace_payment(credit, replace(payment, status=PaymentStatus.VOID))
    logger.info("Voided payment %s on credit %s", payment_id, credit.id)
    if updated.status is CreditStatus.PAID:
        logger.info("Credit %s reverted to %s after void", credit.id, CreditStatus.ACTIVE.value)
        updated = replace(updated, status=CreditStatus.ACTIVE)
    return updated


def reject_void(credit: Credit, payment_id: str) -> Credit:
    payment = _require_payment(credit, payment_id)
    if payment.status is not PaymentStatus.VOID_PENDING:
        raise PaymentTransitionError(
            f"Payment {payment_id} has no pending void request (status {payment.status.value})"
        )
    logger.info("Void request rejected for payment %s", payment_id)
    return _replace_payment(credit, replace(payment, status=PaymentStatus.VALID))

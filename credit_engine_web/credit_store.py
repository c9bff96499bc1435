"""Persistence layer for credits, their payment plans and registered payments.

The store loads a complete credit (every installment and every payment)
before handing it to the engine and writes back whatever the engine and the
payment lifecycle return. It also provides the holiday calendar used when
generating plans. It defaults to SQLite for local development but accepts
any SQLAlchemy-compatible URL.

Payment timestamps are stored in UTC; naive timestamps handed to the store
are taken as business-local time and loaded values come back in it.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import FrozenSet, Iterable, List, Optional

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String, create_engine, delete, select
from sqlalchemy.orm import declarative_base, relationship, sessionmaker
from sqlalchemy.types import TypeDecorator

from credit_engine.config import BusinessClock, EngineConfig
from credit_engine.data_models import (
    Credit,
    CreditStatus,
    Installment,
    LoanTerms,
    PaymentFrequency,
    PaymentStatus,
    RegisteredPayment,
)
from credit_engine.engine import regenerate_credit_schedule
from credit_engine.exceptions import CreditNotFoundError
from credit_engine.lifecycle import approve_void, register_payment, reject_void, request_void
from credit_engine.logging_config import get_logger
from credit_engine.status import StatusEngine

logger = get_logger(__name__)

Base = declarative_base()


class DecimalText(TypeDecorator):
    """Exact decimal stored as text (SQLite has no native decimal type)."""

    impl = String(40)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else Decimal(value)


class CreditModel(Base):
    __tablename__ = "credits"

    id = Column(String(64), primary_key=True)
    credit_number = Column(String(64), index=True, nullable=False, default="")
    client_name = Column(String(255), nullable=False, default="")
    collections_manager = Column(String(255), nullable=False, default="")
    status = Column(String(32), nullable=False, default=CreditStatus.ACTIVE.value)
    principal_amount = Column(DecimalText, nullable=False)
    monthly_interest_rate = Column(DecimalText)
    term_months = Column(DecimalText)
    payment_frequency = Column(String(32))
    start_date = Column(Date)
    total_interest = Column(DecimalText, nullable=False)
    total_amount = Column(DecimalText, nullable=False)
    total_installment_amount = Column(DecimalText, nullable=False)
    due_date = Column(Date)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    installments = relationship(
        "InstallmentModel", cascade="all, delete-orphan", order_by="InstallmentModel.number"
    )
    payments = relationship("PaymentModel", cascade="all, delete-orphan", order_by="PaymentModel.payment_date")


class InstallmentModel(Base):
    __tablename__ = "payment_plan"

    id = Column(Integer, primary_key=True, autoincrement=True)
    credit_id = Column(String(64), ForeignKey("credits.id"), index=True, nullable=False)
    number = Column(Integer, nullable=False)
    due_date = Column(Date, nullable=False)
    amount = Column(DecimalText, nullable=False)
    principal = Column(DecimalText, nullable=False)
    interest = Column(DecimalText, nullable=False)
    balance = Column(DecimalText, nullable=False)


class PaymentModel(Base):
    __tablename__ = "payments_registered"

    id = Column(String(64), primary_key=True)
    credit_id = Column(String(64), ForeignKey("credits.id"), index=True, nullable=False)
    payment_date = Column(DateTime, nullable=False)
    amount = Column(DecimalText, nullable=False)
    status = Column(String(32), nullable=False, default=PaymentStatus.VALID.value)
    managed_by = Column(String(255), nullable=False, default="")
    transaction_number = Column(String(64))
    void_reason = Column(String(255))
    void_requested_by = Column(String(255))


class HolidayModel(Base):
    __tablename__ = "holidays"

    day = Column(Date, primary_key=True)
    name = Column(String(255), nullable=False, default="")


class CreditStore:
    """Database-backed credit store."""

    def __init__(
        self, url: str, *, config: Optional[EngineConfig] = None, clock: Optional[BusinessClock] = None
    ) -> None:
        self._config = config or EngineConfig(database_url=url)
        self._engine = create_engine(url, future=True)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)
        self.status_engine = StatusEngine(clock or self._config.clock(), self._config.balance_epsilon)

    # -- holidays -----------------------------------------------------------

    def list_holidays(self) -> FrozenSet[date]:
        with self._session_factory() as session:
            return frozenset(session.execute(select(HolidayModel.day)).scalars())

    def add_holiday(self, day: date, name: str = "") -> None:
        with self._session_factory() as session:
            session.merge(HolidayModel(day=day, name=name))
            session.commit()

    # -- credits ------------------------------------------------------------

    def save_credit(self, credit: Credit, terms: Optional[LoanTerms] = None) -> None:
        """Insert or replace a credit together with its plan and payments."""
        with self._session_factory() as session:
            row = session.get(CreditModel, credit.id)
            if row is None:
                row = CreditModel(id=credit.id)
                session.add(row)
            self._copy_credit(row, credit)
            if terms is not None:
                self._copy_terms(row, terms)
            row.installments = [self._installment_row(credit.id, i) for i in credit.installments]
            row.payments = [session.merge(self._payment_row(credit.id, p)) for p in credit.payments]
            session.commit()
        logger.info("Saved credit %s with %d installments", credit.id, len(credit.installments))

    def load_credit(self, credit_id: str) -> Credit:
        with self._session_factory() as session:
            row = session.get(CreditModel, credit_id)
            if row is None:
                raise CreditNotFoundError(f"Credit {credit_id} not found")
            return self._to_credit(row)

    def list_credits(self, status: Optional[CreditStatus] = None) -> List[Credit]:
        with self._session_factory() as session:
            query = select(CreditModel).order_by(CreditModel.created_at.asc(), CreditModel.id.asc())
            if status is not None:
                query = query.where(CreditModel.status == status.value)
            return [self._to_credit(row) for row in session.execute(query).scalars()]

    def load_terms(self, credit_id: str) -> Optional[LoanTerms]:
        """Terms the credit's plan was generated from, with the current holidays."""
        with self._session_factory() as session:
            row = session.get(CreditModel, credit_id)
            if row is None:
                raise CreditNotFoundError(f"Credit {credit_id} not found")
            if row.payment_frequency is None or row.start_date is None:
                return None
            return LoanTerms(
                principal=row.principal_amount,
                monthly_interest_rate=row.monthly_interest_rate,
                term_months=row.term_months,
                payment_frequency=PaymentFrequency.parse(row.payment_frequency),
                start_date=row.start_date,
                holidays=self.list_holidays(),
            )

    def save_schedule(self, credit_id: str, installments: Iterable[Installment]) -> None:
        """Replace the whole plan of a credit."""
        installments = list(installments)
        with self._session_factory() as session:
            row = session.get(CreditModel, credit_id)
            if row is None:
                raise CreditNotFoundError(f"Credit {credit_id} not found")
            self._write_plan(session, credit_id, installments)
            if installments:
                row.due_date = max(i.due_date for i in installments)
            session.commit()
        logger.info("Replaced plan of credit %s (%d installments)", credit_id, len(installments))

    def regenerate_schedule(self, credit_id: str, terms: LoanTerms) -> Optional[Credit]:
        """Regenerate and persist the plan of a credit from new terms.

        The plan, the totals and the terms are written in one transaction.
        """
        updated = regenerate_credit_schedule(self.load_credit(credit_id), terms)
        if updated is None:
            return None
        with self._session_factory() as session:
            row = session.get(CreditModel, credit_id)
            self._write_plan(session, credit_id, updated.installments)
            self._copy_credit(row, updated)
            self._copy_terms(row, terms)
            session.commit()
        logger.info("Regenerated plan of credit %s, maturity %s", credit_id, updated.due_date)
        return updated

    def revalidate_active_credits(self) -> int:
        """Regenerate the plan of every active credit against the current holidays.

        Run after the holiday calendar changes. Credits stored without terms,
        or whose terms no longer produce a plan, are left as they are.
        Returns the number of credits updated.
        """
        updated_count = 0
        for credit in self.list_credits(CreditStatus.ACTIVE):
            terms = self.load_terms(credit.id)
            if terms is None:
                continue
            if self.regenerate_schedule(credit.id, terms) is not None:
                updated_count += 1
            else:
                logger.warning("Could not regenerate plan of credit %s", credit.id)
        logger.info("Revalidated %d active credits", updated_count)
        return updated_count

    def _write_plan(self, session, credit_id: str, installments: Iterable[Installment]) -> None:
        session.execute(delete(InstallmentModel).where(InstallmentModel.credit_id == credit_id))
        session.add_all(self._installment_row(credit_id, i) for i in installments)

    # -- payments -----------------------------------------------------------

    def add_payment(self, credit_id: str, payment: RegisteredPayment) -> Credit:
        updated = register_payment(self.load_credit(credit_id), payment, self.status_engine)
        self._write_payments(updated)
        return updated

    def request_void(self, credit_id: str, payment_id: str, reason: str, requested_by: str) -> Credit:
        updated = request_void(self.load_credit(credit_id), payment_id, reason, requested_by)
        self._write_payments(updated)
        return updated

    def approve_void(self, credit_id: str, payment_id: str) -> Credit:
        updated = approve_void(self.load_credit(credit_id), payment_id)
        self._write_payments(updated)
        return updated

    def reject_void(self, credit_id: str, payment_id: str) -> Credit:
        updated = reject_void(self.load_credit(credit_id), payment_id)
        self._write_payments(updated)
        return updated

    def _write_payments(self, credit: Credit) -> None:
        with self._session_factory() as session:
            row = session.get(CreditModel, credit.id)
            row.status = credit.status.value
            for payment in credit.payments:
                session.merge(self._payment_row(credit.id, payment))
            session.commit()

    # -- row conversion -----------------------------------------------------

    @staticmethod
    def _copy_credit(row: CreditModel, credit: Credit) -> None:
        row.credit_number = credit.credit_number
        row.client_name = credit.client_name
        row.collections_manager = credit.collections_manager
        row.status = credit.status.value
        row.principal_amount = credit.principal_amount
        row.total_interest = credit.total_interest
        row.total_amount = credit.total_amount
        row.total_installment_amount = credit.total_installment_amount
        row.due_date = credit.due_date

    @staticmethod
    def _copy_terms(row: CreditModel, terms: LoanTerms) -> None:
        row.monthly_interest_rate = terms.monthly_interest_rate
        row.term_months = terms.term_months
        row.payment_frequency = terms.payment_frequency.value
        row.start_date = terms.start_date

    @staticmethod
    def _installment_row(credit_id: str, installment: Installment) -> InstallmentModel:
        return InstallmentModel(
            credit_id=credit_id,
            number=installment.number,
            due_date=installment.due_date,
            amount=installment.amount,
            principal=installment.principal,
            interest=installment.interest,
            balance=installment.balance,
        )

    def _payment_row(self, credit_id: str, payment: RegisteredPayment) -> PaymentModel:
        return PaymentModel(
            id=payment.id,
            credit_id=credit_id,
            payment_date=self._to_utc(payment.payment_date),
            amount=payment.amount,
            status=payment.status.value,
            managed_by=payment.managed_by,
            transaction_number=payment.transaction_number,
            void_reason=payment.void_reason,
            void_requested_by=payment.void_requested_by,
        )

    def _to_utc(self, value: datetime) -> datetime:
        if value.tzinfo is None:
            value = value.replace(tzinfo=self.status_engine.clock.tz)
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    def _to_credit(self, row: CreditModel) -> Credit:
        tz = self.status_engine.clock.tz
        return Credit(
            id=row.id,
            status=CreditStatus(row.status),
            principal_amount=row.principal_amount,
            total_interest=row.total_interest,
            total_amount=row.total_amount,
            total_installment_amount=row.total_installment_amount,
            installments=tuple(
                Installment(
                    number=i.number,
                    due_date=i.due_date,
                    amount=i.amount,
                    principal=i.principal,
                    interest=i.interest,
                    balance=i.balance,
                )
                for i in row.installments
            ),
            payments=tuple(
                RegisteredPayment(
                    id=p.id,
                    payment_date=p.payment_date.replace(tzinfo=timezone.utc).astimezone(tz),
                    amount=p.amount,
                    status=PaymentStatus(p.status),
                    managed_by=p.managed_by,
                    transaction_number=p.transaction_number,
                    void_reason=p.void_reason,
                    void_requested_by=p.void_requested_by,
                )
                for p in row.payments
            ),
            credit_number=row.credit_number,
            due_date=row.due_date,
            client_name=row.client_name,
            collections_manager=row.collections_manager,
        )


def create_store_from_env(url: Optional[str] = None, config: Optional[EngineConfig] = None) -> CreditStore:
    config = config or EngineConfig.from_env()
    return CreditStore(url or config.database_url, config=config)

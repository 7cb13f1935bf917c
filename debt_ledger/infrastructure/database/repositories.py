"""Data access layer for customers and ledger transactions"""

import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Sequence
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from debt_ledger.infrastructure.database.models import CustomerRecord, PaymentAuditRecord, TransactionRecord
from debt_ledger.domain.debt import (
    apply_to_balances,
    clamp_balances,
    reverse_from_balances,
    settle_with_credit,
    spend_contribution,
)
from debt_ledger.domain.exceptions import (
    CustomerNotFoundError,
    InvalidTransactionDataError,
    RepairError,
    TransactionNotFoundError,
)
from debt_ledger.domain.models import (
    BalanceSnapshot,
    Customer,
    Discrepancy,
    PaymentAuditEntry,
    PaymentMethod,
    Transaction,
    TransactionStatus,
    TransactionType,
)
from debt_ledger.domain.repository import LedgerRepository
from debt_ledger.domain.status import build_transaction

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_customer(record: CustomerRecord) -> Customer:
    return Customer(
        id=record.id,
        name=record.name,
        outstanding_balance=record.outstanding_balance,
        credit_balance=record.credit_balance,
        total_spent=record.total_spent,
    )


def to_transaction(record: TransactionRecord) -> Transaction:
    return Transaction(
        id=record.id,
        customer_id=record.customer_id,
        type=TransactionType.parse(record.type),
        amount=record.amount,
        date=record.date,
        payment_method=PaymentMethod.parse(record.payment_method),
        paid_amount=record.paid_amount,
        remaining_amount=record.remaining_amount,
        applied_to_debt=record.applied_to_debt,
        status=TransactionStatus.parse(record.status),
        is_deleted=record.is_deleted,
        sequence=record.sequence,
        credit_applied=record.credit_applied or 0,
    )


def to_audit_entry(record: PaymentAuditRecord) -> PaymentAuditEntry:
    return PaymentAuditEntry(
        id=record.id,
        customer_id=record.customer_id,
        transaction_id=record.transaction_id,
        type=record.type,
        amount=record.amount,
        description=record.description,
        created_at=record.created_at,
    )


class SqlLedgerRepository(LedgerRepository):
    """LedgerRepository backed by a SQLAlchemy session"""

    def __init__(self, db: Session):
        self.db = db

    def list_customers(self) -> List[Customer]:
        return [to_customer(r) for r in self.db.query(CustomerRecord).order_by(CustomerRecord.id).all()]

    def list_transactions(self, customer_id: Optional[str] = None) -> List[Transaction]:
        """
        Live transactions in ledger order.

        Rows whose type, method or status is outside the known values are
        skipped with a warning so one corrupt row cannot stop a full pass.
        """
        query = self.db.query(TransactionRecord).filter(TransactionRecord.is_deleted.is_(False))
        if customer_id is not None:
            query = query.filter(TransactionRecord.customer_id == customer_id)
        records = query.order_by(
            TransactionRecord.date.asc(),
            TransactionRecord.sequence.asc(),
            TransactionRecord.id.asc(),
        ).all()

        transactions = []
        for record in records:
            try:
                transactions.append(to_transaction(record))
            except InvalidTransactionDataError as e:
                logger.warning(
                    "Skipping unreadable transaction row",
                    extra={"transaction_id": record.id, "customer_id": record.customer_id, "error": str(e)},
                )
        return transactions

    def apply_balance_corrections(self, discrepancies: Sequence[Discrepancy], dry_run: bool = True) -> int:
        """
        Write every correction in one database transaction.

        The whole batch is flushed before deciding: dry runs roll back, real
        runs commit. Any failure rolls back the batch, so no customer is left
        half-repaired. Expects a session with no other pending work.
        """
        if not discrepancies:
            return 0

        customer_ids = [d.customer_id for d in discrepancies]
        try:
            records = {
                r.id: r
                for r in self.db.query(CustomerRecord).filter(CustomerRecord.id.in_(customer_ids)).all()
            }
            missing = sorted(set(customer_ids) - records.keys())
            if missing:
                raise CustomerNotFoundError(f"Cannot repair unknown customers: {missing}")

            now = _utcnow()
            for d in discrepancies:
                record = records[d.customer_id]
                record.outstanding_balance = d.computed_outstanding
                record.credit_balance = d.computed_credit
                record.updated_at = now
            self.db.flush()

            if dry_run:
                self.db.rollback()
            else:
                self.db.commit()
        except (SQLAlchemyError, CustomerNotFoundError) as e:
            self.db.rollback()
            raise RepairError(f"Balance repair rolled back: {e}") from e

        return len(discrepancies)


class CustomerRepository:
    """Repository for customers"""

    def __init__(self, db: Session):
        self.db = db

    def create_customer(self, name: str, customer_id: Optional[str] = None) -> Customer:
        """Persist a customer with zero balances"""
        record = CustomerRecord(id=customer_id or str(uuid.uuid4()), name=name)
        self.db.add(record)
        self.db.flush()
        return to_customer(record)

    def get_record(self, customer_id: str) -> CustomerRecord:
        record = self.db.query(CustomerRecord).filter(CustomerRecord.id == customer_id).first()
        if record is None:
            raise CustomerNotFoundError(f"Customer {customer_id} not found")
        return record

    def get_customer(self, customer_id: str) -> Customer:
        return to_customer(self.get_record(customer_id))


class PaymentAuditRepository:
    """Repository for the payment audit trail"""

    def __init__(self, db: Session):
        self.db = db

    def record(
        self,
        customer_id: str,
        type_: str,
        amount: int,
        description: str,
        transaction_id: Optional[str] = None,
    ) -> None:
        self.db.add(
            PaymentAuditRecord(
                id=str(uuid.uuid4()),
                customer_id=customer_id,
                transaction_id=transaction_id,
                type=type_,
                amount=amount,
                description=description,
            )
        )

    def record_balance_movement(
        self,
        transaction: Transaction,
        before: BalanceSnapshot,
        after: BalanceSnapshot,
    ) -> None:
        """Log the debt and credit movement a new transaction caused"""
        customer_id = transaction.customer_id
        if transaction.credit_applied:
            self.record(customer_id, "credit_used", transaction.credit_applied, "Credit used for purchase", transaction.id)

        if transaction.type != TransactionType.PAYMENT:
            return

        debt_cleared = before.outstanding - after.outstanding
        credit_created = after.credit - before.credit
        if debt_cleared > 0:
            description = "Debt fully paid" if after.outstanding == 0 else "Partial debt payment"
            self.record(customer_id, "payment", debt_cleared, description, transaction.id)
        if credit_created > 0 and transaction.applied_to_debt:
            self.record(customer_id, "overpayment", credit_created, "Excess payment converted to credit", transaction.id)
        elif credit_created > 0:
            self.record(customer_id, "payment", credit_created, "Payment converted to credit", transaction.id)

    def list_entries(self, customer_id: str, limit: int = 50) -> List[PaymentAuditEntry]:
        """Most recent entries first"""
        records = (
            self.db.query(PaymentAuditRecord)
            .filter(PaymentAuditRecord.customer_id == customer_id)
            .order_by(PaymentAuditRecord.created_at.desc(), PaymentAuditRecord.id.desc())
            .limit(limit)
            .all()
        )
        return [to_audit_entry(r) for r in records]


class TransactionRepository:
    """
    Repository for ledger transactions.

    Creation, edits and soft deletes all move the customer's stored balances
    by the transaction's own delta; they never recompute them from history,
    so drift stays visible to the reconciliation audit. Only total_spent is
    re-summed after an edit or delete. Nothing here commits; the caller owns
    the transaction.
    """

    def __init__(self, db: Session):
        self.db = db
        self.customers = CustomerRepository(db)
        self.audit = PaymentAuditRepository(db)

    def _next_sequence(self) -> int:
        current = self.db.query(func.max(TransactionRecord.sequence)).scalar()
        return (current or 0) + 1

    @staticmethod
    def _balances(customer: CustomerRecord) -> BalanceSnapshot:
        return BalanceSnapshot(outstanding=customer.outstanding_balance, credit=customer.credit_balance)

    @staticmethod
    def _store_balances(customer: CustomerRecord, balances: BalanceSnapshot) -> None:
        balances = clamp_balances(balances)
        customer.outstanding_balance = balances.outstanding
        customer.credit_balance = balances.credit
        customer.updated_at = _utcnow()

    def create_transaction(
        self,
        customer_id: str,
        type_: str | TransactionType,
        amount: int,
        date: Optional[datetime] = None,
        payment_method: str | PaymentMethod | None = None,
        paid_amount: Optional[int] = None,
        applied_to_debt: bool = False,
    ) -> Transaction:
        """Resolve split and status, use available credit, persist, and update the customer's balances"""
        customer = self.customers.get_record(customer_id)
        before = self._balances(customer)

        transaction = build_transaction(
            id=str(uuid.uuid4()),
            customer_id=customer_id,
            type_=type_,
            amount=amount,
            date=date or _utcnow(),
            payment_method=payment_method,
            paid_amount=paid_amount,
            applied_to_debt=applied_to_debt,
            sequence=self._next_sequence(),
        )
        transaction = settle_with_credit(transaction, before.credit)

        after = apply_to_balances(before, transaction)
        self._store_balances(customer, after)
        customer.total_spent += spend_contribution(transaction)

        self.db.add(
            TransactionRecord(
                id=transaction.id,
                customer_id=transaction.customer_id,
                sequence=transaction.sequence,
                type=transaction.type.value,
                payment_method=transaction.payment_method.value,
                amount=transaction.amount,
                paid_amount=transaction.paid_amount,
                remaining_amount=transaction.remaining_amount,
                applied_to_debt=transaction.applied_to_debt,
                credit_applied=transaction.credit_applied,
                status=transaction.status.value,
                date=transaction.date,
            )
        )
        self.audit.record_balance_movement(transaction, before, after)
        self.db.flush()

        logger.info(
            "Transaction recorded",
            extra={
                "transaction_id": transaction.id,
                "customer_id": customer_id,
                "type": transaction.type.value,
                "amount": transaction.amount,
                "credit_applied": transaction.credit_applied,
                "status": transaction.status.value,
            },
        )
        return transaction

    def _get_live_record(self, transaction_id: str) -> TransactionRecord:
        record = (
            self.db.query(TransactionRecord)
            .filter(TransactionRecord.id == transaction_id, TransactionRecord.is_deleted.is_(False))
            .first()
        )
        if record is None:
            raise TransactionNotFoundError(f"Transaction {transaction_id} not found")
        return record

    def get_transaction(self, transaction_id: str) -> Transaction:
        return to_transaction(self._get_live_record(transaction_id))

    def update_transaction(
        self,
        transaction_id: str,
        amount: Optional[int] = None,
        type_: str | TransactionType | None = None,
        payment_method: str | PaymentMethod | None = None,
        paid_amount: Optional[int] = None,
        applied_to_debt: Optional[bool] = None,
        date: Optional[datetime] = None,
    ) -> Transaction:
        """
        Edit a transaction and re-derive its split and status.

        The old version's effect is reversed and the new one applied to the
        customer's stored balances. Changing the type without naming a method
        falls back to the new type's default method.
        """
        record = self._get_live_record(transaction_id)
        current = to_transaction(record)
        customer = self.customers.get_record(current.customer_id)

        new_type = current.type if type_ is None else TransactionType.parse(type_)
        if payment_method is None and new_type == current.type:
            payment_method = current.payment_method
        if paid_amount is None:
            # credit the sale consumed is re-applied below, only the till payment carries over
            paid_amount = current.paid_amount - current.credit_applied

        balances = reverse_from_balances(self._balances(customer), current)
        edited = build_transaction(
            id=current.id,
            customer_id=current.customer_id,
            type_=new_type,
            amount=current.amount if amount is None else amount,
            date=date or current.date,
            payment_method=payment_method,
            paid_amount=paid_amount,
            applied_to_debt=current.applied_to_debt if applied_to_debt is None else applied_to_debt,
            sequence=current.sequence,
        )
        edited = settle_with_credit(edited, balances.credit)
        self._store_balances(customer, apply_to_balances(balances, edited))

        record.type = edited.type.value
        record.payment_method = edited.payment_method.value
        record.amount = edited.amount
        record.paid_amount = edited.paid_amount
        record.remaining_amount = edited.remaining_amount
        record.applied_to_debt = edited.applied_to_debt
        record.credit_applied = edited.credit_applied
        record.status = edited.status.value
        record.date = edited.date
        record.updated_at = _utcnow()
        self.db.flush()

        self._refresh_total_spent(customer)
        logger.info(
            "Transaction updated",
            extra={"transaction_id": edited.id, "customer_id": edited.customer_id, "type": edited.type.value},
        )
        return edited

    def soft_delete_transaction(self, transaction_id: str) -> None:
        """Flag a transaction deleted and reverse its effect on the customer's balances"""
        record = self._get_live_record(transaction_id)
        current = to_transaction(record)
        customer = self.customers.get_record(current.customer_id)

        self._store_balances(customer, reverse_from_balances(self._balances(customer), current))
        record.is_deleted = True
        record.updated_at = _utcnow()
        self.db.flush()

        self._refresh_total_spent(customer)
        logger.info(
            "Transaction deleted",
            extra={"transaction_id": current.id, "customer_id": current.customer_id},
        )

    def _refresh_total_spent(self, customer: CustomerRecord) -> None:
        history = SqlLedgerRepository(self.db).list_transactions(customer.id)
        customer.total_spent = sum(spend_contribution(t) for t in history)
        self.db.flush()

"""SQLAlchemy ORM models for customers and their transactions"""

import uuid
from sqlalchemy import Column, String, BigInteger, Boolean, DateTime, Integer, Text
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


def _new_id() -> str:
    return str(uuid.uuid4())


class CustomerRecord(Base):
    """Customer with incrementally maintained balances (kobo)"""

    __tablename__ = "customers"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(Text, nullable=False, default="")
    outstanding_balance = Column(BigInteger, nullable=False, default=0)
    credit_balance = Column(BigInteger, nullable=False, default=0)
    total_spent = Column(BigInteger, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True)


class TransactionRecord(Base):
    """Ledger entry; soft-deleted rows stay in place with is_deleted set"""

    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True, default=_new_id)
    # No foreign key: rows whose customer disappeared must remain readable so
    # reconciliation can report them as orphans.
    customer_id = Column(String(36), nullable=False, index=True)
    sequence = Column(Integer, nullable=False, default=0)
    type = Column(Text, nullable=False)
    payment_method = Column(Text, nullable=False, default="cash")
    amount = Column(BigInteger, nullable=False)
    paid_amount = Column(BigInteger, nullable=False, default=0)
    remaining_amount = Column(BigInteger, nullable=True)
    applied_to_debt = Column(Boolean, nullable=False, default=False)
    credit_applied = Column(BigInteger, nullable=False, default=0)
    status = Column(Text, nullable=False, default="completed")
    date = Column(DateTime(timezone=True), nullable=False, index=True)
    is_deleted = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True)


class PaymentAuditRecord(Base):
    """Trail of payments, overpayments and credit usage per customer"""

    __tablename__ = "payment_audit"

    id = Column(String(36), primary_key=True, default=_new_id)
    customer_id = Column(String(36), nullable=False, index=True)
    transaction_id = Column(String(36), nullable=True)
    type = Column(Text, nullable=False, index=True)
    amount = Column(BigInteger, nullable=False)
    description = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), index=True)

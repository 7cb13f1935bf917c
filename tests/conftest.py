"""Pytest fixtures for testing"""

import pytest
from datetime import datetime, timedelta
from typing import Callable, Generator
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from debt_ledger.infrastructure.database.models import Base
from debt_ledger.domain.models import (
    PaymentMethod,
    Transaction,
    TransactionStatus,
    TransactionType,
)


# Test database: one in-memory connection shared by every session
TEST_DATABASE_URL = "sqlite://"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False}, poolclass=StaticPool)
TestingSessionLocal = sessionmaker(autoflush=False, bind=engine)

BASE_DATE = datetime(2024, 3, 1, 9, 0, 0)


@pytest.fixture
def session_factory() -> Generator[Callable[[], Session], None, None]:
    """Create the schema and hand out a session factory bound to it"""
    Base.metadata.create_all(bind=engine)
    try:
        yield TestingSessionLocal
    finally:
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db(session_factory) -> Generator[Session, None, None]:
    """Create test database and session"""
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def make_transaction() -> Callable[..., Transaction]:
    """Factory for domain transactions; each call lands one day after the previous"""
    counter = {"n": 0}

    def _make(
        type_: str,
        amount: int,
        customer_id: str = "cust_1",
        payment_method: str = "cash",
        paid_amount: int | None = None,
        remaining_amount: int | None = None,
        applied_to_debt: bool = False,
        is_deleted: bool = False,
        date: datetime | None = None,
        status: str = "completed",
        credit_applied: int = 0,
    ) -> Transaction:
        counter["n"] += 1
        n = counter["n"]
        return Transaction(
            id=f"tx_{n:03d}",
            customer_id=customer_id,
            type=TransactionType(type_),
            amount=amount,
            date=date or BASE_DATE + timedelta(days=n),
            payment_method=PaymentMethod(payment_method),
            paid_amount=amount if paid_amount is None else paid_amount,
            remaining_amount=remaining_amount,
            applied_to_debt=applied_to_debt,
            status=TransactionStatus(status),
            is_deleted=is_deleted,
            sequence=n,
            credit_applied=credit_applied,
        )

    return _make

"""Pytest fixtures for testing"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("FIELD_ENCRYPTION_KEY", "test-secret")

import pytest
from datetime import date, datetime
from decimal import Decimal
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from finance_tracker.api.main import create_app
from finance_tracker.infrastructure.database.models import Base
from finance_tracker.infrastructure.database.session import get_db
from finance_tracker.domain.models import EntryKind, EntryOrigin, LedgerEntry, Loan, LoanRole
from finance_tracker.services.events import EventBus


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

OWNER = "user_alice"
OTHER_OWNER = "user_bob"


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


@pytest.fixture
def auth_headers() -> dict:
    return {"X-User-ID": OWNER}


@pytest.fixture
def other_headers() -> dict:
    return {"X-User-ID": OTHER_OWNER}


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def lent_loan() -> Loan:
    """Alice lent 1000 to Ravi for three months"""
    return Loan(
        owner_id=OWNER,
        counterparty_name="Ravi",
        role=LoanRole.LENT,
        principal=Decimal("1000.00"),
        start_date=date(2024, 1, 1),
        due_date=date(2024, 4, 1),
    )


@pytest.fixture
def borrowed_loan() -> Loan:
    """Alice borrowed 500 from Meera"""
    return Loan(
        owner_id=OWNER,
        counterparty_name="Meera",
        role=LoanRole.BORROWED,
        principal=Decimal("500.00"),
        start_date=date(2024, 1, 1),
        due_date=date(2024, 2, 1),
    )


@pytest.fixture
def sample_entries() -> list[LedgerEntry]:
    """A month of everyday activity plus a lent loan's opening entry"""
    loan_id = Loan(
        owner_id=OWNER,
        counterparty_name="Ravi",
        role=LoanRole.LENT,
        principal=Decimal("300"),
        start_date=date(2024, 3, 1),
        due_date=date(2024, 6, 1),
    ).id

    def entry(kind, amount, category, method, day, origin=None):
        return LedgerEntry(
            owner_id=OWNER,
            kind=kind,
            amount=Decimal(amount),
            category=category,
            payment_method=method,
            occurred_at=datetime(2024, 3, day, 10, 0),
            origin=origin or EntryOrigin.manual(),
        )

    return [
        entry(EntryKind.INCOME, "5000", "Salary", "bank", 1),
        entry(EntryKind.EXPENSE, "200", "Food", "cash", 3),
        entry(EntryKind.EXPENSE, "150", "Food", "Online", 5),
        entry(EntryKind.EXPENSE, "50", "Transport", "UPI", 7),
        entry(EntryKind.INVESTMENT, "1000", "Mutual fund", "bank", 9),
        entry(EntryKind.EXPENSE, "300", "loan principal", "loan", 10, EntryOrigin.loan_principal(loan_id)),
    ]

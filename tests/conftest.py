"""Pytest fixtures for testing"""

import pytest
import httpx
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from collection_gateway.api.main import create_app
from collection_gateway.api.dependencies import get_ledger_client, get_roster_client
from collection_gateway.infrastructure.clients.ledger import LedgerClient
from collection_gateway.infrastructure.clients.roster import RosterClient
from collection_gateway.infrastructure.database.models import Base
from collection_gateway.infrastructure.database.session import get_db
from collection_gateway.domain.models import CommittedPayment, Loan, PaymentMethod, Roster, SessionContext
from mock_services.collection_server.main import app as mock_backend, seed


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

COLLECTION_DAY = date(2025, 3, 3)
MOCK_BASE_URL = "http://collections.test"


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
def backend_state() -> dict:
    """Fresh in-memory collections backend"""
    return seed()


@pytest.fixture
def roster_client(backend_state: dict) -> RosterClient:
    return RosterClient(base_url=MOCK_BASE_URL, transport=httpx.ASGITransport(app=mock_backend))


@pytest.fixture
def ledger_client(backend_state: dict) -> LedgerClient:
    return LedgerClient(base_url=MOCK_BASE_URL, transport=httpx.ASGITransport(app=mock_backend))


@pytest.fixture
def client(db: Session, roster_client: RosterClient, ledger_client: LedgerClient) -> TestClient:
    """Create FastAPI test client wired to the test database and the mock backend"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_roster_client] = lambda: roster_client
    app.dependency_overrides[get_ledger_client] = lambda: ledger_client
    return TestClient(app)


@pytest.fixture
def context() -> SessionContext:
    return SessionContext(lead_id="lead_1", day=COLLECTION_DAY, route_id="route_1")


@pytest.fixture
def loans() -> list[Loan]:
    """
    Five-loan roster in display order.

    loan_4 already has a cash payment of 250 committed for the day and
    loan_3 has no commission product.
    """
    return [
        Loan(id="loan_0", expected_weekly_payment=Decimal("500"), commission_rate=Decimal("20")),
        Loan(id="loan_1", expected_weekly_payment=Decimal("300"), commission_rate=Decimal("15")),
        Loan(id="loan_2", expected_weekly_payment=Decimal("200"), commission_rate=Decimal("10")),
        Loan(id="loan_3", expected_weekly_payment=Decimal("400"), commission_rate=Decimal("0")),
        Loan(
            id="loan_4",
            expected_weekly_payment=Decimal("250"),
            commission_rate=Decimal("12"),
            committed_payment=CommittedPayment(
                id="pay_4",
                loan_id="loan_4",
                amount=Decimal("250"),
                commission=Decimal("12"),
                payment_method=PaymentMethod.CASH,
                day_record_id="dr_1",
                received_at=datetime(2025, 3, 3, 15, 0, tzinfo=timezone.utc),
            ),
        ),
    ]


@pytest.fixture
def roster(loans: list[Loan]) -> Roster:
    return Roster(loans=loans, day_record_id="dr_1")

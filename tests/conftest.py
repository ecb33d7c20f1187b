"""Pytest fixtures for testing"""

import pytest
from datetime import date
from decimal import Decimal
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from deed_ledger.api.main import create_app
from deed_ledger.infrastructure.database.models import Base
from deed_ledger.infrastructure.database.session import get_db
from deed_ledger.domain.models import Contract, OriginType, Payment, SaleType


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


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
def direct_contract() -> Contract:
    """DIRECT CFD: price 20000, cost 12000, 4000 down, 32 x 500 from Feb 2024"""
    return Contract(
        id=1,
        property_id="#12",
        buyer_name="Maria Lopez",
        origin_type=OriginType.DIRECT,
        sale_type=SaleType.CFD,
        contract_date=date(2024, 1, 15),
        contract_price=Decimal("20000"),
        cost_basis=Decimal("12000"),
        down_payment=Decimal("4000"),
        county="Hidalgo",
        state="TX",
        first_installment_date=date(2024, 2, 15),
        installment_amount=Decimal("500"),
        installment_count=32,
    )


@pytest.fixture
def assumed_contract() -> Contract:
    """ASSUMED CFD taken over on 2024-06-01 with 10000 still owed"""
    return Contract(
        id=2,
        property_id="#33",
        buyer_name="James Carter",
        origin_type=OriginType.ASSUMED,
        sale_type=SaleType.CFD,
        contract_date=date(2023, 3, 1),
        contract_price=Decimal("15000"),
        cost_basis=Decimal("8000"),
        down_payment=Decimal("1000"),
        county="Starr",
        state="TX",
        transfer_date=date(2024, 6, 1),
        opening_receivable=Decimal("10000"),
        installments_paid_by_transfer=8,
        first_installment_date=date(2024, 7, 1),
        installment_amount=Decimal("500"),
        installment_count=20,
    )


@pytest.fixture
def assumed_payments() -> list[Payment]:
    """One receipt before transfer (prior owner's), two after"""
    return [
        Payment(
            id=10,
            contract_id=2,
            payment_date=date(2024, 5, 15),
            amount_total=Decimal("500"),
            principal_amount=Decimal("500"),
        ),
        Payment(
            id=11,
            contract_id=2,
            payment_date=date(2024, 7, 1),
            amount_total=Decimal("1000"),
            principal_amount=Decimal("1000"),
        ),
        Payment(
            id=12,
            contract_id=2,
            payment_date=date(2024, 8, 1),
            amount_total=Decimal("1525"),
            principal_amount=Decimal("1500"),
            late_fee_amount=Decimal("25"),
        ),
    ]


@pytest.fixture
def cash_contract() -> Contract:
    return Contract(
        id=3,
        property_id="#40",
        buyer_name="Ana Ruiz",
        origin_type=OriginType.DIRECT,
        sale_type=SaleType.CASH,
        contract_date=date(2024, 4, 1),
        close_date=date(2024, 4, 20),
        contract_price=Decimal("9000"),
        cost_basis=Decimal("5000"),
        county="Cameron",
        state="TX",
    )

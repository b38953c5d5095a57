"""Pytest fixtures for testing"""

import os

# Point the app at SQLite before any module builds the engine
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")

import pytest
from datetime import date
from typing import Any, Dict, Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from hire_purchase.api.main import create_app
from hire_purchase.api.dependencies import get_today
from hire_purchase.infrastructure.database.models import Base
from hire_purchase.infrastructure.database.session import get_db


TODAY = date(2024, 6, 15)

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
    """Create FastAPI test client with test database and a fixed calendar day"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_today] = lambda: TODAY
    return TestClient(app)


@pytest.fixture
def sale_payload() -> Dict[str, Any]:
    """iPhone sold for 12,000.00 with 2,000.00 down, rest over 3 months due on the 5th"""
    return {
        "name": "Somchai Jaidee",
        "phone": "0812345678",
        "product_type": "iPhone",
        "product_model": "iPhone 15 Pro",
        "cost_price_cents": 800_000,
        "cost_bonus_cents": 20_000,
        "selling_price_cents": 1_200_000,
        "customer_down_payment_cents": 200_000,
        "installment_months": 3,
        "payment_due_day": 5,
    }


@pytest.fixture
def credit_card(client: TestClient) -> Dict[str, Any]:
    response = client.post(
        "/v1/credit-cards",
        json={"name": "KBank Platinum", "credit_limit_cents": 5_000_000, "statement_due_day": 25},
    )
    assert response.status_code == 201
    return response.json()

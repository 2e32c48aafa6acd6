"""
Shared fixtures: in-memory SQLite, a fixed clock, a fake payment gateway and an
API client with those wired in through dependency overrides.
"""
import json
from datetime import datetime, timezone
from typing import Dict, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from cvforge.core.clock import get_clock
from cvforge.core.errors import InvalidWebhook, PaymentGatewayError
from cvforge.core.plan_catalog import get_catalog, load_catalog
from cvforge.core.security import create_access_token, hash_password
from cvforge.db.base import Base
from cvforge.db.models.user import User
from cvforge.db.session import get_db
from cvforge.main import app
from cvforge.services.payment_gateway import (
    ChargeInitialization,
    PaymentGateway,
    VerificationResult,
    get_payment_gateway,
)
import cvforge.db.models  # noqa: F401


# Setup in-memory SQLite database for testing
TEST_DATABASE_URL = "sqlite:///:memory:"
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


class FixedClock:
    """Callable clock that tests move by hand."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class FakeGateway(PaymentGateway):
    """In-memory gateway. Charges succeed at verify time unless told otherwise."""

    def __init__(self):
        self.charges: List[dict] = []
        self.outcomes: Dict[str, VerificationResult] = {}
        self.verify_calls: List[str] = []
        self.fail_initialize = False

    def initialize_charge(self, amount, currency, reference, callback_url, email=None, metadata=None):
        if self.fail_initialize:
            raise PaymentGatewayError("gateway down")
        gateway_reference = f"cs_test_{len(self.charges) + 1}"
        self.charges.append({
            "amount": amount,
            "currency": currency,
            "order_id": reference,
            "reference": gateway_reference,
            "metadata": metadata or {},
        })
        return ChargeInitialization(
            authorization_url=f"https://pay.example.test/{gateway_reference}",
            reference=gateway_reference,
        )

    def set_outcome(
        self,
        reference: str,
        succeeded: bool,
        amount: Optional[int] = None,
        currency: str = "GHS",
        pending: bool = False,
    ):
        charge = next((c for c in self.charges if c["reference"] == reference), None)
        if amount is None and charge is not None:
            amount = charge["amount"]
        self.outcomes[reference] = VerificationResult(
            succeeded=succeeded,
            reference=reference,
            amount=amount,
            currency=currency,
            status="paid" if succeeded else "unpaid",
            pending=pending,
        )

    def verify(self, reference: str) -> VerificationResult:
        self.verify_calls.append(reference)
        if reference not in self.outcomes:
            self.set_outcome(reference, succeeded=True)
        return self.outcomes[reference]

    def parse_webhook(self, payload: bytes, signature: Optional[str]):
        if signature != "valid-signature":
            raise InvalidWebhook("Invalid webhook signature")
        return json.loads(payload)


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=test_engine)
    db = TestSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def catalog():
    return load_catalog()


@pytest.fixture
def clock():
    return FixedClock(datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def make_user(db):
    """Factory creating users on a given plan."""
    counter = {"n": 0}

    def _make(plan: str = "basic", role: str = "user", email: Optional[str] = None) -> User:
        counter["n"] += 1
        user = User(
            full_name=f"Test User {counter['n']}",
            email=email or f"user{counter['n']}@example.com",
            password_hash=hash_password("testpass123"),
            current_plan=plan,
            role=role,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def client(db, catalog, clock, gateway):
    """API client on the test database, fixed clock and fake gateway."""

    def override_get_db():
        session = TestSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_catalog] = lambda: catalog
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _bearer(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
def auth_headers():
    """Authorization headers for a user."""
    return _bearer


@pytest.fixture
def session_factory(db):
    """Session factory bound to the test database, for code that opens its own sessions."""
    return TestSessionLocal

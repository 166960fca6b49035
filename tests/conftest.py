import os

# Must be set before impactmarket.config is imported
os.environ["STRIPE_SECRET_KEY"] = "sk_test_fake_key_for_testing"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_fake_secret"
os.environ["DATABASE_URL"] = "sqlite:///./test_app.db"
os.environ["SUPABASE_JWT_SECRET"] = "supabase-test-jwt-secret"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from impactmarket.main import app as fastapi_app
from impactmarket.database import Base, get_db
from impactmarket.models import Payment
from impactmarket.rate_limit import RateLimiter, get_rate_limiter

SQLALCHEMY_DATABASE_URL = "sqlite:///./test_payments.db"
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={
                       "check_same_thread": False})
TestingSessionLocal = sessionmaker(
    autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def limiter():
    # No cooldown, so tests can hit the same endpoint back to back
    return RateLimiter(cooldown=0)


@pytest.fixture
def client(limiter):
    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[get_rate_limiter] = lambda: limiter

    with TestClient(fastapi_app) as c:
        yield c

    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def db():
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture
def pending_payment(db):
    payment = Payment(
        id="p1",
        creator_id="creator-1",
        amount=5000,
        currency="pln",
        status="pending",
        payer_email="a@b.com",
    )
    db.add(payment)
    db.commit()
    return payment


@pytest.fixture
def load_payment():
    """Read a payment back through a fresh session."""
    def _load(payment_id):
        session = TestingSessionLocal()
        try:
            return session.get(Payment, payment_id)
        finally:
            session.close()
    return _load

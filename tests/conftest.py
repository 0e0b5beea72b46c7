"""
Shared test fixtures.

Sets up an isolated SQLite test database so tests never touch
the real database. Tables are created before each test and
dropped after it — no test data persists.
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from atm_controller.config import Settings
from atm_controller.main import app
from atm_controller.models import Account, AccountType, Base, Card
from atm_controller.models.base import get_db


TEST_DATABASE_URL = "sqlite:///./test.db"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
)

TestSessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
)

# Card and account numbers used throughout the tests
CARD_NUMBER = "1234567890123456"
CARD_PIN = "1234"
CHECKING_NUMBER = "1001"
SAVINGS_NUMBER = "1002"

OTHER_CARD_NUMBER = "6543210987654321"
OTHER_CARD_PIN = "4321"
OTHER_CHECKING_NUMBER = "2001"

BLOCKED_CARD_NUMBER = "1111222233334444"


@pytest.fixture(autouse=True)
def setup_database():
    """Create all tables before each test, drop them after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    """Provide a database session for direct service testing."""
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def settings():
    """Default limits: min 1, deposit 10000/50000, withdrawal 5000/10000."""
    s = Settings()
    s.MIN_TRANSACTION_AMOUNT = 1
    s.MAX_SINGLE_DEPOSIT = 10000
    s.MAX_SINGLE_WITHDRAWAL = 5000
    s.MAX_DAILY_DEPOSIT = 50000
    s.MAX_DAILY_WITHDRAWAL = 10000
    return s


@pytest.fixture
def bank_data(db_session):
    """
    Two active cards and one blocked card.

    The first card owns a checking account (balance 1000) and a
    savings account (balance 5000); the second owns one checking
    account (balance 300).
    """
    card = Card(card_number=CARD_NUMBER, pin=CARD_PIN, holder_name="Kim Min")
    other = Card(
        card_number=OTHER_CARD_NUMBER, pin=OTHER_CARD_PIN, holder_name="Lee Jae"
    )
    blocked = Card(
        card_number=BLOCKED_CARD_NUMBER,
        pin="0000",
        holder_name="Park Soo",
        is_active=False,
    )
    db_session.add_all([card, other, blocked])
    db_session.flush()

    db_session.add_all([
        Account(
            account_number=CHECKING_NUMBER,
            account_type=AccountType.CHECKING,
            balance=1000,
            card_id=card.id,
        ),
        Account(
            account_number=SAVINGS_NUMBER,
            account_type=AccountType.SAVINGS,
            balance=5000,
            card_id=card.id,
        ),
        Account(
            account_number=OTHER_CHECKING_NUMBER,
            account_type=AccountType.CHECKING,
            balance=300,
            card_id=other.id,
        ),
    ])
    db_session.commit()
    return card


@pytest.fixture
def client(db_session):
    """
    Provide a test client with the test database.

    The get_db dependency is overridden so the FastAPI app
    uses our test session instead of the real database.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()

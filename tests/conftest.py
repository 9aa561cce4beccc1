"""
Pytest configuration and fixtures
"""
import pytest
from decimal import Decimal
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from src.database.connection import Base
from src.database.models import InvestmentPlan, Wallet
from src.services.price_source import StaticPriceSource


@pytest.fixture(scope="function")
def test_db():
    """Create an in-memory SQLite database for testing"""
    engine = create_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(bind=engine)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = SessionLocal()

    yield db

    db.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def make_wallet(test_db: Session):
    """Factory creating a wallet with a given balance"""
    def _make(user_id: int = 1, balance="1000.00", currency: str = "USD") -> Wallet:
        wallet = Wallet(user_id=user_id, balance=Decimal(str(balance)), currency=currency)
        test_db.add(wallet)
        test_db.commit()
        return wallet
    return _make


@pytest.fixture
def wallet(make_wallet):
    """User 1 with 1000.00"""
    return make_wallet(user_id=1, balance="1000.00")


@pytest.fixture
def growth_plan(test_db: Session):
    """1000-9999, 30 days, 25% return"""
    plan = InvestmentPlan(
        name="Growth",
        description="30-day plan",
        min_amount=Decimal("1000.00"),
        max_amount=Decimal("9999.00"),
        return_percentage=Decimal("25.00"),
        duration_days=30,
        is_active=True
    )
    test_db.add(plan)
    test_db.commit()
    return plan


@pytest.fixture
def static_prices():
    """Fixed prices for a few stocks and coins"""
    return StaticPriceSource({
        ("stock", "AAPL"): "120.00",
        ("stock", "MSFT"): "400.00",
        ("crypto", "BTC"): "50000.00",
    })


@pytest.fixture
def api_db():
    """
    Shared in-memory SQLite database for API tests

    TestClient runs sync routes in a worker thread, so the engine keeps a
    single connection usable from any thread.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = SessionLocal()

    yield db

    db.close()
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def client(api_db: Session, static_prices):
    """TestClient with the database session and price source overridden"""
    from fastapi.testclient import TestClient
    from src.api.dependencies import get_db, get_valuation_source
    from src.api.main import app

    def override_get_db():
        yield api_db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_valuation_source] = lambda: static_prices

    yield TestClient(app)

    app.dependency_overrides.clear()

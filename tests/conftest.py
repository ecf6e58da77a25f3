"""Pytest fixtures for testing"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")

import uuid
import pytest
from typing import Callable, Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from bikely_gateway.api.main import create_app
from bikely_gateway.api.dependencies import get_now_ms
from bikely_gateway.infrastructure.database.models import Base, UserRecord
from bikely_gateway.infrastructure.database.session import get_db
from bikely_gateway.domain.models import (
    Bicycle,
    InstallmentPlan,
    Order,
    OrderStatus,
    PaymentType,
    ShippingAddress,
    User,
    UserRole,
)


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# 2026-01-01T00:00:00Z
ORDER_DATE_MS = 1_767_225_600_000

ADDRESS = ShippingAddress(country="Zambia", state="Lusaka", city="Lusaka", street="Cairo Road 12", zip_code="10101")


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
def session_factory(db: Session) -> Generator[Callable[[], Session], None, None]:
    """Open extra sessions on the test database, one per concurrent writer"""
    sessions = []

    def _open() -> Session:
        session = TestingSessionLocal()
        sessions.append(session)
        return session

    yield _open
    for session in sessions:
        session.close()


@pytest.fixture
def order_date_ms() -> int:
    return ORDER_DATE_MS


@pytest.fixture
def clock() -> dict:
    """Mutable fixed clock; tests move time with clock["now"] = ..."""
    return {"now": ORDER_DATE_MS}


@pytest.fixture
def client(db: Session, clock: dict) -> TestClient:
    """Create FastAPI test client with test database and fixed clock"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_now_ms] = lambda: clock["now"]
    return TestClient(app)


@pytest.fixture
def admin_headers(db: Session) -> dict:
    db.add(UserRecord(auth_subject="admin_1", name="Admin", email="admin@bikely.test", role="admin"))
    db.commit()
    return {"X-Auth-Subject": "admin_1"}


@pytest.fixture
def customer_headers(db: Session) -> dict:
    db.add(
        UserRecord(
            auth_subject="customer_1",
            name="Mwila Banda",
            email="mwila@bikely.test",
            role="user",
            address={
                "country": ADDRESS.country,
                "state": ADDRESS.state,
                "city": ADDRESS.city,
                "street": ADDRESS.street,
                "zip_code": ADDRESS.zip_code,
                "latitude": None,
                "longitude": None,
            },
        )
    )
    db.commit()
    return {"X-Auth-Subject": "customer_1"}


@pytest.fixture
def customer() -> User:
    return User(
        id=uuid.uuid4(),
        auth_subject="customer_1",
        name="Mwila Banda",
        email="mwila@bikely.test",
        role=UserRole.USER,
        address=ADDRESS,
    )


@pytest.fixture
def monthly_bicycle() -> Bicycle:
    """ZMW 3000.00 bicycle on a 3-month plan"""
    return Bicycle(
        id=uuid.uuid4(),
        name="Trail 300",
        price_cents=300_000,
        plan=InstallmentPlan(available=True, duration=3, interval="monthly"),
    )


@pytest.fixture
def make_order() -> Callable[..., Order]:
    """Factory for installment orders anchored at ORDER_DATE_MS"""

    def _make(
        total: int = 300,
        paid: int = 0,
        duration: int | None = 3,
        interval: str = "monthly",
        status: OrderStatus = OrderStatus.PENDING,
        payment_type: PaymentType = PaymentType.INSTALLMENT,
        user_id: uuid.UUID | None = None,
        bicycle_id: uuid.UUID | None = None,
        snapshot: bool = True,
    ) -> Order:
        plan = InstallmentPlan(available=True, duration=duration, interval=interval) if snapshot else None
        return Order(
            id=uuid.uuid4(),
            user_id=user_id or uuid.uuid4(),
            bicycle_id=bicycle_id or uuid.uuid4(),
            total_amount_cents=total,
            paid_amount_cents=paid,
            payment_type=payment_type,
            status=status,
            order_date_ms=ORDER_DATE_MS,
            plan=plan if payment_type == PaymentType.INSTALLMENT else None,
        )

    return _make

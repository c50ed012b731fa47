# tests/conftest.py
import os

# Настройки читаются при импорте piercerhub, поэтому окружение задаем до него
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("NOTIFICATIONS_FUNCTIONS_URL", "http://functions.test")
os.environ.setdefault("NOTIFICATIONS_FUNCTIONS_KEY", "test-functions-key")
os.environ.setdefault("DATABASE_URL_OVERRIDE", "sqlite://")

from datetime import date, datetime, timedelta, timezone

import email_validator
import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from piercerhub.core.config import settings
from piercerhub.core.permissions import DEFAULT_MEMBER_PERMISSIONS
from piercerhub.core.redis import get_redis_client
from piercerhub.db.session import Base
from piercerhub.dependencies import get_db
from piercerhub.main import app
from piercerhub.models.client import Client
from piercerhub.models.loyalty import ClientLoyalty, LoyaltyPlan
from piercerhub.models.notification import Notification  # noqa: F401
from piercerhub.models.subscription import UserSubscription
from piercerhub.models.team import TeamMember

from tests.constants import MEMBER_ID, OWNER_ID

# Тестовые адреса используют зарезервированный домен .test
email_validator.TEST_ENVIRONMENT = True

# Одна in-memory база на все соединения теста
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeRedis:
    """Минимальный асинхронный Redis в памяти: get/set/delete."""

    def __init__(self):
        self.store = {}

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ex=None, nx=False):
        if nx and key in self.store:
            return None
        self.store[key] = value
        return True

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            removed += self.store.pop(key, None) is not None
        return removed


@pytest.fixture(scope="function")
def db_session() -> Session:
    """
    Фикстура для создания чистой базы данных для каждого теста.
    """
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session_factory(db_session):
    """Фабрика сессий тестовой базы для фоновых задач."""
    return TestingSessionLocal


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
async def client(db_session, fake_redis):
    def override_get_db():
        yield db_session

    async def override_get_redis():
        return fake_redis

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis_client] = override_get_redis

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


def make_token(actor_id: str, email: str | None = None) -> str:
    payload = {
        "sub": actor_id,
        "aud": settings.JWT_AUDIENCE,
        "exp": datetime.now(timezone.utc) + timedelta(hours=1),
    }
    if email:
        payload["email"] = email
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


@pytest.fixture
def owner_headers() -> dict:
    return {"Authorization": f"Bearer {make_token(OWNER_ID, 'owner@studio.test')}"}


@pytest.fixture
def member_headers() -> dict:
    return {"Authorization": f"Bearer {make_token(MEMBER_ID, 'member@studio.test')}"}


@pytest.fixture
def owner_subscription(db_session) -> UserSubscription:
    """Действующий пробный период владельца студии."""
    now = datetime.now(timezone.utc)
    subscription = UserSubscription(
        user_id=OWNER_ID,
        subscription_type="trial",
        trial_start_date=now - timedelta(days=1),
        trial_end_date=now + timedelta(days=6),
    )
    db_session.add(subscription)
    db_session.commit()
    return subscription


@pytest.fixture
def team_member(db_session) -> TeamMember:
    member = TeamMember(
        owner_user_id=OWNER_ID,
        member_user_id=MEMBER_ID,
        name="Ana Recepção",
        email="member@studio.test",
        role="receptionist",
        permissions=dict(DEFAULT_MEMBER_PERMISSIONS),
        is_active=True,
    )
    db_session.add(member)
    db_session.commit()
    return member


@pytest.fixture
def studio_client(db_session) -> Client:
    client = Client(
        user_id=OWNER_ID,
        name="Maria Souza",
        phone="+55 (11) 98765-4321",
        email="maria@example.com",
        visits=5,
        birth_date=date(1994, 3, 12),
    )
    db_session.add(client)
    db_session.commit()
    return client


@pytest.fixture
def visits_plan(db_session) -> LoyaltyPlan:
    plan = LoyaltyPlan(
        user_id=OWNER_ID,
        name="Plan A",
        description="",
        conditions={"type": "visits", "min_visits": 5},
        reward={"type": "discount", "discount_percentage": 10},
        active=True,
    )
    db_session.add(plan)
    db_session.commit()
    return plan


@pytest.fixture
def points_plan(db_session) -> LoyaltyPlan:
    plan = LoyaltyPlan(
        user_id=OWNER_ID,
        name="Plan B",
        description="",
        conditions={"type": "points", "min_points": 100},
        reward={"type": "discount", "discount_percentage": 20},
        active=True,
    )
    db_session.add(plan)
    db_session.commit()
    return plan


@pytest.fixture
def enrollment(db_session, studio_client, visits_plan) -> ClientLoyalty:
    enrollment = ClientLoyalty(
        user_id=OWNER_ID,
        client_id=studio_client.id,
        plan_id=visits_plan.id,
    )
    db_session.add(enrollment)
    db_session.commit()
    return enrollment

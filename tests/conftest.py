"""Pytest configuration and fixtures for the portal tests."""

import os
import tempfile

# Configuration is read at import time, so set it before importing the package
_IMPORT_DB_DIR = tempfile.mkdtemp(prefix="portal-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_IMPORT_DB_DIR}/import.db"
os.environ["JWT_SECRET"] = "test-signing-secret-with-at-least-32-bytes"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SEED_DATA"] = "false"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"
os.environ.pop("REDIS_URL", None)
os.environ.pop("REDIS_HOST", None)

from datetime import datetime, timedelta  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from portal.clock import utcnow  # noqa: E402
from portal.database import Base, create_db_engine  # noqa: E402
from portal.main import create_app  # noqa: E402
from portal.models import Timeslot, User  # noqa: E402
from portal.revocation import InMemoryRevocationList  # noqa: E402
from portal.security import hash_password  # noqa: E402
from portal.seed import seed_permissions_and_roles  # noqa: E402
from portal.tokens import TokenService  # noqa: E402

TEST_SECRET = os.environ["JWT_SECRET"]
TEST_PASSWORD = "correct-horse-battery"


class FakeClock:
    """Controllable clock returning naive UTC datetimes"""

    def __init__(self, now: datetime = None):
        self.now = now or utcnow().replace(microsecond=0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def engine(tmp_path):
    """Fresh SQLite file database per test"""
    engine = create_db_engine(f"sqlite:///{tmp_path}/portal.db")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    # Objects stay loaded after commit, so reading them does not reopen a
    # transaction (SQLite transactions take the write lock up front)
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def seeded_db(db):
    """Database with the default roles and permission catalogue"""
    seed_permissions_and_roles(db)
    return db


@pytest.fixture
def revocation_list(clock):
    return InMemoryRevocationList(clock)


@pytest.fixture
def token_service(revocation_list, clock):
    return TokenService(secret=TEST_SECRET, revocation_list=revocation_list, clock=clock)


@pytest.fixture
def make_user(db):
    """Factory creating a user with TEST_PASSWORD"""
    counter = {"n": 0}

    def _make_user(role: str = "user", email: str = None, is_active: bool = True) -> User:
        counter["n"] += 1
        user = User(
            email=email or f"{role}{counter['n']}@portal-test.de",
            password_hash=hash_password(TEST_PASSWORD),
            first_name="Test",
            last_name=role.title(),
            role=role,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        return user

    return _make_user


@pytest.fixture
def make_timeslot(db):
    def _make_timeslot(max_bookings: int = 1, advisor_id: str = None, starts_in_days: int = 1) -> Timeslot:
        slot = Timeslot(
            advisor_id=advisor_id,
            starts_at=utcnow().replace(microsecond=0) + timedelta(days=starts_in_days),
            duration_minutes=60,
            max_bookings=max_bookings,
        )
        db.add(slot)
        db.commit()
        return slot

    return _make_timeslot


@pytest.fixture
def auth_headers(token_service):
    """Build an Authorization header for a user"""

    def _auth_headers(user: User) -> dict:
        token = token_service.issue_access_token(user.id, user.role, user.email)
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers


@pytest.fixture
def app(engine, session_factory, token_service, seeded_db):
    return create_app(
        token_service=token_service,
        engine=engine,
        seed=False,
        start_sweeper=False,
        session_factory=session_factory,
    )


@pytest.fixture
def production_app(engine, token_service, seeded_db):
    """App with its own session factory for the engine, configured like SessionLocal"""
    return create_app(token_service=token_service, engine=engine, seed=False, start_sweeper=False)


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client

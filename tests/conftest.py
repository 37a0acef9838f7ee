import sys
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from treasury.config import Base  # noqa: E402
import treasury.config as app_config  # noqa: E402
from treasury.api.dependencies import get_db  # noqa: E402
from treasury.auth.jwt import get_current_user  # noqa: E402
from treasury.main import app  # noqa: E402
from treasury.models import models as _all_models  # noqa: E402,F401
from treasury.models.models import Dues, Member, Membership, Organization, Payment, User  # noqa: E402
from treasury.services.balances import derive_status  # noqa: E402


def _sqlite_engine(db_path: Path):
    return create_engine(f"sqlite:///{db_path}", connect_args={"check_same_thread": False})


@pytest.fixture(scope="session", autouse=True)
def _configure_global_test_db(tmp_path_factory):
    """Point the app-wide SessionLocal/engine at a throwaway database."""
    db_dir = tmp_path_factory.mktemp("globaldb")
    engine = _sqlite_engine(db_dir / "app.db")
    Base.metadata.create_all(engine)
    app_config.SessionLocal = sessionmaker(bind=engine)
    app_config.engine = engine
    yield
    engine.dispose()


@pytest.fixture
def db_path(tmp_path) -> Path:
    return tmp_path / "test.db"


@pytest.fixture
def session_factory(db_path: Path) -> Generator[sessionmaker, None, None]:
    engine = _sqlite_engine(db_path)
    Base.metadata.create_all(engine)
    try:
        yield sessionmaker(bind=engine, autocommit=False, autoflush=False)
    finally:
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture
def db_session(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """Provide a fresh SQLite database for each test."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def create_organization(db_session: Session) -> Callable[..., Organization]:
    def _create(name: str = "RT 05") -> Organization:
        organization = Organization(name=name)
        db_session.add(organization)
        db_session.commit()
        return organization

    return _create


@pytest.fixture
def create_user(db_session: Session) -> Callable[..., User]:
    counter = {"value": 0}

    def _create(email: Optional[str] = None, name: str = "Bendahara") -> User:
        counter["value"] += 1
        user = User(email=email or f"user{counter['value']}@example.com", name=name)
        db_session.add(user)
        db_session.commit()
        return user

    return _create


@pytest.fixture
def create_membership(db_session: Session) -> Callable[..., Membership]:
    def _create(user: User, organization: Organization, role: str = "ADMIN") -> Membership:
        membership = Membership(user_id=user.id, organization_id=organization.id, role=role)
        db_session.add(membership)
        db_session.commit()
        return membership

    return _create


@pytest.fixture
def create_member(db_session: Session) -> Callable[..., Member]:
    def _create(
        organization: Organization,
        full_name: str = "Andi",
        email: Optional[str] = None,
        phone: Optional[str] = None,
        is_active: bool = True,
    ) -> Member:
        member = Member(
            organization_id=organization.id,
            full_name=full_name,
            email=email,
            phone=phone,
            is_active=is_active,
        )
        db_session.add(member)
        db_session.commit()
        return member

    return _create


@pytest.fixture
def create_dues(db_session: Session) -> Callable[..., Dues]:
    def _create(member: Member, month: int, year: int, amount: int = 50000, payments: tuple = ()) -> Dues:
        dues = Dues(
            organization_id=member.organization_id,
            member_id=member.id,
            month=month,
            year=year,
            amount=amount,
            status=derive_status(amount, sum(payments)),
        )
        db_session.add(dues)
        db_session.flush()
        for value in payments:
            db_session.add(Payment(dues_id=dues.id, member_id=member.id, amount=value))
        db_session.commit()
        return dues

    return _create


def _override_get_db(session):
    def _generator():
        try:
            yield session
        finally:
            pass

    return _generator


def _override_user(user):
    def _provider():
        return user

    return _provider


@pytest.fixture
def client_as(db_session: Session) -> Generator[Callable[[User], TestClient], None, None]:
    """Build a TestClient that talks to ``db_session`` as the given user."""
    clients = []

    def _build(user: User) -> TestClient:
        app.dependency_overrides[get_db] = _override_get_db(db_session)
        app.dependency_overrides[get_current_user] = _override_user(user)
        client = TestClient(app)
        clients.append(client)
        return client

    yield _build
    for client in clients:
        client.close()
    app.dependency_overrides.clear()

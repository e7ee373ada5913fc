"""Pytest configuration and fixtures"""

import os
import uuid

# Keep the module-level engine away from any on-disk database
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from orgpass.database.database import Base
from orgpass.database.models import OrganizationMember, User
from orgpass.services.organization_service import OrganizationService
from orgpass.services.role_service import RoleService
from tests.mocks.billing_gateway import InMemoryBillingGateway
from tests.mocks.email_provider import InMemoryEmailProvider

TEST_DATABASE_URL = "sqlite://"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def file_session_factory(tmp_path):
    """Session factory over an on-disk database, for tests running sessions in threads."""
    file_engine = create_engine(
        f"sqlite:///{tmp_path / 'orgpass.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    event.listen(file_engine, "connect", _enable_sqlite_foreign_keys)
    Base.metadata.create_all(bind=file_engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=file_engine)
    finally:
        file_engine.dispose()


@pytest.fixture(scope="function")
def db():
    """Fresh in-memory database per test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def make_user(db):
    """Factory creating user accounts."""

    def _make_user(email: str = None, name: str = None) -> User:
        user = User(
            id=str(uuid.uuid4()),
            email=email or f"user-{uuid.uuid4().hex[:8]}@example.com",
            name=name,
        )
        db.add(user)
        db.commit()
        return user

    return _make_user


@pytest.fixture
def owner(make_user):
    return make_user(email="owner@example.com", name="Olivia Owner")


@pytest.fixture
def organization(db, owner):
    """Organization created through the service, seeded with the default roles."""
    result = OrganizationService(db).create_organization(
        name="Acme",
        slug=f"acme-{uuid.uuid4().hex[:6]}",
        owner_user_id=owner.id,
    )
    return result.unwrap()


@pytest.fixture
def roles(db, organization):
    """Default roles of the organization keyed by name."""
    return {role.name: role for role in RoleService(db).list_roles(organization.id)}


@pytest.fixture
def add_member(db):
    """Factory attaching an existing user to an organization with a role."""

    def _add_member(organization_id: str, user: User, role_id: str) -> OrganizationMember:
        member = OrganizationMember(
            id=str(uuid.uuid4()),
            organization_id=organization_id,
            user_id=user.id,
            role_id=role_id,
            is_owner=False,
        )
        db.add(member)
        db.commit()
        return member

    return _add_member


@pytest.fixture
def email_provider():
    return InMemoryEmailProvider()


@pytest.fixture
def billing_gateway():
    return InMemoryBillingGateway()

"""
Test fixtures for the test suite.

Provides an in-memory SQLite database, a small organization hierarchy and a
TestClient factory that authenticates as a given user.
"""

import pytest
from typing import Any, Dict, Generator, Optional
from unittest.mock import MagicMock
from aiocache import Cache
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from fellowship_backend.database import get_db
from fellowship_backend.interface.tokens import encrypt_api_key
from fellowship_backend.model.auth import User
from fellowship_backend.model.base import Base
from fellowship_backend.model.hierarchy import AlumniSmallGroup, Region, SmallGroup, University
from fellowship_backend.model.role import Permission, Role, RolePermission, UserRole
from fellowship_backend.permissions.auth import get_authenticated_user_id
from fellowship_backend.redis_cache import get_redis_client


def _enable_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest.fixture(scope="function")
def test_db() -> Generator[Session, None, None]:
    """Create a test database session using SQLite in-memory."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(engine, "connect", _enable_foreign_keys)

    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


def make_db():
    """Create a MagicMock DB session with common methods."""
    db = MagicMock()
    q = MagicMock()
    q.filter.return_value = q
    q.join.return_value = q
    q.order_by.return_value = q
    q.all.return_value = []
    q.first.return_value = None
    q.count.return_value = 0
    db.query.return_value = q
    return db


@pytest.fixture
def hierarchy(test_db) -> Dict[str, Any]:
    """
    Two regions with one campus each:

        North -> Uni North -> Group A
              -> Alumni North
        South -> Uni South -> Group B
    """
    north = Region(name="North")
    south = Region(name="South")
    test_db.add_all([north, south])
    test_db.flush()

    uni_north = University(name="Uni North", region_id=north.id)
    uni_south = University(name="Uni South", region_id=south.id)
    test_db.add_all([uni_north, uni_south])
    test_db.flush()

    group_a = SmallGroup(name="Group A", university_id=uni_north.id, region_id=north.id)
    group_b = SmallGroup(name="Group B", university_id=uni_south.id, region_id=south.id)
    alumni_north = AlumniSmallGroup(name="Alumni North", region_id=north.id)
    test_db.add_all([group_a, group_b, alumni_north])
    test_db.commit()

    return {
        "north": north,
        "south": south,
        "uni_north": uni_north,
        "uni_south": uni_south,
        "group_a": group_a,
        "group_b": group_b,
        "alumni_north": alumni_north,
    }


def make_user(db: Session, email: str, scope: Optional[str] = None, role_id: Optional[int] = None, password: str = "secret123", **entity_ids) -> User:
    """Create a user and, when ``scope`` is given, its scope assignment."""
    user = User(name=email.split("@")[0], email=email, password=encrypt_api_key(password))
    db.add(user)
    db.commit()
    db.refresh(user)

    if scope is not None:
        db.add(UserRole(user_id=user.id, scope=scope, role_id=role_id, **entity_ids))
        db.commit()

    return user


def make_role(db: Session, name: str, level: str = "Campus", grants=(), is_active: bool = True) -> Role:
    """Create a role bound to the ``(resource, action)`` pairs in ``grants``."""
    role = Role(name=name, level=level, is_active=is_active)
    db.add(role)
    db.commit()

    for resource, action in grants:
        permission = db.query(Permission).filter(Permission.resource == resource, Permission.action == action).first()
        if permission is None:
            permission = Permission(name=f"{resource}:{action}", resource=resource, action=action)
            db.add(permission)
            db.flush()
        db.add(RolePermission(role_id=role.id, permission_id=permission.id))
    db.commit()
    db.refresh(role)
    return role


def make_permission(db: Session, resource: str, action: str, scope: str = "global", name: Optional[str] = None) -> Permission:
    permission = Permission(name=name or f"{resource}:{action}", resource=resource, action=action, scope=scope)
    db.add(permission)
    db.commit()
    db.refresh(permission)
    return permission


@pytest.fixture
def client_factory(test_db):
    """Factory for creating test clients authenticated as a given user id."""
    from fastapi.testclient import TestClient
    from fellowship_backend.server import app

    def _create_client(user_id: int):
        cache = Cache(Cache.MEMORY)

        app.dependency_overrides[get_db] = lambda: test_db
        app.dependency_overrides[get_redis_client] = lambda: cache
        app.dependency_overrides[get_authenticated_user_id] = lambda: user_id

        return TestClient(app)

    yield _create_client

    app.dependency_overrides.clear()

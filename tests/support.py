"""Shared helpers for tests: throwaway SQLite databases, users, roles, and an API client."""

import os
import tempfile
import unittest
from collections.abc import Generator, Iterable

from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import Settings
from app.core.database import get_db
from app.core.security import TokenSigner, get_token_signer, hash_password
from app.main import app
from app.models import Base, Permission, Role, RolePermission, User
from app.services.rbac_seed import seed_rbac

TEST_SECRET = "test-secret-0123456789abcdef0123456789abcdef"
TEST_PASSWORD = "correct-horse-battery"


def _enable_sqlite_foreign_keys(dbapi_conn, connection_record) -> None:
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def make_settings(**overrides: object) -> Settings:
    """Settings with fast bcrypt and a fixed secret; overrides win."""
    values: dict[str, object] = {
        "DATABASE_URL": "sqlite://",
        "JWT_SECRET": TEST_SECRET,
        "BCRYPT_ROUNDS": 4,
    }
    values.update(overrides)
    return Settings(**values)


class DatabaseTestCase(unittest.TestCase):
    """
    Each test gets its own file-backed SQLite database with the full schema.

    A file (not :memory:) lets several sessions use separate connections, which is
    what concurrent requests do in production.
    """

    def setUp(self) -> None:
        self._tmpdir = tempfile.TemporaryDirectory()
        url = f"sqlite:///{os.path.join(self._tmpdir.name, 'test.db')}"
        self.engine = create_engine(url, connect_args={"check_same_thread": False})
        event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)
        Base.metadata.create_all(self.engine)
        self.SessionLocal = sessionmaker(bind=self.engine, autocommit=False, autoflush=False)
        self.db: Session = self.SessionLocal()
        self.settings = make_settings()
        self.signer = TokenSigner(TEST_SECRET)

    def tearDown(self) -> None:
        self.db.close()
        self.engine.dispose()
        self._tmpdir.cleanup()

    def new_session(self) -> Session:
        """A second, independent DB session (another 'request')."""
        session = self.SessionLocal()
        self.addCleanup(session.close)
        return session

    def make_role(self, name: str, permissions: Iterable[str] = ()) -> Role:
        """Create a role and any missing permissions, granting them all."""
        role = Role(name=name, description=f"{name} role")
        self.db.add(role)
        self.db.flush()
        for perm_name in permissions:
            perm = self.db.query(Permission).filter(Permission.name == perm_name).first()
            if perm is None:
                perm = Permission(name=perm_name)
                self.db.add(perm)
                self.db.flush()
            self.db.add(RolePermission(role_id=role.id, permission_id=perm.id))
        self.db.commit()
        return role

    def make_user(
        self,
        email: str = "alice@example.com",
        role: Role | None = None,
        password: str = TEST_PASSWORD,
        full_name: str | None = None,
    ) -> User:
        user = User(
            email=email,
            password_hash=hash_password(password, rounds=4),
            full_name=full_name,
            role=role,
        )
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def seed(self) -> None:
        seed_rbac(self.db)


class ApiTestCase(DatabaseTestCase):
    """DatabaseTestCase plus a TestClient whose get_db and signer point at the test database."""

    def setUp(self) -> None:
        super().setUp()

        def override_get_db() -> Generator[Session, None, None]:
            db = self.SessionLocal()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_token_signer] = lambda: self.signer
        self.client = TestClient(app)

    def tearDown(self) -> None:
        app.dependency_overrides.clear()
        super().tearDown()

    def auth_headers(self, access_token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {access_token}"}

    def register(self, email: str = "alice@example.com", password: str = TEST_PASSWORD, **extra: object) -> dict:
        resp = self.client.post(
            "/api/v1/auth/register",
            json={"email": email, "password": password, **extra},
        )
        self.assertEqual(resp.status_code, 201, resp.text)
        return resp.json()

    def login(self, email: str = "alice@example.com", password: str = TEST_PASSWORD) -> dict:
        resp = self.client.post(
            "/api/v1/auth/login",
            json={"email": email, "password": password},
        )
        self.assertEqual(resp.status_code, 200, resp.text)
        return resp.json()

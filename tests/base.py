import os
import unittest

from fastapi.testclient import TestClient
from sqlalchemy import create_engine, delete
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

from gridcrud.core.deadline import Deadline
from gridcrud.db.session import get_db
from gridcrud.main import app
from gridcrud.models.user import User
from gridcrud.resources import USERS
from gridcrud.services.resource_service import ResourceService
from gridcrud.services.resource_store import SqlAlchemyResourceStore


def user_values(n: int, **overrides) -> dict:
    values = {
        "email": f"user{n:02d}@example.com",
        "real_name": f"User {n:02d}",
        "id_card_number": f"CARD-{n:04d}",
        "nick_name": f"nick{n:02d}",
    }
    values.update(overrides)
    return values


class UsersDbBase(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.engine = create_engine(
            "sqlite+pysqlite:///:memory:",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        cls.SessionLocal = sessionmaker(bind=cls.engine, autocommit=False, autoflush=False)
        User.__table__.create(bind=cls.engine)

    @classmethod
    def tearDownClass(cls):
        User.__table__.drop(bind=cls.engine)
        cls.engine.dispose()

    def setUp(self):
        with self.SessionLocal() as db:
            db.execute(delete(User))
            db.commit()
        self.db = self.SessionLocal()

    def tearDown(self):
        self.db.close()

    def _seed(self, count: int, **overrides) -> list[int]:
        with self.SessionLocal() as db:
            rows = [User(**user_values(n, **overrides)) for n in range(1, count + 1)]
            db.add_all(rows)
            db.commit()
            return [row.id for row in rows]

    def _store(self, deadline: Deadline | None = None) -> SqlAlchemyResourceStore:
        return SqlAlchemyResourceStore(self.db, USERS, deadline)

    def _service(self, mode: str = "page") -> ResourceService:
        return ResourceService(self._store(), USERS, mode)


class UsersApiBase(UsersDbBase):
    def setUp(self):
        super().setUp()

        def override_get_db():
            db = self.SessionLocal()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        self.client = TestClient(app)

    def tearDown(self):
        self.client.close()
        app.dependency_overrides.clear()
        super().tearDown()

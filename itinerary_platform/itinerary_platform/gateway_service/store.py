"""
Credential Store Adapter.

Translates the two credential operations into backend calls. No retries and
no business logic: backend failures surface as StoreIOError.
"""
import threading
from abc import ABC, abstractmethod
from typing import Dict

from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from .errors import ConstraintViolation, StoreIOError, UserNotFound
from .models import User


class CredentialStore(ABC):
    @abstractmethod
    def insert_user(self, username: str, password_hash: str) -> None:
        """Insert a user row. Raises ConstraintViolation if the username is taken."""
        pass

    @abstractmethod
    def fetch_password_hash(self, username: str) -> str:
        """Return the stored hash. Raises UserNotFound if there is no such user."""
        pass


class SqlCredentialStore(CredentialStore):
    def __init__(self, engine: Engine):
        self.SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)

    def insert_user(self, username: str, password_hash: str) -> None:
        db = self.SessionLocal()
        try:
            db.add(User(username=username, password_hash=password_hash))
            db.commit()
        except IntegrityError as e:
            db.rollback()
            raise ConstraintViolation(username) from e
        except SQLAlchemyError as e:
            db.rollback()
            raise StoreIOError("insert_user failed") from e
        finally:
            db.close()

    def fetch_password_hash(self, username: str) -> str:
        db = self.SessionLocal()
        try:
            row = db.query(User.password_hash).filter(User.username == username).first()
        except SQLAlchemyError as e:
            raise StoreIOError("fetch_password_hash failed") from e
        finally:
            db.close()
        if row is None:
            raise UserNotFound(username)
        return row.password_hash


class InMemoryCredentialStore(CredentialStore):
    """Dict-backed store for local runs and tests."""

    def __init__(self):
        self._users: Dict[str, str] = {}
        self._lock = threading.Lock()

    def insert_user(self, username: str, password_hash: str) -> None:
        with self._lock:
            if username in self._users:
                raise ConstraintViolation(username)
            self._users[username] = password_hash

    def fetch_password_hash(self, username: str) -> str:
        try:
            return self._users[username]
        except KeyError:
            raise UserNotFound(username) from None

    def __len__(self) -> int:
        return len(self._users)

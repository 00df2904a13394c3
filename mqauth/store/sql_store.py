"""User store backed by a relational table (PostgreSQL in production)."""

import logging

from pydantic import TypeAdapter, ValidationError
from sqlalchemy import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from mqauth.core.database import make_session_factory
from mqauth.core.exceptions import StorageError
from mqauth.core.security import BCRYPT_ROUNDS
from mqauth.models import UserRecord
from mqauth.schemas.users import Topic, User
from mqauth.store.base import CachedUserStore, StoreChange

logger = logging.getLogger(__name__)

_TOPICS_ADAPTER = TypeAdapter(list[Topic])


def _topics_to_column(topics: list[Topic]) -> list[dict]:
    return [t.model_dump(by_alias=True) for t in topics]


def _record_to_user(record: UserRecord) -> User:
    return User(
        username=record.username or "",
        password=record.pwd or "",
        token=record.token or "",
        admin=bool(record.admin),
        topics=_TOPICS_ADAPTER.validate_python(record.topics or []),
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def _user_to_record(user: User) -> UserRecord:
    return UserRecord(
        username=user.username,
        pwd=user.password,
        token=user.token,
        admin=user.admin,
        topics=_topics_to_column(user.topics),
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


class SqlUserStore(CachedUserStore):
    """
    The cache is updated under the write lock and the targeted statement runs
    after the lock is released. This is best-effort write-through: if the
    statement fails the error is raised, but the cache already holds the change
    until the next load().
    """

    persist_in_critical_section = False

    def __init__(self, engine: Engine, bcrypt_rounds: int = BCRYPT_ROUNDS) -> None:
        super().__init__(bcrypt_rounds=bcrypt_rounds)
        self.engine = engine
        self._session_factory: sessionmaker = make_session_factory(engine)
        logger.info("Storage type is postgres", extra={"dialect": engine.dialect.name})

    def _read_all(self) -> list[User]:
        try:
            with self._session_factory() as db:
                records = (
                    db.query(UserRecord)
                    .order_by(UserRecord.created_at, UserRecord.username)
                    .all()
                )
                return [_record_to_user(r) for r in records]
        except SQLAlchemyError as e:
            logger.error("Cannot load users from database", extra={"reason": str(e)[:500]})
            raise StorageError("Cannot load users from database") from e
        except ValidationError as e:
            logger.error("Malformed topics column", extra={"reason": str(e)[:500]})
            raise StorageError("Malformed topics column in database") from e

    def _write(self, change: StoreChange, users: list[User]) -> None:
        try:
            with self._session_factory() as db:
                affected = self._execute(db, change)
                db.commit()
        except SQLAlchemyError as e:
            logger.error(
                "Error persisting user change",
                extra={"change": change.kind, "username": change.username, "reason": str(e)[:500]},
            )
            raise StorageError("Cannot persist user change") from e
        if affected == 0:
            logger.error(
                "User row missing in database",
                extra={"change": change.kind, "username": change.username},
            )
            raise StorageError("User row missing in database")

    @staticmethod
    def _execute(db: Session, change: StoreChange) -> int:
        if change.kind == "insert":
            db.add(_user_to_record(change.user))
            return 1
        rows = db.query(UserRecord).filter(UserRecord.username == change.username)
        if change.kind == "delete":
            return rows.delete(synchronize_session=False)
        user = change.user
        if change.kind == "token":
            return rows.update({UserRecord.token: user.token}, synchronize_session=False)
        return rows.update(
            {
                UserRecord.pwd: user.password,
                UserRecord.admin: user.admin,
                UserRecord.topics: _topics_to_column(user.topics),
                UserRecord.updated_at: user.updated_at,
            },
            synchronize_session=False,
        )

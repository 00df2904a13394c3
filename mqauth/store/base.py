"""
User persistence port and the write-through cache shared by every backend.

CachedUserStore keeps the whole collection in memory behind a reader/writer
lock and asks its backend to persist each mutation. Backends decide whether the
durable write happens inside the critical section (persist_in_critical_section)
or right after it; in the latter case a crash or write failure can leave the
cache ahead of durable storage.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Literal

from mqauth.core.exceptions import (
    InvalidCredentialsError,
    InvalidInputError,
    TopicAlreadyExistsError,
    TopicNotFoundError,
    UserAlreadyExistsError,
    UserNotFoundError,
)
from mqauth.core.security import (
    BCRYPT_ROUNDS,
    hash_password,
    new_session_token,
    rehash_if_changed,
    verify_password,
)
from mqauth.schemas.users import Topic, User, validate_topic
from mqauth.store.locking import RWLock

logger = logging.getLogger(__name__)

ChangeKind = Literal["insert", "update", "delete", "token"]


class UserStore(ABC):
    """Loads, queries and mutates the user/topic collection, whatever the backend."""

    @abstractmethod
    def load(self) -> None:
        """Populate the in-memory collection from durable storage."""

    @abstractmethod
    def login(self, username: str, password: str, issue_token: bool = False) -> User:
        """Verify credentials; optionally issue a new session token."""

    @abstractmethod
    def add_user(self, user: User) -> None: ...

    @abstractmethod
    def edit_user(self, user: User) -> None: ...

    @abstractmethod
    def delete_user(self, username: str) -> None: ...

    @abstractmethod
    def get_user_by_token(self, token: str) -> User: ...

    @abstractmethod
    def get_user_by_username(self, username: str) -> User: ...

    @abstractmethod
    def get_users(self) -> list[User]: ...

    @abstractmethod
    def add_topic_to_user(self, username: str, topic: Topic) -> None: ...

    @abstractmethod
    def edit_topic_for_user(self, username: str, topic: Topic) -> None: ...

    @abstractmethod
    def delete_topic_from_user(self, username: str, pattern: str) -> None: ...


@dataclass(frozen=True)
class StoreChange:
    """One mutation to persist. `user` is the record as stored after the change."""

    kind: ChangeKind
    username: str
    user: User | None = None


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _index_of(users: list[User], username: str) -> int | None:
    for i, user in enumerate(users):
        if user.username == username:
            return i
    return None


def _require_index(users: list[User], username: str) -> int:
    i = _index_of(users, username)
    if i is None:
        raise UserNotFoundError(username)
    return i


class CachedUserStore(UserStore):
    """In-memory collection with write-through to a backend."""

    # True: write to storage while holding the write lock and publish the new
    # collection only if the write succeeded.
    persist_in_critical_section: bool = True

    def __init__(self, bcrypt_rounds: int = BCRYPT_ROUNDS) -> None:
        self._lock = RWLock()
        self._users: list[User] = []
        self._loaded = False
        self._bcrypt_rounds = bcrypt_rounds

    @abstractmethod
    def _read_all(self) -> list[User]:
        """Read every user from durable storage. Raises StorageError."""

    @abstractmethod
    def _write(self, change: StoreChange, users: list[User]) -> None:
        """Persist one change; `users` is the full collection after it. Raises StorageError."""

    def load(self) -> None:
        with self._lock.write():
            self._users = self._read_all()
            self._loaded = True
            count = len(self._users)
        logger.info("User collection loaded", extra={"user_count": count})

    def _apply(self, mutate: Callable[[list[User]], StoreChange]) -> StoreChange:
        """Run `mutate` on a copy of the collection under the write lock, then persist."""
        with self._lock.write():
            users = list(self._users)
            change = mutate(users)
            if self.persist_in_critical_section:
                self._write(change, users)
                self._users = users
                return change
            self._users = users
        self._write(change, users)
        return change

    def _replace_user(self, users: list[User], index: int, updated: User) -> StoreChange:
        """
        Replace a whole user record. The only path that rewrites a full record:
        the stored hash is handed over so an unchanged password is not re-hashed.
        """
        previous = users[index]
        password = rehash_if_changed(
            previous.password, updated.password, rounds=self._bcrypt_rounds
        )
        users[index] = updated.model_copy(
            update={"password": password, "updated_at": _utcnow()}
        )
        return StoreChange("update", previous.username, users[index])

    def login(self, username: str, password: str, issue_token: bool = False) -> User:
        user = self.get_user_by_username(username)
        if not verify_password(password, user.password):
            raise InvalidCredentialsError()
        if issue_token:
            token = new_session_token()
            self._update_token(username, token)
            user.token = token
        return user

    def _update_token(self, username: str, token: str) -> None:
        def mutate(users: list[User]) -> StoreChange:
            i = _require_index(users, username)
            users[i] = users[i].model_copy(update={"token": token})
            return StoreChange("token", username, users[i])

        self._apply(mutate)

    def add_user(self, user: User) -> None:
        if not user.username or not user.password:
            raise InvalidInputError("Username and password must both be non-blank")
        now = _utcnow()
        new_user = user.model_copy(
            deep=True,
            update={
                "password": hash_password(user.password, rounds=self._bcrypt_rounds),
                "token": "",
                "created_at": now,
                "updated_at": now,
            },
        )

        def mutate(users: list[User]) -> StoreChange:
            if _index_of(users, user.username) is not None:
                raise UserAlreadyExistsError(user.username)
            users.append(new_user)
            return StoreChange("insert", user.username, new_user)

        self._apply(mutate)
        logger.info("User added", extra={"username": user.username, "admin": user.admin})

    def edit_user(self, user: User) -> None:
        if not user.username:
            raise InvalidInputError("Username must be non-blank")
        # An empty password on edit leaves the stored one unchanged.
        new_hash = (
            hash_password(user.password, rounds=self._bcrypt_rounds)
            if user.password
            else None
        )

        def mutate(users: list[User]) -> StoreChange:
            i = _require_index(users, user.username)
            update: dict[str, object] = {"admin": user.admin, "updated_at": _utcnow()}
            if new_hash is not None:
                update["password"] = new_hash
            users[i] = users[i].model_copy(update=update)
            return StoreChange("update", user.username, users[i])

        self._apply(mutate)
        logger.info("User edited", extra={"username": user.username, "admin": user.admin})

    def delete_user(self, username: str) -> None:
        def mutate(users: list[User]) -> StoreChange:
            i = _require_index(users, username)
            users[i] = users[-1]
            users.pop()
            return StoreChange("delete", username)

        self._apply(mutate)
        logger.info("User deleted", extra={"username": username})

    def get_user_by_token(self, token: str) -> User:
        if not token:
            raise UserNotFoundError()
        if not self._loaded:
            self.load()
        with self._lock.read():
            holders = [u for u in self._users if u.token == token]
        if not holders:
            raise UserNotFoundError()
        if len(holders) > 1:
            logger.warning(
                "Session token held by more than one user; using the first",
                extra={"usernames": [u.username for u in holders]},
            )
        return holders[0].model_copy(deep=True)

    def get_user_by_username(self, username: str) -> User:
        with self._lock.read():
            i = _index_of(self._users, username)
            if i is None:
                raise UserNotFoundError(username)
            return self._users[i].model_copy(deep=True)

    def get_users(self) -> list[User]:
        with self._lock.read():
            return [u.model_copy(deep=True) for u in self._users]

    def add_topic_to_user(self, username: str, topic: Topic) -> None:
        validate_topic(topic)

        def mutate(users: list[User]) -> StoreChange:
            i = _require_index(users, username)
            current = users[i]
            if current.find_topic(topic.pattern) is not None:
                raise TopicAlreadyExistsError(topic.pattern)
            topics = [*current.topics, topic.model_copy()]
            return self._replace_user(users, i, current.model_copy(update={"topics": topics}))

        self._apply(mutate)
        logger.info("Topic added", extra={"username": username, "topic": topic.pattern})

    def edit_topic_for_user(self, username: str, topic: Topic) -> None:
        validate_topic(topic)

        def mutate(users: list[User]) -> StoreChange:
            i = _require_index(users, username)
            current = users[i]
            t = current.find_topic(topic.pattern)
            if t is None:
                raise TopicNotFoundError(topic.pattern)
            topics = list(current.topics)
            topics[t] = topic.model_copy()
            return self._replace_user(users, i, current.model_copy(update={"topics": topics}))

        self._apply(mutate)
        logger.info("Topic edited", extra={"username": username, "topic": topic.pattern})

    def delete_topic_from_user(self, username: str, pattern: str) -> None:
        def mutate(users: list[User]) -> StoreChange:
            i = _require_index(users, username)
            current = users[i]
            t = current.find_topic(pattern)
            if t is None:
                raise TopicNotFoundError(pattern)
            topics = list(current.topics)
            topics[t] = topics[-1]
            topics.pop()
            return self._replace_user(users, i, current.model_copy(update={"topics": topics}))

        self._apply(mutate)
        logger.info("Topic deleted", extra={"username": username, "topic": pattern})

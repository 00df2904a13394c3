"""Behaviour every UserStore backend must share, run against the JSON file and SQL backends."""

import tempfile
import unittest
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from sqlalchemy import create_engine

from mqauth.core.exceptions import (
    InvalidCredentialsError,
    InvalidInputError,
    TopicAlreadyExistsError,
    TopicNotFoundError,
    UserAlreadyExistsError,
    UserNotFoundError,
)
from mqauth.core.security import verify_password
from mqauth.models import Base
from mqauth.schemas.users import Topic, User
from mqauth.store import CachedUserStore, JsonFileUserStore, SqlUserStore

FAST_ROUNDS = 4


class StoreContract:
    """Mixin: subclasses provide make_store() (a fresh instance over the same storage)."""

    store: CachedUserStore

    def make_store(self) -> CachedUserStore:
        raise NotImplementedError

    def setUp(self) -> None:
        self.store = self.make_store()
        self.store.load()
        self.store.add_user(User(username="alice", password="alice-pass"))

    # users

    def test_added_password_is_hashed_and_verifies(self) -> None:
        user = self.store.get_user_by_username("alice")
        self.assertNotEqual(user.password, "alice-pass")
        self.assertTrue(verify_password("alice-pass", user.password))
        self.assertIsNotNone(user.created_at)

    def test_add_duplicate_username(self) -> None:
        with self.assertRaises(UserAlreadyExistsError):
            self.store.add_user(User(username="alice", password="other"))
        self.assertEqual([u.username for u in self.store.get_users()], ["alice"])

    def test_add_requires_username_and_password(self) -> None:
        with self.assertRaises(InvalidInputError):
            self.store.add_user(User(username="", password="pw"))
        with self.assertRaises(InvalidInputError):
            self.store.add_user(User(username="bob", password=""))

    def test_add_ignores_supplied_token(self) -> None:
        self.store.add_user(User(username="bob", password="pw", token="forged"))
        self.assertEqual(self.store.get_user_by_username("bob").token, "")

    def test_edit_user_updates_admin_and_keeps_password_when_blank(self) -> None:
        self.store.edit_user(User(username="alice", password="", admin=True))
        user = self.store.get_user_by_username("alice")
        self.assertTrue(user.admin)
        self.store.login("alice", "alice-pass")

    def test_edit_user_changes_password(self) -> None:
        self.store.edit_user(User(username="alice", password="new-pass"))
        self.store.login("alice", "new-pass")
        with self.assertRaises(InvalidCredentialsError):
            self.store.login("alice", "alice-pass")

    def test_edit_user_errors(self) -> None:
        with self.assertRaises(InvalidInputError):
            self.store.edit_user(User(username=""))
        with self.assertRaises(UserNotFoundError):
            self.store.edit_user(User(username="nobody", admin=True))

    def test_delete_user(self) -> None:
        self.store.add_user(User(username="bob", password="pw"))
        self.store.add_user(User(username="carol", password="pw"))
        self.store.delete_user("alice")
        self.assertEqual(sorted(u.username for u in self.store.get_users()), ["bob", "carol"])
        with self.assertRaises(UserNotFoundError):
            self.store.get_user_by_username("alice")
        with self.assertRaises(UserNotFoundError):
            self.store.delete_user("alice")

    def test_get_users_returns_a_snapshot(self) -> None:
        users = self.store.get_users()
        users[0].topics.append(Topic(pattern="#", can_publish=True))
        users.clear()
        self.assertEqual(self.store.get_user_by_username("alice").topics, [])
        self.assertEqual(len(self.store.get_users()), 1)

    # login and tokens

    def test_login_errors(self) -> None:
        with self.assertRaises(UserNotFoundError):
            self.store.login("nobody", "pw")
        with self.assertRaises(InvalidCredentialsError):
            self.store.login("alice", "wrong")

    def test_login_without_token_issues_nothing(self) -> None:
        user = self.store.login("alice", "alice-pass", issue_token=False)
        self.assertEqual(user.username, "alice")
        self.assertEqual(user.token, "")

    def test_login_issues_token_and_overwrites_previous(self) -> None:
        first = self.store.login("alice", "alice-pass", issue_token=True).token
        self.assertTrue(first)
        self.assertEqual(self.store.get_user_by_token(first).username, "alice")

        second = self.store.login("alice", "alice-pass", issue_token=True).token
        self.assertNotEqual(first, second)
        self.assertEqual(self.store.get_user_by_token(second).username, "alice")
        with self.assertRaises(UserNotFoundError):
            self.store.get_user_by_token(first)

    def test_blank_token_never_matches(self) -> None:
        with self.assertRaises(UserNotFoundError):
            self.store.get_user_by_token("")

    def test_token_lookup_loads_lazily(self) -> None:
        token = self.store.login("alice", "alice-pass", issue_token=True).token
        fresh = self.make_store()
        self.assertEqual(fresh.get_user_by_token(token).username, "alice")

    # topics

    def test_add_topic(self) -> None:
        self.store.add_topic_to_user("alice", Topic(pattern="x/y", can_publish=True))
        topics = self.store.get_user_by_username("alice").topics
        self.assertEqual(topics, [Topic(pattern="x/y", can_publish=True, can_subscribe=False)])

    def test_add_duplicate_topic(self) -> None:
        self.store.add_topic_to_user("alice", Topic(pattern="x/y", can_publish=True))
        with self.assertRaises(TopicAlreadyExistsError):
            self.store.add_topic_to_user("alice", Topic(pattern="x/y", can_publish=True))
        self.assertEqual(len(self.store.get_user_by_username("alice").topics), 1)

    def test_add_topic_validation_and_missing_user(self) -> None:
        with self.assertRaises(InvalidInputError):
            self.store.add_topic_to_user("alice", Topic(pattern="x/y/", can_publish=True))
        with self.assertRaises(InvalidInputError):
            self.store.add_topic_to_user("alice", Topic(pattern="x/y"))
        with self.assertRaises(UserNotFoundError):
            self.store.add_topic_to_user("nobody", Topic(pattern="x/y", can_subscribe=True))

    def test_edit_topic_replaces_in_place(self) -> None:
        self.store.add_topic_to_user("alice", Topic(pattern="a", can_publish=True))
        self.store.add_topic_to_user("alice", Topic(pattern="b", can_publish=True))
        self.store.edit_topic_for_user("alice", Topic(pattern="a", can_subscribe=True))
        topics = self.store.get_user_by_username("alice").topics
        self.assertEqual([t.pattern for t in topics], ["a", "b"])
        self.assertFalse(topics[0].can_publish)
        self.assertTrue(topics[0].can_subscribe)

    def test_edit_topic_errors(self) -> None:
        with self.assertRaises(TopicNotFoundError):
            self.store.edit_topic_for_user("alice", Topic(pattern="missing", can_publish=True))
        with self.assertRaises(UserNotFoundError):
            self.store.edit_topic_for_user("nobody", Topic(pattern="a", can_publish=True))

    def test_delete_topic(self) -> None:
        for pattern in ("a", "b", "c"):
            self.store.add_topic_to_user("alice", Topic(pattern=pattern, can_subscribe=True))
        self.store.delete_topic_from_user("alice", "a")
        patterns = sorted(t.pattern for t in self.store.get_user_by_username("alice").topics)
        self.assertEqual(patterns, ["b", "c"])
        with self.assertRaises(TopicNotFoundError):
            self.store.delete_topic_from_user("alice", "a")
        with self.assertRaises(UserNotFoundError):
            self.store.delete_topic_from_user("nobody", "b")

    def test_topic_changes_do_not_rehash_password(self) -> None:
        stored = self.store.get_user_by_username("alice").password
        self.store.add_topic_to_user("alice", Topic(pattern="a/#", can_publish=True))
        self.store.edit_topic_for_user("alice", Topic(pattern="a/#", can_subscribe=True))
        self.store.add_topic_to_user("alice", Topic(pattern="b", can_publish=True))
        self.store.delete_topic_from_user("alice", "b")
        self.assertEqual(self.store.get_user_by_username("alice").password, stored)
        self.store.login("alice", "alice-pass")
        reopened = self.make_store()
        reopened.load()
        reopened.login("alice", "alice-pass")

    def test_topic_changes_keep_token(self) -> None:
        token = self.store.login("alice", "alice-pass", issue_token=True).token
        self.store.add_topic_to_user("alice", Topic(pattern="a", can_publish=True))
        self.assertEqual(self.store.get_user_by_token(token).username, "alice")

    # concurrency

    def test_concurrent_distinct_usernames_all_succeed(self) -> None:
        names = [f"user{i}" for i in range(16)]
        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda n: self.store.add_user(User(username=n, password="pw")), names))

        self.assertEqual(
            sorted(u.username for u in self.store.get_users()),
            sorted(["alice", *names]),
        )
        reopened = self.make_store()
        reopened.load()
        self.assertEqual(len(reopened.get_users()), 17)

    def test_concurrent_same_username_succeeds_once(self) -> None:
        def attempt(_: int) -> str:
            try:
                self.store.add_user(User(username="dup", password="pw"))
            except UserAlreadyExistsError:
                return "exists"
            return "ok"

        with ThreadPoolExecutor(max_workers=8) as pool:
            outcomes = list(pool.map(attempt, range(16)))

        self.assertEqual(outcomes.count("ok"), 1)
        self.assertEqual(outcomes.count("exists"), 15)
        reopened = self.make_store()
        reopened.load()
        self.assertEqual(sorted(u.username for u in reopened.get_users()), ["alice", "dup"])

    # durability

    def test_load_is_idempotent(self) -> None:
        self.store.add_topic_to_user("alice", Topic(pattern="a/+", can_subscribe=True))
        self.store.load()
        first = self.store.get_users()
        self.store.load()
        self.assertEqual(self.store.get_users(), first)

    def test_changes_survive_reopen(self) -> None:
        self.store.add_user(User(username="bob", password="bob-pass", admin=True))
        self.store.add_topic_to_user("bob", Topic(pattern="s/#", can_publish=True, can_subscribe=True))
        self.store.delete_user("alice")

        reopened = self.make_store()
        reopened.load()
        users = reopened.get_users()
        self.assertEqual([u.username for u in users], ["bob"])
        self.assertTrue(users[0].admin)
        self.assertEqual(users[0].topics[0].pattern, "s/#")
        reopened.login("bob", "bob-pass")


class TestJsonFileUserStoreContract(StoreContract, unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.path = Path(self._tmp.name) / "users.json"
        super().setUp()

    def make_store(self) -> CachedUserStore:
        return JsonFileUserStore(self.path, bcrypt_rounds=FAST_ROUNDS)


class TestSqlUserStoreContract(StoreContract, unittest.TestCase):
    """File-backed SQLite so concurrent writers each get their own connection."""

    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.engine = create_engine(
            f"sqlite:///{Path(self._tmp.name) / 'users.db'}",
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        Base.metadata.create_all(self.engine)
        self.addCleanup(self.engine.dispose)
        super().setUp()

    def make_store(self) -> CachedUserStore:
        return SqlUserStore(self.engine, bcrypt_rounds=FAST_ROUNDS)


if __name__ == "__main__":
    unittest.main()

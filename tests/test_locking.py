"""Unit tests for mqauth.store.locking.RWLock and writer progress under read load."""

import tempfile
import threading
import time
import unittest
from pathlib import Path

from mqauth.schemas.users import Topic, User
from mqauth.store import JsonFileUserStore
from mqauth.store.locking import RWLock

READERS = 8
WRITE_DEADLINE = 5.0


def _read_forever(lock: RWLock, stop: threading.Event) -> None:
    while not stop.is_set():
        with lock.read():
            time.sleep(0.001)


class TestRWLock(unittest.TestCase):
    def test_readers_share_the_lock(self) -> None:
        lock = RWLock()
        barrier = threading.Barrier(2, timeout=WRITE_DEADLINE)

        def reader() -> None:
            with lock.read():
                barrier.wait()

        threads = [threading.Thread(target=reader) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(WRITE_DEADLINE)
        self.assertFalse(barrier.broken)

    def test_writer_excludes_readers(self) -> None:
        lock = RWLock()
        entered = threading.Event()
        lock.w_acquire()
        reader = threading.Thread(target=lambda: (lock.r_acquire(), entered.set(), lock.r_release()))
        reader.start()
        self.assertFalse(entered.wait(0.2))
        lock.w_release()
        self.assertTrue(entered.wait(WRITE_DEADLINE))
        reader.join(WRITE_DEADLINE)

    def test_waiting_writer_is_not_starved_by_readers(self) -> None:
        lock = RWLock()
        stop = threading.Event()
        readers = [threading.Thread(target=_read_forever, args=(lock, stop)) for _ in range(READERS)]
        for t in readers:
            t.start()
        self.addCleanup(lambda: [t.join(WRITE_DEADLINE) for t in readers])
        self.addCleanup(stop.set)

        wrote = threading.Event()

        def writer() -> None:
            with lock.write():
                wrote.set()

        time.sleep(0.05)
        threading.Thread(target=writer, daemon=True).start()
        self.assertTrue(wrote.wait(WRITE_DEADLINE))


class TestStoreWriteUnderReadLoad(unittest.TestCase):
    """Mutations complete while ACL-style lookups run continuously."""

    def test_topic_grant_completes(self) -> None:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        store = JsonFileUserStore(Path(tmp.name) / "users.json", bcrypt_rounds=4)
        store.add_user(User(username="alice", password="pw"))

        stop = threading.Event()

        def lookups() -> None:
            while not stop.is_set():
                store.get_user_by_username("alice")

        readers = [threading.Thread(target=lookups) for _ in range(READERS)]
        for t in readers:
            t.start()
        self.addCleanup(lambda: [t.join(WRITE_DEADLINE) for t in readers])
        self.addCleanup(stop.set)

        done = threading.Event()

        def grant() -> None:
            store.add_topic_to_user("alice", Topic(pattern="a/#", can_subscribe=True))
            done.set()

        time.sleep(0.05)
        threading.Thread(target=grant, daemon=True).start()
        self.assertTrue(done.wait(WRITE_DEADLINE))
        self.assertIsNotNone(store.get_user_by_username("alice").find_topic("a/#"))


if __name__ == "__main__":
    unittest.main()

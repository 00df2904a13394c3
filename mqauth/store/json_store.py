"""User store backed by a single JSON file holding the whole collection."""

import logging
import os
import tempfile
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from mqauth.core.exceptions import StorageError
from mqauth.core.security import BCRYPT_ROUNDS
from mqauth.schemas.users import User
from mqauth.store.base import CachedUserStore, StoreChange

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_FILE = "assets/users.json"

_USERS_ADAPTER = TypeAdapter(list[User])


class JsonFileUserStore(CachedUserStore):
    """
    Every mutation rewrites the whole file while the write lock is held; the new
    collection becomes visible to readers only once the file has been replaced.
    """

    persist_in_critical_section = True

    def __init__(
        self,
        path: str | Path = DEFAULT_STORAGE_FILE,
        bcrypt_rounds: int = BCRYPT_ROUNDS,
    ) -> None:
        super().__init__(bcrypt_rounds=bcrypt_rounds)
        self.path = Path(path)
        logger.info("Storage type is json", extra={"storage_file": str(self.path)})

    def _read_all(self) -> list[User]:
        try:
            content = self.path.read_bytes()
        except FileNotFoundError:
            logger.warning(
                "User file does not exist yet; starting with no users",
                extra={"storage_file": str(self.path)},
            )
            return []
        except OSError as e:
            logger.error(
                "Cannot read user file",
                extra={"storage_file": str(self.path), "reason": str(e)},
            )
            raise StorageError(f"Cannot read user file {self.path}") from e

        # An empty collection may have been written as "null".
        if content.strip() in (b"", b"null"):
            return []
        try:
            return _USERS_ADAPTER.validate_json(content)
        except ValidationError as e:
            logger.error(
                "Cannot parse user file",
                extra={"storage_file": str(self.path), "reason": str(e)[:500]},
            )
            raise StorageError(f"Cannot parse user file {self.path}") from e

    def _write(self, change: StoreChange, users: list[User]) -> None:
        data = _USERS_ADAPTER.dump_json(users, by_alias=True, indent=1)
        temp_path: Path | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                mode="wb",
                dir=self.path.parent,
                prefix=".users-",
                suffix=".tmp",
                delete=False,
            ) as tf:
                temp_path = Path(tf.name)
                tf.write(data)
            os.replace(temp_path, self.path)
        except OSError as e:
            logger.error(
                "Cannot write user file",
                extra={
                    "storage_file": str(self.path),
                    "change": change.kind,
                    "username": change.username,
                    "reason": str(e),
                },
            )
            if temp_path is not None and temp_path.exists():
                temp_path.unlink()
            raise StorageError(f"Cannot write user file {self.path}") from e

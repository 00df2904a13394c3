"""User persistence: the store port and its JSON-file and SQL backends."""

from mqauth.core.config import Settings
from mqauth.core.database import create_db_engine
from mqauth.store.base import CachedUserStore, StoreChange, UserStore
from mqauth.store.json_store import JsonFileUserStore
from mqauth.store.sql_store import SqlUserStore

__all__ = [
    "CachedUserStore",
    "JsonFileUserStore",
    "SqlUserStore",
    "StoreChange",
    "UserStore",
    "new_store",
]


def new_store(settings: Settings) -> UserStore:
    """Build the store selected by STORAGE_TYPE. Call load() before serving."""
    if settings.STORAGE_TYPE == "postgres":
        engine = create_db_engine(settings.DATABASE_URL, echo=settings.DEBUG)
        return SqlUserStore(engine, bcrypt_rounds=settings.BCRYPT_ROUNDS)
    return JsonFileUserStore(settings.STORAGE_FILE, bcrypt_rounds=settings.BCRYPT_ROUNDS)

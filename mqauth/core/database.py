"""Relational database engine and session factory for the SQL user store."""

import logging

from sqlalchemy import Engine, create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

logger = logging.getLogger(__name__)


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """Build the engine once at startup; the store owns it afterwards."""
    return create_engine(
        database_url,
        pool_pre_ping=True,
        echo=echo,
    )


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def check_db_connected(engine: Engine) -> bool:
    """Run a trivial query to verify the database is reachable."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as e:
        logger.warning("Database connectivity check failed", extra={"reason": str(e)[:200]})
        return False

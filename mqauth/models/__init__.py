"""SQLAlchemy ORM models."""

from mqauth.models.base import Base
from mqauth.models.user import UserRecord

__all__ = ["Base", "UserRecord"]

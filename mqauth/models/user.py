"""ORM model for broker users and their topic grants."""

from sqlalchemy import JSON, Boolean, Column, DateTime, String, func
from sqlalchemy.dialects.postgresql import JSONB

from mqauth.models.base import Base


class UserRecord(Base):
    """
    One row per broker user.

    topics: JSON array of {"topicstring", "pub", "sub"} objects (JSONB on PostgreSQL).
    """

    __tablename__ = "mqtt_users"

    username = Column(String(255), primary_key=True)
    pwd = Column(String(255), nullable=False)
    token = Column(String(255), nullable=False, default="", index=True)
    admin = Column(Boolean, nullable=False, default=False)
    topics = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

"""Server-side login session model."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from .base import Base


class UserSessionModel(Base):
    __tablename__ = "user_sessions"

    session_id = Column(String(64), primary_key=True, index=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    created_at = Column(DateTime, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)

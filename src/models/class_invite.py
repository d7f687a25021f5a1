from typing import Optional

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .base import Base

INVITE_ACTIVE = "active"
INVITE_EXHAUSTED = "exhausted"
INVITE_EXPIRED = "expired"


class ClassInviteModel(Base):
    __tablename__ = "classes_invites"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(10), unique=True, index=True, nullable=False)
    classes_id = Column(
        Integer, ForeignKey("classes.id", ondelete="CASCADE"), index=True, nullable=False
    )
    expires_at = Column(DateTime, nullable=True)  # NULL: never expires
    max_uses = Column(Integer, nullable=True)  # NULL: unlimited
    use_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, server_default=func.now())

    class_ = relationship("ClassModel", back_populates="invites")

    def is_expired(self, now) -> bool:
        return self.expires_at is not None and now >= self.expires_at

    def is_exhausted(self) -> bool:
        return self.max_uses is not None and (self.use_count or 0) >= self.max_uses

    def state(self, now) -> str:
        """Expiry wins over exhaustion; both are terminal."""
        if self.is_expired(now):
            return INVITE_EXPIRED
        if self.is_exhausted():
            return INVITE_EXHAUSTED
        return INVITE_ACTIVE

    @property
    def remaining_uses(self) -> Optional[int]:
        if self.max_uses is None:
            return None
        return max(self.max_uses - (self.use_count or 0), 0)

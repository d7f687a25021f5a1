"""Login session management.

Sessions live server-side in the ``user_sessions`` table; the client only
holds the opaque session id in an httpOnly cookie. Lifetime is fixed at
creation and not extended by activity.
"""

import logging
import secrets
from datetime import timedelta
from typing import Optional

from sqlalchemy.orm import Session

from config import SESSION_TTL_MINUTES
from core.database import transaction
from models.user import UserModel
from models.user_session import UserSessionModel
from utils.clock import utcnow

logger = logging.getLogger(__name__)


class SessionManager:
    """Creates, resolves and revokes login sessions."""

    def __init__(self, db: Session, ttl_minutes: int = SESSION_TTL_MINUTES):
        self.db = db
        self.ttl = timedelta(minutes=ttl_minutes)

    def create_session(self, user_id: int) -> UserSessionModel:
        """Open a new session for ``user_id`` and purge expired ones."""
        now = utcnow()
        model = UserSessionModel(
            session_id=secrets.token_urlsafe(32),
            user_id=user_id,
            created_at=now,
            expires_at=now + self.ttl,
        )
        with transaction(self.db):
            self.db.query(UserSessionModel).filter(
                UserSessionModel.expires_at <= now
            ).delete(synchronize_session=False)
            self.db.add(model)
        logger.info("Opened session for user %s", user_id)
        return model

    def resolve(self, session_id: Optional[str]) -> Optional[UserModel]:
        """Return the user owning a live session, or None."""
        if not session_id:
            return None
        model = self.db.get(UserSessionModel, session_id)
        if model is None:
            return None
        if model.expires_at <= utcnow():
            logger.info("Session for user %s expired", model.user_id)
            return None
        return self.db.get(UserModel, model.user_id)

    def revoke(self, session_id: Optional[str]) -> None:
        if not session_id:
            return
        with transaction(self.db):
            self.db.query(UserSessionModel).filter(
                UserSessionModel.session_id == session_id
            ).delete(synchronize_session=False)

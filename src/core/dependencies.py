"""Dependency injection module for FastAPI.

This module provides dependency injection functions for FastAPI routes:
request-scoped managers, the notifier and the session-based current user.
"""

from typing import Annotated, Callable

from fastapi import Cookie, Depends, HTTPException, status
from sqlalchemy.orm import Session

from config import SESSION_COOKIE_NAME
from core.database import get_db
from models.user import ROLE_STUDENT, UserModel
from utils import account_manager
from utils import class_manager
from utils import course_manager
from utils import form_manager
from utils import material_manager
from utils import notifier
from utils import performance_manager
from utils import session_manager
from utils import subject_manager
from utils import user_manager

DbDep = Annotated[Session, Depends(get_db)]


def get_notifier() -> notifier.Notifier:
    """Get the email notifier. Tests override this dependency."""
    return notifier.Notifier()


def get_user_manager(db: DbDep) -> user_manager.UserManager:
    """Get UserManager instance with request-scoped DB session.

    Args:
        db: Database session.

    Returns:
        UserManager instance.
    """
    return user_manager.UserManager(db)


def get_session_manager(db: DbDep) -> session_manager.SessionManager:
    """Get SessionManager instance with request-scoped DB session."""
    return session_manager.SessionManager(db)


def get_account_manager(
    db: DbDep, mailer: notifier.Notifier = Depends(get_notifier)
) -> account_manager.AccountManager:
    return account_manager.AccountManager(db, mailer)


def get_course_manager(db: DbDep) -> course_manager.CourseManager:
    return course_manager.CourseManager(db)


def get_subject_manager(db: DbDep) -> subject_manager.SubjectManager:
    return subject_manager.SubjectManager(db)


def get_class_manager(db: DbDep) -> class_manager.ClassManager:
    """Get ClassManager instance with request-scoped DB session."""
    return class_manager.ClassManager(db)


def get_form_manager(db: DbDep) -> form_manager.FormManager:
    return form_manager.FormManager(db)


def get_performance_manager(db: DbDep) -> performance_manager.PerformanceManager:
    return performance_manager.PerformanceManager(db)


def get_material_manager(db: DbDep) -> material_manager.MaterialManager:
    return material_manager.MaterialManager(db)


# Type aliases for dependency injection
NotifierDep = Annotated[notifier.Notifier, Depends(get_notifier)]
UserManagerDep = Annotated[
    user_manager.UserManager, Depends(get_user_manager)
]
SessionManagerDep = Annotated[
    session_manager.SessionManager, Depends(get_session_manager)
]
AccountManagerDep = Annotated[
    account_manager.AccountManager, Depends(get_account_manager)
]
CourseManagerDep = Annotated[
    course_manager.CourseManager, Depends(get_course_manager)
]
SubjectManagerDep = Annotated[
    subject_manager.SubjectManager, Depends(get_subject_manager)
]
ClassManagerDep = Annotated[
    class_manager.ClassManager, Depends(get_class_manager)
]
FormManagerDep = Annotated[
    form_manager.FormManager, Depends(get_form_manager)
]
PerformanceManagerDep = Annotated[
    performance_manager.PerformanceManager, Depends(get_performance_manager)
]
MaterialManagerDep = Annotated[
    material_manager.MaterialManager, Depends(get_material_manager)
]


def get_current_user(
    sessions: SessionManagerDep,
    session_id: Annotated[str, Cookie(alias=SESSION_COOKIE_NAME)] = None,
) -> UserModel:
    """Resolve the session cookie to the logged-in user.

    Raises:
        HTTPException: 401 if the cookie is missing, unknown or expired.
    """
    user = sessions.resolve(session_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Usuário não autenticado.",
        )
    return user


CurrentUserDep = Annotated[UserModel, Depends(get_current_user)]


def require_roles(*roles: int) -> Callable[..., UserModel]:
    """Build a dependency that admits only users with one of ``roles``."""

    def checker(current_user: CurrentUserDep) -> UserModel:
        if current_user.effective_role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Acesso negado.",
            )
        return current_user

    return checker


def require_student(
    current_user: CurrentUserDep, accounts: AccountManagerDep
) -> UserModel:
    """Admit students only, and not while a professional request is pending."""
    if current_user.effective_role != ROLE_STUDENT:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Acesso negado.",
        )
    if accounts.has_pending_request(current_user.id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Sua solicitação de conta profissional está em análise.",
        )
    return current_user


StudentDep = Annotated[UserModel, Depends(require_student)]

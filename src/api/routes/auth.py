"""Authentication routes.

This module handles HTTP endpoints for registration, login and logout. The
login session lives server-side; the browser only keeps its id in an
httpOnly cookie.
"""

import logging
from typing import Annotated, List, Optional

from fastapi import APIRouter, Cookie, Depends, File, HTTPException, Response, UploadFile, status
from fastapi.responses import FileResponse

from config import (
    SESSION_COOKIE_NAME,
    SESSION_COOKIE_SAMESITE,
    SESSION_COOKIE_SECURE,
    SESSION_TTL_MINUTES,
)
from core.dependencies import (
    CurrentUserDep,
    SessionManagerDep,
    UserManagerDep,
    require_roles,
)
from models.user import ROLE_ADMIN, ROLE_COORDINATOR, UserModel
from schemas.user import (
    ChangePasswordRequest,
    CurrentUserResponse,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    User,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Auth"])


def to_user(model: UserModel) -> User:
    """Public view of a user with the effective role filled in."""
    user = User.model_validate(model)
    user.role = model.effective_role
    return user


def _open_session(response: Response, sessions, user_id: int) -> None:
    session = sessions.create_session(user_id)
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=session.session_id,
        max_age=SESSION_TTL_MINUTES * 60,
        httponly=True,
        secure=SESSION_COOKIE_SECURE,
        samesite=SESSION_COOKIE_SAMESITE,
    )


@router.post("/auth/register", response_model=LoginResponse, status_code=201)
def register(
    req: RegisterRequest,
    response: Response,
    user_manager: UserManagerDep,
    sessions: SessionManagerDep,
) -> LoginResponse:
    """Register a new user and log them in.

    Args:
        req: Registration request with username, email and password twice.
        response: Outgoing response, receives the session cookie.
        user_manager: Injected UserManager instance.
        sessions: Injected SessionManager instance.

    Returns:
        LoginResponse with the created user.
    """
    model = user_manager.create_user(req.username, req.email, req.password)
    _open_session(response, sessions, model.id)
    logger.info("User registered: %s", model.email)
    return LoginResponse(message="Cadastro realizado com sucesso.", user=to_user(model))


@router.post("/auth/login", response_model=LoginResponse)
def login(
    req: LoginRequest,
    response: Response,
    user_manager: UserManagerDep,
    sessions: SessionManagerDep,
) -> LoginResponse:
    model = user_manager.authenticate(req.email, req.password)
    _open_session(response, sessions, model.id)
    logger.info("User logged in: %s", model.email)
    return LoginResponse(message="Login realizado com sucesso.", user=to_user(model))


@router.post("/auth/logout")
def logout(
    response: Response,
    sessions: SessionManagerDep,
    session_id: Annotated[Optional[str], Cookie(alias=SESSION_COOKIE_NAME)] = None,
) -> dict:
    sessions.revoke(session_id)
    response.delete_cookie(SESSION_COOKIE_NAME)
    return {"success": True, "message": "Logout realizado com sucesso."}


@router.get("/auth/me", response_model=CurrentUserResponse)
def get_me(current_user: CurrentUserDep) -> CurrentUserResponse:
    return CurrentUserResponse(user=to_user(current_user))


@router.patch("/auth/password")
def change_password(
    req: ChangePasswordRequest,
    current_user: CurrentUserDep,
    user_manager: UserManagerDep,
) -> dict:
    user_manager.change_password(current_user.id, req.current_password, req.new_password)
    return {"success": True, "message": "Senha alterada com sucesso."}


@router.get("/users", response_model=List[User])
def list_users(
    user_manager: UserManagerDep,
    role: Optional[int] = None,
    current_user: UserModel = Depends(require_roles(ROLE_ADMIN)),
) -> List[User]:
    """List all users, optionally filtered by role (admin only)."""
    return [to_user(model) for model in user_manager.list_users(role)]


def _course_scope(user: UserModel) -> Optional[int]:
    """Course a coordinator is limited to; None for admins."""
    if user.effective_role != ROLE_COORDINATOR:
        return None
    if user.course_id is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Coordenador sem curso vinculado.",
        )
    return user.course_id


@router.get("/users/students", response_model=List[User])
def list_students(
    user_manager: UserManagerDep,
    current_user: UserModel = Depends(require_roles(ROLE_ADMIN, ROLE_COORDINATOR)),
) -> List[User]:
    """Students of the coordinator's course, or every student for admins."""
    students = user_manager.list_students(course_id=_course_scope(current_user))
    return [to_user(model) for model in students]


@router.delete("/users/students/{student_id}")
def delete_student(
    student_id: int,
    user_manager: UserManagerDep,
    current_user: UserModel = Depends(require_roles(ROLE_ADMIN, ROLE_COORDINATOR)),
) -> dict:
    user_manager.delete_student(student_id, course_id=_course_scope(current_user))
    logger.info("Student %s deleted by user %s", student_id, current_user.id)
    return {"success": True, "message": "Aluno removido."}


@router.put("/users/me/photo", response_model=CurrentUserResponse)
def upload_photo(
    current_user: CurrentUserDep,
    user_manager: UserManagerDep,
    photo: UploadFile = File(...),
) -> CurrentUserResponse:
    """Replace the current user's profile photo (PNG or JPEG, 5 MB max)."""
    model = user_manager.set_photo(
        current_user.id, photo.file.read(), photo.filename, photo.content_type
    )
    return CurrentUserResponse(user=to_user(model))


@router.delete("/users/me/photo")
def remove_photo(current_user: CurrentUserDep, user_manager: UserManagerDep) -> dict:
    user_manager.remove_photo(current_user.id)
    return {"success": True, "message": "Foto removida."}


@router.get("/users/{user_id}/photo")
def get_photo(
    user_id: int,
    user_manager: UserManagerDep,
    current_user: CurrentUserDep,
) -> FileResponse:
    return FileResponse(user_manager.get_photo(user_id))

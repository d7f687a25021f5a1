"""Account type routes: professional requests, approvals and student course links."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from config import ALLOWED_DIPLOMA_TYPES
from core.dependencies import AccountManagerDep, CurrentUserDep, require_roles
from core.exceptions import EvolvereError
from models.user import ROLE_ADMIN, ROLE_COORDINATOR, UserModel
from schemas.account import (
    AccountKpis,
    ProfessionalRequestInfo,
    StudentCourseRequest,
    TeacherInfo,
)
from utils.file_storage import FileStorage, validate_upload

from api.routes.auth import to_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/accounts", tags=["Accounts"])

DIPLOMA_FOLDER = "diplomas"


@router.post("/professional", status_code=201)
def request_professional(
    current_user: CurrentUserDep,
    account_manager: AccountManagerDep,
    institution: str = Form(...),
    access_code: str = Form(...),
    role: int = Form(...),
    diploma: Optional[UploadFile] = File(None),
) -> dict:
    """File a teacher or coordinator request, optionally with a diploma PDF.

    The diploma is written to disk before the request row; it is removed
    again if the request is refused.
    """
    storage = FileStorage()
    diploma_path = None
    if diploma is not None and diploma.filename:
        content = diploma.file.read()
        validate_upload(content, diploma.content_type, ALLOWED_DIPLOMA_TYPES)
        diploma_path = storage.save(content, diploma.filename, folder=DIPLOMA_FOLDER)

    try:
        account_manager.request_professional(
            current_user, institution, access_code, role, diploma=diploma_path
        )
    except EvolvereError:
        if diploma_path:
            storage.delete(diploma_path)
        raise
    return {"success": True, "message": "Solicitação enviada para análise."}


@router.post("/student")
def link_student_course(
    req: StudentCourseRequest,
    current_user: CurrentUserDep,
    account_manager: AccountManagerDep,
) -> dict:
    user = account_manager.link_student_course(current_user, req.access_code)
    return {
        "success": True,
        "message": "Curso vinculado com sucesso.",
        "user": to_user(user),
    }


@router.get("/requests", response_model=List[ProfessionalRequestInfo])
def list_requests(
    account_manager: AccountManagerDep,
    current_user: UserModel = Depends(require_roles(ROLE_ADMIN, ROLE_COORDINATOR)),
) -> List[ProfessionalRequestInfo]:
    return [ProfessionalRequestInfo(**item) for item in account_manager.list_pending(current_user)]


@router.post("/requests/{user_id}/approve")
def approve_request(
    user_id: int,
    account_manager: AccountManagerDep,
    current_user: UserModel = Depends(require_roles(ROLE_ADMIN, ROLE_COORDINATOR)),
) -> dict:
    account_manager.approve(current_user, user_id)
    return {"success": True, "message": "Solicitação aprovada."}


@router.post("/requests/{user_id}/reject")
def reject_request(
    user_id: int,
    account_manager: AccountManagerDep,
    current_user: UserModel = Depends(require_roles(ROLE_ADMIN, ROLE_COORDINATOR)),
) -> dict:
    account_manager.reject(current_user, user_id)
    return {"success": True, "message": "Solicitação recusada."}


@router.get("/kpis", response_model=AccountKpis)
def get_kpis(
    account_manager: AccountManagerDep,
    current_user: UserModel = Depends(require_roles(ROLE_ADMIN, ROLE_COORDINATOR)),
) -> AccountKpis:
    """Teacher, subject and pending request counts; coordinators see their course."""
    return AccountKpis(**account_manager.get_kpis(current_user))


@router.get("/teachers", response_model=List[TeacherInfo])
def list_teachers(
    account_manager: AccountManagerDep,
    current_user: UserModel = Depends(require_roles(ROLE_ADMIN, ROLE_COORDINATOR)),
) -> List[TeacherInfo]:
    return [TeacherInfo(**item) for item in account_manager.list_teachers(current_user)]


@router.delete("/teachers/{teacher_id}")
def remove_teacher(
    teacher_id: int,
    account_manager: AccountManagerDep,
    current_user: UserModel = Depends(require_roles(ROLE_ADMIN, ROLE_COORDINATOR)),
) -> dict:
    account_manager.remove_teacher(current_user, teacher_id)
    return {"success": True, "message": "Professor removido."}

"""Class management routes, including roster and invite codes."""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from core.dependencies import (
    ClassManagerDep,
    CurrentUserDep,
    SubjectManagerDep,
    require_roles,
)
from models.class_invite import ClassInviteModel
from models.class_model import ClassModel
from models.user import ROLE_ADMIN, ROLE_COORDINATOR, ROLE_STUDENT, ROLE_TEACHER, UserModel
from schemas.class_schema import (
    ClassDetail,
    ClassInfo,
    ClassStudentInfo,
    CreateClassRequest,
    CreateInviteRequest,
    InviteInfo,
    InviteListResponse,
)
from utils.clock import as_utc, utcnow

router = APIRouter(prefix="/api/classes", tags=["Class"])

STAFF_ROLES = (ROLE_ADMIN, ROLE_COORDINATOR, ROLE_TEACHER)


def _build_class_info(model: ClassModel, student_count: int = 0) -> ClassInfo:
    return ClassInfo(
        id=model.id,
        name=model.name,
        period=model.period,
        capacity=model.capacity,
        subject_id=model.subject_id,
        subject_name=model.subject.name if model.subject else None,
        course_id=model.course_id,
        student_count=student_count,
    )


def _build_invite_info(model: ClassInviteModel) -> InviteInfo:
    return InviteInfo(
        code=model.code,
        class_id=model.classes_id,
        expires_at=as_utc(model.expires_at),
        max_uses=model.max_uses,
        use_count=model.use_count or 0,
        remaining_uses=model.remaining_uses,
        state=model.state(utcnow()),
    )


def check_class_staff(class_model: ClassModel, user: UserModel) -> None:
    """Only the subject's teacher, coordinators and admins manage a class."""
    role = user.effective_role
    if role in (ROLE_ADMIN, ROLE_COORDINATOR):
        return
    if role == ROLE_TEACHER and class_model.subject.professional_id == user.id:
        return
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Sem permissão para gerenciar esta turma.",
    )


@router.post("", response_model=ClassInfo, status_code=201)
def create_class(
    req: CreateClassRequest,
    class_manager: ClassManagerDep,
    subject_manager: SubjectManagerDep,
    current_user: UserModel = Depends(require_roles(*STAFF_ROLES)),
) -> ClassInfo:
    subject = subject_manager.get_subject(req.subject_id)
    if current_user.effective_role == ROLE_TEACHER and subject.professional_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Você não leciona esta disciplina.",
        )
    model = class_manager.create_class(req.name, req.period, req.capacity, req.subject_id)
    return _build_class_info(model)


@router.get("/subject/{subject_id}", response_model=List[ClassInfo])
def list_classes_for_subject(
    subject_id: int,
    class_manager: ClassManagerDep,
    current_user: UserModel = Depends(require_roles(*STAFF_ROLES)),
) -> List[ClassInfo]:
    return [
        _build_class_info(model, count)
        for model, count in class_manager.list_classes_for_subject(subject_id)
    ]


@router.get("/mine", response_model=List[ClassInfo])
def list_my_classes(
    class_manager: ClassManagerDep,
    current_user: CurrentUserDep,
) -> List[ClassInfo]:
    """Classes the current student is enrolled in."""
    return [
        _build_class_info(model, class_manager.student_count(model.id))
        for model in class_manager.list_classes_for_student(current_user.id)
    ]


@router.get("/{class_id}", response_model=ClassDetail)
def get_class(
    class_id: int,
    class_manager: ClassManagerDep,
    current_user: CurrentUserDep,
) -> ClassDetail:
    model = class_manager.get_class(class_id)
    if current_user.effective_role == ROLE_STUDENT:
        if not class_manager.is_enrolled(class_id, current_user.id):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Você não está matriculado nesta turma.",
            )
    else:
        check_class_staff(model, current_user)

    students = class_manager.list_students(class_id)
    info = _build_class_info(model, len(students))
    return ClassDetail(
        **info.model_dump(),
        students=[
            ClassStudentInfo(id=s.id, username=s.username, registration=s.registration)
            for s in students
        ],
    )


@router.delete("/{class_id}")
def delete_class(
    class_id: int,
    class_manager: ClassManagerDep,
    current_user: UserModel = Depends(require_roles(*STAFF_ROLES)),
) -> dict:
    check_class_staff(class_manager.get_class(class_id), current_user)
    class_manager.delete_class(class_id)
    return {"success": True, "message": "Turma removida."}


@router.delete("/{class_id}/students/{student_id}")
def remove_student(
    class_id: int,
    student_id: int,
    class_manager: ClassManagerDep,
    current_user: UserModel = Depends(require_roles(*STAFF_ROLES)),
) -> dict:
    check_class_staff(class_manager.get_class(class_id), current_user)
    class_manager.remove_student(class_id, student_id)
    return {"success": True, "message": "Aluno removido da turma."}


@router.post("/{class_id}/invites", response_model=InviteInfo, status_code=201)
def create_invite(
    class_id: int,
    req: CreateInviteRequest,
    class_manager: ClassManagerDep,
    current_user: UserModel = Depends(require_roles(*STAFF_ROLES)),
) -> InviteInfo:
    """Generate an invite code for a class.

    Args:
        class_id: Target class.
        req: Optional lifetime in minutes and use limit.
        class_manager: Injected ClassManager instance.
        current_user: Teacher, coordinator or admin.

    Returns:
        InviteInfo with the code, expiry, limit and current state.
    """
    check_class_staff(class_manager.get_class(class_id), current_user)
    model = class_manager.create_invite(class_id, req.expires_in_minutes, req.max_uses)
    return _build_invite_info(model)


@router.get("/{class_id}/invites", response_model=InviteListResponse)
def list_invites(
    class_id: int,
    class_manager: ClassManagerDep,
    current_user: UserModel = Depends(require_roles(*STAFF_ROLES)),
) -> InviteListResponse:
    check_class_staff(class_manager.get_class(class_id), current_user)
    return InviteListResponse(
        invites=[_build_invite_info(model) for model in class_manager.list_invites(class_id)]
    )


@router.delete("/{class_id}/invites/{code}")
def delete_invite(
    class_id: int,
    code: str,
    class_manager: ClassManagerDep,
    current_user: UserModel = Depends(require_roles(*STAFF_ROLES)),
) -> dict:
    check_class_staff(class_manager.get_class(class_id), current_user)
    class_manager.delete_invite(class_id, code)
    return {"success": True, "message": "Convite removido."}

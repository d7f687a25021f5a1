"""Subject routes."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from core.dependencies import CurrentUserDep, SubjectManagerDep, require_roles
from models.subject import SubjectModel
from models.user import ROLE_ADMIN, ROLE_COORDINATOR, ROLE_TEACHER, UserModel
from schemas.subject import CreateSubjectRequest, SubjectInfo, UpdateSubjectRequest

router = APIRouter(prefix="/api/subjects", tags=["Subjects"])


def _build_subject_info(model: SubjectModel) -> SubjectInfo:
    return SubjectInfo(
        id=model.id,
        name=model.name,
        professional_id=model.professional_id,
        teacher_name=model.teacher.username if model.teacher else None,
        course_valid_id=model.course_valid_id,
        course_name=model.course.name if model.course else None,
    )


def _check_course_scope(model: SubjectModel, user: UserModel) -> None:
    if user.effective_role == ROLE_COORDINATOR and model.course_valid_id != user.course_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Disciplina de outro curso.",
        )


@router.post("", response_model=SubjectInfo, status_code=201)
def create_subject(
    req: CreateSubjectRequest,
    subject_manager: SubjectManagerDep,
    current_user: UserModel = Depends(require_roles(ROLE_ADMIN, ROLE_COORDINATOR)),
) -> SubjectInfo:
    """Create a subject; coordinators default to their own course."""
    course_id = req.course_valid_id or current_user.course_id
    if course_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Curso da disciplina não informado.",
        )
    if current_user.effective_role == ROLE_COORDINATOR and course_id != current_user.course_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Coordenadores só criam disciplinas do próprio curso.",
        )
    model = subject_manager.create_subject(req.name, req.professional_id, course_id)
    return _build_subject_info(model)


@router.get("", response_model=List[SubjectInfo])
def list_subjects(
    subject_manager: SubjectManagerDep,
    current_user: CurrentUserDep,
    course_id: Optional[int] = None,
) -> List[SubjectInfo]:
    return [_build_subject_info(model) for model in subject_manager.list_subjects(course_id=course_id)]


@router.get("/mine", response_model=List[SubjectInfo])
def list_my_subjects(
    subject_manager: SubjectManagerDep,
    current_user: CurrentUserDep,
) -> List[SubjectInfo]:
    """Subjects taught by a teacher, or of the course of anyone else."""
    if current_user.effective_role == ROLE_TEACHER:
        models = subject_manager.list_subjects(teacher_id=current_user.id)
    elif current_user.course_id is not None:
        models = subject_manager.list_subjects(course_id=current_user.course_id)
    else:
        models = []
    return [_build_subject_info(model) for model in models]


@router.put("/{subject_id}", response_model=SubjectInfo)
def update_subject(
    subject_id: int,
    req: UpdateSubjectRequest,
    subject_manager: SubjectManagerDep,
    current_user: UserModel = Depends(require_roles(ROLE_ADMIN, ROLE_COORDINATOR)),
) -> SubjectInfo:
    """Rename a subject or change its teacher; coordinators only within their course."""
    _check_course_scope(subject_manager.get_subject(subject_id), current_user)
    model = subject_manager.update_subject(
        subject_id, name=req.name, professional_id=req.professional_id
    )
    return _build_subject_info(model)


@router.delete("/{subject_id}")
def delete_subject(
    subject_id: int,
    subject_manager: SubjectManagerDep,
    current_user: UserModel = Depends(require_roles(ROLE_ADMIN, ROLE_COORDINATOR)),
) -> dict:
    _check_course_scope(subject_manager.get_subject(subject_id), current_user)
    subject_manager.delete_subject(subject_id)
    return {"success": True, "message": "Disciplina removida."}

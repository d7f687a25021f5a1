"""Form (quiz) routes: publishing, answering, correction and results."""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from core.dependencies import (
    ClassManagerDep,
    CurrentUserDep,
    FormManagerDep,
    StudentDep,
    SubjectManagerDep,
    require_roles,
)
from models.form import FormModel
from models.user import ROLE_ADMIN, ROLE_COORDINATOR, ROLE_STUDENT, ROLE_TEACHER, UserModel
from schemas.form import (
    ClassFormsResponse,
    CorrectionFormInfo,
    FormDetail,
    FormResultInfo,
    FormSummary,
    OpenResponseInfo,
    OptionOut,
    PendingSummary,
    PublishFormRequest,
    PublishFormResponse,
    QuestionOut,
    SaveCorrectionRequest,
    SaveCorrectionResponse,
    SubmitAnswersRequest,
)
from utils.clock import as_utc
from utils.form_manager import FormManager

from api.routes.class_route import check_class_staff

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/form", tags=["Form"])

STAFF_ROLES = (ROLE_ADMIN, ROLE_COORDINATOR, ROLE_TEACHER)


def _check_subject_teacher(subject, user: UserModel) -> None:
    if user.effective_role == ROLE_TEACHER and subject.professional_id != user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Você não leciona esta disciplina.",
        )


def _check_class_access(class_manager, class_model, user: UserModel) -> None:
    if user.effective_role == ROLE_STUDENT:
        if not class_manager.is_enrolled(class_model.id, user.id):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Você não está matriculado nesta turma.",
            )
    else:
        check_class_staff(class_model, user)


def _build_summary(model: FormModel) -> FormSummary:
    return FormSummary(
        id=model.id,
        title=model.title,
        description=model.description,
        subject_id=model.subject_id,
        class_id=model.class_id,
        deadline=as_utc(model.deadline),
        status=model.status,
    )


def _build_detail(model: FormModel, with_answers: bool) -> FormDetail:
    questions = [
        QuestionOut(
            id=question.id,
            text=question.text,
            points=float(question.points or 0),
            type=question.type,
            options=[
                OptionOut(
                    id=option.id,
                    text=option.text,
                    correct=option.correct if with_answers else None,
                )
                for option in question.options
            ],
        )
        for question in model.questions
    ]
    return FormDetail(
        id=model.id,
        title=model.title,
        description=model.description,
        created_by=model.created_by,
        subject_id=model.subject_id,
        class_id=model.class_id,
        deadline=as_utc(model.deadline),
        total_duration=model.total_duration or 0,
        total_points=FormManager.total_points(model),
        status=model.status,
        questions=questions,
    )


@router.post("/publish", response_model=PublishFormResponse, status_code=201)
def publish_form(
    req: PublishFormRequest,
    form_manager: FormManagerDep,
    subject_manager: SubjectManagerDep,
    current_user: UserModel = Depends(require_roles(*STAFF_ROLES)),
) -> PublishFormResponse:
    """Publish a form with its questions and options.

    Args:
        req: Form metadata and ordered questions.
        form_manager: Injected FormManager instance.
        subject_manager: Injected SubjectManager instance.
        current_user: Teacher of the subject, coordinator or admin.

    Returns:
        PublishFormResponse with the new form id.
    """
    _check_subject_teacher(subject_manager.get_subject(req.subject_id), current_user)
    model = form_manager.publish(req, current_user.id)
    return PublishFormResponse(message="Formulário publicado com sucesso.", form_id=model.id)


@router.get("/student/pending", response_model=PendingSummary, response_model_by_alias=True)
def get_pending(
    form_manager: FormManagerDep,
    current_user: CurrentUserDep,
) -> PendingSummary:
    """Dashboard card of the current student's open, unanswered forms."""
    return PendingSummary.model_validate(form_manager.get_pending_for_student(current_user.id))


@router.get("/class/{class_id}", response_model=ClassFormsResponse)
def list_forms_for_class(
    class_id: int,
    form_manager: FormManagerDep,
    class_manager: ClassManagerDep,
    current_user: CurrentUserDep,
) -> ClassFormsResponse:
    class_model = class_manager.get_class(class_id)
    _check_class_access(class_manager, class_model, current_user)
    _, forms = form_manager.list_forms_for_class(class_id)
    return ClassFormsResponse(
        class_name=class_model.name, forms=[_build_summary(model) for model in forms]
    )


@router.get("/class/{class_id}/available", response_model=List[FormSummary])
def list_available_forms(
    class_id: int,
    form_manager: FormManagerDep,
    class_manager: ClassManagerDep,
    current_user: CurrentUserDep,
) -> List[FormSummary]:
    _check_class_access(class_manager, class_manager.get_class(class_id), current_user)
    return [
        _build_summary(model)
        for model in form_manager.list_available_for_student(class_id, current_user.id)
    ]


@router.post("/answers", response_model=FormResultInfo, status_code=201)
def submit_answers(
    req: SubmitAnswersRequest,
    form_manager: FormManagerDep,
    current_user: StudentDep,
) -> FormResultInfo:
    result = form_manager.save_answers(current_user.id, req.form_id, req.answers)
    pending = sum(1 for answer in req.answers if answer.option_id is None)
    return FormResultInfo(
        form_id=result.form_id,
        student_id=result.student_id,
        username=current_user.username,
        points=float(result.points or 0),
        correct=result.correct,
        wrong=result.wrong,
        pending_corrections=pending,
    )


@router.get("/correction/{subject_id}", response_model=List[CorrectionFormInfo])
def list_forms_for_correction(
    subject_id: int,
    form_manager: FormManagerDep,
    subject_manager: SubjectManagerDep,
    current_user: UserModel = Depends(require_roles(*STAFF_ROLES)),
) -> List[CorrectionFormInfo]:
    _check_subject_teacher(subject_manager.get_subject(subject_id), current_user)
    return [CorrectionFormInfo(**item) for item in form_manager.list_forms_for_correction(subject_id)]


@router.get("/responses/{form_id}", response_model=List[OpenResponseInfo])
def list_open_responses(
    form_id: int,
    form_manager: FormManagerDep,
    subject_manager: SubjectManagerDep,
    current_user: UserModel = Depends(require_roles(*STAFF_ROLES)),
) -> List[OpenResponseInfo]:
    form = form_manager.get_form(form_id)
    _check_subject_teacher(subject_manager.get_subject(form.subject_id), current_user)
    return [OpenResponseInfo(**item) for item in form_manager.list_open_responses(form_id)]


@router.post("/save/correction", response_model=SaveCorrectionResponse)
def save_correction(
    req: SaveCorrectionRequest,
    form_manager: FormManagerDep,
    subject_manager: SubjectManagerDep,
    current_user: UserModel = Depends(require_roles(*STAFF_ROLES)),
) -> SaveCorrectionResponse:
    answer = form_manager.get_answer(req.answer_id)
    form = form_manager.get_form(answer.form_id)
    _check_subject_teacher(subject_manager.get_subject(form.subject_id), current_user)
    outcome = form_manager.save_correction(current_user.id, req.answer_id, req.comment, req.points)
    return SaveCorrectionResponse(message="Correção salva com sucesso.", **outcome)


@router.post("/{form_id}/graded", response_model=FormSummary)
def mark_graded(
    form_id: int,
    form_manager: FormManagerDep,
    current_user: UserModel = Depends(require_roles(*STAFF_ROLES)),
) -> FormSummary:
    return _build_summary(form_manager.mark_graded(form_id, current_user))


@router.get("/results/{form_id}", response_model=List[FormResultInfo])
def get_results(
    form_id: int,
    form_manager: FormManagerDep,
    subject_manager: SubjectManagerDep,
    current_user: UserModel = Depends(require_roles(*STAFF_ROLES)),
) -> List[FormResultInfo]:
    form = form_manager.get_form(form_id)
    _check_subject_teacher(subject_manager.get_subject(form.subject_id), current_user)
    return [FormResultInfo(**item) for item in form_manager.get_results(form_id)]


@router.get("/{form_id}", response_model=FormDetail)
def get_form(
    form_id: int,
    form_manager: FormManagerDep,
    current_user: CurrentUserDep,
) -> FormDetail:
    """Form with ordered questions; correct options are hidden from students."""
    model = form_manager.get_form(form_id)
    is_student = current_user.effective_role == ROLE_STUDENT
    if is_student and not form_manager.student_can_access(model, current_user.id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Você não está matriculado em uma turma deste formulário.",
        )
    return _build_detail(model, with_answers=not is_student)


@router.delete("/{form_id}")
def delete_form(
    form_id: int,
    form_manager: FormManagerDep,
    current_user: UserModel = Depends(require_roles(*STAFF_ROLES)),
) -> dict:
    form_manager.delete_form(form_id, current_user)
    logger.info("Form %s deleted by user %s", form_id, current_user.id)
    return {"success": True, "message": "Formulário removido."}

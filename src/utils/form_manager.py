"""Form (quiz) management utilities.

Publishing, student answers with auto-grading, the open-answer correction
workflow and the pending-activities view of a student.
"""

import logging
import math
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import and_, case, func, or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from core.database import transaction
from core.exceptions import (
    ConflictError,
    FormAlreadyAnsweredError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from models.answer import AnswerFormModel, CommentAnswerModel, FormResultModel
from models.class_model import ClassModel
from models.class_student import ClassStudentModel
from models.form import (
    FORM_STATUS_GRADED,
    FORM_STATUS_OPEN,
    QUESTION_OPEN,
    FormModel,
    OptionModel,
    QuestionModel,
)
from models.subject import SubjectModel
from models.user import ROLE_ADMIN, ROLE_COORDINATOR, UserModel
from schemas.form import AnswerIn, PublishFormRequest
from utils.clock import to_naive_utc, utcnow

logger = logging.getLogger(__name__)

# Number of pending activities surfaced on the student dashboard
UPCOMING_LIMIT = 3

# (upper bound in days, label, colour), checked in order
URGENCY_BUCKETS = (
    (0, "Vencido", "red"),
    (5, "Urgente", "red"),
    (10, "Importante", "amber"),
)
URGENCY_DEFAULT = ("Normal", "blue")

SECONDS_PER_DAY = 24 * 60 * 60


def days_remaining(deadline: datetime, now: Optional[datetime] = None) -> int:
    """Whole days left until ``deadline``, rounded up; -1 once it has passed."""
    now = now or utcnow()
    seconds = (deadline - now).total_seconds()
    if seconds < 0:
        return -1
    return math.ceil(seconds / SECONDS_PER_DAY)


def urgency(days: int) -> Tuple[str, str]:
    """Label and colour of the urgency bucket for ``days`` remaining."""
    for limit, label, colour in URGENCY_BUCKETS:
        if days <= limit:
            return label, colour
    return URGENCY_DEFAULT


def _as_float(value) -> float:
    return float(value or 0)


class FormManager:
    """Manages forms, answers and corrections."""

    def __init__(self, db: Session):
        self.db = db

    # --- Publishing ---

    def publish(self, request: PublishFormRequest, creator_id: int) -> FormModel:
        """Store a form with its questions and options in one transaction.

        Args:
            request: Validated form payload.
            creator_id: Teacher publishing the form.

        Returns:
            The stored FormModel.

        Raises:
            NotFoundError: If the subject or class does not exist.
            ValidationError: If the class belongs to another subject or the
                deadline is not in the future.
            ConflictError: If a form with the same title exists for the class.
        """
        subject = self.db.get(SubjectModel, request.subject_id)
        if subject is None:
            raise NotFoundError("Disciplina não encontrada.")
        if request.class_id is not None:
            class_model = self.db.get(ClassModel, request.class_id)
            if class_model is None:
                raise NotFoundError("Turma não encontrada.")
            if class_model.subject_id != subject.id:
                raise ValidationError("A turma não pertence a esta disciplina.")

        deadline = to_naive_utc(request.deadline)
        if deadline <= utcnow():
            raise ValidationError("O prazo deve ser uma data futura.")

        title = request.title.strip()
        if self._title_taken(title, request.class_id):
            raise ConflictError("Já existe um formulário com este título nesta turma.")

        form = FormModel(
            title=title,
            description=request.description,
            created_by=creator_id,
            subject_id=subject.id,
            class_id=request.class_id,
            total_duration=request.total_duration,
            deadline=deadline,
            status=FORM_STATUS_OPEN,
        )
        for q_index, question in enumerate(request.questions):
            question_model = QuestionModel(
                position=q_index,
                text=question.text,
                points=Decimal(str(question.points)),
                type=question.type.value,
            )
            for o_index, option in enumerate(question.options):
                question_model.options.append(
                    OptionModel(position=o_index, text=option.text, correct=option.correct)
                )
            form.questions.append(question_model)

        try:
            with transaction(self.db):
                self.db.add(form)
        except IntegrityError:
            raise ConflictError("Já existe um formulário com este título nesta turma.")
        self.db.refresh(form)
        logger.info(
            "Published form %s (%s) with %d questions", form.id, form.title, len(request.questions)
        )
        return form

    def _title_taken(self, title: str, class_id: Optional[int]) -> bool:
        query = self.db.query(FormModel.id).filter(FormModel.title == title)
        if class_id is None:
            query = query.filter(FormModel.class_id.is_(None))
        else:
            query = query.filter(FormModel.class_id == class_id)
        return query.first() is not None

    # --- Reading ---

    def get_form(self, form_id: int) -> FormModel:
        model = (
            self.db.query(FormModel)
            .options(selectinload(FormModel.questions).selectinload(QuestionModel.options))
            .filter(FormModel.id == form_id)
            .first()
        )
        if model is None:
            raise NotFoundError("Formulário não encontrado.")
        return model

    @staticmethod
    def total_points(form: FormModel) -> float:
        return sum(_as_float(question.points) for question in form.questions)

    def _forms_for_class_query(self, class_model: ClassModel):
        return self.db.query(FormModel).filter(
            or_(
                FormModel.class_id == class_model.id,
                and_(
                    FormModel.class_id.is_(None),
                    FormModel.subject_id == class_model.subject_id,
                ),
            )
        )

    def list_forms_for_class(self, class_id: int) -> Tuple[ClassModel, List[FormModel]]:
        """Forms of a class, including subject-wide ones, nearest deadline first."""
        class_model = self.db.get(ClassModel, class_id)
        if class_model is None:
            raise NotFoundError("Turma não encontrada.")
        forms = self._forms_for_class_query(class_model).order_by(FormModel.deadline).all()
        return class_model, forms

    def list_available_for_student(self, class_id: int, student_id: int) -> List[FormModel]:
        """Open forms of a class the student has not answered yet."""
        _, forms = self.list_forms_for_class(class_id)
        answered = self._answered_form_ids(student_id)
        now = utcnow()
        return [form for form in forms if form.id not in answered and form.deadline > now]

    def student_can_access(self, form: FormModel, student_id: int) -> bool:
        """Whether the form targets a class the student is enrolled in."""
        query = (
            self.db.query(ClassStudentModel)
            .join(ClassModel, ClassModel.id == ClassStudentModel.class_id)
            .filter(ClassStudentModel.student_id == student_id)
        )
        if form.class_id is not None:
            query = query.filter(ClassModel.id == form.class_id)
        else:
            query = query.filter(ClassModel.subject_id == form.subject_id)
        return query.first() is not None

    def _answered_form_ids(self, student_id: int) -> set:
        rows = (
            self.db.query(AnswerFormModel.form_id)
            .filter(AnswerFormModel.user_id == student_id)
            .distinct()
            .all()
        )
        return {row[0] for row in rows}

    def delete_form(self, form_id: int, user: UserModel) -> None:
        form = self.get_form(form_id)
        self._check_owner(form, user)
        with transaction(self.db):
            self.db.delete(form)
        logger.info("Deleted form %s", form_id)

    @staticmethod
    def _check_owner(form: FormModel, user: UserModel) -> None:
        if form.created_by != user.id and user.effective_role not in (
            ROLE_ADMIN,
            ROLE_COORDINATOR,
        ):
            raise ForbiddenError("Apenas o autor pode alterar este formulário.")

    # --- Student view ---

    def get_pending_for_student(self, student_id: int) -> Dict:
        """Open, unanswered forms of a student, nearest deadline first.

        A form is pending when it targets one of the student's classes, or
        has no class and belongs to the subject of one of those classes,
        its deadline is still ahead and the student has not answered it.

        Returns:
            Dict with ``pending_count`` and the ``upcoming_activities`` list
            holding the most urgent entries.
        """
        now = utcnow()
        class_ids = (
            self.db.query(ClassStudentModel.class_id)
            .filter(ClassStudentModel.student_id == student_id)
            .subquery()
        )
        subject_ids = (
            self.db.query(ClassModel.subject_id)
            .filter(ClassModel.id.in_(class_ids.select()))
            .subquery()
        )
        answered = (
            self.db.query(AnswerFormModel.id)
            .filter(
                AnswerFormModel.form_id == FormModel.id,
                AnswerFormModel.user_id == student_id,
            )
            .exists()
        )
        rows = (
            self.db.query(FormModel, SubjectModel.name)
            .outerjoin(SubjectModel, SubjectModel.id == FormModel.subject_id)
            .filter(
                or_(
                    FormModel.class_id.in_(class_ids.select()),
                    and_(
                        FormModel.class_id.is_(None),
                        FormModel.subject_id.in_(subject_ids.select()),
                    ),
                ),
                FormModel.deadline > now,
                ~answered,
            )
            .order_by(FormModel.deadline, FormModel.id)
            .all()
        )

        activities = []
        for form, subject_name in rows:
            days = days_remaining(form.deadline, now)
            label, colour = urgency(days)
            activities.append(
                {
                    "id": form.id,
                    "title": form.title,
                    "description": form.description,
                    "deadline": form.deadline,
                    "discipline_name": subject_name,
                    "days_remaining": days,
                    "urgency_label": label,
                    "urgency_color": colour,
                }
            )
        return {
            "pending_count": len(activities),
            "upcoming_activities": activities[:UPCOMING_LIMIT],
        }

    def save_answers(
        self, student_id: int, form_id: int, answers: Iterable[AnswerIn]
    ) -> FormResultModel:
        """Store a student's answers and the auto-graded result.

        Objective answers are scored against the correct option; open answers
        wait for a teacher correction and reopen a form that was already graded.

        Raises:
            NotFoundError: Unknown form.
            ValidationError: Deadline passed, or a question or option does
                not belong to the form.
            FormAlreadyAnsweredError: The student already answered the form.
            ForbiddenError: The student is not enrolled in a class of the form.
        """
        form = self.get_form(form_id)
        if not self.student_can_access(form, student_id):
            raise ForbiddenError("Você não está matriculado em uma turma deste formulário.")
        if form.deadline <= utcnow():
            raise ValidationError("O prazo para responder este formulário terminou.")
        if form.id in self._answered_form_ids(student_id):
            raise FormAlreadyAnsweredError(form.id, student_id)

        questions = {question.id: question for question in form.questions}
        points = Decimal("0")
        correct = wrong = 0
        rows = []
        seen = set()
        for answer in answers:
            question = questions.get(answer.question_id)
            if question is None:
                raise ValidationError(f"Questão {answer.question_id} não pertence ao formulário.")
            if question.id in seen:
                raise ValidationError(f"Questão {question.id} respondida mais de uma vez.")
            seen.add(question.id)

            if question.type == QUESTION_OPEN:
                text = (answer.open_answer or "").strip()
                if not text:
                    raise ValidationError(f"Resposta da questão {question.id} está vazia.")
                rows.append(
                    AnswerFormModel(
                        user_id=student_id,
                        form_id=form.id,
                        question_id=question.id,
                        open_answer=text,
                        corrected=False,
                    )
                )
                continue

            options = {option.id: option for option in question.options}
            option = options.get(answer.option_id)
            if option is None:
                raise ValidationError(f"Opção inválida para a questão {question.id}.")
            if option.correct:
                correct += 1
                points += Decimal(question.points or 0)
            else:
                wrong += 1
            rows.append(
                AnswerFormModel(
                    user_id=student_id,
                    form_id=form.id,
                    question_id=question.id,
                    option_id=option.id,
                    corrected=True,
                )
            )

        result = FormResultModel(
            form_id=form.id,
            student_id=student_id,
            points=points,
            correct=correct,
            wrong=wrong,
        )
        has_open = any(row.open_answer is not None for row in rows)
        try:
            with transaction(self.db):
                self._lock_form(form.id)
                self.db.add_all(rows)
                self.db.add(result)
                if has_open:
                    # New open answers await correction, so a graded form reopens.
                    self._set_status(form.id, FORM_STATUS_OPEN)
        except IntegrityError:
            raise FormAlreadyAnsweredError(form.id, student_id)
        self.db.refresh(result)
        logger.info(
            "Student %s answered form %s: %s points (%d correct, %d wrong)",
            student_id,
            form.id,
            points,
            correct,
            wrong,
        )
        return result

    # --- Correction ---

    def _uncorrected_count(self, form_id: int) -> int:
        return (
            self.db.query(func.count(AnswerFormModel.id))
            .filter(
                AnswerFormModel.form_id == form_id,
                AnswerFormModel.open_answer.isnot(None),
                AnswerFormModel.corrected.is_(False),
            )
            .scalar()
        )

    def list_forms_for_correction(self, subject_id: int) -> List[Dict]:
        """Forms of a subject that received open answers, with pending counts."""
        pending = func.sum(case((AnswerFormModel.corrected.is_(False), 1), else_=0))
        rows = (
            self.db.query(FormModel, SubjectModel.name, pending)
            .join(AnswerFormModel, AnswerFormModel.form_id == FormModel.id)
            .join(SubjectModel, SubjectModel.id == FormModel.subject_id)
            .filter(
                FormModel.subject_id == subject_id,
                AnswerFormModel.open_answer.isnot(None),
            )
            .group_by(FormModel.id, SubjectModel.name)
            .order_by(FormModel.deadline)
            .all()
        )
        return [
            {
                "form_id": form.id,
                "title": form.title,
                "status": form.status,
                "subject_id": form.subject_id,
                "subject_name": subject_name,
                "class_id": form.class_id,
                "pending_corrections": int(count or 0),
            }
            for form, subject_name, count in rows
        ]

    def list_open_responses(self, form_id: int) -> List[Dict]:
        """Open answers of a form, one entry per student and question."""
        form = self.get_form(form_id)
        rows = (
            self.db.query(AnswerFormModel, QuestionModel, UserModel)
            .join(QuestionModel, QuestionModel.id == AnswerFormModel.question_id)
            .join(UserModel, UserModel.id == AnswerFormModel.user_id)
            .filter(
                AnswerFormModel.form_id == form.id,
                AnswerFormModel.open_answer.isnot(None),
            )
            .order_by(UserModel.username, QuestionModel.position)
            .all()
        )
        return [
            {
                "answer_id": answer.id,
                "user_id": user.id,
                "username": user.username,
                "question_id": question.id,
                "question_text": question.text,
                "question_points": _as_float(question.points),
                "open_answer": answer.open_answer,
                "corrected": answer.corrected,
                "form_name": form.title,
            }
            for answer, question, user in rows
        ]

    def get_answer(self, answer_id: int) -> AnswerFormModel:
        answer = self.db.get(AnswerFormModel, answer_id)
        if answer is None:
            raise NotFoundError("Resposta não encontrada.")
        return answer

    def _lock_form(self, form_id: int) -> None:
        # No-op on SQLite, where the first write of the transaction serializes.
        self.db.query(FormModel.id).filter(FormModel.id == form_id).with_for_update().one()

    def save_correction(
        self, teacher_id: int, answer_id: int, comment: Optional[str], points: float
    ) -> Dict:
        """Grade one open answer.

        The answer is claimed with a conditional UPDATE, so a concurrent
        correction of the same answer fails with ConflictError. The points
        are added to the student's result in SQL and, when it was the last
        uncorrected open answer of the form, the form moves to the graded
        status in the same transaction.

        Raises:
            NotFoundError: Unknown answer.
            ValidationError: Objective answer, or points above the question's.
            ConflictError: The answer was already corrected.
        """
        answer = self.get_answer(answer_id)
        if answer.open_answer is None:
            raise ValidationError("Apenas respostas abertas são corrigidas manualmente.")
        if answer.corrected:
            raise ConflictError("Resposta já corrigida.")

        question = self.db.get(QuestionModel, answer.question_id)
        awarded = Decimal(str(points))
        if awarded > Decimal(question.points or 0):
            raise ValidationError("A nota excede a pontuação da questão.")

        form_id = answer.form_id
        student_id = answer.user_id
        counter = FormResultModel.correct if awarded > 0 else FormResultModel.wrong
        try:
            with transaction(self.db):
                self._lock_form(form_id)
                claimed = self.db.execute(
                    update(AnswerFormModel)
                    .where(
                        AnswerFormModel.id == answer.id,
                        AnswerFormModel.corrected.is_(False),
                    )
                    .values(corrected=True)
                    .execution_options(synchronize_session=False)
                )
                if claimed.rowcount != 1:
                    raise ConflictError("Resposta já corrigida.")
                self.db.add(
                    CommentAnswerModel(
                        answer_id=answer.id,
                        teacher_id=teacher_id,
                        comment=comment,
                        points=awarded,
                    )
                )
                updated = self.db.execute(
                    update(FormResultModel)
                    .where(
                        FormResultModel.form_id == form_id,
                        FormResultModel.student_id == student_id,
                    )
                    .values(
                        {
                            FormResultModel.points: func.coalesce(FormResultModel.points, 0)
                            + awarded,
                            counter: func.coalesce(counter, 0) + 1,
                        }
                    )
                    .execution_options(synchronize_session=False)
                )
                if updated.rowcount == 0:
                    self.db.add(
                        FormResultModel(
                            form_id=form_id,
                            student_id=student_id,
                            points=awarded,
                            correct=1 if awarded > 0 else 0,
                            wrong=0 if awarded > 0 else 1,
                        )
                    )
                self.db.flush()
                remaining = self._uncorrected_count(form_id)
                if remaining == 0:
                    self._set_status(form_id, FORM_STATUS_GRADED)
        except IntegrityError:
            raise ConflictError("Resposta já corrigida.")

        status = self.db.query(FormModel.status).filter(FormModel.id == form_id).scalar()
        logger.info(
            "Teacher %s corrected answer %s with %s points (%d remaining on form %s)",
            teacher_id,
            answer_id,
            awarded,
            remaining,
            form_id,
        )
        return {
            "form_id": form_id,
            "form_status": status,
            "remaining_corrections": remaining,
        }

    def _set_status(self, form_id: int, status: int) -> None:
        self.db.execute(
            update(FormModel)
            .where(FormModel.id == form_id)
            .values(status=status)
            .execution_options(synchronize_session=False)
        )

    def mark_graded(self, form_id: int, user: UserModel) -> FormModel:
        form = self.get_form(form_id)
        self._check_owner(form, user)
        remaining = self._uncorrected_count(form.id)
        if remaining:
            raise ConflictError(f"Ainda existem {remaining} respostas sem correção.")
        with transaction(self.db):
            form.status = FORM_STATUS_GRADED
        logger.info("Form %s marked as graded", form.id)
        return form

    def get_results(self, form_id: int) -> List[Dict]:
        form = self.get_form(form_id)
        rows = (
            self.db.query(FormResultModel, UserModel.username)
            .join(UserModel, UserModel.id == FormResultModel.student_id)
            .filter(FormResultModel.form_id == form.id)
            .order_by(UserModel.username)
            .all()
        )
        pending = dict(
            self.db.query(AnswerFormModel.user_id, func.count(AnswerFormModel.id))
            .filter(
                AnswerFormModel.form_id == form.id,
                AnswerFormModel.open_answer.isnot(None),
                AnswerFormModel.corrected.is_(False),
            )
            .group_by(AnswerFormModel.user_id)
            .all()
        )
        return [
            {
                "form_id": form.id,
                "student_id": result.student_id,
                "username": username,
                "points": _as_float(result.points),
                "correct": result.correct,
                "wrong": result.wrong,
                "pending_corrections": pending.get(result.student_id, 0),
            }
            for result, username in rows
        ]

"""Class management utilities.

Covers class CRUD, the class roster and the invite-code enrollment flow.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import List, Optional

from sqlalchemy import func, or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.database import transaction
from core.exceptions import (
    AlreadyEnrolledError,
    ClassFullError,
    InternalError,
    InviteExpiredError,
    InviteNotFoundError,
    NotFoundError,
    UseLimitReachedError,
)
from models.class_invite import ClassInviteModel
from models.class_model import ClassModel
from models.class_student import ClassStudentModel
from models.course import CourseModel
from models.subject import SubjectModel
from models.user import UserModel
from utils import code_generator
from utils.clock import utcnow

logger = logging.getLogger(__name__)

# Extra attempts when a freshly generated invite code is taken concurrently
INVITE_INSERT_RETRIES = 3


@dataclass
class EnrollmentResult:
    class_id: int
    class_name: str
    course: Optional[str] = None


class ClassManager:
    """Manages class, roster, and invitation operations."""

    def __init__(self, db: Session):
        self.db = db

    # --- Classes ---

    def create_class(
        self, name: str, period: str, capacity: int, subject_id: int
    ) -> ClassModel:
        """Create a class for a subject; the course is taken from the subject."""
        subject = self.db.get(SubjectModel, subject_id)
        if subject is None:
            raise NotFoundError("Disciplina não encontrada.")
        model = ClassModel(
            name=name.strip(),
            period=period.strip(),
            capacity=capacity,
            subject_id=subject.id,
            course_id=subject.course_valid_id,
        )
        with transaction(self.db):
            self.db.add(model)
        self.db.refresh(model)
        logger.info("Created class %s (%s) for subject %s", model.id, model.name, subject_id)
        return model

    def get_class(self, class_id: int) -> ClassModel:
        model = self.db.get(ClassModel, class_id)
        if model is None:
            raise NotFoundError("Turma não encontrada.")
        return model

    def student_count(self, class_id: int) -> int:
        return (
            self.db.query(func.count(ClassStudentModel.student_id))
            .filter(ClassStudentModel.class_id == class_id)
            .scalar()
        )

    def list_classes_for_subject(self, subject_id: int) -> List[tuple]:
        """Classes of a subject with their student counts, ordered by name."""
        return (
            self.db.query(ClassModel, func.count(ClassStudentModel.student_id))
            .outerjoin(ClassStudentModel, ClassStudentModel.class_id == ClassModel.id)
            .filter(ClassModel.subject_id == subject_id)
            .group_by(ClassModel.id)
            .order_by(ClassModel.name)
            .all()
        )

    def list_classes_for_student(self, student_id: int) -> List[ClassModel]:
        return (
            self.db.query(ClassModel)
            .join(ClassStudentModel, ClassStudentModel.class_id == ClassModel.id)
            .filter(ClassStudentModel.student_id == student_id)
            .order_by(ClassModel.name)
            .all()
        )

    def is_enrolled(self, class_id: int, student_id: int) -> bool:
        return (
            self.db.query(ClassStudentModel)
            .filter(
                ClassStudentModel.class_id == class_id,
                ClassStudentModel.student_id == student_id,
            )
            .first()
            is not None
        )

    def list_students(self, class_id: int) -> List[UserModel]:
        return (
            self.db.query(UserModel)
            .join(ClassStudentModel, ClassStudentModel.student_id == UserModel.id)
            .filter(ClassStudentModel.class_id == class_id)
            .order_by(UserModel.username)
            .all()
        )

    def remove_student(self, class_id: int, student_id: int) -> None:
        """Remove a student from a class roster.

        Raises:
            NotFoundError: If the student is not enrolled in the class.
        """
        with transaction(self.db):
            deleted = (
                self.db.query(ClassStudentModel)
                .filter(
                    ClassStudentModel.class_id == class_id,
                    ClassStudentModel.student_id == student_id,
                )
                .delete(synchronize_session=False)
            )
            if not deleted:
                raise NotFoundError("Aluno não está matriculado nesta turma.")
        logger.info("Removed student %s from class %s", student_id, class_id)

    def delete_class(self, class_id: int) -> None:
        """Delete a class together with its roster and invites."""
        model = self.get_class(class_id)
        with transaction(self.db):
            self.db.delete(model)
        logger.info("Deleted class: %s", class_id)

    # --- Invites ---

    def invite_code_exists(self, code: str) -> bool:
        return (
            self.db.query(ClassInviteModel.id)
            .filter(ClassInviteModel.code == code)
            .first()
            is not None
        )

    def create_invite(
        self,
        class_id: int,
        expires_in_minutes: Optional[int] = None,
        max_uses: Optional[int] = None,
    ) -> ClassInviteModel:
        """Create an invite code for a class.

        Args:
            class_id: Class the invite enrolls into.
            expires_in_minutes: Lifetime; None means the invite never expires.
            max_uses: Redemption limit; None means unlimited.

        Returns:
            The stored invite.

        Raises:
            NotFoundError: If the class does not exist.
        """
        self.get_class(class_id)
        expires_at = None
        if expires_in_minutes is not None:
            expires_at = utcnow() + timedelta(minutes=expires_in_minutes)

        for _ in range(INVITE_INSERT_RETRIES):
            code = code_generator.generate_unique(
                code_generator.generate_invite_code, self.invite_code_exists
            )
            model = ClassInviteModel(
                code=code,
                classes_id=class_id,
                expires_at=expires_at,
                max_uses=max_uses,
                use_count=0,
            )
            try:
                with transaction(self.db):
                    self.db.add(model)
            except IntegrityError:
                logger.warning("Invite code %s taken concurrently, retrying", code)
                continue
            self.db.refresh(model)
            logger.info(
                "Created invite %s for class %s (expires_at=%s, max_uses=%s)",
                code,
                class_id,
                expires_at,
                max_uses,
            )
            return model
        raise InternalError("Não foi possível gerar um código único.")

    def list_invites(self, class_id: int) -> List[ClassInviteModel]:
        return (
            self.db.query(ClassInviteModel)
            .filter(ClassInviteModel.classes_id == class_id)
            .order_by(ClassInviteModel.created_at.desc(), ClassInviteModel.id.desc())
            .all()
        )

    def get_invite(self, code: str) -> ClassInviteModel:
        model = (
            self.db.query(ClassInviteModel)
            .filter(ClassInviteModel.code == normalise_code(code))
            .first()
        )
        if model is None:
            raise InviteNotFoundError(code)
        return model

    def delete_invite(self, class_id: int, code: str) -> None:
        model = self.get_invite(code)
        if model.classes_id != class_id:
            raise InviteNotFoundError(code)
        with transaction(self.db):
            self.db.delete(model)
        logger.info("Deleted class invite: %s", model.code)

    def redeem(self, code: str, student_id: int) -> EnrollmentResult:
        """Enroll a student into the class of an invite.

        Checks run in this order: unknown code, expired, already enrolled,
        use limit reached, class full. The use-count increment and the
        enrollment insert share one transaction, and the increment is a
        conditional UPDATE, so concurrent redemptions of a nearly exhausted
        invite cannot both succeed. The roster is recounted after the insert
        and an overfull class rolls the whole redemption back.

        Args:
            code: Invite code as typed by the student.
            student_id: Enrolling student.

        Returns:
            EnrollmentResult with the class id, class name and course name.

        Raises:
            InviteNotFoundError: Unknown code.
            InviteExpiredError: ``now >= expires_at``.
            AlreadyEnrolledError: Student already in the class.
            UseLimitReachedError: No uses left.
            ClassFullError: Class at capacity.
        """
        invite = self.get_invite(code)
        if invite.is_expired(utcnow()):
            raise InviteExpiredError(invite.code)

        class_model = self.get_class(invite.classes_id)
        if self.is_enrolled(class_model.id, student_id):
            raise AlreadyEnrolledError(class_model.id, student_id)
        if invite.is_exhausted():
            raise UseLimitReachedError(invite.code)
        if self.student_count(class_model.id) >= class_model.capacity:
            raise ClassFullError(class_model.id)

        try:
            with transaction(self.db):
                # Row lock on PostgreSQL; SQLite serializes on the first write below.
                self.db.query(ClassModel.id).filter(
                    ClassModel.id == class_model.id
                ).with_for_update().one()
                claimed = self.db.execute(
                    update(ClassInviteModel)
                    .where(
                        ClassInviteModel.id == invite.id,
                        or_(
                            ClassInviteModel.max_uses.is_(None),
                            ClassInviteModel.use_count < ClassInviteModel.max_uses,
                        ),
                    )
                    .values(use_count=ClassInviteModel.use_count + 1)
                    .execution_options(synchronize_session=False)
                )
                if claimed.rowcount != 1:
                    raise UseLimitReachedError(invite.code)
                self.db.add(
                    ClassStudentModel(class_id=class_model.id, student_id=student_id)
                )
                self.db.flush()
                if self.student_count(class_model.id) > class_model.capacity:
                    raise ClassFullError(class_model.id)
        except IntegrityError:
            raise AlreadyEnrolledError(class_model.id, student_id)

        self.db.expire(invite)
        course = self.db.get(CourseModel, class_model.course_id)
        logger.info(
            "Student %s joined class %s with invite %s", student_id, class_model.id, invite.code
        )
        return EnrollmentResult(
            class_id=class_model.id,
            class_name=class_model.name,
            course=course.name if course else None,
        )


def normalise_code(code: str) -> str:
    return (code or "").strip().upper()

"""Role approval for professional accounts and course linkage for students."""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from core.database import transaction
from core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from models.course import CourseModel
from models.professional_request import ProfessionalRequestModel
from models.user import (
    ROLE_ADMIN,
    ROLE_COORDINATOR,
    ROLE_NAMES,
    ROLE_STUDENT,
    ROLE_TEACHER,
    UserModel,
)
from utils.course_manager import CourseManager
from utils.notifier import Notifier
from utils.subject_manager import SubjectManager

logger = logging.getLogger(__name__)

PROFESSIONAL_ROLES = (ROLE_COORDINATOR, ROLE_TEACHER)


class AccountManager:
    """Manages professional requests and their approval."""

    def __init__(self, db: Session, notifier: Notifier):
        self.db = db
        self.notifier = notifier
        self.courses = CourseManager(db)
        self.subjects = SubjectManager(db)

    def _has_account(self, user: UserModel) -> bool:
        if user.role is not None or user.course_id is not None:
            return True
        return self._get_request(user.id) is not None

    def _get_request(self, user_id: int) -> Optional[ProfessionalRequestModel]:
        return (
            self.db.query(ProfessionalRequestModel)
            .filter(ProfessionalRequestModel.professional_id == user_id)
            .first()
        )

    def has_pending_request(self, user_id: int) -> bool:
        request = self._get_request(user_id)
        return request is not None and not request.approved

    def request_professional(
        self,
        user: UserModel,
        institution: str,
        access_code: str,
        role: int,
        diploma: Optional[str] = None,
    ) -> ProfessionalRequestModel:
        """File a pending teacher or coordinator request.

        Args:
            user: Requesting user.
            institution: Institution name as typed by the user.
            access_code: Code of the course the professional works for.
            role: 2 (coordinator) or 3 (teacher).
            diploma: Stored path of the uploaded diploma, if any.

        Raises:
            ValidationError: On an unknown role, empty institution or unknown
                course code.
            ConflictError: If the user already has an account type.
        """
        if role not in PROFESSIONAL_ROLES:
            raise ValidationError("Tipo de conta inválido.")
        if not institution or not institution.strip():
            raise ValidationError("Instituição obrigatória.")
        if self.courses.find_by_code(access_code) is None:
            raise ValidationError("Código de acesso inválido.")
        if self._has_account(user):
            raise ConflictError("Usuário já possui uma conta vinculada.")

        model = ProfessionalRequestModel(
            professional_id=user.id,
            institution=institution.strip(),
            access_code=str(access_code).strip(),
            diploma=diploma,
            role=role,
            approved=False,
        )
        with transaction(self.db):
            self.db.add(model)
        self.db.refresh(model)
        logger.info("User %s requested role %s", user.id, role)
        return model

    def link_student_course(self, user: UserModel, access_code: str) -> UserModel:
        """Attach a student to the course identified by ``access_code``."""
        course = self.courses.find_by_code(access_code)
        if course is None:
            raise ValidationError("Código de acesso inválido.")
        if self._has_account(user):
            raise ConflictError("Usuário já possui uma conta vinculada.")
        with transaction(self.db):
            user.course_id = course.id
            user.role = ROLE_STUDENT
        logger.info("User %s linked to course %s as student", user.id, course.course_code)
        return user

    def list_pending(self, viewer: UserModel) -> List[dict]:
        """Pending requests visible to ``viewer``.

        Admins see every pending request; coordinators only teacher requests
        for their own course.
        """
        query = (
            self.db.query(ProfessionalRequestModel, UserModel)
            .join(UserModel, UserModel.id == ProfessionalRequestModel.professional_id)
            .filter(ProfessionalRequestModel.approved.is_(False))
        )
        role = viewer.effective_role
        if role == ROLE_COORDINATOR:
            code = self._coordinator_code(viewer)
            if code is None:
                return []
            query = query.filter(
                ProfessionalRequestModel.role == ROLE_TEACHER,
                ProfessionalRequestModel.access_code == code,
            )
        elif role != ROLE_ADMIN:
            raise ForbiddenError()

        results = []
        for request, user in query.order_by(ProfessionalRequestModel.updated_at.desc()).all():
            course = self.courses.find_by_code(request.access_code)
            results.append(
                {
                    "id": user.id,
                    "username": user.username,
                    "email": user.email,
                    "institution": request.institution,
                    "access_code": request.access_code,
                    "role": request.role,
                    "role_name": ROLE_NAMES.get(request.role, "Desconhecido"),
                    "course": course.name if course else None,
                    "flag": course.acronym_ies if course else None,
                    "diploma": request.diploma,
                    "approved": request.approved,
                    "created_at": request.created_at,
                }
            )
        return results

    def _pending_for(self, viewer: UserModel, user_id: int) -> ProfessionalRequestModel:
        request = self._get_request(user_id)
        if request is None or request.approved:
            raise NotFoundError("Solicitação não encontrada.")
        role = viewer.effective_role
        if role == ROLE_ADMIN:
            return request
        if role == ROLE_COORDINATOR and request.role == ROLE_TEACHER:
            code = self._coordinator_code(viewer)
            if code is not None and request.access_code == code:
                return request
        raise ForbiddenError("Sem permissão para avaliar esta solicitação.")

    def approve(self, viewer: UserModel, user_id: int) -> UserModel:
        """Grant the requested role and notify the user by email."""
        request = self._pending_for(viewer, user_id)
        user = self.db.get(UserModel, user_id)
        course = self.courses.find_by_code(request.access_code)
        with transaction(self.db):
            request.approved = True
            user.role = request.role
            if course is not None:
                user.course_id = course.id
        logger.info("User %s approved as role %s by %s", user_id, request.role, viewer.id)
        self.notifier.notify_approved(user, request.role)
        return user

    def reject(self, viewer: UserModel, user_id: int) -> None:
        """Drop the request and notify the user by email."""
        request = self._pending_for(viewer, user_id)
        user = self.db.get(UserModel, user_id)
        role = request.role
        with transaction(self.db):
            self.db.delete(request)
        logger.info("Request of user %s rejected by %s", user_id, viewer.id)
        self.notifier.notify_rejected(user, role)

    def _coordinator_code(self, viewer: UserModel) -> Optional[str]:
        course = self.db.get(CourseModel, viewer.course_id) if viewer.course_id else None
        return str(course.course_code) if course is not None else None

    def _approved_teachers(self, viewer: UserModel):
        query = (
            self.db.query(ProfessionalRequestModel, UserModel)
            .join(UserModel, UserModel.id == ProfessionalRequestModel.professional_id)
            .filter(
                ProfessionalRequestModel.approved.is_(True),
                ProfessionalRequestModel.role == ROLE_TEACHER,
            )
        )
        role = viewer.effective_role
        if role == ROLE_COORDINATOR:
            query = query.filter(
                ProfessionalRequestModel.access_code == self._coordinator_code(viewer)
            )
        elif role != ROLE_ADMIN:
            raise ForbiddenError()
        return query

    def get_kpis(self, viewer: UserModel) -> dict:
        """Dashboard counters: approved teachers, subjects and pending requests.

        Admins get global numbers; coordinators the numbers of their course,
        where pending requests only count teacher requests.
        """
        teachers = self._approved_teachers(viewer).count()
        pending = self.db.query(ProfessionalRequestModel).filter(
            ProfessionalRequestModel.approved.is_(False)
        )
        if viewer.effective_role == ROLE_COORDINATOR:
            pending = pending.filter(
                ProfessionalRequestModel.role == ROLE_TEACHER,
                ProfessionalRequestModel.access_code == self._coordinator_code(viewer),
            )
            subjects = self.subjects.count_subjects(course_id=viewer.course_id or 0)
        else:
            subjects = self.subjects.count_subjects()
        return {"teachers": teachers, "subjects": subjects, "requests": pending.count()}

    def list_teachers(self, viewer: UserModel) -> List[dict]:
        """Approved teachers visible to ``viewer`` with the subjects they teach."""
        results = []
        rows = self._approved_teachers(viewer).order_by(UserModel.username).all()
        for request, user in rows:
            course = self.courses.find_by_code(request.access_code)
            results.append(
                {
                    "id": user.id,
                    "username": user.username,
                    "email": user.email,
                    "registration": user.registration,
                    "institution": request.institution,
                    "course": course.name if course else None,
                    "subjects": [s.name for s in self.subjects.list_subjects(teacher_id=user.id)],
                }
            )
        return results

    def remove_teacher(self, viewer: UserModel, teacher_id: int) -> None:
        """Delete an approved teacher's account.

        Raises:
            NotFoundError: No approved teacher with this id is visible to ``viewer``.
            ConflictError: The teacher still teaches subjects.
        """
        found = (
            self._approved_teachers(viewer)
            .filter(ProfessionalRequestModel.professional_id == teacher_id)
            .first()
        )
        if found is None:
            raise NotFoundError("Professor não encontrado.")
        _, user = found
        if self.subjects.list_subjects(teacher_id=user.id):
            raise ConflictError("Professor ainda leciona disciplinas. Transfira-as antes de removê-lo.")
        with transaction(self.db):
            self.db.delete(user)
        logger.info("Teacher %s removed by %s", teacher_id, viewer.id)

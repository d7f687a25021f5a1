"""Subject management utilities."""

import logging
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from core.database import transaction
from core.exceptions import NotFoundError, ValidationError
from models.course import CourseModel
from models.subject import SubjectModel
from models.user import ROLE_TEACHER, UserModel

logger = logging.getLogger(__name__)


class SubjectManager:
    def __init__(self, db: Session):
        self.db = db

    def create_subject(
        self, name: str, professional_id: int, course_valid_id: int
    ) -> SubjectModel:
        """Create a subject taught by an approved teacher.

        Raises:
            ValidationError: If the teacher is not an approved teacher.
            NotFoundError: If the course does not exist.
        """
        self._check_teacher(professional_id)
        if self.db.get(CourseModel, course_valid_id) is None:
            raise NotFoundError("Curso não encontrado.")

        model = SubjectModel(
            name=name.strip(),
            professional_id=professional_id,
            course_valid_id=course_valid_id,
        )
        with transaction(self.db):
            self.db.add(model)
        self.db.refresh(model)
        logger.info("Created subject %s (%s) for teacher %s", model.id, model.name, professional_id)
        return model

    def _check_teacher(self, professional_id: int) -> None:
        teacher = self.db.get(UserModel, professional_id)
        if teacher is None or teacher.role != ROLE_TEACHER:
            raise ValidationError("Professor inválido.")

    def get_subject(self, subject_id: int) -> SubjectModel:
        model = self.db.get(SubjectModel, subject_id)
        if model is None:
            raise NotFoundError("Disciplina não encontrada.")
        return model

    def list_subjects(
        self,
        course_id: Optional[int] = None,
        teacher_id: Optional[int] = None,
    ) -> List[SubjectModel]:
        query = self.db.query(SubjectModel).options(
            joinedload(SubjectModel.teacher), joinedload(SubjectModel.course)
        )
        if course_id is not None:
            query = query.filter(SubjectModel.course_valid_id == course_id)
        if teacher_id is not None:
            query = query.filter(SubjectModel.professional_id == teacher_id)
        return query.order_by(SubjectModel.name).all()

    def update_subject(
        self,
        subject_id: int,
        name: Optional[str] = None,
        professional_id: Optional[int] = None,
    ) -> SubjectModel:
        """Rename a subject or hand it to another approved teacher."""
        model = self.get_subject(subject_id)
        if professional_id is not None and professional_id != model.professional_id:
            self._check_teacher(professional_id)
        with transaction(self.db):
            if name is not None:
                model.name = name.strip()
            if professional_id is not None:
                model.professional_id = professional_id
        self.db.refresh(model)
        logger.info("Updated subject %s (%s, teacher %s)", model.id, model.name, model.professional_id)
        return model

    def count_subjects(self, course_id: Optional[int] = None) -> int:
        query = self.db.query(func.count(SubjectModel.id))
        if course_id is not None:
            query = query.filter(SubjectModel.course_valid_id == course_id)
        return query.scalar()

    def delete_subject(self, subject_id: int) -> None:
        model = self.get_subject(subject_id)
        with transaction(self.db):
            self.db.delete(model)
        logger.info("Deleted subject %s", subject_id)

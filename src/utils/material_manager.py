"""Course material management."""

import logging
from pathlib import Path
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from config import ALLOWED_MATERIAL_TYPES
from core.database import transaction
from core.exceptions import ForbiddenError, NotFoundError, ValidationError
from models.class_model import ClassModel
from models.material import ORIGIN_CLASS, ORIGIN_SUBJECT, MaterialModel
from models.subject import SubjectModel
from models.user import ROLE_ADMIN, ROLE_COORDINATOR, UserModel
from utils.file_storage import FileStorage, validate_upload

logger = logging.getLogger(__name__)


class MaterialManager:
    """Stores uploaded materials on disk and their metadata in the database."""

    def __init__(self, db: Session, storage: Optional[FileStorage] = None):
        self.db = db
        self.storage = storage or FileStorage()

    def upload(
        self,
        user: UserModel,
        title: str,
        subject_id: int,
        content: bytes,
        filename: str,
        content_type: str,
        description: Optional[str] = None,
        class_id: Optional[int] = None,
    ) -> MaterialModel:
        """Validate and store an uploaded file.

        Materials tied to a class get origin 2, subject-wide ones origin 1.

        Raises:
            ValidationError: Empty title, bad file, or class of another subject.
            NotFoundError: Unknown subject or class.
        """
        if not title or not title.strip():
            raise ValidationError("Título obrigatório.")
        file_type = validate_upload(content, content_type, ALLOWED_MATERIAL_TYPES)

        subject = self.db.get(SubjectModel, subject_id)
        if subject is None:
            raise NotFoundError("Disciplina não encontrada.")
        if class_id is not None:
            class_model = self.db.get(ClassModel, class_id)
            if class_model is None:
                raise NotFoundError("Turma não encontrada.")
            if class_model.subject_id != subject.id:
                raise ValidationError("A turma não pertence a esta disciplina.")

        archive = self.storage.save(content, filename, folder=str(subject.id))
        model = MaterialModel(
            title=title.strip(),
            description=description,
            type=file_type,
            archive=archive,
            filename=Path(filename or "arquivo").name,
            mime_type=content_type,
            size=len(content),
            created_by=user.id,
            subject_id=subject.id,
            class_id=class_id,
            origin=ORIGIN_CLASS if class_id is not None else ORIGIN_SUBJECT,
        )
        try:
            with transaction(self.db):
                self.db.add(model)
        except Exception:
            self.storage.delete(archive)
            raise
        self.db.refresh(model)
        logger.info("User %s uploaded material %s to subject %s", user.id, model.id, subject.id)
        return model

    def get_material(self, material_id: int) -> MaterialModel:
        model = self.db.get(MaterialModel, material_id)
        if model is None:
            raise NotFoundError("Material não encontrado.")
        return model

    def list_for_subject(self, subject_id: int) -> List[MaterialModel]:
        return (
            self.db.query(MaterialModel)
            .filter(MaterialModel.subject_id == subject_id)
            .order_by(MaterialModel.created_at.desc(), MaterialModel.id.desc())
            .all()
        )

    def list_for_class(self, class_id: int) -> List[MaterialModel]:
        """Class-specific materials plus subject-wide ones of the class's subject."""
        class_model = self.db.get(ClassModel, class_id)
        if class_model is None:
            raise NotFoundError("Turma não encontrada.")
        return (
            self.db.query(MaterialModel)
            .filter(
                MaterialModel.subject_id == class_model.subject_id,
                or_(
                    MaterialModel.class_id == class_model.id,
                    MaterialModel.origin == ORIGIN_SUBJECT,
                ),
            )
            .order_by(MaterialModel.created_at.desc(), MaterialModel.id.desc())
            .all()
        )

    def file_path(self, material_id: int) -> tuple:
        model = self.get_material(material_id)
        return model, self.storage.resolve(model.archive)

    def delete(self, material_id: int, user: UserModel) -> None:
        model = self.get_material(material_id)
        if model.created_by != user.id and user.effective_role not in (
            ROLE_ADMIN,
            ROLE_COORDINATOR,
        ):
            raise ForbiddenError("Apenas o autor pode remover este material.")
        archive = model.archive
        with transaction(self.db):
            self.db.delete(model)
        self.storage.delete(archive)
        logger.info("Deleted material %s", material_id)

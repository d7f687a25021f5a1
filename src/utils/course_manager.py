"""Course reference data."""

import csv
import logging
from pathlib import Path
from typing import List, Optional

from sqlalchemy.orm import Session

from core.database import transaction
from core.exceptions import NotFoundError
from models.course import CourseModel

logger = logging.getLogger(__name__)

# CSV header -> model attribute, following the official course listing
CSV_COLUMNS = {
    "code_IES": "code_ies",
    "acronym_IES": "acronym_ies",
    "name_IES": "name_ies",
    "situation": "situation",
    "course_code": "course_code",
    "name": "name",
    "degree": "degree",
    "city": "city",
    "UF": "uf",
}

INTEGER_COLUMNS = {"code_ies", "course_code"}


class CourseManager:
    def __init__(self, db: Session):
        self.db = db

    def list_courses(self, search: Optional[str] = None) -> List[CourseModel]:
        query = self.db.query(CourseModel)
        if search:
            query = query.filter(CourseModel.name.ilike(f"%{search}%"))
        return query.order_by(CourseModel.name).all()

    def get_course(self, course_id: int) -> CourseModel:
        model = self.db.get(CourseModel, course_id)
        if model is None:
            raise NotFoundError("Curso não encontrado.")
        return model

    def find_by_code(self, course_code) -> Optional[CourseModel]:
        """Look up a course by its public code; non-numeric codes match nothing."""
        try:
            code = int(str(course_code).strip())
        except ValueError:
            return None
        return (
            self.db.query(CourseModel)
            .filter(CourseModel.course_code == code)
            .first()
        )

    def get_by_code(self, course_code) -> CourseModel:
        model = self.find_by_code(course_code)
        if model is None:
            raise NotFoundError("Curso não encontrado.")
        return model

    def import_csv(self, path: Path) -> int:
        """Insert the courses listed in a CSV file, skipping known codes.

        Returns:
            Number of courses inserted.
        """
        known = {code for (code,) in self.db.query(CourseModel.course_code).all()}
        inserted = 0
        with open(path, newline="", encoding="utf-8") as handle, transaction(self.db):
            for row in csv.DictReader(handle):
                values = {}
                for column, attribute in CSV_COLUMNS.items():
                    value = (row.get(column) or "").strip()
                    values[attribute] = int(value) if attribute in INTEGER_COLUMNS else value
                if values["course_code"] in known:
                    continue
                known.add(values["course_code"])
                self.db.add(CourseModel(**values))
                inserted += 1
        logger.info("Imported %d courses from %s", inserted, path)
        return inserted

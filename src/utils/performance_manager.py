"""Student performance aggregates computed from ``results_form``."""

import logging
from typing import Dict, List

from sqlalchemy import func
from sqlalchemy.orm import Session

from models.answer import FormResultModel
from models.form import FORM_STATUS_GRADED, FormModel
from models.subject import SubjectModel

logger = logging.getLogger(__name__)

UNKNOWN_SUBJECT = "Disciplina Desconhecida"
NO_GRADE = {"name": "N/A", "grade": 0.0}


def _round(value) -> float:
    return round(float(value or 0), 1)


class PerformanceManager:
    def __init__(self, db: Session):
        self.db = db

    def get_student_report(self, student_id: int) -> Dict:
        """Overall average, per-subject averages and best grade of a student.

        Args:
            student_id: Student whose results are aggregated.

        Returns:
            Dict with ``overall_average``, ``best_grade`` ({name, grade}) and
            ``disciplines`` (list of {name, grade}, highest grade first).
            Grades are rounded to one decimal.
        """
        overall = (
            self.db.query(func.avg(FormResultModel.points))
            .filter(FormResultModel.student_id == student_id)
            .scalar()
        )

        per_subject = (
            self.db.query(SubjectModel.name, func.avg(FormResultModel.points))
            .select_from(FormResultModel)
            .join(FormModel, FormModel.id == FormResultModel.form_id)
            .outerjoin(SubjectModel, SubjectModel.id == FormModel.subject_id)
            .filter(FormResultModel.student_id == student_id)
            .group_by(SubjectModel.id, SubjectModel.name)
            .all()
        )
        disciplines = [
            {"name": name or UNKNOWN_SUBJECT, "grade": _round(average)}
            for name, average in per_subject
        ]
        disciplines.sort(key=lambda entry: entry["grade"], reverse=True)

        best = (
            self.db.query(SubjectModel.name, FormResultModel.points)
            .select_from(FormResultModel)
            .join(FormModel, FormModel.id == FormResultModel.form_id)
            .outerjoin(SubjectModel, SubjectModel.id == FormModel.subject_id)
            .filter(FormResultModel.student_id == student_id)
            .order_by(FormResultModel.points.desc(), FormResultModel.id)
            .first()
        )
        if best is None:
            best_grade = dict(NO_GRADE)
        else:
            best_grade = {"name": best[0] or UNKNOWN_SUBJECT, "grade": _round(best[1])}

        logger.debug("Computed report for student %s over %d subjects", student_id, len(disciplines))
        return {
            "overall_average": _round(overall),
            "best_grade": best_grade,
            "disciplines": disciplines,
        }

    def recent_results(self, student_id: int, limit: int = 5) -> List[Dict]:
        """Latest results of a student on graded forms."""
        rows = (
            self.db.query(FormResultModel, FormModel.title, SubjectModel.name)
            .join(FormModel, FormModel.id == FormResultModel.form_id)
            .outerjoin(SubjectModel, SubjectModel.id == FormModel.subject_id)
            .filter(
                FormResultModel.student_id == student_id,
                FormModel.status == FORM_STATUS_GRADED,
            )
            .order_by(FormResultModel.updated_at.desc(), FormResultModel.id.desc())
            .limit(limit)
            .all()
        )
        return [
            {
                "form_id": result.form_id,
                "title": title,
                "subject_name": subject_name or UNKNOWN_SUBJECT,
                "points": _round(result.points),
                "graded_at": result.updated_at,
            }
            for result, title, subject_name in rows
        ]

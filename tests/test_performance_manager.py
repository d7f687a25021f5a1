from datetime import timedelta

import pytest

from models.answer import FormResultModel
from models.form import FORM_STATUS_GRADED, FORM_STATUS_OPEN, FormModel
from models.subject import SubjectModel
from utils.clock import utcnow
from utils.performance_manager import PerformanceManager


@pytest.fixture
def manager(db):
    return PerformanceManager(db)


@pytest.fixture
def add_result(db, teacher):
    def factory(subject, points, title, status=FORM_STATUS_GRADED, student=None):
        form = FormModel(
            title=title,
            created_by=teacher.id,
            subject_id=subject.id,
            deadline=utcnow() + timedelta(days=1),
            status=status,
        )
        db.add(form)
        db.flush()
        db.add(FormResultModel(form_id=form.id, student_id=student.id, points=points))
        db.commit()
        return form

    return factory


def test_report_without_results(manager, student):
    report = manager.get_student_report(student.id)

    assert report == {
        "overall_average": 0.0,
        "best_grade": {"name": "N/A", "grade": 0.0},
        "disciplines": [],
    }


def test_report_aggregates_per_subject(manager, db, subject, teacher, course, student, add_result):
    calculus = SubjectModel(name="Cálculo", professional_id=teacher.id, course_valid_id=course.id)
    db.add(calculus)
    db.commit()
    add_result(subject, 6, "P1", student=student)
    add_result(subject, 7, "P2", student=student)
    add_result(calculus, 9.5, "P1 Cálculo", student=student)

    report = manager.get_student_report(student.id)

    assert report["overall_average"] == 7.5
    assert report["best_grade"] == {"name": "Cálculo", "grade": 9.5}
    assert report["disciplines"] == [
        {"name": "Cálculo", "grade": 9.5},
        {"name": "Estruturas de Dados", "grade": 6.5},
    ]


def test_report_rounds_to_one_decimal(manager, subject, student, add_result):
    add_result(subject, 7, "P1", student=student)
    add_result(subject, 8, "P2", student=student)
    add_result(subject, 8, "P3", student=student)

    report = manager.get_student_report(student.id)

    assert report["overall_average"] == 7.7
    assert report["disciplines"] == [{"name": "Estruturas de Dados", "grade": 7.7}]


def test_report_only_counts_own_results(manager, subject, student, make_user, add_result):
    other = make_user(role=4)
    add_result(subject, 10, "P1", student=other)
    add_result(subject, 4, "P2", student=student)

    assert manager.get_student_report(student.id)["overall_average"] == 4.0


def test_recent_results_only_graded_forms(manager, subject, student, add_result):
    add_result(subject, 5, "Aberta", status=FORM_STATUS_OPEN, student=student)
    graded = add_result(subject, 8, "Corrigida", student=student)

    (recent,) = manager.recent_results(student.id)

    assert recent["form_id"] == graded.id
    assert recent["title"] == "Corrigida"
    assert recent["subject_name"] == "Estruturas de Dados"
    assert recent["points"] == 8.0

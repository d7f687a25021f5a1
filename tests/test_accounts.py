from datetime import timedelta

import pytest

from core.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from models.professional_request import ProfessionalRequestModel
from models.user import ROLE_COORDINATOR, ROLE_STUDENT, ROLE_TEACHER, UserModel
from models.user_session import UserSessionModel
from utils.account_manager import AccountManager
from utils.clock import utcnow
from utils.course_manager import CourseManager
from utils.file_storage import FileStorage
from utils.session_manager import SessionManager
from utils.subject_manager import SubjectManager
from utils.user_manager import UserManager


@pytest.fixture
def users(db):
    return UserManager(db)


@pytest.fixture
def accounts(db, notifier):
    return AccountManager(db, notifier)


# --- users ---


def test_create_user_assigns_registration(users):
    user = users.create_user("Maria", "Maria@Example.com", "segredo123")

    assert user.email == "maria@example.com"
    assert len(user.registration) == 8 and user.registration.isdigit()
    assert user.role is None
    assert user.effective_role == ROLE_STUDENT
    assert user.password_hash != "segredo123"


def test_create_user_duplicate_email(users):
    users.create_user("Maria", "maria@example.com", "segredo123")

    with pytest.raises(ConflictError):
        users.create_user("Outra", "MARIA@example.com", "segredo456")


def test_authenticate(users):
    users.create_user("Maria", "maria@example.com", "segredo123")

    assert users.authenticate("maria@example.com", "segredo123").username == "Maria"
    with pytest.raises(UnauthorizedError):
        users.authenticate("maria@example.com", "errada")
    with pytest.raises(UnauthorizedError):
        users.authenticate("ninguem@example.com", "segredo123")


def test_change_password(users):
    user = users.create_user("Maria", "maria@example.com", "segredo123")

    with pytest.raises(UnauthorizedError):
        users.change_password(user.id, "errada", "novasenha")
    users.change_password(user.id, "segredo123", "novasenha")
    assert users.authenticate("maria@example.com", "novasenha").id == user.id


def test_create_admin_is_idempotent(users):
    first = users.create_admin("admin", "admin@example.com", "admin123")
    second = users.create_admin("admin", "admin@example.com", "outra")

    assert first.id == second.id
    assert first.registration == "admin"


def test_get_unknown_user(users):
    with pytest.raises(NotFoundError):
        users.get_user_by_id(999)


# --- sessions ---


def test_session_resolves_until_expiry(db, student):
    sessions = SessionManager(db)
    session = sessions.create_session(student.id)

    assert sessions.resolve(session.session_id).id == student.id

    session.expires_at = utcnow() - timedelta(seconds=1)
    db.commit()
    assert sessions.resolve(session.session_id) is None


def test_session_revoke(db, student):
    sessions = SessionManager(db)
    session_id = sessions.create_session(student.id).session_id

    sessions.revoke(session_id)

    assert sessions.resolve(session_id) is None
    assert sessions.resolve(None) is None


def test_login_purges_expired_sessions(db, student):
    sessions = SessionManager(db, ttl_minutes=-1)
    stale = sessions.create_session(student.id).session_id

    SessionManager(db).create_session(student.id)

    assert db.query(UserSessionModel).filter(UserSessionModel.session_id == stale).count() == 0


# --- courses ---


def test_import_courses_skips_known_codes(db, course, tmp_path):
    csv_file = tmp_path / "courses.csv"
    csv_file.write_text(
        "code_IES,acronym_IES,name_IES,situation,course_code,name,degree,city,UF\n"
        "572,UFPE,Universidade Federal de Pernambuco,Em Atividade,12345,Ciência da Computação,Bacharelado,Recife,PE\n"
        "572,UFPE,Universidade Federal de Pernambuco,Em Atividade,67890,Engenharia Civil,Bacharelado,Recife,PE\n",
        encoding="utf-8",
    )
    courses = CourseManager(db)

    assert courses.import_csv(csv_file) == 1
    assert courses.get_by_code("67890").name == "Engenharia Civil"
    assert courses.find_by_code("abc") is None


# --- professional requests ---


def test_request_professional(accounts, make_user, course):
    user = make_user()

    request = accounts.request_professional(user, "UFPE", str(course.course_code), ROLE_TEACHER)

    assert request.approved is False
    assert request.role == ROLE_TEACHER


def test_request_professional_validation(accounts, make_user, course, student):
    user = make_user()
    with pytest.raises(ValidationError):
        accounts.request_professional(user, "UFPE", "00000", ROLE_TEACHER)
    with pytest.raises(ValidationError):
        accounts.request_professional(user, "UFPE", str(course.course_code), ROLE_STUDENT)
    with pytest.raises(ConflictError):
        accounts.request_professional(student, "UFPE", str(course.course_code), ROLE_TEACHER)


def test_link_student_course(accounts, make_user, course):
    user = make_user()

    accounts.link_student_course(user, str(course.course_code))

    assert user.course_id == course.id
    assert user.role == ROLE_STUDENT
    with pytest.raises(ConflictError):
        accounts.link_student_course(user, str(course.course_code))


def test_admin_approves_and_user_is_notified(accounts, db, admin, make_user, course, notifier):
    user = make_user(username="Joana")
    accounts.request_professional(user, "UFPE", str(course.course_code), ROLE_COORDINATOR)

    (pending,) = accounts.list_pending(admin)
    assert pending["course"] == course.name
    accounts.approve(admin, user.id)

    db.refresh(user)
    assert user.role == ROLE_COORDINATOR
    assert user.course_id == course.id
    assert accounts.list_pending(admin) == []
    (message,) = notifier.sent
    assert message["to"] == user.email
    assert "Joana" in message["html"]
    assert "Coordenador" in message["html"]


def test_coordinator_sees_only_teachers_of_own_course(accounts, coordinator, make_user, course):
    teacher_user = make_user()
    coordinator_user = make_user()
    accounts.request_professional(teacher_user, "UFPE", str(course.course_code), ROLE_TEACHER)
    accounts.request_professional(coordinator_user, "UFPE", str(course.course_code), ROLE_COORDINATOR)

    visible = [item["id"] for item in accounts.list_pending(coordinator)]

    assert visible == [teacher_user.id]
    with pytest.raises(ForbiddenError):
        accounts.approve(coordinator, coordinator_user.id)


def test_reject_deletes_request_and_notifies(accounts, db, admin, make_user, course, notifier):
    user = make_user()
    accounts.request_professional(user, "UFPE", str(course.course_code), ROLE_TEACHER)

    accounts.reject(admin, user.id)

    assert db.query(ProfessionalRequestModel).count() == 0
    assert notifier.sent[0]["subject"] == "Evolvere - Conta não aprovada"
    with pytest.raises(NotFoundError):
        accounts.reject(admin, user.id)


def test_students_cannot_list_requests(accounts, student):
    with pytest.raises(ForbiddenError):
        accounts.list_pending(student)


# --- teachers and dashboard ---


def _approved_teacher(accounts, admin, make_user, course, username=None):
    user = make_user(username=username)
    accounts.request_professional(user, "UFPE", str(course.course_code), ROLE_TEACHER)
    accounts.approve(admin, user.id)
    return user


def test_kpis_for_admin_and_coordinator(accounts, admin, coordinator, make_user, course, subject):
    _approved_teacher(accounts, admin, make_user, course)
    accounts.request_professional(make_user(), "UFPE", str(course.course_code), ROLE_TEACHER)
    accounts.request_professional(make_user(), "UFPE", str(course.course_code), ROLE_COORDINATOR)

    assert accounts.get_kpis(admin) == {"teachers": 1, "subjects": 1, "requests": 2}
    assert accounts.get_kpis(coordinator) == {"teachers": 1, "subjects": 1, "requests": 1}
    unlinked = make_user(role=ROLE_COORDINATOR)
    assert accounts.get_kpis(unlinked) == {"teachers": 0, "subjects": 0, "requests": 0}


def test_list_teachers_with_subjects(accounts, db, admin, coordinator, make_user, course):
    teacher_user = _approved_teacher(accounts, admin, make_user, course, username="Carlos")
    SubjectManager(db).create_subject("Algoritmos", teacher_user.id, course.id)

    (listed,) = accounts.list_teachers(coordinator)

    assert listed["id"] == teacher_user.id
    assert listed["course"] == course.name
    assert listed["subjects"] == ["Algoritmos"]


def test_remove_teacher(accounts, db, admin, coordinator, make_user, course, student):
    teacher_user = _approved_teacher(accounts, admin, make_user, course)
    teacher_id = teacher_user.id
    subjects = SubjectManager(db)
    taught = subjects.create_subject("Algoritmos", teacher_id, course.id)

    with pytest.raises(ConflictError):
        accounts.remove_teacher(coordinator, teacher_id)
    subjects.delete_subject(taught.id)
    with pytest.raises(ForbiddenError):
        accounts.remove_teacher(student, teacher_id)

    accounts.remove_teacher(coordinator, teacher_id)

    db.expire_all()
    assert db.get(UserModel, teacher_id) is None
    assert db.query(ProfessionalRequestModel).count() == 0
    with pytest.raises(NotFoundError):
        accounts.remove_teacher(admin, teacher_id)


# --- students and photos ---


def test_list_and_delete_students(users, db, make_user, student, teacher, course):
    unlinked = make_user(role=ROLE_STUDENT)

    assert [s.id for s in users.list_students(course_id=course.id)] == [student.id]
    assert {s.id for s in users.list_students()} == {student.id, unlinked.id}
    with pytest.raises(NotFoundError):
        users.delete_student(unlinked.id, course_id=course.id)
    with pytest.raises(NotFoundError):
        users.delete_student(teacher.id)

    student_id = student.id
    users.delete_student(student_id, course_id=course.id)

    db.expire_all()
    assert db.get(UserModel, student_id) is None


def test_photo_replace_and_remove(db, tmp_path, student):
    users = UserManager(db, FileStorage(tmp_path))

    with pytest.raises(ValidationError):
        users.set_photo(student.id, b"%PDF-1.4", "foto.pdf", "application/pdf")
    first = users.set_photo(student.id, b"\x89PNG primeira", "foto.png", "image/png").photo
    second = users.set_photo(student.id, b"\xff\xd8 segunda", "foto.jpg", "image/jpeg").photo

    assert second.startswith("photos/")
    assert not (tmp_path / first).exists()
    assert users.get_photo(student.id).read_bytes() == b"\xff\xd8 segunda"

    users.remove_photo(student.id)

    assert student.photo is None
    assert not (tmp_path / second).exists()
    with pytest.raises(NotFoundError):
        users.get_photo(student.id)

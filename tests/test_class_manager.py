import re
import threading
from datetime import timedelta

import pytest

from core.exceptions import (
    AlreadyEnrolledError,
    ClassFullError,
    InviteExpiredError,
    InviteNotFoundError,
    NotFoundError,
    UseLimitReachedError,
    ValidationError,
)
from models.class_invite import INVITE_ACTIVE, INVITE_EXHAUSTED, INVITE_EXPIRED
from models.class_student import ClassStudentModel
from models.user import ROLE_STUDENT, ROLE_TEACHER
from schemas.class_schema import CreateInviteRequest
from utils.class_manager import ClassManager
from utils.clock import utcnow
from utils.subject_manager import SubjectManager


@pytest.fixture
def manager(db):
    return ClassManager(db)


@pytest.fixture
def make_student(make_user, course):
    def factory():
        return make_user(role=ROLE_STUDENT, course_id=course.id)

    return factory


def _enrolled(db, class_id):
    return db.query(ClassStudentModel).filter(ClassStudentModel.class_id == class_id).count()


def test_create_class_takes_course_from_subject(manager, subject):
    model = manager.create_class(" Turma B ", "2024.2", 40, subject.id)

    assert model.name == "Turma B"
    assert model.course_id == subject.course_valid_id


def test_create_class_unknown_subject(manager):
    with pytest.raises(NotFoundError):
        manager.create_class("Turma", "2024.1", 10, 999)


def test_update_subject_name_and_teacher(db, subject, make_user, course):
    subjects = SubjectManager(db)
    substitute = make_user(role=ROLE_TEACHER, course_id=course.id)

    updated = subjects.update_subject(
        subject.id, name=" Estruturas de Dados II ", professional_id=substitute.id
    )

    assert updated.name == "Estruturas de Dados II"
    assert updated.professional_id == substitute.id
    assert subjects.count_subjects(course_id=course.id) == 1
    with pytest.raises(ValidationError):
        subjects.update_subject(subject.id, professional_id=make_user(role=ROLE_STUDENT).id)
    with pytest.raises(NotFoundError):
        subjects.update_subject(999, name="Cálculo")


def test_create_invite_defaults_to_unlimited(manager, klass):
    invite = manager.create_invite(klass.id)

    assert re.match(r"^[0-9A-F]{3}-[0-9A-F]{3}$", invite.code)
    assert invite.expires_at is None
    assert invite.max_uses is None
    assert invite.use_count == 0
    assert invite.state(utcnow()) == INVITE_ACTIVE


def test_create_invite_with_limits(manager, klass):
    before = utcnow()
    invite = manager.create_invite(klass.id, expires_in_minutes=60, max_uses=5)

    assert invite.max_uses == 5
    assert before + timedelta(minutes=59) < invite.expires_at <= utcnow() + timedelta(minutes=60)


def test_create_invite_unknown_class(manager):
    with pytest.raises(NotFoundError):
        manager.create_invite(999)


def test_invite_request_normalises_legacy_zero_values():
    req = CreateInviteRequest(expires_in_minutes=0, max_uses=0)

    assert req.expires_in_minutes is None
    assert req.max_uses is None


def test_invite_request_rejects_negative_max_uses():
    with pytest.raises(ValueError):
        CreateInviteRequest(max_uses=-1)


def test_redeem_enrolls_student(manager, klass, student, course):
    invite = manager.create_invite(klass.id, max_uses=2)

    result = manager.redeem(invite.code.lower(), student.id)

    assert result.class_id == klass.id
    assert result.class_name == "Turma A"
    assert result.course == course.name
    assert manager.is_enrolled(klass.id, student.id)
    assert manager.get_invite(invite.code).use_count == 1


def test_redeem_unknown_code(manager, student):
    with pytest.raises(InviteNotFoundError):
        manager.redeem("000-000", student.id)


def test_double_redeem_is_already_enrolled(manager, db, klass, student):
    invite = manager.create_invite(klass.id)
    manager.redeem(invite.code, student.id)

    with pytest.raises(AlreadyEnrolledError):
        manager.redeem(invite.code, student.id)
    assert _enrolled(db, klass.id) == 1


def test_already_enrolled_wins_over_exhausted_invite(manager, klass, student):
    invite = manager.create_invite(klass.id, max_uses=1)
    manager.redeem(invite.code, student.id)

    with pytest.raises(AlreadyEnrolledError):
        manager.redeem(invite.code, student.id)


def test_expired_invite_is_rejected(manager, db, klass, student):
    invite = manager.create_invite(klass.id, expires_in_minutes=60, max_uses=10)
    invite.expires_at = utcnow() - timedelta(seconds=1)
    db.commit()

    with pytest.raises(InviteExpiredError):
        manager.redeem(invite.code, student.id)
    assert invite.state(utcnow()) == INVITE_EXPIRED
    assert _enrolled(db, klass.id) == 0


def test_class_full(manager, db, subject, make_student):
    small = manager.create_class("Turma Pequena", "2024.1", 1, subject.id)
    invite = manager.create_invite(small.id)
    manager.redeem(invite.code, make_student().id)

    with pytest.raises(ClassFullError):
        manager.redeem(invite.code, make_student().id)
    assert _enrolled(db, small.id) == 1


def test_five_uses_scenario(manager, db, klass, make_student):
    invite = manager.create_invite(klass.id, expires_in_minutes=60, max_uses=5)

    for _ in range(5):
        manager.redeem(invite.code, make_student().id)

    with pytest.raises(UseLimitReachedError):
        manager.redeem(invite.code, make_student().id)
    assert _enrolled(db, klass.id) == 5
    db.refresh(invite)
    assert invite.use_count == 5
    assert invite.state(utcnow()) == INVITE_EXHAUSTED


def test_concurrent_redeem_admits_one(session_factory, db, klass, make_student):
    invite = ClassManager(db).create_invite(klass.id, max_uses=1)
    students = [make_student().id for _ in range(4)]
    code = invite.code
    barrier = threading.Barrier(len(students))
    outcomes = []
    lock = threading.Lock()

    def redeem(student_id):
        session = session_factory()
        try:
            barrier.wait()
            ClassManager(session).redeem(code, student_id)
            outcome = "ok"
        except UseLimitReachedError:
            outcome = "limit"
        finally:
            session.close()
        with lock:
            outcomes.append(outcome)

    threads = [threading.Thread(target=redeem, args=(sid,)) for sid in students]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert outcomes.count("ok") == 1
    assert outcomes.count("limit") == len(students) - 1
    db.expire_all()
    assert _enrolled(db, klass.id) == 1


def test_concurrent_redeem_respects_capacity(session_factory, db, subject, make_student):
    manager = ClassManager(db)
    small = manager.create_class("Turma Pequena", "2024.1", 2, subject.id)
    class_id = small.id
    invite = manager.create_invite(class_id)
    code = invite.code
    students = [make_student().id for _ in range(6)]
    barrier = threading.Barrier(len(students))
    outcomes = []
    lock = threading.Lock()

    def redeem(student_id):
        session = session_factory()
        try:
            barrier.wait()
            ClassManager(session).redeem(code, student_id)
            outcome = "ok"
        except ClassFullError:
            outcome = "full"
        finally:
            session.close()
        with lock:
            outcomes.append(outcome)

    threads = [threading.Thread(target=redeem, args=(sid,)) for sid in students]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert outcomes.count("ok") == 2
    assert outcomes.count("full") == len(students) - 2
    db.expire_all()
    assert _enrolled(db, class_id) == 2
    assert manager.get_invite(code).use_count == 2


def test_list_and_delete_invites(manager, klass):
    first = manager.create_invite(klass.id)
    second = manager.create_invite(klass.id, max_uses=3)

    codes = {invite.code for invite in manager.list_invites(klass.id)}
    assert codes == {first.code, second.code}

    manager.delete_invite(klass.id, first.code)
    assert [invite.code for invite in manager.list_invites(klass.id)] == [second.code]


def test_delete_invite_of_other_class(manager, subject, klass):
    other = manager.create_class("Turma C", "2024.1", 10, subject.id)
    invite = manager.create_invite(other.id)

    with pytest.raises(InviteNotFoundError):
        manager.delete_invite(klass.id, invite.code)


def test_roster_operations(manager, klass, make_student):
    invite = manager.create_invite(klass.id)
    first, second = make_student(), make_student()
    manager.redeem(invite.code, first.id)
    manager.redeem(invite.code, second.id)

    (model, count), = manager.list_classes_for_subject(klass.subject_id)
    assert model.id == klass.id
    assert count == 2
    assert [c.id for c in manager.list_classes_for_student(first.id)] == [klass.id]

    manager.remove_student(klass.id, first.id)
    assert [s.id for s in manager.list_students(klass.id)] == [second.id]
    with pytest.raises(NotFoundError):
        manager.remove_student(klass.id, first.id)


def test_delete_class_removes_roster_and_invites(manager, db, klass, student):
    class_id = klass.id
    code = manager.create_invite(class_id).code
    manager.redeem(code, student.id)

    manager.delete_class(class_id)

    assert _enrolled(db, class_id) == 0
    with pytest.raises(InviteNotFoundError):
        manager.get_invite(code)

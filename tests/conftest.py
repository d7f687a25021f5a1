"""Shared fixtures: a fresh SQLite database per test and seeded users."""

import os
import tempfile
from datetime import timedelta

# Uploads land in a throwaway directory; must be set before config is imported.
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="evolvere-uploads-"))
os.environ.setdefault("SMTP_USER", "")
os.environ.setdefault("SESSION_COOKIE_SECURE", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from app import app
from config import SESSION_COOKIE_NAME
from core.database import build_engine, get_db
from core.dependencies import get_notifier
from models.base import Base
from models.class_model import ClassModel
from models.course import CourseModel
from models.subject import SubjectModel
from models.user import (
    ROLE_ADMIN,
    ROLE_COORDINATOR,
    ROLE_STUDENT,
    ROLE_TEACHER,
    UserModel,
)
from utils.clock import utcnow
from utils.notifier import Notifier
from utils.session_manager import SessionManager
from utils.user_manager import UserManager

PASSWORD = "segredo123"


class RecordingNotifier(Notifier):
    """Notifier that keeps rendered messages instead of sending them."""

    def __init__(self):
        self.sent = []

    def send(self, to, subject, html):
        self.sent.append({"to": to, "subject": subject, "html": html})
        return True


@pytest.fixture(scope="session")
def password_hash():
    return UserManager.hash_password(PASSWORD)


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def course(db):
    model = CourseModel(
        code_ies=572,
        acronym_ies="UFPE",
        name_ies="Universidade Federal de Pernambuco",
        situation="Em Atividade",
        course_code=12345,
        name="Ciência da Computação",
        degree="Bacharelado",
        city="Recife",
        uf="PE",
    )
    db.add(model)
    db.commit()
    return model


@pytest.fixture
def make_user(db, password_hash):
    counter = {"value": 0}

    def factory(role=None, course_id=None, username=None, registration=None):
        counter["value"] += 1
        number = counter["value"]
        model = UserModel(
            username=username or f"usuario{number}",
            email=f"usuario{number}@example.com",
            password_hash=password_hash,
            registration=registration or f"{10000000 + number}",
            role=role,
            course_id=course_id,
        )
        db.add(model)
        db.commit()
        return model

    return factory


@pytest.fixture
def admin(make_user):
    return make_user(role=ROLE_ADMIN, username="admin", registration="admin")


@pytest.fixture
def coordinator(make_user, course):
    return make_user(role=ROLE_COORDINATOR, course_id=course.id, username="coordenadora")


@pytest.fixture
def teacher(make_user, course):
    return make_user(role=ROLE_TEACHER, course_id=course.id, username="professor")


@pytest.fixture
def student(make_user, course):
    return make_user(role=ROLE_STUDENT, course_id=course.id, username="aluna")


@pytest.fixture
def subject(db, teacher, course):
    model = SubjectModel(
        name="Estruturas de Dados", professional_id=teacher.id, course_valid_id=course.id
    )
    db.add(model)
    db.commit()
    return model


@pytest.fixture
def klass(db, subject):
    model = ClassModel(
        name="Turma A",
        period="2024.1",
        capacity=30,
        subject_id=subject.id,
        course_id=subject.course_valid_id,
    )
    db.add(model)
    db.commit()
    return model


@pytest.fixture
def future():
    """Naive UTC datetime ``days`` ahead of now."""

    def factory(days=7, hours=0):
        return utcnow() + timedelta(days=days, hours=hours)

    return factory


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def client(session_factory, notifier):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def login_as(client, db):
    """Open a session for ``user`` and attach its cookie to the client."""

    def login(user):
        session = SessionManager(db).create_session(user.id)
        client.cookies.set(SESSION_COOKIE_NAME, session.session_id)
        return client

    return login

import pytest

from config import MAX_UPLOAD_SIZE
from core.exceptions import ForbiddenError, NotFoundError, ValidationError
from models.class_model import ClassModel
from models.material import ORIGIN_CLASS, ORIGIN_SUBJECT
from utils.file_storage import FileStorage
from utils.material_manager import MaterialManager

PDF = b"%PDF-1.4 conteudo de teste"


@pytest.fixture
def storage(tmp_path):
    return FileStorage(tmp_path / "uploads")


@pytest.fixture
def manager(db, storage):
    return MaterialManager(db, storage)


def test_upload_subject_material(manager, storage, teacher, subject):
    model = manager.upload(
        teacher, "Apostila", subject.id, PDF, "apostila.pdf", "application/pdf"
    )

    assert model.type == "PDF"
    assert model.origin == ORIGIN_SUBJECT
    assert model.filename == "apostila.pdf"
    assert model.archive.startswith(f"{subject.id}/")
    assert storage.resolve(model.archive).read_bytes() == PDF


def test_upload_class_material(manager, teacher, subject, klass):
    model = manager.upload(
        teacher, "Slides", subject.id, b"slides", "aula.txt", "text/plain", class_id=klass.id
    )

    assert model.origin == ORIGIN_CLASS
    assert model.class_id == klass.id


@pytest.mark.parametrize(
    "content, content_type",
    [
        (b"", "application/pdf"),
        (b"x" * (MAX_UPLOAD_SIZE + 1), "application/pdf"),
        (b"MZ", "application/x-msdownload"),
    ],
)
def test_upload_rejects_bad_files(manager, teacher, subject, content, content_type):
    with pytest.raises(ValidationError):
        manager.upload(teacher, "Arquivo", subject.id, content, "arquivo.bin", content_type)


def test_list_materials(manager, db, teacher, subject, klass):
    other_class = ClassModel(
        name="Turma B", period="2024.1", capacity=10, subject_id=subject.id, course_id=klass.course_id
    )
    db.add(other_class)
    db.commit()
    general = manager.upload(teacher, "Geral", subject.id, PDF, "geral.pdf", "application/pdf")
    own = manager.upload(
        teacher, "Turma A", subject.id, PDF, "a.pdf", "application/pdf", class_id=klass.id
    )
    manager.upload(
        teacher, "Turma B", subject.id, PDF, "b.pdf", "application/pdf", class_id=other_class.id
    )

    assert len(manager.list_for_subject(subject.id)) == 3
    assert {m.id for m in manager.list_for_class(klass.id)} == {general.id, own.id}


def test_delete_material_removes_file(manager, storage, teacher, student, subject):
    model = manager.upload(teacher, "Apostila", subject.id, PDF, "apostila.pdf", "application/pdf")
    archive = model.archive
    material_id = model.id

    with pytest.raises(ForbiddenError):
        manager.delete(material_id, student)
    manager.delete(material_id, teacher)

    with pytest.raises(NotFoundError):
        manager.get_material(material_id)
    with pytest.raises(NotFoundError):
        storage.resolve(archive)


def test_storage_refuses_paths_outside_root(storage):
    with pytest.raises(NotFoundError):
        storage.resolve("../segredo.txt")

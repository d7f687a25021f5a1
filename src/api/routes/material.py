"""Course material routes."""

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import FileResponse

from core.dependencies import CurrentUserDep, MaterialManagerDep, require_roles
from models.user import ROLE_ADMIN, ROLE_COORDINATOR, ROLE_TEACHER, UserModel
from schemas.material import MaterialInfo

router = APIRouter(prefix="/api/materials", tags=["Materials"])

STAFF_ROLES = (ROLE_ADMIN, ROLE_COORDINATOR, ROLE_TEACHER)


@router.post("", response_model=MaterialInfo, status_code=201)
def upload_material(
    material_manager: MaterialManagerDep,
    title: str = Form(...),
    subject_id: int = Form(...),
    description: Optional[str] = Form(None),
    class_id: Optional[int] = Form(None),
    file: UploadFile = File(...),
    current_user: UserModel = Depends(require_roles(*STAFF_ROLES)),
) -> MaterialInfo:
    """Upload a material for a subject, or for one class of it.

    The file is read into memory and checked against the size cap and the
    MIME allow-list before it is written to disk.
    """
    model = material_manager.upload(
        current_user,
        title=title,
        subject_id=subject_id,
        content=file.file.read(),
        filename=file.filename,
        content_type=file.content_type,
        description=description,
        class_id=class_id,
    )
    return MaterialInfo.model_validate(model)


@router.get("/subject/{subject_id}", response_model=List[MaterialInfo])
def list_subject_materials(
    subject_id: int,
    material_manager: MaterialManagerDep,
    current_user: CurrentUserDep,
) -> List[MaterialInfo]:
    return [MaterialInfo.model_validate(m) for m in material_manager.list_for_subject(subject_id)]


@router.get("/class/{class_id}", response_model=List[MaterialInfo])
def list_class_materials(
    class_id: int,
    material_manager: MaterialManagerDep,
    current_user: CurrentUserDep,
) -> List[MaterialInfo]:
    return [MaterialInfo.model_validate(m) for m in material_manager.list_for_class(class_id)]


@router.get("/{material_id}/download")
def download_material(
    material_id: int,
    material_manager: MaterialManagerDep,
    current_user: CurrentUserDep,
) -> FileResponse:
    model, path = material_manager.file_path(material_id)
    return FileResponse(path, media_type=model.mime_type, filename=model.filename)


@router.delete("/{material_id}")
def delete_material(
    material_id: int,
    material_manager: MaterialManagerDep,
    current_user: UserModel = Depends(require_roles(*STAFF_ROLES)),
) -> dict:
    material_manager.delete(material_id, current_user)
    return {"success": True, "message": "Material removido."}

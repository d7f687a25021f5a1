"""Enrollment routes."""

from fastapi import APIRouter

from core.dependencies import ClassManagerDep, StudentDep
from schemas.class_schema import EnrollmentResult, JoinWithCodeRequest

router = APIRouter(prefix="/api/enrollments", tags=["Enrollment"])


@router.post("/join-with-code", response_model=EnrollmentResult, response_model_by_alias=True)
def join_with_code(
    req: JoinWithCodeRequest,
    class_manager: ClassManagerDep,
    current_user: StudentDep,
) -> EnrollmentResult:
    """Join a class using an invite code.

    Errors map to 404 (unknown code), 410 (expired) and 409 (already
    enrolled, use limit reached or class full). Staff and users with a
    pending professional request get 403.
    """
    result = class_manager.redeem(req.code, current_user.id)
    return EnrollmentResult(
        class_id=result.class_id,
        class_name=result.class_name,
        course=result.course,
    )

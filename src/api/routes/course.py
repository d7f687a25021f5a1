"""Course catalogue routes."""

from typing import List, Optional

from fastapi import APIRouter

from core.dependencies import CourseManagerDep, CurrentUserDep
from schemas.course import CourseInfo

router = APIRouter(prefix="/api/courses", tags=["Courses"])


@router.get("", response_model=List[CourseInfo])
def list_courses(
    course_manager: CourseManagerDep,
    current_user: CurrentUserDep,
    search: Optional[str] = None,
) -> List[CourseInfo]:
    return [CourseInfo.model_validate(model) for model in course_manager.list_courses(search)]


@router.get("/{course_code}", response_model=CourseInfo)
def get_course(
    course_code: str,
    course_manager: CourseManagerDep,
    current_user: CurrentUserDep,
) -> CourseInfo:
    return CourseInfo.model_validate(course_manager.get_by_code(course_code))

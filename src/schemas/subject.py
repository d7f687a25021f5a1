from typing import Optional

from pydantic import BaseModel, Field


class CreateSubjectRequest(BaseModel):
    name: str = Field(min_length=2, max_length=255)
    professional_id: int = Field(gt=0)
    course_valid_id: Optional[int] = Field(default=None, gt=0)


class SubjectInfo(BaseModel):
    id: int
    name: str
    professional_id: int
    teacher_name: Optional[str] = None
    course_valid_id: int
    course_name: Optional[str] = None


class UpdateSubjectRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=255)
    professional_id: Optional[int] = Field(default=None, gt=0)

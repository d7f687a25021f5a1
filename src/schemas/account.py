"""Professional account request schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class StudentCourseRequest(BaseModel):
    access_code: str = Field(min_length=1, max_length=50)


class ProfessionalRequestInfo(BaseModel):
    id: int
    username: str
    email: str
    institution: str
    access_code: str
    role: int
    role_name: str
    course: Optional[str] = None
    flag: Optional[str] = None
    diploma: Optional[str] = None
    approved: bool
    created_at: Optional[datetime] = None


class AccountKpis(BaseModel):
    teachers: int
    subjects: int
    requests: int


class TeacherInfo(BaseModel):
    id: int
    username: str
    email: str
    registration: Optional[str] = None
    institution: str
    course: Optional[str] = None
    subjects: List[str] = []

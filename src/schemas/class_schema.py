"""Class, invite and enrollment schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CreateClassRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    period: str = Field(min_length=1, max_length=20)
    capacity: int = Field(gt=0)
    subject_id: int = Field(gt=0)


class ClassInfo(BaseModel):
    id: int
    name: str
    period: str
    capacity: int
    subject_id: int
    subject_name: Optional[str] = None
    course_id: int
    student_count: int = 0


class ClassStudentInfo(BaseModel):
    id: int
    username: str
    registration: Optional[str] = None


class ClassDetail(ClassInfo):
    students: List[ClassStudentInfo] = []


class CreateInviteRequest(BaseModel):
    """Invite options.

    ``expires_in_minutes`` of None means the invite never expires and
    ``max_uses`` of None means unlimited uses. Older clients send 0 for
    either; both are normalised to None.
    """

    expires_in_minutes: Optional[int] = None
    max_uses: Optional[int] = None

    @field_validator("expires_in_minutes")
    @classmethod
    def normalise_ttl(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value <= 0:
            return None
        return value

    @field_validator("max_uses")
    @classmethod
    def normalise_max_uses(cls, value: Optional[int]) -> Optional[int]:
        if value is None or value == 0:
            return None
        if value < 0:
            raise ValueError("max_uses não pode ser negativo.")
        return value


class InviteInfo(BaseModel):
    code: str
    class_id: int
    expires_at: Optional[datetime] = None
    max_uses: Optional[int] = None
    use_count: int = 0
    remaining_uses: Optional[int] = None
    state: str


class InviteListResponse(BaseModel):
    invites: List[InviteInfo]


class JoinWithCodeRequest(BaseModel):
    code: str = Field(min_length=1, max_length=20)


class EnrollmentResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    class_id: int = Field(alias="classId")
    class_name: str = Field(alias="className")
    course: Optional[str] = None

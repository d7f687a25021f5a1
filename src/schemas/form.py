"""Form (quiz) schema definitions."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class QuestionType(str, Enum):
    MULTIPLE_CHOICE = "multiple_choice"
    TRUE_FALSE = "true_false"
    OPEN = "open"


class OptionIn(BaseModel):
    text: str = Field(min_length=1, max_length=255)
    correct: bool = False


class QuestionIn(BaseModel):
    text: str = Field(min_length=1)
    points: float = Field(default=0, ge=0, le=999)
    type: QuestionType
    options: List[OptionIn] = []

    @model_validator(mode="after")
    def check_options(self) -> "QuestionIn":
        if self.type == QuestionType.OPEN:
            if self.options:
                raise ValueError("Questões abertas não possuem opções.")
            return self
        if len(self.options) < 2:
            raise ValueError("Questões objetivas precisam de ao menos duas opções.")
        if not any(option.correct for option in self.options):
            raise ValueError("Questões objetivas precisam de uma opção correta.")
        return self


class PublishFormRequest(BaseModel):
    title: str = Field(min_length=3, max_length=150)
    description: Optional[str] = Field(default=None, max_length=255)
    created_by: Optional[int] = Field(default=None, gt=0)
    subject_id: int = Field(gt=0)
    class_id: Optional[int] = Field(default=None, gt=0)
    deadline: datetime
    total_duration: int = Field(default=0, ge=0)
    questions: List[QuestionIn] = Field(min_length=1)


class OptionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    text: str
    # None when shown to students
    correct: Optional[bool] = None


class QuestionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    text: str
    points: float
    type: str
    options: List[OptionOut] = []


class FormDetail(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    created_by: int
    subject_id: int
    class_id: Optional[int] = None
    deadline: datetime
    total_duration: int = 0
    total_points: float = 0
    status: int
    questions: List[QuestionOut] = []


class FormSummary(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    subject_id: int
    class_id: Optional[int] = None
    deadline: datetime
    status: int


class ClassFormsResponse(BaseModel):
    class_name: str
    forms: List[FormSummary]


class PublishFormResponse(BaseModel):
    success: bool = True
    message: str
    form_id: int


class PendingActivity(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    title: str
    description: Optional[str] = None
    deadline: datetime
    discipline_name: Optional[str] = Field(default=None, alias="disciplineName")
    days_remaining: int = Field(alias="daysRemaining")
    urgency_label: str = Field(alias="urgencyLabel")
    urgency_color: str = Field(alias="urgencyColor")


class PendingSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    pending_count: int = Field(alias="pendingCount")
    upcoming_activities: List[PendingActivity] = Field(alias="upcomingActivities")


class AnswerIn(BaseModel):
    question_id: int = Field(gt=0)
    option_id: Optional[int] = Field(default=None, gt=0)
    open_answer: Optional[str] = None


class SubmitAnswersRequest(BaseModel):
    form_id: int = Field(gt=0)
    answers: List[AnswerIn] = Field(min_length=1)


class FormResultInfo(BaseModel):
    form_id: int
    student_id: int
    username: Optional[str] = None
    points: float
    correct: int
    wrong: int
    pending_corrections: int = 0


class CorrectionFormInfo(BaseModel):
    form_id: int
    title: str
    status: int
    subject_id: int
    subject_name: str
    class_id: Optional[int] = None
    pending_corrections: int


class OpenResponseInfo(BaseModel):
    answer_id: int
    user_id: int
    username: str
    question_id: int
    question_text: str
    question_points: float
    open_answer: str
    corrected: bool
    form_name: str


class SaveCorrectionRequest(BaseModel):
    answer_id: int = Field(gt=0)
    comment: Optional[str] = None
    points: float = Field(default=0, ge=0)


class SaveCorrectionResponse(BaseModel):
    success: bool = True
    message: str
    form_id: int
    form_status: int
    remaining_corrections: int

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class GradeEntry(BaseModel):
    name: str
    grade: float


class StudentReport(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    overall_average: float = Field(alias="overallAverage")
    best_grade: GradeEntry = Field(alias="bestGrade")
    disciplines: List[GradeEntry]


class RecentResult(BaseModel):
    form_id: int
    title: str
    subject_name: Optional[str] = None
    points: float
    graded_at: Optional[datetime] = None

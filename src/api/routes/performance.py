"""Student performance routes."""

from typing import List

from fastapi import APIRouter

from core.dependencies import CurrentUserDep, PerformanceManagerDep
from schemas.performance import RecentResult, StudentReport
from utils.clock import as_utc

router = APIRouter(prefix="/api/performance", tags=["Performance"])


@router.get("/me", response_model=StudentReport, response_model_by_alias=True)
def get_my_report(
    performance_manager: PerformanceManagerDep,
    current_user: CurrentUserDep,
) -> StudentReport:
    """Overall average, best grade and per-subject averages of the current user."""
    return StudentReport.model_validate(performance_manager.get_student_report(current_user.id))


@router.get("/recent", response_model=List[RecentResult])
def get_recent_results(
    performance_manager: PerformanceManagerDep,
    current_user: CurrentUserDep,
    limit: int = 5,
) -> List[RecentResult]:
    results = []
    for item in performance_manager.recent_results(current_user.id, limit=max(1, min(limit, 50))):
        item["graded_at"] = as_utc(item["graded_at"])
        results.append(RecentResult(**item))
    return results

"""
Exam Result Repository

Aggregates used by the weekly study report.
"""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy import select, func, case
from sqlalchemy.ext.asyncio import AsyncSession

from trafficrules.repositories.base import BaseRepository
from trafficrules.models.exam_result import ExamResult


@dataclass
class ExamActivitySummary:
    total_exams: int
    passed_exams: int
    average_score: float


class ExamResultRepository(BaseRepository[ExamResult]):
    """Repository for ExamResult model."""

    def __init__(self, db: AsyncSession):
        super().__init__(ExamResult, db)

    async def summarize_for_user(
        self,
        user_id: UUID,
        since: datetime,
        until: datetime,
    ) -> ExamActivitySummary:
        stmt = (
            select(
                func.count(self.model.id),
                func.coalesce(func.sum(case((self.model.passed == True, 1), else_=0)), 0),
                func.coalesce(func.avg(self.model.score), 0),
            )
            .where(
                self.model.user_id == user_id,
                self.model.completed_at >= since,
                self.model.completed_at <= until,
            )
        )
        result = await self.db.execute(stmt)
        total, passed, average = result.one()
        return ExamActivitySummary(
            total_exams=int(total or 0),
            passed_exams=int(passed or 0),
            average_score=float(average or 0),
        )

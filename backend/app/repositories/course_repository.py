# backend/app/repositories/course_repository.py
"""
Course data access: courses, chapters, lessons, enrollments and progress.
"""

from datetime import datetime
from typing import Dict, List, Optional, Sequence

from sqlalchemy import case, func
from sqlalchemy.orm import Session, joinedload, selectinload

from ..core.enums import EnrollmentStatus
from ..models.course import Course, CourseChapter, CourseLesson, Enrollment, LessonProgress
from .base_repository import BaseRepository


class CourseRepository(BaseRepository[Course]):
    def __init__(self, db: Session):
        super().__init__(db, Course)

    def _apply_eager_loading(self, query):  # type: ignore[no-untyped-def]
        return query.options(selectinload(Course.chapters).selectinload(CourseChapter.lessons))

    def list_for_coach(self, coach_id: str, *, published_only: bool = False) -> List[Course]:
        query = self.db.query(Course).filter(Course.coach_id == coach_id)
        if published_only:
            query = query.filter(Course.is_published.is_(True))
        return self._execute_query(query.order_by(Course.created_at.desc()))

    def list_published_for_coaches(self, coach_ids: Sequence[str]) -> List[Course]:
        if not coach_ids:
            return []
        query = (
            self.db.query(Course)
            .filter(Course.coach_id.in_(list(coach_ids)), Course.is_published.is_(True))
            .order_by(Course.published_at.desc())
        )
        return self._execute_query(query)

    def count_lessons(self, course_id: str) -> int:
        query = (
            self.db.query(func.count(CourseLesson.id))
            .join(CourseChapter, CourseChapter.id == CourseLesson.chapter_id)
            .filter(CourseChapter.course_id == course_id)
        )
        return int(self._execute_scalar(query) or 0)


class CourseChapterRepository(BaseRepository[CourseChapter]):
    def __init__(self, db: Session):
        super().__init__(db, CourseChapter)

    def _apply_eager_loading(self, query):  # type: ignore[no-untyped-def]
        return query.options(joinedload(CourseChapter.course))

    def list_for_course(self, course_id: str) -> List[CourseChapter]:
        return self._execute_query(
            self.db.query(CourseChapter)
            .filter(CourseChapter.course_id == course_id)
            .order_by(CourseChapter.order_index.asc())
        )

    def next_order_index(self, course_id: str) -> int:
        current = self._execute_scalar(
            self.db.query(func.max(CourseChapter.order_index)).filter(CourseChapter.course_id == course_id)
        )
        return 0 if current is None else int(current) + 1


class CourseLessonRepository(BaseRepository[CourseLesson]):
    def __init__(self, db: Session):
        super().__init__(db, CourseLesson)

    def _apply_eager_loading(self, query):  # type: ignore[no-untyped-def]
        return query.options(joinedload(CourseLesson.chapter).joinedload(CourseChapter.course))

    def list_for_chapter(self, chapter_id: str) -> List[CourseLesson]:
        return self._execute_query(
            self.db.query(CourseLesson)
            .filter(CourseLesson.chapter_id == chapter_id)
            .order_by(CourseLesson.order_index.asc())
        )

    def next_order_index(self, chapter_id: str) -> int:
        current = self._execute_scalar(
            self.db.query(func.max(CourseLesson.order_index)).filter(CourseLesson.chapter_id == chapter_id)
        )
        return 0 if current is None else int(current) + 1


class EnrollmentRepository(BaseRepository[Enrollment]):
    def __init__(self, db: Session):
        super().__init__(db, Enrollment)

    def _apply_eager_loading(self, query):  # type: ignore[no-untyped-def]
        return query.options(joinedload(Enrollment.course), selectinload(Enrollment.lesson_progress))

    def get_for_client(self, course_id: str, client_id: str) -> Optional[Enrollment]:
        return (
            self._apply_eager_loading(self.db.query(Enrollment))
            .filter(Enrollment.course_id == course_id, Enrollment.client_id == client_id)
            .first()
        )

    def list_for_client(self, client_id: str) -> List[Enrollment]:
        return self._execute_query(
            self._apply_eager_loading(self.db.query(Enrollment))
            .filter(Enrollment.client_id == client_id)
            .order_by(Enrollment.enrolled_at.desc())
        )

    def list_for_course(self, course_id: str) -> List[Enrollment]:
        return self._execute_query(
            self.db.query(Enrollment)
            .options(joinedload(Enrollment.client))
            .filter(Enrollment.course_id == course_id)
            .order_by(Enrollment.enrolled_at.desc())
        )

    def course_stats(self, course_id: str) -> Dict[str, float]:
        total, completed, avg_progress = self.db.query(
            func.count(Enrollment.id),
            func.coalesce(func.sum(case((Enrollment.status == EnrollmentStatus.COMPLETED.value, 1), else_=0)), 0),
            func.coalesce(func.avg(Enrollment.progress_percentage), 0),
        ).filter(Enrollment.course_id == course_id).one()
        return {"total": int(total or 0), "completed": int(completed or 0), "average_progress": float(avg_progress or 0)}

    def coach_enrollment_counts(self, coach_id: str, since: Optional[datetime] = None) -> Dict[str, int]:
        query = (
            self.db.query(Enrollment.status, func.count(Enrollment.id))
            .join(Course, Course.id == Enrollment.course_id)
            .filter(Course.coach_id == coach_id)
        )
        if since is not None:
            query = query.filter(Enrollment.enrolled_at >= since)
        return {status: int(count) for status, count in self._execute_query(query.group_by(Enrollment.status))}


class LessonProgressRepository(BaseRepository[LessonProgress]):
    def __init__(self, db: Session):
        super().__init__(db, LessonProgress)

    def get_for_lesson(self, enrollment_id: str, lesson_id: str) -> Optional[LessonProgress]:
        return self.find_one_by(enrollment_id=enrollment_id, lesson_id=lesson_id)

    def completed_lesson_ids(self, enrollment_id: str) -> set[str]:
        rows = self.db.query(LessonProgress.lesson_id).filter(LessonProgress.enrollment_id == enrollment_id).all()
        return {row[0] for row in rows}

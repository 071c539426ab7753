# backend/app/services/course_service.py
"""
Course Service for CoachDesk.

Coaches build courses out of ordered chapters and lessons, decide pricing
and drip release, and publish them. Clients of the coach enroll, read the
curriculum and complete lessons.

Drip rule: with drip enabled a lesson releases ``drip_delay`` days after the
client enrolled. With drip disabled every lesson is available immediately.
"""

from datetime import datetime, timedelta
import logging
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from ..core.enums import DripInterval, EnrollmentStatus, PricingType, UserType
from ..core.exceptions import (
    BusinessRuleException,
    ConflictException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from ..events.course_events import EnrollmentCompleted, EnrollmentCreated
from ..models.course import Course, CourseChapter, CourseLesson, Enrollment
from ..models.types import utcnow
from ..models.user import User
from ..repositories.factory import RepositoryFactory
from ..schemas.course import (
    ChapterCreate,
    ChapterUpdate,
    CourseCreate,
    CourseUpdate,
    DripSettingsUpdate,
    LessonCreate,
    LessonDripUpdate,
    LessonUpdate,
    PaywallUpdate,
)
from .base import BaseService

logger = logging.getLogger(__name__)


def lesson_release_at(course: Course, lesson: CourseLesson, enrolled_at: datetime) -> Optional[datetime]:
    """Release moment for an enrollment, or None when drip is off."""
    if not course.is_drip_enabled:
        return None
    return enrolled_at + timedelta(days=lesson.drip_delay or 0)


def is_lesson_released(course: Course, lesson: CourseLesson, enrolled_at: datetime, now: datetime) -> bool:
    release_at = lesson_release_at(course, lesson, enrolled_at)
    return release_at is None or release_at <= now


def _check_reorder(current_ids: Sequence[str], ordered_ids: Sequence[str]) -> None:
    if len(ordered_ids) != len(set(ordered_ids)) or set(ordered_ids) != set(current_ids):
        raise ValidationException(
            "ordered_ids must list every item exactly once",
            code="INVALID_REORDER",
            details={"expected": sorted(current_ids)},
        )


class CourseService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.course_repository = RepositoryFactory.create_course_repository(db)
        self.chapter_repository = RepositoryFactory.create_chapter_repository(db)
        self.lesson_repository = RepositoryFactory.create_lesson_repository(db)
        self.enrollment_repository = RepositoryFactory.create_enrollment_repository(db)
        self.progress_repository = RepositoryFactory.create_lesson_progress_repository(db)
        self.client_coach_repository = RepositoryFactory.create_client_coach_repository(db)
        self.payment_request_repository = RepositoryFactory.create_payment_request_repository(db)

    # Lookups

    def get_course(self, course_id: str) -> Course:
        course = self.course_repository.get_by_id(course_id)
        if course is None:
            raise NotFoundException("Course not found", code="COURSE_NOT_FOUND")
        return course

    def get_coach_course(self, coach_id: str, course_id: str) -> Course:
        course = self.get_course(course_id)
        if course.coach_id != coach_id:
            raise NotFoundException("Course not found", code="COURSE_NOT_FOUND")
        return course

    def _get_coach_chapter(self, coach_id: str, chapter_id: str) -> CourseChapter:
        chapter = self.chapter_repository.get_by_id(chapter_id)
        if chapter is None or chapter.course.coach_id != coach_id:
            raise NotFoundException("Chapter not found", code="CHAPTER_NOT_FOUND")
        return chapter

    def _get_coach_lesson(self, coach_id: str, lesson_id: str) -> CourseLesson:
        lesson = self.lesson_repository.get_by_id(lesson_id)
        if lesson is None or lesson.chapter.course.coach_id != coach_id:
            raise NotFoundException("Lesson not found", code="LESSON_NOT_FOUND")
        return lesson

    # Courses

    @BaseService.measure_operation("create_course")
    def create_course(self, coach_id: str, data: CourseCreate) -> Course:
        with self.transaction():
            course = self.course_repository.create(coach_id=coach_id, **data.model_dump())
        self.log_operation("course_created", course_id=course.id, coach_id=coach_id)
        return course

    def list_coach_courses(self, coach_id: str) -> List[Course]:
        return self.course_repository.list_for_coach(coach_id)

    @BaseService.measure_operation("update_course")
    def update_course(self, coach_id: str, course_id: str, data: CourseUpdate) -> Course:
        course = self.get_coach_course(coach_id, course_id)
        with self.transaction():
            for key, value in data.model_dump(exclude_unset=True).items():
                setattr(course, key, value)
        return course

    @BaseService.measure_operation("delete_course")
    def delete_course(self, coach_id: str, course_id: str) -> None:
        course = self.get_coach_course(coach_id, course_id)
        if self.enrollment_repository.count(course_id=course.id):
            raise BusinessRuleException(
                "Courses with enrollments cannot be deleted; unpublish instead", code="COURSE_HAS_ENROLLMENTS"
            )
        with self.transaction():
            self.db.delete(course)

    @BaseService.measure_operation("publish_course")
    def set_published(self, coach_id: str, course_id: str, published: bool) -> Course:
        course = self.get_coach_course(coach_id, course_id)
        if published and not self.course_repository.count_lessons(course.id):
            raise BusinessRuleException("Add at least one lesson before publishing", code="COURSE_EMPTY")
        with self.transaction():
            course.is_published = published
            if published and course.published_at is None:
                course.published_at = utcnow()
        return course

    # Curriculum

    @BaseService.measure_operation("add_chapter")
    def add_chapter(self, coach_id: str, course_id: str, data: ChapterCreate) -> CourseChapter:
        course = self.get_coach_course(coach_id, course_id)
        with self.transaction():
            chapter = self.chapter_repository.create(
                course_id=course.id,
                order_index=self.chapter_repository.next_order_index(course.id),
                **data.model_dump(),
            )
        return chapter

    def update_chapter(self, coach_id: str, chapter_id: str, data: ChapterUpdate) -> CourseChapter:
        chapter = self._get_coach_chapter(coach_id, chapter_id)
        with self.transaction():
            for key, value in data.model_dump(exclude_unset=True).items():
                setattr(chapter, key, value)
        return chapter

    def delete_chapter(self, coach_id: str, chapter_id: str) -> None:
        chapter = self._get_coach_chapter(coach_id, chapter_id)
        course_id = chapter.course_id
        with self.transaction():
            self.db.delete(chapter)
            self.db.flush()
            for index, remaining in enumerate(self.chapter_repository.list_for_course(course_id)):
                remaining.order_index = index

    @BaseService.measure_operation("add_lesson")
    def add_lesson(self, coach_id: str, chapter_id: str, data: LessonCreate) -> CourseLesson:
        chapter = self._get_coach_chapter(coach_id, chapter_id)
        with self.transaction():
            lesson = self.lesson_repository.create(
                chapter_id=chapter.id,
                order_index=self.lesson_repository.next_order_index(chapter.id),
                **data.model_dump(),
            )
        return lesson

    def update_lesson(self, coach_id: str, lesson_id: str, data: LessonUpdate) -> CourseLesson:
        lesson = self._get_coach_lesson(coach_id, lesson_id)
        with self.transaction():
            for key, value in data.model_dump(exclude_unset=True).items():
                setattr(lesson, key, value)
        return lesson

    def delete_lesson(self, coach_id: str, lesson_id: str) -> None:
        lesson = self._get_coach_lesson(coach_id, lesson_id)
        chapter_id = lesson.chapter_id
        with self.transaction():
            self.db.delete(lesson)
            self.db.flush()
            for index, remaining in enumerate(self.lesson_repository.list_for_chapter(chapter_id)):
                remaining.order_index = index

    @BaseService.measure_operation("reorder_chapters")
    def reorder_chapters(self, coach_id: str, course_id: str, ordered_ids: List[str]) -> List[CourseChapter]:
        """Rewrite chapter order to 0..n-1 following ``ordered_ids``."""
        course = self.get_coach_course(coach_id, course_id)
        chapters = {chapter.id: chapter for chapter in self.chapter_repository.list_for_course(course.id)}
        _check_reorder(list(chapters), ordered_ids)
        with self.transaction():
            for index, chapter_id in enumerate(ordered_ids):
                chapters[chapter_id].order_index = index
        return [chapters[chapter_id] for chapter_id in ordered_ids]

    @BaseService.measure_operation("reorder_lessons")
    def reorder_lessons(self, coach_id: str, chapter_id: str, ordered_ids: List[str]) -> List[CourseLesson]:
        chapter = self._get_coach_chapter(coach_id, chapter_id)
        lessons = {lesson.id: lesson for lesson in self.lesson_repository.list_for_chapter(chapter.id)}
        _check_reorder(list(lessons), ordered_ids)
        with self.transaction():
            for index, lesson_id in enumerate(ordered_ids):
                lessons[lesson_id].order_index = index
        return [lessons[lesson_id] for lesson_id in ordered_ids]

    # Drip

    def get_drip_schedule(self, coach_id: str, course_id: str, enrollment_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Drip schedule for a course.

        With ``enrollment_id`` the release dates are computed for that
        enrollment (a preview of what the client sees); otherwise only the
        delays are listed.
        """
        course = self.get_coach_course(coach_id, course_id)
        enrolled_at: Optional[datetime] = None
        if enrollment_id is not None:
            enrollment = self.enrollment_repository.get_by_id(enrollment_id)
            if enrollment is None or enrollment.course_id != course.id:
                raise NotFoundException("Enrollment not found", code="ENROLLMENT_NOT_FOUND")
            enrolled_at = enrollment.enrolled_at
        now = utcnow()
        entries = []
        for lesson in course.lessons:
            release_at = lesson_release_at(course, lesson, enrolled_at) if enrolled_at else None
            entries.append(
                {
                    "lesson_id": lesson.id,
                    "chapter_id": lesson.chapter_id,
                    "title": lesson.title,
                    "drip_delay": lesson.drip_delay,
                    "release_at": release_at,
                    "is_released": not course.is_drip_enabled or (release_at is not None and release_at <= now),
                }
            )
        return {
            "course_id": course.id,
            "is_drip_enabled": course.is_drip_enabled,
            "drip_interval": course.drip_interval,
            "drip_count": course.drip_count,
            "lessons": entries,
        }

    def update_drip_settings(self, coach_id: str, course_id: str, data: DripSettingsUpdate) -> Course:
        course = self.get_coach_course(coach_id, course_id)
        with self.transaction():
            course.is_drip_enabled = data.is_drip_enabled
            if data.drip_interval is not None:
                course.drip_interval = DripInterval(data.drip_interval).value
            if data.drip_count is not None:
                course.drip_count = data.drip_count
        return course

    def update_lesson_drip_delays(self, coach_id: str, course_id: str, data: LessonDripUpdate) -> Course:
        course = self.get_coach_course(coach_id, course_id)
        lessons = {lesson.id: lesson for lesson in course.lessons}
        unknown = [item.lesson_id for item in data.lessons if item.lesson_id not in lessons]
        if unknown:
            raise ValidationException(
                "Lessons do not belong to this course", code="LESSON_NOT_IN_COURSE", details={"lesson_ids": unknown}
            )
        with self.transaction():
            for item in data.lessons:
                lessons[item.lesson_id].drip_delay = item.drip_delay
        return course

    # Paywall

    @staticmethod
    def paywall_view(course: Course) -> Dict[str, Any]:
        return {
            "course_id": course.id,
            "pricing_type": course.pricing_type,
            "price": course.price,
            "currency": course.currency,
            "allow_installments": course.allow_installments,
            "installment_count": course.installment_count,
            "is_paid": course.is_paid,
        }

    def update_paywall(self, coach_id: str, course_id: str, data: PaywallUpdate) -> Course:
        course = self.get_coach_course(coach_id, course_id)
        if data.pricing_type != PricingType.FREE and data.price <= 0:
            raise ValidationException("Paid courses need a price", code="PRICE_REQUIRED")
        if data.allow_installments and data.pricing_type != PricingType.INSTALLMENT:
            raise ValidationException("Installments need the installment pricing type", code="INVALID_INSTALLMENTS")
        with self.transaction():
            course.pricing_type = data.pricing_type.value
            course.price = 0 if data.pricing_type == PricingType.FREE else data.price
            if data.currency:
                course.currency = data.currency.upper()
            course.allow_installments = data.allow_installments
            course.installment_count = data.installment_count if data.allow_installments else None
        return course

    def course_stats(self, coach_id: str, course_id: str) -> Dict[str, Any]:
        course = self.get_coach_course(coach_id, course_id)
        stats = self.enrollment_repository.course_stats(course.id)
        total = stats["total"]
        return {
            "course_id": course.id,
            "total_enrollments": total,
            "completed_enrollments": stats["completed"],
            "completion_rate": round(stats["completed"] / total * 100, 2) if total else 0.0,
            "average_progress": round(stats["average_progress"], 2),
        }

    # Enrollment

    def list_available_courses(self, client_id: str) -> List[Course]:
        coach_ids = self.client_coach_repository.list_coach_ids_for_client(client_id)
        return self.course_repository.list_published_for_coaches(coach_ids)

    def list_enrollments(self, client_id: str) -> List[Enrollment]:
        return self.enrollment_repository.list_for_client(client_id)

    @BaseService.measure_operation("enroll")
    def enroll(self, course_id: str, actor: User, client_id: Optional[str] = None) -> Enrollment:
        """
        Enroll a client.

        Clients enroll themselves in courses of their coaches; a paid course
        needs a paid payment request first. Coaches may enroll any linked
        client in their own course without payment.

        Raises:
            ForbiddenException: Not linked, or not the course owner
            BusinessRuleException: Unpublished course or unpaid paid course
            ConflictException: Already enrolled
        """
        course = self.get_course(course_id)
        if actor.user_type == UserType.COACH.value:
            if course.coach_id != actor.id:
                raise NotFoundException("Course not found", code="COURSE_NOT_FOUND")
            if not client_id:
                raise ValidationException("client_id is required", code="CLIENT_REQUIRED")
            target_client_id = client_id
            by_coach = True
        else:
            target_client_id = actor.id
            by_coach = False

        if not course.is_published:
            raise BusinessRuleException("Course is not published", code="COURSE_NOT_PUBLISHED")
        if not self.client_coach_repository.is_linked(course.coach_id, target_client_id):
            raise ForbiddenException("Client is not linked to this coach", code="NOT_LINKED")
        if (
            course.is_paid
            and not by_coach
            and not self.payment_request_repository.has_paid_course_request(course.id, target_client_id)
        ):
            raise BusinessRuleException("This course requires payment", code="PAYMENT_REQUIRED")

        with self.transaction():
            enrollment = self._create_enrollment(course, target_client_id)
        return enrollment

    def enroll_after_payment(self, course_id: str, client_id: str) -> Enrollment:
        """Enrollment side effect of a paid course request. Caller commits."""
        course = self.get_course(course_id)
        existing = self.enrollment_repository.get_for_client(course.id, client_id)
        if existing is not None:
            return existing
        return self._create_enrollment(course, client_id)

    def _create_enrollment(self, course: Course, client_id: str) -> Enrollment:
        if self.enrollment_repository.get_for_client(course.id, client_id) is not None:
            raise ConflictException("Already enrolled in this course", code="ALREADY_ENROLLED")
        enrollment = self.enrollment_repository.create(
            course_id=course.id,
            client_id=client_id,
            status=EnrollmentStatus.ACTIVE.value,
            enrolled_at=utcnow(),
        )
        course.total_enrollments = (course.total_enrollments or 0) + 1
        self.publish_after_commit(
            EnrollmentCreated(
                enrollment_id=enrollment.id, course_id=course.id, client_id=client_id, coach_id=course.coach_id
            )
        )
        return enrollment

    def _get_client_enrollment(self, course_id: str, client_id: str) -> Enrollment:
        enrollment = self.enrollment_repository.get_for_client(course_id, client_id)
        if enrollment is None:
            raise ForbiddenException("You are not enrolled in this course", code="NOT_ENROLLED")
        return enrollment

    def get_curriculum(self, course_id: str, client_id: str) -> Dict[str, Any]:
        """Curriculum with lock state; locked lessons hide their content."""
        course = self.get_course(course_id)
        enrollment = self._get_client_enrollment(course.id, client_id)
        completed = self.progress_repository.completed_lesson_ids(enrollment.id)
        now = utcnow()
        chapters = []
        for chapter in course.chapters:
            lessons = []
            for lesson in chapter.lessons:
                release_at = lesson_release_at(course, lesson, enrollment.enrolled_at)
                locked = release_at is not None and release_at > now
                lessons.append(
                    {
                        "id": lesson.id,
                        "title": lesson.title,
                        "lesson_type": lesson.lesson_type,
                        "order_index": lesson.order_index,
                        "estimated_minutes": lesson.estimated_minutes,
                        "is_locked": locked,
                        "release_at": release_at,
                        "is_completed": lesson.id in completed,
                        "content": None if locked else lesson.content,
                        "video_url": None if locked else lesson.video_url,
                        "pdf_url": None if locked else lesson.pdf_url,
                    }
                )
            chapters.append(
                {"id": chapter.id, "title": chapter.title, "order_index": chapter.order_index, "lessons": lessons}
            )
        with self.transaction():
            enrollment.last_accessed_at = now
        return {"course_id": course.id, "title": course.title, "enrollment": enrollment, "chapters": chapters}

    @BaseService.measure_operation("complete_lesson")
    def complete_lesson(self, course_id: str, lesson_id: str, client_id: str) -> Enrollment:
        """
        Mark a released lesson done and recompute progress.

        Progress is completed lessons / total lessons x 100; reaching 100
        completes the enrollment.
        """
        course = self.get_course(course_id)
        enrollment = self._get_client_enrollment(course.id, client_id)
        if enrollment.status in (EnrollmentStatus.CANCELLED.value, EnrollmentStatus.EXPIRED.value):
            raise BusinessRuleException(f"Enrollment is {enrollment.status}", code="ENROLLMENT_INACTIVE")
        lessons = {lesson.id: lesson for lesson in course.lessons}
        lesson = lessons.get(lesson_id)
        if lesson is None:
            raise NotFoundException("Lesson not found", code="LESSON_NOT_FOUND")
        now = utcnow()
        if not is_lesson_released(course, lesson, enrollment.enrolled_at, now):
            raise BusinessRuleException(
                "Lesson is not available yet",
                code="LESSON_LOCKED",
                details={"release_at": lesson_release_at(course, lesson, enrollment.enrolled_at).isoformat()},
            )

        with self.transaction():
            if self.progress_repository.get_for_lesson(enrollment.id, lesson.id) is None:
                self.progress_repository.create(enrollment_id=enrollment.id, lesson_id=lesson.id, completed_at=now)
            completed = self.progress_repository.completed_lesson_ids(enrollment.id) & set(lessons)
            enrollment.progress_percentage = round(len(completed) / len(lessons) * 100, 2)
            enrollment.last_accessed_at = now
            if len(completed) == len(lessons) and enrollment.status != EnrollmentStatus.COMPLETED.value:
                enrollment.status = EnrollmentStatus.COMPLETED.value
                enrollment.completed_at = now
                enrollment.progress_percentage = 100.0
                self.publish_after_commit(
                    EnrollmentCompleted(
                        enrollment_id=enrollment.id,
                        course_id=course.id,
                        client_id=client_id,
                        coach_id=course.coach_id,
                    )
                )
        return enrollment

# backend/app/routes/v1/courses.py
"""
Course routes - API v1

Mounted under /api/v1/courses.

Coach endpoints build courses (chapters, lessons, ordering, drip, paywall).
Client endpoints list available courses, enroll, read the curriculum and
complete lessons.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ...api.dependencies.auth import get_current_active_user, require_client, require_coach
from ...database import get_db
from ...models.user import User
from ...schemas.base_responses import DeleteResponse
from ...schemas.course import (
    ChapterCreate,
    ChapterResponse,
    ChapterUpdate,
    CourseCreate,
    CourseDetailResponse,
    CourseResponse,
    CourseStats,
    CourseUpdate,
    CurriculumResponse,
    DripScheduleResponse,
    DripSettingsUpdate,
    EnrollmentResponse,
    EnrollRequest,
    LessonCreate,
    LessonDripUpdate,
    LessonResponse,
    LessonUpdate,
    PaywallResponse,
    PaywallUpdate,
    ReorderRequest,
)
from ...services.course_service import CourseService

router = APIRouter(tags=["courses-v1"])


@router.get("", response_model=List[CourseResponse])
def list_courses(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> List[CourseResponse]:
    """Coaches get their own courses; clients get the published courses of their coaches."""
    service = CourseService(db)
    if current_user.is_coach:
        courses = service.list_coach_courses(current_user.id)
    else:
        courses = service.list_available_courses(current_user.id)
    return [CourseResponse.model_validate(course) for course in courses]


@router.post("", response_model=CourseResponse, status_code=status.HTTP_201_CREATED)
def create_course(
    payload: CourseCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach),
) -> CourseResponse:
    return CourseResponse.model_validate(CourseService(db).create_course(current_user.id, payload))


@router.get("/enrollments", response_model=List[EnrollmentResponse])
def my_enrollments(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_client),
) -> List[EnrollmentResponse]:
    return [EnrollmentResponse.model_validate(e) for e in CourseService(db).list_enrollments(current_user.id)]


# Chapters and lessons

@router.patch("/chapters/{chapter_id}", response_model=ChapterResponse)
def update_chapter(
    chapter_id: str,
    payload: ChapterUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach),
) -> ChapterResponse:
    return ChapterResponse.model_validate(CourseService(db).update_chapter(current_user.id, chapter_id, payload))


@router.delete("/chapters/{chapter_id}", response_model=DeleteResponse)
def delete_chapter(
    chapter_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach),
) -> DeleteResponse:
    CourseService(db).delete_chapter(current_user.id, chapter_id)
    return DeleteResponse(message="Chapter deleted")


@router.post("/chapters/{chapter_id}/lessons", response_model=LessonResponse, status_code=status.HTTP_201_CREATED)
def add_lesson(
    chapter_id: str,
    payload: LessonCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach),
) -> LessonResponse:
    return LessonResponse.model_validate(CourseService(db).add_lesson(current_user.id, chapter_id, payload))


@router.put("/chapters/{chapter_id}/lessons/order", response_model=List[LessonResponse])
def reorder_lessons(
    chapter_id: str,
    payload: ReorderRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach),
) -> List[LessonResponse]:
    """Rewrite lesson order from the given id list; it must name every lesson of the chapter once."""
    lessons = CourseService(db).reorder_lessons(current_user.id, chapter_id, payload.ordered_ids)
    return [LessonResponse.model_validate(lesson) for lesson in lessons]


@router.patch("/lessons/{lesson_id}", response_model=LessonResponse)
def update_lesson(
    lesson_id: str,
    payload: LessonUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach),
) -> LessonResponse:
    return LessonResponse.model_validate(CourseService(db).update_lesson(current_user.id, lesson_id, payload))


@router.delete("/lessons/{lesson_id}", response_model=DeleteResponse)
def delete_lesson(
    lesson_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach),
) -> DeleteResponse:
    CourseService(db).delete_lesson(current_user.id, lesson_id)
    return DeleteResponse(message="Lesson deleted")


# Single course

@router.get("/{course_id}", response_model=CourseDetailResponse)
def get_course(
    course_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach),
) -> CourseDetailResponse:
    return CourseDetailResponse.model_validate(CourseService(db).get_coach_course(current_user.id, course_id))


@router.patch("/{course_id}", response_model=CourseResponse)
def update_course(
    course_id: str,
    payload: CourseUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach),
) -> CourseResponse:
    return CourseResponse.model_validate(CourseService(db).update_course(current_user.id, course_id, payload))


@router.delete("/{course_id}", response_model=DeleteResponse)
def delete_course(
    course_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach),
) -> DeleteResponse:
    CourseService(db).delete_course(current_user.id, course_id)
    return DeleteResponse(message="Course deleted")


@router.post("/{course_id}/publish", response_model=CourseResponse)
def publish_course(
    course_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach),
) -> CourseResponse:
    return CourseResponse.model_validate(CourseService(db).set_published(current_user.id, course_id, True))


@router.post("/{course_id}/unpublish", response_model=CourseResponse)
def unpublish_course(
    course_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach),
) -> CourseResponse:
    return CourseResponse.model_validate(CourseService(db).set_published(current_user.id, course_id, False))


@router.post("/{course_id}/chapters", response_model=ChapterResponse, status_code=status.HTTP_201_CREATED)
def add_chapter(
    course_id: str,
    payload: ChapterCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach),
) -> ChapterResponse:
    return ChapterResponse.model_validate(CourseService(db).add_chapter(current_user.id, course_id, payload))


@router.put("/{course_id}/chapters/order", response_model=List[ChapterResponse])
def reorder_chapters(
    course_id: str,
    payload: ReorderRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach),
) -> List[ChapterResponse]:
    chapters = CourseService(db).reorder_chapters(current_user.id, course_id, payload.ordered_ids)
    return [ChapterResponse.model_validate(chapter) for chapter in chapters]


@router.get("/{course_id}/drip", response_model=DripScheduleResponse)
def get_drip_schedule(
    course_id: str,
    enrollment_id: Optional[str] = Query(None, description="Preview release dates for this enrollment"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach),
) -> DripScheduleResponse:
    schedule = CourseService(db).get_drip_schedule(current_user.id, course_id, enrollment_id)
    return DripScheduleResponse.model_validate(schedule)


@router.put("/{course_id}/drip", response_model=CourseResponse)
def update_drip_settings(
    course_id: str,
    payload: DripSettingsUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach),
) -> CourseResponse:
    return CourseResponse.model_validate(CourseService(db).update_drip_settings(current_user.id, course_id, payload))


@router.put("/{course_id}/drip/lessons", response_model=DripScheduleResponse)
def update_lesson_drip_delays(
    course_id: str,
    payload: LessonDripUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach),
) -> DripScheduleResponse:
    service = CourseService(db)
    service.update_lesson_drip_delays(current_user.id, course_id, payload)
    return DripScheduleResponse.model_validate(service.get_drip_schedule(current_user.id, course_id))


@router.get("/{course_id}/paywall", response_model=PaywallResponse)
def get_paywall(
    course_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach),
) -> PaywallResponse:
    course = CourseService(db).get_coach_course(current_user.id, course_id)
    return PaywallResponse.model_validate(CourseService.paywall_view(course))


@router.put("/{course_id}/paywall", response_model=PaywallResponse)
def update_paywall(
    course_id: str,
    payload: PaywallUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach),
) -> PaywallResponse:
    course = CourseService(db).update_paywall(current_user.id, course_id, payload)
    return PaywallResponse.model_validate(CourseService.paywall_view(course))


@router.get("/{course_id}/stats", response_model=CourseStats)
def course_stats(
    course_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach),
) -> CourseStats:
    return CourseStats.model_validate(CourseService(db).course_stats(current_user.id, course_id))


# Enrollment

@router.post("/{course_id}/enroll", response_model=EnrollmentResponse, status_code=status.HTTP_201_CREATED)
def enroll(
    course_id: str,
    payload: Optional[EnrollRequest] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> EnrollmentResponse:
    """Clients enroll themselves; coaches enroll a linked client by id."""
    client_id = payload.client_id if payload else None
    enrollment = CourseService(db).enroll(course_id, current_user, client_id)
    return EnrollmentResponse.model_validate(enrollment)


@router.get("/{course_id}/curriculum", response_model=CurriculumResponse)
def get_curriculum(
    course_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_client),
) -> CurriculumResponse:
    return CurriculumResponse.model_validate(CourseService(db).get_curriculum(course_id, current_user.id))


@router.post("/{course_id}/lessons/{lesson_id}/complete", response_model=EnrollmentResponse)
def complete_lesson(
    course_id: str,
    lesson_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_client),
) -> EnrollmentResponse:
    enrollment = CourseService(db).complete_lesson(course_id, lesson_id, current_user.id)
    return EnrollmentResponse.model_validate(enrollment)

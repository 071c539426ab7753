"""Course schemas: courses, curriculum, drip settings, enrollment and progress."""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from ..core.enums import DripInterval, EnrollmentStatus, LessonType, PricingType
from ._strict_base import ORMResponse, StrictRequestModel


class CourseCreate(StrictRequestModel):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    category: Optional[str] = Field(default=None, max_length=100)
    difficulty: Optional[str] = Field(default=None, max_length=20)
    thumbnail_url: Optional[str] = Field(default=None, max_length=500)
    pricing_type: PricingType = PricingType.FREE
    price: int = Field(default=0, ge=0)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    estimated_duration_hours: Optional[float] = Field(default=None, ge=0)


class CourseUpdate(StrictRequestModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    category: Optional[str] = Field(default=None, max_length=100)
    difficulty: Optional[str] = Field(default=None, max_length=20)
    thumbnail_url: Optional[str] = Field(default=None, max_length=500)
    estimated_duration_hours: Optional[float] = Field(default=None, ge=0)


class LessonCreate(StrictRequestModel):
    title: str = Field(min_length=1, max_length=200)
    lesson_type: LessonType = LessonType.TEXT
    content: Optional[str] = None
    video_url: Optional[str] = Field(default=None, max_length=500)
    pdf_url: Optional[str] = Field(default=None, max_length=500)
    drip_delay: int = Field(default=0, ge=0)
    estimated_minutes: Optional[int] = Field(default=None, ge=0)
    is_preview: bool = False


class LessonUpdate(StrictRequestModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    lesson_type: Optional[LessonType] = None
    content: Optional[str] = None
    video_url: Optional[str] = Field(default=None, max_length=500)
    pdf_url: Optional[str] = Field(default=None, max_length=500)
    drip_delay: Optional[int] = Field(default=None, ge=0)
    estimated_minutes: Optional[int] = Field(default=None, ge=0)
    is_preview: Optional[bool] = None


class ChapterCreate(StrictRequestModel):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None


class ChapterUpdate(StrictRequestModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None


class ReorderRequest(StrictRequestModel):
    ordered_ids: List[str] = Field(min_length=1)


class DripSettingsUpdate(StrictRequestModel):
    is_drip_enabled: bool
    drip_interval: Optional[DripInterval] = None
    drip_count: Optional[int] = Field(default=None, ge=1)


class LessonDripDelay(StrictRequestModel):
    lesson_id: str = Field(min_length=26, max_length=26)
    drip_delay: int = Field(ge=0)


class LessonDripUpdate(StrictRequestModel):
    lessons: List[LessonDripDelay] = Field(min_length=1)


class PaywallUpdate(StrictRequestModel):
    pricing_type: PricingType
    price: int = Field(default=0, ge=0)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    allow_installments: bool = False
    installment_count: Optional[int] = Field(default=None, ge=2, le=24)


class PaywallResponse(ORMResponse):
    course_id: str
    pricing_type: PricingType
    price: int
    currency: str
    allow_installments: bool
    installment_count: Optional[int] = None
    is_paid: bool


class LessonResponse(ORMResponse):
    id: str
    chapter_id: str
    title: str
    lesson_type: LessonType
    content: Optional[str] = None
    video_url: Optional[str] = None
    pdf_url: Optional[str] = None
    order_index: int
    drip_delay: int
    estimated_minutes: Optional[int] = None
    is_preview: bool


class ChapterResponse(ORMResponse):
    id: str
    course_id: str
    title: str
    description: Optional[str] = None
    order_index: int
    lessons: List[LessonResponse] = Field(default_factory=list)


class CourseResponse(ORMResponse):
    id: str
    coach_id: str
    title: str
    description: Optional[str] = None
    category: Optional[str] = None
    difficulty: Optional[str] = None
    thumbnail_url: Optional[str] = None
    pricing_type: PricingType
    price: int
    currency: str
    is_published: bool
    published_at: Optional[datetime] = None
    is_drip_enabled: bool
    drip_interval: DripInterval
    drip_count: int
    estimated_duration_hours: Optional[float] = None
    total_enrollments: int
    created_at: datetime


class CourseDetailResponse(CourseResponse):
    chapters: List[ChapterResponse] = Field(default_factory=list)


class DripScheduleEntry(ORMResponse):
    lesson_id: str
    chapter_id: str
    title: str
    drip_delay: int
    release_at: Optional[datetime] = None
    is_released: bool


class DripScheduleResponse(ORMResponse):
    course_id: str
    is_drip_enabled: bool
    drip_interval: DripInterval
    drip_count: int
    lessons: List[DripScheduleEntry]


class CourseStats(ORMResponse):
    course_id: str
    total_enrollments: int
    completed_enrollments: int
    completion_rate: float
    average_progress: float


class EnrollRequest(StrictRequestModel):
    client_id: Optional[str] = Field(
        default=None, min_length=26, max_length=26, description="Required when a coach enrolls a client"
    )


class EnrollmentResponse(ORMResponse):
    id: str
    course_id: str
    client_id: str
    status: EnrollmentStatus
    enrolled_at: datetime
    completed_at: Optional[datetime] = None
    progress_percentage: float
    last_accessed_at: Optional[datetime] = None


class CurriculumLesson(ORMResponse):
    id: str
    title: str
    lesson_type: LessonType
    order_index: int
    estimated_minutes: Optional[int] = None
    is_locked: bool
    release_at: Optional[datetime] = None
    is_completed: bool
    content: Optional[str] = None
    video_url: Optional[str] = None
    pdf_url: Optional[str] = None


class CurriculumChapter(ORMResponse):
    id: str
    title: str
    order_index: int
    lessons: List[CurriculumLesson]


class CurriculumResponse(ORMResponse):
    course_id: str
    title: str
    enrollment: EnrollmentResponse
    chapters: List[CurriculumChapter]

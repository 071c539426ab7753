# backend/app/models/course.py
"""
Course models.

A course holds ordered chapters, each holding ordered lessons. When drip is
enabled a lesson unlocks ``drip_delay`` days after the client enrolled.
"""

from sqlalchemy import (
    Boolean,
    Column,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from ..core.enums import DripInterval, EnrollmentStatus, LessonType, PricingType
from ..database import Base
from .types import TimestampMixin, UTCDateTime, ulid_pk, utcnow


class Course(TimestampMixin, Base):
    __tablename__ = "courses"

    id = ulid_pk()
    coach_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=True)
    difficulty = Column(String(20), nullable=True)
    thumbnail_url = Column(String(500), nullable=True)
    pricing_type = Column(String(20), nullable=False, default=PricingType.FREE.value)
    price = Column(Integer, nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="USD")
    allow_installments = Column(Boolean, nullable=False, default=False)
    installment_count = Column(Integer, nullable=True)
    is_published = Column(Boolean, nullable=False, default=False)
    published_at = Column(UTCDateTime, nullable=True)
    is_drip_enabled = Column(Boolean, nullable=False, default=False)
    drip_interval = Column(String(10), nullable=False, default=DripInterval.DAY.value)
    drip_count = Column(Integer, nullable=False, default=1)
    estimated_duration_hours = Column(Float, nullable=True)
    total_enrollments = Column(Integer, nullable=False, default=0)

    coach = relationship("User", foreign_keys=[coach_id])
    chapters = relationship(
        "CourseChapter",
        back_populates="course",
        cascade="all, delete-orphan",
        order_by="CourseChapter.order_index",
    )
    enrollments = relationship("Enrollment", back_populates="course", cascade="all, delete-orphan")

    @property
    def is_paid(self) -> bool:
        return self.pricing_type != PricingType.FREE.value and (self.price or 0) > 0

    @property
    def lessons(self) -> list["CourseLesson"]:
        return [lesson for chapter in self.chapters for lesson in chapter.lessons]


class CourseChapter(TimestampMixin, Base):
    __tablename__ = "course_chapters"

    id = ulid_pk()
    course_id = Column(String(26), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    order_index = Column(Integer, nullable=False, default=0)

    course = relationship("Course", back_populates="chapters")
    lessons = relationship(
        "CourseLesson",
        back_populates="chapter",
        cascade="all, delete-orphan",
        order_by="CourseLesson.order_index",
    )


class CourseLesson(TimestampMixin, Base):
    __tablename__ = "course_lessons"

    id = ulid_pk()
    chapter_id = Column(
        String(26), ForeignKey("course_chapters.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title = Column(String(200), nullable=False)
    lesson_type = Column(String(10), nullable=False, default=LessonType.TEXT.value)
    content = Column(Text, nullable=True)
    video_url = Column(String(500), nullable=True)
    pdf_url = Column(String(500), nullable=True)
    order_index = Column(Integer, nullable=False, default=0)
    drip_delay = Column(Integer, nullable=False, default=0)  # days after enrollment
    estimated_minutes = Column(Integer, nullable=True)
    is_preview = Column(Boolean, nullable=False, default=False)

    chapter = relationship("CourseChapter", back_populates="lessons")


class Enrollment(TimestampMixin, Base):
    __tablename__ = "enrollments"
    __table_args__ = (UniqueConstraint("course_id", "client_id", name="uq_enrollment_course_client"),)

    id = ulid_pk()
    course_id = Column(String(26), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    client_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=EnrollmentStatus.ACTIVE.value)
    enrolled_at = Column(UTCDateTime, nullable=False, default=utcnow)
    completed_at = Column(UTCDateTime, nullable=True)
    progress_percentage = Column(Float, nullable=False, default=0.0)
    last_accessed_at = Column(UTCDateTime, nullable=True)

    course = relationship("Course", back_populates="enrollments")
    client = relationship("User", foreign_keys=[client_id])
    lesson_progress = relationship(
        "LessonProgress", back_populates="enrollment", cascade="all, delete-orphan"
    )


class LessonProgress(Base):
    __tablename__ = "lesson_progress"
    __table_args__ = (UniqueConstraint("enrollment_id", "lesson_id", name="uq_progress_lesson"),)

    id = ulid_pk()
    enrollment_id = Column(
        String(26), ForeignKey("enrollments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    lesson_id = Column(String(26), ForeignKey("course_lessons.id", ondelete="CASCADE"), nullable=False)
    completed_at = Column(UTCDateTime, nullable=False, default=utcnow)

    enrollment = relationship("Enrollment", back_populates="lesson_progress")

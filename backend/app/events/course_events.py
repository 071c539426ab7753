"""Course enrollment events."""
from dataclasses import dataclass
from typing import ClassVar

from .base import DomainEvent


@dataclass
class EnrollmentCreated(DomainEvent):
    name: ClassVar[str] = "course.enrollment.created"

    enrollment_id: str
    course_id: str
    client_id: str
    coach_id: str


@dataclass
class EnrollmentCompleted(DomainEvent):
    name: ClassVar[str] = "course.enrollment.completed"

    enrollment_id: str
    course_id: str
    client_id: str
    coach_id: str

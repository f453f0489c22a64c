"""SQLAlchemy models for academy-admin."""

from academy_admin.models.base import Base, BaseModel, TimestampMixin
from academy_admin.models.semester import Semester
from academy_admin.models.academy import Academy, Level
from academy_admin.models.student import Enrollment, EnrollmentStatus, Student
from academy_admin.models.invoice import (
    LUNCH_ITEM_TYPES,
    Invoice,
    InvoiceItem,
    InvoiceItemType,
    InvoiceStatus,
)
from academy_admin.models.payment import Payment, PaymentMethod
from academy_admin.models.profile import ROLE_RANK, Profile, Role, TeacherAssignment
from academy_admin.models.attendance import PRESENT_STATUSES, AttendanceRecord, AttendanceSession, AttendanceStatus
from academy_admin.models.activity_log import ActivityAction, TeacherActivity
from academy_admin.models.progress import ProgressReport
from academy_admin.models.event import Event, EventStatus, HoursStatus, VolunteerHours

__all__ = [
    "Base",
    "BaseModel",
    "TimestampMixin",
    "Semester",
    "Academy",
    "Level",
    "Student",
    "Enrollment",
    "EnrollmentStatus",
    "Invoice",
    "InvoiceItem",
    "InvoiceItemType",
    "InvoiceStatus",
    "LUNCH_ITEM_TYPES",
    "Payment",
    "PaymentMethod",
    "Profile",
    "Role",
    "ROLE_RANK",
    "TeacherAssignment",
    "AttendanceSession",
    "AttendanceRecord",
    "AttendanceStatus",
    "PRESENT_STATUSES",
    "ActivityAction",
    "TeacherActivity",
    "ProgressReport",
    "Event",
    "EventStatus",
    "HoursStatus",
    "VolunteerHours",
]

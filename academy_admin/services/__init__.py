"""Service layer for business logic."""

from academy_admin.services.academy_service import AcademyService, get_academy_service
from academy_admin.services.activity_service import ActivityService, get_activity_service
from academy_admin.services.attendance_service import AttendanceService, get_attendance_service
from academy_admin.services.dashboard_service import DashboardService, get_dashboard_service
from academy_admin.services.dedup_service import DedupService, get_dedup_service
from academy_admin.services.event_service import EventService, get_event_service
from academy_admin.services.import_service import ImportService, get_import_service
from academy_admin.services.invoice_service import InvoiceService, get_invoice_service
from academy_admin.services.migration_service import MigrationService
from academy_admin.services.payment_service import PaymentService, get_payment_service
from academy_admin.services.profile_service import ProfileService, get_profile_service
from academy_admin.services.progress_service import ProgressService, get_progress_service
from academy_admin.services.reconcile_service import ReconcileService, get_reconcile_service
from academy_admin.services.registration_service import RegistrationService, get_registration_service
from academy_admin.services.semester_service import SemesterService, get_semester_service

__all__ = [
    "SemesterService",
    "get_semester_service",
    "AcademyService",
    "get_academy_service",
    "RegistrationService",
    "get_registration_service",
    "InvoiceService",
    "get_invoice_service",
    "PaymentService",
    "get_payment_service",
    "ProfileService",
    "get_profile_service",
    "AttendanceService",
    "get_attendance_service",
    "ProgressService",
    "get_progress_service",
    "EventService",
    "get_event_service",
    "ActivityService",
    "get_activity_service",
    "DashboardService",
    "get_dashboard_service",
    "ImportService",
    "get_import_service",
    "MigrationService",
    "DedupService",
    "get_dedup_service",
    "ReconcileService",
    "get_reconcile_service",
]

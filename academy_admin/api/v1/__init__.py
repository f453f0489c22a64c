"""API v1 router aggregator."""

from fastapi import APIRouter

from academy_admin.api.v1 import (
    academies,
    activity,
    attendance,
    dashboard,
    events,
    imports,
    invoices,
    payments,
    profiles,
    progress,
    registrations,
    semesters,
)

api_router = APIRouter(tags=["API v1"])

api_router.include_router(semesters.router, prefix="/semesters", tags=["Semesters"])
api_router.include_router(academies.router, prefix="/academies", tags=["Academies"])
api_router.include_router(registrations.router, prefix="/registrations", tags=["Registrations"])
api_router.include_router(invoices.router, prefix="/invoices", tags=["Invoices"])
api_router.include_router(payments.router, prefix="/payments", tags=["Payments"])
api_router.include_router(attendance.router, prefix="/attendance", tags=["Attendance"])
api_router.include_router(progress.router, prefix="/progress", tags=["Progress"])
api_router.include_router(events.router, prefix="/events", tags=["Events"])
api_router.include_router(profiles.router, prefix="/profiles", tags=["Profiles"])
api_router.include_router(activity.router, prefix="/activity", tags=["Activity"])
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["Dashboard"])
api_router.include_router(imports.router, prefix="/imports", tags=["Imports"])

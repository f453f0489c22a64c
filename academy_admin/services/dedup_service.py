"""Duplicate detection and merging.

Relational merges move child rows with UPDATE statements and then re-read
the surviving row, so no stale collection is ever cascaded on delete.
"""

import logging
import uuid
from collections import defaultdict

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from academy_admin.config import settings
from academy_admin.docstore import DocumentStore
from academy_admin.exceptions import NotFoundException, ValidationException
from academy_admin.models import (
    Academy,
    AttendanceRecord,
    AttendanceSession,
    Enrollment,
    Invoice,
    InvoiceItem,
    InvoiceStatus,
    Level,
    Payment,
    Profile,
    ProgressReport,
    Semester,
    Student,
    TeacherActivity,
    TeacherAssignment,
)
from academy_admin.schemas.academy import LevelCreate
from academy_admin.schemas.maintenance import JobReport
from academy_admin.services.academy_service import AcademyService, canonical_level_name
from academy_admin.services.invoice_service import InvoiceService, recalculate
from academy_admin.services.registration_service import match_level
from academy_admin.utils.money import format_usd, quantize
from academy_admin.utils.normalization import (
    ACADEMY_ALIASES,
    name_key,
    normalize_academy,
    student_key,
)
from academy_admin.utils.timestamps import to_millis

logger = logging.getLogger(__name__)

STUDENT_FIELDS = (
    "email",
    "phone",
    "birth_date",
    "gender",
    "guardian_name",
    "guardian_phone",
    "t_shirt_size",
    "notes",
    "legacy_id",
)

DELETABLE_DUPLICATE_STATUSES = (InvoiceStatus.UNPAID.value, InvoiceStatus.PARTIAL.value)


def deduplicate_registrations(docs: list[dict]) -> tuple[list[dict], list[dict]]:
    """Split registration documents into first registrations and repeats.

    Documents are matched on e-mail, else on first and last name; the
    earliest ``createdAt`` wins.
    """
    groups: dict[str, list[dict]] = defaultdict(list)
    for doc in docs:
        groups[student_key(doc.get("email"), doc.get("firstName"), doc.get("lastName"))].append(doc)

    kept, duplicates = [], []
    for group in groups.values():
        group.sort(key=lambda d: to_millis(d.get("createdAt")))
        kept.append(group[0])
        duplicates.extend(group[1:])
    return kept, duplicates


async def remove_duplicate_invoices(store: DocumentStore, dry_run: bool = False) -> JobReport:
    """Keep one invoice document per student.

    The paid invoice is preferred, else the oldest. Unpaid and partial
    duplicates are deleted; anything else is left for a person to look at.
    """
    report = JobReport(job="dedupe invoices", dry_run=dry_run)
    by_student: dict[str, list[dict]] = defaultdict(list)
    for doc in await store.list_collection(settings.invoices_collection):
        by_student[doc.get("studentId")].append(doc)

    for student_id, invoices in by_student.items():
        if len(invoices) < 2:
            continue
        invoices.sort(key=lambda d: (d.get("status") != InvoiceStatus.PAID.value, to_millis(d.get("createdAt"))))
        keeper, duplicates = invoices[0], invoices[1:]
        report.count("students")
        name = keeper.get("studentName") or student_id

        for dup in duplicates:
            if dup.get("status") in DELETABLE_DUPLICATE_STATUSES:
                report.action(
                    f"{name}: delete {dup['id']} ({dup.get('status')}, {format_usd(dup.get('total'))}), "
                    f"keep {keeper['id']}"
                )
                report.count("deleted")
                if not dry_run:
                    await store.delete(settings.invoices_collection, dup["id"])
            else:
                report.warn(f"{name}: duplicate {dup['id']} is {dup.get('status')}; check it by hand")

    return report


class DedupService:
    """Merges duplicate students, profiles and catalog entries."""

    def __init__(self):
        self.academies = AcademyService()
        self.invoices = InvoiceService()

    async def find_duplicate_students(self, db: AsyncSession) -> list[list[Student]]:
        """Students sharing a first and last name, oldest first."""
        result = await db.execute(select(Student).order_by(Student.created_at, Student.id))
        groups: dict[str, list[Student]] = defaultdict(list)
        for student in result.scalars().all():
            groups[name_key(student.first_name, student.last_name)].append(student)
        return [group for group in groups.values() if len(group) > 1]

    async def report_duplicate_students(self, db: AsyncSession) -> JobReport:
        report = JobReport(job="duplicate students")
        for group in await self.find_duplicate_students(db):
            report.count("groups")
            ids = ", ".join(f"{s.id} <{s.email or 'no e-mail'}>" for s in group)
            report.warn(f"{group[0].full_name}: {ids}")
        return report

    async def merge_students(
        self,
        db: AsyncSession,
        keep_id: uuid.UUID,
        remove_ids: list[uuid.UUID],
        dry_run: bool = False,
    ) -> JobReport:
        """Fold duplicate students into ``keep_id``.

        Enrollments, invoices, payments, attendance and progress reports move
        over, missing personal fields are filled from the duplicates, the
        duplicates are deleted and the kept student's invoices are rebuilt.
        """
        report = JobReport(job="merge students", dry_run=dry_run)
        if keep_id in remove_ids:
            raise ValidationException([{"field": "remove", "message": "Cannot merge a student into itself"}])

        keep = await db.get(Student, keep_id)
        if keep is None:
            raise NotFoundException(f"Student {keep_id}")

        for remove_id in remove_ids:
            other = await db.get(Student, remove_id)
            if other is None:
                report.error(f"Student {remove_id} not found")
                continue

            fill = {
                field: getattr(other, field)
                for field in STUDENT_FIELDS
                if getattr(keep, field) in (None, "") and getattr(other, field) not in (None, "")
            }
            if keep.email_key is None and other.email_key:
                fill["email_key"] = other.email_key
            address = {**(other.address or {}), **{k: v for k, v in (keep.address or {}).items() if v}}

            report.action(f"Merged {other.full_name} ({other.id}) into {keep.id}")
            report.count("merged")
            await self._move_student_rows(db, keep, other, report)
            await db.execute(delete(Student).where(Student.id == other.id))

            for field, value in fill.items():
                setattr(keep, field, value)
            keep.address = address
            await db.flush()
            keep = await self._reload_student(db, keep_id)

        keep = await self._reload_student(db, keep_id)
        semester_ids = {e.semester_id for e in keep.enrollments}
        semester_ids.update(
            (await db.execute(select(Invoice.semester_id).where(Invoice.student_id == keep.id))).scalars().all()
        )
        for semester_id in semester_ids:
            semester = await db.get(Semester, semester_id)
            invoice = await self.invoices.sync_for_student(db, keep.id, semester)
            if invoice is not None:
                await self._recount_paid(db, invoice)
        return report

    async def _reload_student(self, db: AsyncSession, student_id: uuid.UUID) -> Student:
        result = await db.execute(
            select(Student).where(Student.id == student_id).execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def _move_student_rows(self, db: AsyncSession, keep: Student, other: Student, report: JobReport) -> None:
        kept_pairs = {(e.semester_id, e.academy_id) for e in keep.enrollments}
        duplicate_enrollments = [
            e.id for e in other.enrollments if (e.semester_id, e.academy_id) in kept_pairs
        ]
        if duplicate_enrollments:
            await db.execute(delete(Enrollment).where(Enrollment.id.in_(duplicate_enrollments)))
            report.count("enrollments_dropped", len(duplicate_enrollments))
        await db.execute(
            update(Enrollment).where(Enrollment.student_id == other.id).values(student_id=keep.id)
        )

        kept_invoices = {
            semester_id: invoice_id
            for invoice_id, semester_id in (
                await db.execute(select(Invoice.id, Invoice.semester_id).where(Invoice.student_id == keep.id))
            ).all()
        }
        other_invoices = (
            await db.execute(select(Invoice.id, Invoice.semester_id).where(Invoice.student_id == other.id))
        ).all()
        for invoice_id, semester_id in other_invoices:
            target = kept_invoices.get(semester_id)
            if target is None:
                await db.execute(update(Invoice).where(Invoice.id == invoice_id).values(student_id=keep.id))
                continue
            # Both students were billed this semester: payments follow the kept invoice
            await db.execute(update(Payment).where(Payment.invoice_id == invoice_id).values(invoice_id=target))
            await db.execute(delete(InvoiceItem).where(InvoiceItem.invoice_id == invoice_id))
            await db.execute(delete(Invoice).where(Invoice.id == invoice_id))
            report.count("invoices_dropped")
        await db.execute(update(Payment).where(Payment.student_id == other.id).values(student_id=keep.id))

        kept_sessions = set(
            (
                await db.execute(select(AttendanceRecord.session_id).where(AttendanceRecord.student_id == keep.id))
            ).scalars().all()
        )
        if kept_sessions:
            await db.execute(
                delete(AttendanceRecord).where(
                    AttendanceRecord.student_id == other.id,
                    AttendanceRecord.session_id.in_(kept_sessions),
                )
            )
        await db.execute(
            update(AttendanceRecord).where(AttendanceRecord.student_id == other.id).values(student_id=keep.id)
        )
        await db.execute(
            update(ProgressReport).where(ProgressReport.student_id == other.id).values(student_id=keep.id)
        )

    async def _recount_paid(self, db: AsyncSession, invoice: Invoice) -> None:
        paid = await db.scalar(
            select(func.coalesce(func.sum(Payment.amount), 0)).where(Payment.invoice_id == invoice.id)
        )
        invoice.paid_amount = quantize(paid)
        recalculate(invoice)
        await db.flush()

    async def find_duplicate_profiles(self, db: AsyncSession) -> list[list[Profile]]:
        """Profiles sharing a full name, oldest first."""
        result = await db.execute(select(Profile).order_by(Profile.created_at, Profile.id))
        groups: dict[str, list[Profile]] = defaultdict(list)
        for profile in result.scalars().all():
            key = " ".join(profile.full_name.lower().split())
            if key:
                groups[key].append(profile)
        return [group for group in groups.values() if len(group) > 1]

    async def report_duplicate_profiles(self, db: AsyncSession) -> JobReport:
        report = JobReport(job="duplicate teachers")
        for group in await self.find_duplicate_profiles(db):
            report.count("groups")
            report.warn(f"{group[0].full_name}: {', '.join(p.email for p in group)}")
        return report

    async def merge_profiles(
        self,
        db: AsyncSession,
        keep_email: str,
        remove_emails: list[str],
        dry_run: bool = False,
    ) -> JobReport:
        """Fold duplicate profiles into the one with ``keep_email``.

        Assignments, attendance sessions and activity entries move over and
        the kept profile ends up with the highest of the roles.
        """
        report = JobReport(job="merge teachers", dry_run=dry_run)
        keep = await self._profile_by_email(db, keep_email)
        if keep is None:
            raise NotFoundException(f"Profile for {keep_email}")

        for email in remove_emails:
            other = await self._profile_by_email(db, email)
            if other is None:
                report.error(f"Profile for {email} not found")
                continue
            if other.id == keep.id:
                report.warn(f"{email} is the profile being kept")
                continue

            kept_assignments = {(a.academy_id, a.level_id) for a in keep.assignments}
            duplicate_assignments = [
                a.id for a in other.assignments if (a.academy_id, a.level_id) in kept_assignments
            ]
            if duplicate_assignments:
                await db.execute(delete(TeacherAssignment).where(TeacherAssignment.id.in_(duplicate_assignments)))
            await db.execute(
                update(TeacherAssignment).where(TeacherAssignment.profile_id == other.id).values(profile_id=keep.id)
            )
            await db.execute(
                update(AttendanceSession).where(AttendanceSession.teacher_id == other.id).values(teacher_id=keep.id)
            )
            await db.execute(
                update(TeacherActivity).where(TeacherActivity.teacher_id == other.id).values(teacher_id=keep.id)
            )
            await db.execute(
                update(ProgressReport).where(ProgressReport.teacher_id == other.id).values(teacher_id=keep.id)
            )

            role = other.role if other.outranks(keep.role) else keep.role
            phone = keep.phone or other.phone
            credentials = keep.credentials or other.credentials
            full_name = keep.full_name or other.full_name
            report.action(f"Merged {other.email} into {keep.email}")
            report.count("merged")
            await db.execute(delete(Profile).where(Profile.id == other.id))

            keep.role = role
            keep.phone = phone
            keep.credentials = credentials
            keep.full_name = full_name
            await db.flush()
            keep = await self._profile_by_email(db, keep_email)

        return report

    async def _profile_by_email(self, db: AsyncSession, email: str) -> Profile | None:
        result = await db.execute(
            select(Profile)
            .where(Profile.email == email.strip().lower())
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def check_orphan_students(
        self,
        db: AsyncSession,
        delete_orphans: bool = False,
        dry_run: bool = False,
    ) -> JobReport:
        """Students with no enrollment in any semester."""
        report = JobReport(job="orphan students", dry_run=dry_run)
        enrolled = select(Enrollment.student_id)
        result = await db.execute(
            select(Student).where(Student.id.not_in(enrolled)).order_by(Student.last_name, Student.first_name)
        )
        for student in result.scalars().all():
            report.count("orphans")
            payments = await db.scalar(
                select(func.count()).select_from(Payment).where(Payment.student_id == student.id)
            )
            if payments:
                report.warn(f"{student.full_name} ({student.id}) has no enrollments but {payments} payments; kept")
                continue
            report.action(f"Delete {student.full_name} ({student.id})")
            if delete_orphans:
                await db.execute(delete(InvoiceItem).where(
                    InvoiceItem.invoice_id.in_(select(Invoice.id).where(Invoice.student_id == student.id))
                ))
                await db.execute(delete(Invoice).where(Invoice.student_id == student.id))
                await db.execute(delete(AttendanceRecord).where(AttendanceRecord.student_id == student.id))
                await db.execute(delete(Student).where(Student.id == student.id))
                report.count("deleted")
        return report

    async def canonicalize_catalog(self, db: AsyncSession, semester: Semester, dry_run: bool = False) -> JobReport:
        """Make catalog names canonical and merge what collapses together.

        Alias academies fold into their parent academy as a level, renamed
        academies take their canonical name, and levels whose names
        normalize to the same level are merged.
        """
        report = JobReport(job="canonicalize catalog", dry_run=dry_run)
        touched: set[uuid.UUID] = set()

        for academy in await self.academies.list_academies(db, semester):
            alias = ACADEMY_ALIASES.get(academy.name.strip().lower())
            if alias:
                await self._fold_alias_academy(db, semester, academy, alias, report, touched)
                continue

            canonical = normalize_academy(academy.name)
            if canonical != academy.name:
                clash = await self.academies.get_by_name(db, semester, canonical)
                if clash is not None and clash.id != academy.id:
                    report.warn(f"Cannot rename '{academy.name}' to {canonical}: it already exists")
                else:
                    report.action(f"Rename academy '{academy.name}' to {canonical}")
                    academy.name = canonical
                    await db.flush()

            await self._merge_levels(db, academy, report, touched)

        for student_id in touched:
            await self.invoices.sync_for_student(db, student_id, semester)
        report.count("students_resynced", len(touched))
        return report

    async def _fold_alias_academy(
        self,
        db: AsyncSession,
        semester: Semester,
        academy: Academy,
        alias: tuple[str, str],
        report: JobReport,
        touched: set[uuid.UUID],
    ) -> None:
        parent_name, level_name = alias
        parent = await self.academies.get_by_name(db, semester, parent_name)
        if parent is None:
            report.warn(f"'{academy.name}' folds into {parent_name}, which is not in the catalog")
            return

        level = match_level(parent, level_name)
        if level is None:
            level = await self.academies.add_level(db, parent.id, LevelCreate(name=level_name, schedule=academy.schedule))
            report.action(f"Add level {level_name} to {parent_name}")

        enrollments = (
            await db.execute(select(Enrollment).where(Enrollment.academy_id == academy.id))
        ).scalars().all()
        parent_students = set(
            (
                await db.execute(
                    select(Enrollment.student_id).where(
                        Enrollment.academy_id == parent.id,
                        Enrollment.semester_id == semester.id,
                    )
                )
            ).scalars().all()
        )
        for enrollment in enrollments:
            touched.add(enrollment.student_id)
            if enrollment.student_id in parent_students:
                report.warn(
                    f"Student {enrollment.student_id} is already in {parent_name}; "
                    f"dropping their '{academy.name}' enrollment"
                )
                await db.execute(delete(Enrollment).where(Enrollment.id == enrollment.id))
                continue
            await db.execute(
                update(Enrollment)
                .where(Enrollment.id == enrollment.id)
                .values(academy_id=parent.id, level_id=level.id)
            )
        report.count("enrollments_moved", len(enrollments))

        held = set(
            (
                await db.execute(
                    select(TeacherAssignment.profile_id).where(
                        TeacherAssignment.academy_id == parent.id,
                        TeacherAssignment.level_id == level.id,
                    )
                )
            ).scalars().all()
        )
        assignments = (
            await db.execute(select(TeacherAssignment).where(TeacherAssignment.academy_id == academy.id))
        ).scalars().all()
        for assignment in assignments:
            if assignment.profile_id in held:
                await db.execute(delete(TeacherAssignment).where(TeacherAssignment.id == assignment.id))
                continue
            held.add(assignment.profile_id)
            await db.execute(
                update(TeacherAssignment)
                .where(TeacherAssignment.id == assignment.id)
                .values(academy_id=parent.id, level_id=level.id)
            )

        sessions = (
            await db.execute(
                select(AttendanceSession)
                .where(AttendanceSession.academy_id == academy.id)
                .order_by(AttendanceSession.date)
            )
        ).scalars().all()
        await self._move_sessions(db, sessions, parent.id, level.id, report)
        await db.execute(
            update(ProgressReport)
            .where(ProgressReport.academy_id == academy.id)
            .values(academy_id=parent.id, level_id=level.id)
        )
        await db.execute(update(InvoiceItem).where(InvoiceItem.academy_id == academy.id).values(academy_id=parent.id))
        await db.execute(delete(Level).where(Level.academy_id == academy.id))
        await db.execute(delete(Academy).where(Academy.id == academy.id))
        report.action(f"Fold academy '{academy.name}' into {parent_name} / {level.name}")
        report.count("academies_folded")

    async def _merge_levels(
        self,
        db: AsyncSession,
        academy: Academy,
        report: JobReport,
        touched: set[uuid.UUID],
    ) -> None:
        groups: dict[str, list[Level]] = defaultdict(list)
        for level in sorted(academy.levels, key=lambda lv: (lv.display_order, lv.created_at)):
            groups[canonical_level_name(academy.name, level.name).lower()].append(level)

        for levels in groups.values():
            keep, duplicates = levels[0], levels[1:]
            canonical = canonical_level_name(academy.name, keep.name)
            for duplicate in duplicates:
                students = (
                    await db.execute(select(Enrollment.student_id).where(Enrollment.level_id == duplicate.id))
                ).scalars().all()
                touched.update(students)
                await db.execute(
                    update(Enrollment).where(Enrollment.level_id == duplicate.id).values(level_id=keep.id)
                )
                await db.execute(
                    delete(TeacherAssignment).where(
                        TeacherAssignment.level_id == duplicate.id,
                        TeacherAssignment.profile_id.in_(
                            select(TeacherAssignment.profile_id).where(TeacherAssignment.level_id == keep.id)
                        ),
                    )
                )
                await db.execute(
                    update(TeacherAssignment)
                    .where(TeacherAssignment.level_id == duplicate.id)
                    .values(level_id=keep.id)
                )
                sessions = (
                    await db.execute(
                        select(AttendanceSession)
                        .where(AttendanceSession.level_id == duplicate.id)
                        .order_by(AttendanceSession.date)
                    )
                ).scalars().all()
                await self._move_sessions(db, sessions, academy.id, keep.id, report)
                await db.execute(
                    update(ProgressReport).where(ProgressReport.level_id == duplicate.id).values(level_id=keep.id)
                )
                academy.levels.remove(duplicate)
                report.action(f"Merge level '{duplicate.name}' into '{canonical}' ({academy.name})")
                report.count("levels_merged")

            if keep.name != canonical:
                report.action(f"Rename level '{keep.name}' to '{canonical}' ({academy.name})")
                keep.name = canonical
            await db.flush()

    async def _move_sessions(
        self,
        db: AsyncSession,
        sessions: list[AttendanceSession],
        academy_id: uuid.UUID,
        level_id: uuid.UUID,
        report: JobReport,
    ) -> None:
        """Point sessions at another class.

        A session landing on a date the class already has is merged into
        that session: records for students not yet marked there move over,
        the rest are dropped with the emptied session.
        """
        for session in sessions:
            target = (
                await db.execute(
                    select(AttendanceSession).where(
                        AttendanceSession.academy_id == academy_id,
                        AttendanceSession.level_id == level_id,
                        AttendanceSession.date == session.date,
                        AttendanceSession.id != session.id,
                    )
                )
            ).scalar_one_or_none()
            if target is None:
                await db.execute(
                    update(AttendanceSession)
                    .where(AttendanceSession.id == session.id)
                    .values(academy_id=academy_id, level_id=level_id)
                )
                continue

            marked = select(AttendanceRecord.student_id).where(AttendanceRecord.session_id == target.id)
            moving = (
                await db.execute(
                    select(AttendanceRecord.id).where(
                        AttendanceRecord.session_id == session.id,
                        AttendanceRecord.student_id.not_in(marked),
                    )
                )
            ).scalars().all()
            if target.teacher_id is None and session.teacher_id is not None:
                target.teacher_id = session.teacher_id
            report.action(
                f"Merge attendance of {session.date.isoformat()} into session {target.id} "
                f"({len(moving)} records moved)"
            )
            if moving:
                await db.execute(
                    update(AttendanceRecord).where(AttendanceRecord.id.in_(moving)).values(session_id=target.id)
                )
            await db.execute(delete(AttendanceRecord).where(AttendanceRecord.session_id == session.id))
            await db.execute(delete(AttendanceSession).where(AttendanceSession.id == session.id))
            report.count("sessions_merged")
        await db.flush()


def get_dedup_service() -> DedupService:
    return DedupService()

"""Registration service.

A registration is a student plus their enrollments for a semester. Students
are keyed by lowercased e-mail, so registering twice with the same address
updates one student instead of creating a duplicate.
"""

import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from academy_admin.exceptions import ConflictException, NotFoundException, ValidationException
from academy_admin.models import Academy, Enrollment, EnrollmentStatus, Level, Semester, Student
from academy_admin.schemas.registration import RegistrationCreate, RegistrationUpdate
from academy_admin.services.academy_service import AcademyService
from academy_admin.services.invoice_service import InvoiceService
from academy_admin.services.semester_service import SemesterService
from academy_admin.utils.money import ZERO, quantize
from academy_admin.utils.normalization import (
    canonical_selection,
    email_key,
    is_empty_selection,
    normalize_level,
)

logger = logging.getLogger(__name__)


@dataclass
class ResolvedSelection:
    academy: Academy
    level: Level | None = None


def match_level(academy: Academy, level_name: str) -> Level | None:
    """Find an academy level by exact or canonical name."""
    wanted = level_name.strip().lower()
    canonical = normalize_level(level_name).lower()
    for level in academy.levels:
        if level.name.lower() == wanted or normalize_level(level.name).lower() == canonical:
            return level
    return None


def expected_total(enrollments: Iterable[Enrollment]) -> Decimal:
    """Sum of the academy prices a student is enrolled in."""
    return quantize(
        sum(
            (e.academy.price for e in enrollments if e.status == EnrollmentStatus.ENROLLED.value),
            ZERO,
        )
    )


def _is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class RegistrationService:
    """Service for student registrations."""

    def __init__(self):
        self.semesters = SemesterService()
        self.academies = AcademyService()
        self.invoices = InvoiceService()

    async def resolve_selections(
        self,
        db: AsyncSession,
        semester: Semester,
        selections: Iterable[tuple[str, str | None]],
        strict: bool = True,
        warnings: list[str] | None = None,
    ) -> list[ResolvedSelection]:
        """Map raw academy/level names to catalog rows.

        Empty and "N/A" choices are ignored and a repeated academy keeps its
        first level. Unknown names raise ValidationException when ``strict``,
        otherwise they are skipped and described in ``warnings``.
        """
        catalog = {a.name.lower(): a for a in await self.academies.list_academies(db, semester)}
        resolved: dict[uuid.UUID, ResolvedSelection] = {}
        problems: list[dict] = []

        for index, (raw_academy, raw_level) in enumerate(selections):
            if is_empty_selection(raw_academy):
                continue
            name, level_name = canonical_selection(raw_academy, raw_level)
            academy = catalog.get(name.lower())
            if academy is None:
                problems.append({"field": f"selections[{index}]", "message": f"Unknown academy '{raw_academy}'"})
                continue

            level = None
            if academy.levels:
                if level_name:
                    level = match_level(academy, level_name)
                    if level is None:
                        problems.append({
                            "field": f"selections[{index}]",
                            "message": f"Unknown level '{raw_level}' for {academy.name}",
                        })
                        continue
                elif strict:
                    problems.append({
                        "field": f"selections[{index}]",
                        "message": f"A level is required for {academy.name}",
                    })
                    continue
                elif warnings is not None:
                    warnings.append(f"No level given for {academy.name}")

            if academy.id not in resolved:
                resolved[academy.id] = ResolvedSelection(academy=academy, level=level)

        if problems:
            if strict:
                raise ValidationException(problems)
            if warnings is not None:
                warnings.extend(p["message"] for p in problems)

        return list(resolved.values())

    async def list_registrations(
        self,
        db: AsyncSession,
        semester: Semester,
        academy_id: uuid.UUID | None = None,
        search: str | None = None,
        page: int = 1,
        page_size: int = 50,
    ) -> tuple[list[Student], int]:
        """Students enrolled in the semester."""
        enrolled = select(Enrollment.student_id).where(Enrollment.semester_id == semester.id)
        if academy_id:
            enrolled = enrolled.where(Enrollment.academy_id == academy_id)

        query = select(Student).where(Student.id.in_(enrolled))
        if search:
            term = f"%{search}%"
            query = query.where(
                Student.first_name.ilike(term)
                | Student.last_name.ilike(term)
                | Student.email.ilike(term)
            )

        total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar() or 0

        query = query.order_by(Student.last_name, Student.first_name)
        if page_size:
            query = query.offset((page - 1) * page_size).limit(page_size)
        result = await db.execute(query)
        return list(result.scalars().all()), total

    async def get_registration(self, db: AsyncSession, student_id: uuid.UUID) -> Student:
        result = await db.execute(
            select(Student).where(Student.id == student_id).execution_options(populate_existing=True)
        )
        student = result.scalar_one_or_none()
        if not student:
            raise NotFoundException("Registration")
        return student

    async def get_by_email_key(self, db: AsyncSession, key: str | None) -> Student | None:
        if not key:
            return None
        result = await db.execute(select(Student).where(Student.email_key == key))
        return result.scalar_one_or_none()

    async def create_registration(
        self,
        db: AsyncSession,
        data: RegistrationCreate,
        semester: Semester | None = None,
    ) -> tuple[Student, bool]:
        """Register a student, or merge into the student with the same e-mail.

        Returns:
            The student and whether a new student row was created
        """
        semester = semester or await self.semesters.get_active_semester(db)
        resolved = await self.resolve_selections(
            db, semester, [(s.academy, s.level) for s in data.selections]
        )

        key = email_key(data.email)
        student = await self.get_by_email_key(db, key)
        created = student is None
        fields = data.model_dump(exclude={"selections", "address"})
        address = data.address.model_dump()

        if created:
            student = Student(**fields, address=address, email_key=key)
            db.add(student)
        else:
            await self._merge_fields(db, student, fields, address)
            logger.info(f"Registration for {key} merged into student {student.id}")

        self._merge_enrollments(student, semester, resolved)
        await self._flush_unique(db, key)

        await self.invoices.sync_for_student(db, student.id, semester)
        return await self.get_registration(db, student.id), created

    async def update_registration(
        self,
        db: AsyncSession,
        student_id: uuid.UUID,
        data: RegistrationUpdate,
        semester: Semester | None = None,
    ) -> Student:
        """Update personal fields and, when given, replace the semester's selections."""
        student = await self.get_registration(db, student_id)
        semester = semester or await self.semesters.get_active_semester(db)

        resolved = None
        if data.selections is not None:
            resolved = await self.resolve_selections(
                db, semester, [(s.academy, s.level) for s in data.selections]
            )

        update_data = data.model_dump(exclude_unset=True, exclude={"selections", "address"})
        if "email" in update_data:
            key = email_key(update_data["email"])
            other = await self.get_by_email_key(db, key)
            if other and other.id != student.id:
                raise ConflictException(f"Another student is registered with {update_data['email']}")
            student.email_key = key
        if data.address is not None:
            student.address = data.address.model_dump()
        for field, value in update_data.items():
            setattr(student, field, value)

        if resolved is not None:
            self._replace_enrollments(student, semester, resolved)
        await self._flush_unique(db, student.email_key)

        await self.invoices.sync_for_student(db, student.id, semester)
        return await self.get_registration(db, student.id)

    async def delete_registration(
        self,
        db: AsyncSession,
        student_id: uuid.UUID,
        semester: Semester | None = None,
    ) -> bool:
        """Remove a student's semester data.

        The invoice (with its items and payments) and the semester's
        enrollments go; the student row only goes when no other semester
        references it.

        Returns:
            Whether the student row itself was deleted
        """
        student = await self.get_registration(db, student_id)
        semester = semester or await self.semesters.get_active_semester(db)

        invoice = await self.invoices.get_for_student(db, student.id, semester.id)
        if invoice:
            await db.delete(invoice)

        for enrollment in student.enrollments_for(semester.id):
            student.enrollments.remove(enrollment)
        await db.flush()

        if student.enrollments:
            logger.info(f"Removed {student.full_name} from {semester.name}; other semesters kept")
            return False

        await db.delete(student)
        await db.flush()
        logger.info(f"Deleted student {student.full_name}")
        return True

    async def _merge_fields(self, db: AsyncSession, student: Student, fields: dict, address: dict) -> None:
        """Non-empty incoming values win over stored ones.

        A new e-mail moves the student's key with it, unless another student
        already holds that key.
        """
        email = fields.get("email")
        if not _is_blank(email):
            key = email_key(email)
            if key != student.email_key:
                other = await self.get_by_email_key(db, key)
                if other is not None and other.id != student.id:
                    raise ConflictException(f"Another student is registered with {email}")
                student.email_key = key
        for field, value in fields.items():
            if not _is_blank(value):
                setattr(student, field, value)
        merged = dict(student.address or {})
        merged.update({k: v for k, v in address.items() if not _is_blank(v)})
        student.address = merged

    def _merge_enrollments(
        self,
        student: Student,
        semester: Semester,
        resolved: list[ResolvedSelection],
    ) -> None:
        existing = {e.academy_id: e for e in student.enrollments_for(semester.id)}
        for selection in resolved:
            enrollment = existing.get(selection.academy.id)
            if enrollment is None:
                student.enrollments.append(
                    Enrollment(
                        semester_id=semester.id,
                        academy=selection.academy,
                        level=selection.level,
                        status=EnrollmentStatus.ENROLLED.value,
                    )
                )
            elif selection.level is not None:
                enrollment.level = selection.level
                enrollment.status = EnrollmentStatus.ENROLLED.value

    def _replace_enrollments(
        self,
        student: Student,
        semester: Semester,
        resolved: list[ResolvedSelection],
    ) -> None:
        wanted = {s.academy.id for s in resolved}
        for enrollment in student.enrollments_for(semester.id):
            if enrollment.academy_id not in wanted:
                student.enrollments.remove(enrollment)
        self._merge_enrollments(student, semester, resolved)

    async def _flush_unique(self, db: AsyncSession, key: str | None) -> None:
        try:
            await db.flush()
        except IntegrityError as e:
            raise ConflictException(f"A registration for {key or 'this student'} already exists") from e


def get_registration_service() -> RegistrationService:
    return RegistrationService()

"""CSV import and export of registrations."""

import csv
import io
import logging

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from academy_admin.exceptions import ValidationException
from academy_admin.models import Semester
from academy_admin.schemas.maintenance import ImportResult, ImportRowError
from academy_admin.schemas.registration import AcademySelection, RegistrationCreate
from academy_admin.services.registration_service import RegistrationService
from academy_admin.services.semester_service import SemesterService
from academy_admin.utils.validations import parse_date

logger = logging.getLogger(__name__)


# Columns understood by the registration import, in export order
IMPORT_FIELDS = {
    "first_name": {"label": "First Name", "required": True},
    "last_name": {"label": "Last Name", "required": True},
    "email": {"label": "Email", "required": False},
    "phone": {"label": "Phone", "required": False},
    "birth_date": {"label": "Birthday", "required": False},
    "gender": {"label": "Gender", "required": False},
    "street": {"label": "Address", "required": False},
    "city": {"label": "City", "required": False},
    "state": {"label": "State", "required": False},
    "zip": {"label": "ZIP", "required": False},
    "guardian_name": {"label": "Guardian Name", "required": False},
    "guardian_phone": {"label": "Guardian Phone", "required": False},
    "t_shirt_size": {"label": "T-Shirt Size", "required": False},
    "academies": {"label": "Academies (Academy:Level; ...)", "required": False},
}

HEADER_ALIASES = {
    "firstname": "first_name",
    "lastname": "last_name",
    "birthday": "birth_date",
    "birthdate": "birth_date",
    "address": "street",
    "zipcode": "zip",
    "zip_code": "zip",
    "tshirt_size": "t_shirt_size",
    "tshirtsize": "t_shirt_size",
    "selected_academies": "academies",
}


def normalize_header(header: str) -> str:
    key = header.strip().lower().replace(" ", "_").replace("-", "_")
    for label_key, field in IMPORT_FIELDS.items():
        if header.strip().lower() == field["label"].lower():
            return label_key
    return HEADER_ALIASES.get(key, HEADER_ALIASES.get(key.replace("_", ""), key))


def parse_selections(value: str | None) -> list[AcademySelection]:
    """``"Art; Korean Language:Alphabet"`` -> selections."""
    selections = []
    for part in (value or "").split(";"):
        part = part.strip()
        if not part:
            continue
        academy, _, level = part.partition(":")
        selections.append(AcademySelection(academy=academy.strip(), level=level.strip() or None))
    return selections


def format_selections(enrollments) -> str:
    return "; ".join(
        f"{e.academy.name}:{e.level.name}" if e.level else e.academy.name for e in enrollments
    )


def _describe_validation_error(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in error.errors()
    )


class ImportService:
    """Service for bulk registration import/export."""

    def __init__(self):
        self.semesters = SemesterService()
        self.registrations = RegistrationService()

    def get_available_fields(self) -> dict:
        return IMPORT_FIELDS

    def parse_rows(self, csv_content: str) -> list[dict[str, str]]:
        reader = csv.DictReader(io.StringIO(csv_content.lstrip("\ufeff")))
        rows = []
        for row in reader:
            rows.append({
                normalize_header(k): (v or "").strip()
                for k, v in row.items()
                if k is not None
            })
        return rows

    def row_to_registration(self, row: dict[str, str]) -> RegistrationCreate:
        """Build the registration payload for one CSV row.

        Raises:
            pydantic.ValidationError: If the row fails validation
        """
        raw_birthday = row.get("birth_date") or None
        birth_date = parse_date(raw_birthday) if raw_birthday else None
        return RegistrationCreate(
            first_name=row.get("first_name", ""),
            last_name=row.get("last_name", ""),
            email=row.get("email") or None,
            phone=row.get("phone") or None,
            birth_date=birth_date or raw_birthday,
            gender=row.get("gender") or None,
            address={
                "street": row.get("street") or None,
                "city": row.get("city") or None,
                "state": row.get("state") or None,
                "zip": row.get("zip") or None,
            },
            guardian_name=row.get("guardian_name") or None,
            guardian_phone=row.get("guardian_phone") or None,
            t_shirt_size=row.get("t_shirt_size") or None,
            selections=parse_selections(row.get("academies")),
        )

    async def import_registrations(
        self,
        db: AsyncSession,
        csv_content: str,
        semester: Semester | None = None,
    ) -> ImportResult:
        """Upsert every row; rows that fail validation are reported and skipped."""
        semester = semester or await self.semesters.get_active_semester(db)
        rows = self.parse_rows(csv_content)
        result = ImportResult(total_rows=len(rows))

        # Row 1 is the header
        for row_number, row in enumerate(rows, start=2):
            try:
                data = self.row_to_registration(row)
                _, created = await self.registrations.create_registration(db, data, semester)
            except ValidationError as e:
                result.failed += 1
                result.errors.append(ImportRowError(row=row_number, message=_describe_validation_error(e)))
                continue
            except ValidationException as e:
                result.failed += 1
                message = "; ".join(err["message"] for err in e.errors)
                result.errors.append(ImportRowError(row=row_number, message=message))
                continue

            if created:
                result.created += 1
            else:
                result.merged += 1

        logger.info(
            f"Imported {result.total_rows} rows into {semester.name}: "
            f"{result.created} created, {result.merged} merged, {result.failed} failed"
        )
        return result

    async def export_registrations(self, db: AsyncSession, semester: Semester | None = None) -> str:
        """The semester's registrations as CSV, in the import column layout."""
        semester = semester or await self.semesters.get_active_semester(db)
        students, _ = await self.registrations.list_registrations(db, semester, page_size=0)

        output = io.StringIO()
        writer = csv.DictWriter(output, fieldnames=list(IMPORT_FIELDS))
        writer.writeheader()
        for student in students:
            address = student.address or {}
            writer.writerow({
                "first_name": student.first_name,
                "last_name": student.last_name,
                "email": student.email or "",
                "phone": student.phone or "",
                "birth_date": student.birth_date.isoformat() if student.birth_date else "",
                "gender": student.gender or "",
                "street": address.get("street") or "",
                "city": address.get("city") or "",
                "state": address.get("state") or "",
                "zip": address.get("zip") or "",
                "guardian_name": student.guardian_name or "",
                "guardian_phone": student.guardian_phone or "",
                "t_shirt_size": student.t_shirt_size or "",
                "academies": format_selections(student.enrollments_for(semester.id)),
            })
        return output.getvalue()


def get_import_service() -> ImportService:
    return ImportService()

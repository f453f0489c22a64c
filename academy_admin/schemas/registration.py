"""Pydantic schemas for registrations (students and their enrollments)."""

import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import EmailStr, Field, field_validator

from academy_admin.schemas.common import BaseSchema
from academy_admin.utils.validations import is_valid_phone, is_valid_zip


class Address(BaseSchema):
    """Mailing address stored as JSON on the student."""

    street: str | None = None
    street2: str | None = None
    city: str | None = None
    state: str | None = None
    zip: str | None = None


class AddressInput(Address):
    """Address as submitted; the ZIP code must be a US ZIP."""

    @field_validator("zip")
    @classmethod
    def validate_zip(cls, v: str | None) -> str | None:
        if v and not is_valid_zip(v):
            raise ValueError("ZIP code must look like 12345 or 12345-6789")
        return v or None


class AcademySelection(BaseSchema):
    """One academy (and optional level) chosen on the registration form."""

    academy: str
    level: str | None = None


def _check_phone(v: str | None) -> str | None:
    if v and not is_valid_phone(v):
        raise ValueError("Phone number must have 7 to 15 digits")
    return v or None


class RegistrationCreate(BaseSchema):
    """Schema for registering a student.

    Registering an e-mail that already exists updates that student and adds
    the new selections to the current semester.
    """

    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr | None = None
    phone: str | None = None
    birth_date: date | None = None
    gender: str | None = None
    address: AddressInput = Field(default_factory=AddressInput)
    guardian_name: str | None = None
    guardian_phone: str | None = None
    t_shirt_size: str | None = None
    notes: str | None = None
    selections: list[AcademySelection] = Field(default_factory=list)

    @field_validator("phone", "guardian_phone")
    @classmethod
    def validate_phone(cls, v: str | None) -> str | None:
        return _check_phone(v)

    @field_validator("birth_date")
    @classmethod
    def validate_birth_date(cls, v: date | None) -> date | None:
        if v and v > date.today():
            raise ValueError("Birth date cannot be in the future")
        return v


class RegistrationUpdate(BaseSchema):
    """Schema for updating a registration.

    ``selections`` replaces the student's enrollments for the semester when
    present.
    """

    first_name: str | None = Field(None, min_length=1, max_length=100)
    last_name: str | None = Field(None, min_length=1, max_length=100)
    email: EmailStr | None = None
    phone: str | None = None
    birth_date: date | None = None
    gender: str | None = None
    address: AddressInput | None = None
    guardian_name: str | None = None
    guardian_phone: str | None = None
    t_shirt_size: str | None = None
    notes: str | None = None
    selections: list[AcademySelection] | None = None

    @field_validator("phone", "guardian_phone")
    @classmethod
    def validate_phone(cls, v: str | None) -> str | None:
        return _check_phone(v)


class EnrollmentResponse(BaseSchema):
    id: uuid.UUID
    semester_id: uuid.UUID
    academy_id: uuid.UUID
    academy_name: str
    level_id: uuid.UUID | None = None
    level_name: str | None = None
    status: str


class RegistrationResponse(BaseSchema):
    """A student with the semester's enrollments."""

    id: uuid.UUID
    first_name: str
    last_name: str
    full_name: str
    email: str | None = None
    phone: str | None = None
    birth_date: date | None = None
    age: int | None = None
    gender: str | None = None
    address: Address = Field(default_factory=Address)
    guardian_name: str | None = None
    guardian_phone: str | None = None
    t_shirt_size: str | None = None
    notes: str | None = None
    enrollments: list[EnrollmentResponse] = Field(default_factory=list)
    expected_total: Decimal = Decimal("0.00")
    created_at: datetime
    updated_at: datetime

#!/usr/bin/env python3
"""
Development seed data script.

Creates test data for development:
- the active semester (ACTIVE_SEMESTER_NAME)
- 6 academies, two of them with levels
- 1 admin and 2 teachers with class assignments
- 5 registrations with invoices, one of them partially paid

Usage:
    python scripts/seed.py
"""

import asyncio
import sys
from decimal import Decimal
from pathlib import Path

# Add the project root to the path
sys.path.insert(0, str(Path(__file__).parent.parent))

from academy_admin.config import settings
from academy_admin.database import close_db, get_db_context
from academy_admin.models import PaymentMethod, Role
from academy_admin.schemas.academy import AcademyCreate, LevelCreate, SemesterCreate
from academy_admin.schemas.payment import PaymentCreate
from academy_admin.schemas.profile import AssignmentCreate, ProfileUpsert
from academy_admin.schemas.registration import AcademySelection, AddressInput, RegistrationCreate
from academy_admin.services.academy_service import get_academy_service
from academy_admin.services.invoice_service import get_invoice_service
from academy_admin.services.payment_service import get_payment_service
from academy_admin.services.profile_service import get_profile_service
from academy_admin.services.registration_service import get_registration_service
from academy_admin.services.semester_service import get_semester_service

ACADEMIES = [
    ("Korean Language", "150.00", ["Alphabet", "Beginner", "Intermediate", "Conversation", "K-Movie Conversation"]),
    ("Art Academy", "120.00", []),
    ("Piano Academy", "180.00", ["Beginner", "Intermediate"]),
    ("Taekwondo Academy", "140.00", []),
    ("Soccer Academy", "100.00", []),
    ("Kids Academy", "90.00", []),
]

STUDENTS = [
    ("Ana", "Lopez", "ana.lopez@example.com", [("Korean Language", "Beginner"), ("Art Academy", None)]),
    ("Ben", "Carter", "ben.carter@example.com", [("Piano Academy", "Intermediate")]),
    ("Chloe", "Kim", "chloe.kim@example.com", [("Korean Language", "Conversation")]),
    ("Daniel", "Reyes", None, [("Soccer Academy", None), ("Taekwondo Academy", None)]),
    ("Emma", "Nguyen", "emma.nguyen@example.com", [("Kids Academy", None)]),
]


async def seed_database() -> bool:
    """Create seed data in one transaction."""
    print("Seeding development data...")

    async with get_db_context() as db:
        semesters = get_semester_service()
        if await semesters.get_by_name(db, settings.active_semester_name):
            print(f"{settings.active_semester_name} already exists. Skipping seed.")
            return True

        semester = await semesters.create_semester(
            db, SemesterCreate(name=settings.active_semester_name, is_active=True)
        )

        print("Creating academies...")
        academy_service = get_academy_service()
        academies = {}
        for order, (name, price, levels) in enumerate(ACADEMIES):
            academies[name] = await academy_service.create_academy(
                db,
                semester,
                AcademyCreate(
                    name=name,
                    price=Decimal(price),
                    display_order=order,
                    levels=[LevelCreate(name=level, display_order=i) for i, level in enumerate(levels)],
                ),
            )

        print("Creating staff...")
        profiles = get_profile_service()
        await profiles.upsert_profile(db, ProfileUpsert(email="admin@example.com", full_name="Admin User", role=Role.ADMIN))
        korean_teacher = await profiles.upsert_profile(
            db, ProfileUpsert(email="jisoo.park@example.com", full_name="Jisoo Park", role=Role.TEACHER)
        )
        art_teacher = await profiles.upsert_profile(
            db, ProfileUpsert(email="mark.lee@example.com", full_name="Mark Lee", role=Role.TEACHER)
        )
        await profiles.add_assignment(
            db, korean_teacher.id, AssignmentCreate(academy_id=academies["Korean Language"].id)
        )
        await profiles.add_assignment(db, art_teacher.id, AssignmentCreate(academy_id=academies["Art Academy"].id))

        print("Creating registrations...")
        registrations = get_registration_service()
        students = []
        for first_name, last_name, email, selections in STUDENTS:
            student, _ = await registrations.create_registration(
                db,
                RegistrationCreate(
                    first_name=first_name,
                    last_name=last_name,
                    email=email,
                    phone="407-555-0100",
                    address=AddressInput(street="100 Main St", city="Orlando", state="FL", zip="32801"),
                    selections=[AcademySelection(academy=a, level=lvl) for a, lvl in selections],
                ),
                semester,
            )
            students.append(student)

        invoice = await get_invoice_service().get_for_student(db, students[0].id, semester.id)
        await get_payment_service().record_payment(
            db,
            PaymentCreate(invoice_id=invoice.id, amount=Decimal("100.00"), method=PaymentMethod.ZELLE),
            received_by="admin@example.com",
        )

    print("\n" + "=" * 50)
    print("Seed Data Created Successfully!")
    print("=" * 50)
    print(f"\nSemester: {settings.active_semester_name}")
    print(f"Academies: {len(ACADEMIES)}")
    print("Staff: admin@example.com (admin), jisoo.park@example.com, mark.lee@example.com (teachers)")
    print(f"Registrations: {len(STUDENTS)}")
    print("\nIssue a token with: academy-admin token admin@example.com")
    print("=" * 50 + "\n")
    return True


async def main():
    """Main entry point."""
    try:
        success = await seed_database()
        sys.exit(0 if success else 1)
    except KeyboardInterrupt:
        print("\n\nAborted by user.")
        sys.exit(1)
    except Exception as e:
        print(f"\nError: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)
    finally:
        await close_db()


if __name__ == "__main__":
    asyncio.run(main())

"""Migration of document-store collections into the relational store.

Every job is an idempotent upsert: rows remember the document they came from
in ``legacy_id`` (students are also matched on e-mail), so a migration can be
re-run after fixing data on either side.
"""

import logging

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from academy_admin.config import settings
from academy_admin.docstore import DocumentStore
from academy_admin.exceptions import AcademyAdminException, NotFoundException
from academy_admin.models import (
    Academy,
    Invoice,
    InvoiceItemType,
    InvoiceStatus,
    Payment,
    Role,
    Semester,
    Student,
)
from academy_admin.schemas.academy import AcademyCreate, LevelCreate
from academy_admin.schemas.maintenance import JobReport
from academy_admin.schemas.profile import AssignmentCreate, ProfileUpsert
from academy_admin.services.academy_service import canonical_level_name
from academy_admin.services.invoice_service import (
    InvoiceLine,
    latest_invoice_per_student,
    recalculate,
    replace_items,
)
from academy_admin.services.legacy import (
    document_invoice_lines,
    payment_method,
    registration_name,
    registration_selections,
    registration_to_student_fields,
)
from academy_admin.services.profile_service import ProfileService
from academy_admin.services.registration_service import RegistrationService, match_level
from academy_admin.utils.money import ZERO, cents_to_dollars, quantize, to_decimal
from academy_admin.utils.normalization import ACADEMY_ALIASES, email_key, normalize_academy, price_key
from academy_admin.utils.timestamps import to_datetime

logger = logging.getLogger(__name__)

ALL_ITEM_TYPES = tuple(t.value for t in InvoiceItemType)


def _db_error(e: SQLAlchemyError) -> str:
    """First line of a database error, without the statement."""
    return str(getattr(e, "orig", None) or e).splitlines()[0]


class MigrationService:
    """Copies registrations, invoices, payments, academies and teachers."""

    def __init__(self, store: DocumentStore):
        self.store = store
        self.registrations = RegistrationService()
        self.profiles = ProfileService()

    async def target_semester(self, db: AsyncSession) -> Semester:
        """The active semester, created on first migration."""
        try:
            return await self.registrations.semesters.get_active_semester(db)
        except NotFoundException:
            semester = Semester(name=settings.active_semester_name, is_active=True)
            db.add(semester)
            await db.flush()
            logger.info(f"Created semester {semester.name}")
            return semester

    async def migrate_academies(self, db: AsyncSession, semester: Semester, dry_run: bool = False) -> JobReport:
        """Academies and levels; prices in academy documents are dollars."""
        report = JobReport(job="migrate academies", dry_run=dry_run)
        docs = await self.store.list_collection(settings.academies_collection)
        academies = self.registrations.academies

        # Alias documents become levels of their canonical academy, so they go last
        docs.sort(key=lambda d: (d.get("name") or "").strip().lower() in ACADEMY_ALIASES)

        for doc in docs:
            raw_name = (doc.get("name") or "").strip()
            if not raw_name:
                report.error(f"Academy document {doc['id']} has no name")
                continue

            alias = ACADEMY_ALIASES.get(raw_name.lower())
            if alias:
                parent_name, level_name = alias
                parent = await academies.get_by_name(db, semester, parent_name)
                if parent is None:
                    report.warn(f"'{raw_name}' folds into {parent_name}, which is not in the catalog")
                    continue
                if match_level(parent, level_name) is None:
                    try:
                        async with db.begin_nested():
                            await academies.add_level(
                                db, parent.id, LevelCreate(name=level_name, schedule=doc.get("schedule"))
                            )
                    except (AcademyAdminException, SQLAlchemyError) as e:
                        report.error(f"{raw_name}: {getattr(e, 'message', None) or _db_error(e)}")
                        continue
                    report.action(f"Added level {level_name} to {parent_name} (from '{raw_name}')")
                    report.count("levels")
                continue

            name = normalize_academy(raw_name)
            price = quantize(to_decimal(doc.get("price")))
            try:
                async with db.begin_nested():
                    levels = [
                        LevelCreate(
                            name=level.get("name"),
                            schedule=level.get("schedule"),
                            display_order=int(level.get("order") or position),
                        )
                        for position, level in enumerate(doc.get("levels") or [])
                        if isinstance(level, dict) and (level.get("name") or "").strip()
                    ]
                    academy = await academies.get_by_name(db, semester, name)
                    if academy is None:
                        await academies.create_academy(
                            db,
                            semester,
                            AcademyCreate(
                                name=name,
                                description=doc.get("description"),
                                price=price,
                                schedule=doc.get("schedule"),
                                display_order=int(doc.get("order") or 0),
                                is_active=doc.get("enabled", True) is not False,
                                levels=levels,
                            ),
                        )
                        report.action(f"Created academy {name} ({price})")
                        report.count("created")
                        report.count("levels", len(levels))
                        continue

                    academy.price = price
                    academy.schedule = doc.get("schedule") or academy.schedule
                    academy.description = doc.get("description") or academy.description
                    academy.display_order = int(doc.get("order") or academy.display_order)
                    academy.is_active = doc.get("enabled", True) is not False
                    for level in levels:
                        if match_level(academy, canonical_level_name(name, level.name)) is None:
                            await academies.add_level(db, academy.id, level)
                            report.count("levels")
                    await db.flush()
                    report.action(f"Updated academy {name} ({price})")
                    report.count("updated")
            except AcademyAdminException as e:
                report.error(f"{raw_name}: {e.message}")
            except ValidationError as e:
                report.error(f"{raw_name}: {e.errors()[0]['msg']}")
            except SQLAlchemyError as e:
                report.error(f"{raw_name}: {_db_error(e)}")

        return report

    async def migrate_teachers(self, db: AsyncSession, semester: Semester, dry_run: bool = False) -> JobReport:
        """Teacher documents become teacher profiles with academy assignments."""
        report = JobReport(job="migrate teachers", dry_run=dry_run)
        academies = self.registrations.academies

        for doc in await self.store.list_collection(settings.teachers_collection):
            key = email_key(doc.get("email"))
            if not key:
                report.error(f"Teacher document {doc['id']} ({doc.get('name') or '?'}) has no e-mail")
                continue

            try:
                async with db.begin_nested():
                    existing = await self.profiles.get_by_email(db, key)
                    profile = await self.profiles.upsert_profile(
                        db,
                        ProfileUpsert(
                            email=key,
                            full_name=(doc.get("name") or "").strip(),
                            phone=doc.get("phone") or doc.get("phoneNumber"),
                            role=None if existing else Role.TEACHER,
                        ),
                    )
                    report.action(f"{'Updated' if existing else 'Created'} profile {key}")
                    report.count("updated" if existing else "created")

                    for assignment in doc.get("assignments") or []:
                        academy_name = assignment.get("academyName") or ""
                        academy = await academies.get_by_name(db, semester, academy_name)
                        if academy is None:
                            report.warn(f"{key}: unknown academy '{academy_name}'")
                            continue
                        level = None
                        if assignment.get("levelName"):
                            level = match_level(academy, assignment["levelName"])
                            if level is None:
                                report.warn(f"{key}: unknown level '{assignment['levelName']}' for {academy.name}")
                                continue
                        profile = await self.profiles.add_assignment(
                            db,
                            profile.id,
                            AssignmentCreate(academy_id=academy.id, level_id=level.id if level else None),
                        )
                        report.count("assignments")
            except AcademyAdminException as e:
                report.error(f"{key}: {e.message}")
            except ValidationError as e:
                report.error(f"{key}: {e.errors()[0]['msg']}")
            except SQLAlchemyError as e:
                report.error(f"{key}: {_db_error(e)}")

        return report

    async def _find_student(self, db: AsyncSession, legacy_id: str, key: str | None) -> Student | None:
        result = await db.execute(select(Student).where(Student.legacy_id == legacy_id))
        student = result.scalar_one_or_none()
        if student is None:
            student = await self.registrations.get_by_email_key(db, key)
        return student

    async def migrate_registrations(
        self,
        db: AsyncSession,
        semester: Semester,
        dry_run: bool = False,
    ) -> JobReport:
        """Registration documents become students with semester enrollments.

        Several documents with the same e-mail merge into one student.
        """
        report = JobReport(job="migrate registrations", dry_run=dry_run)

        for doc in await self.store.list_collection(settings.registrations_collection, order_by="createdAt"):
            name = registration_name(doc)
            try:
                async with db.begin_nested():
                    fields = registration_to_student_fields(doc)
                    if not fields["first_name"] or not fields["last_name"]:
                        report.error(f"Registration {doc['id']} has no name")
                        continue

                    key = email_key(fields["email"])
                    address = fields.pop("address")
                    student = await self._find_student(db, doc["id"], key)

                    if student is None:
                        student = Student(**fields, address=address, email_key=key, legacy_id=doc["id"])
                        db.add(student)
                        report.action(f"Created student {name}")
                        report.count("created")
                    else:
                        await self.registrations._merge_fields(db, student, fields, address)
                        if student.legacy_id is None:
                            student.legacy_id = doc["id"]
                        elif student.legacy_id != doc["id"]:
                            report.warn(f"{name}: registration {doc['id']} merged into {student.legacy_id}")
                        report.action(f"Updated student {name}")
                        report.count("merged")

                    warnings: list[str] = []
                    resolved = await self.registrations.resolve_selections(
                        db, semester, registration_selections(doc), strict=False, warnings=warnings
                    )
                    for warning in warnings:
                        report.warn(f"{name}: {warning}")

                    before = len(student.enrollments_for(semester.id))
                    self.registrations._merge_enrollments(student, semester, resolved)
                    report.count("enrollments", len(student.enrollments_for(semester.id)) - before)
                    await self.registrations._flush_unique(db, key)
            except AcademyAdminException as e:
                report.error(f"{name}: {e.message}")
            except SQLAlchemyError as e:
                report.error(f"{name}: {_db_error(e)}")

        return report

    async def migrate_invoices(self, db: AsyncSession, semester: Semester, dry_run: bool = False) -> JobReport:
        """The newest invoice document of each student becomes their semester invoice."""
        report = JobReport(job="migrate invoices", dry_run=dry_run)
        docs = await self.store.list_collection(settings.invoices_collection)
        latest = latest_invoice_per_student(docs)
        kept = {doc["id"] for doc in latest.values()}
        for doc in docs:
            if doc["id"] not in kept:
                report.warn(f"Invoice {doc['id']} of {doc.get('studentName') or doc.get('studentId')} superseded by a newer one")

        catalog = {
            price_key(a.name): a
            for a in await self.registrations.academies.list_academies(db, semester)
        }

        for student_legacy_id, doc in latest.items():
            label = doc.get("studentName") or student_legacy_id
            try:
                async with db.begin_nested():
                    result = await db.execute(select(Student).where(Student.legacy_id == student_legacy_id))
                    student = result.scalar_one_or_none()
                    if student is None:
                        report.warn(f"{label}: registration {student_legacy_id} was not migrated")
                        report.count("skipped")
                        continue

                    invoice = await self._find_invoice(db, doc["id"], student, semester)
                    created = invoice is None
                    if created:
                        invoice = Invoice(
                            student_id=student.id,
                            semester_id=semester.id,
                            status=InvoiceStatus.UNPAID.value,
                        )
                        db.add(invoice)

                    replace_items(invoice, ALL_ITEM_TYPES, self._invoice_lines(doc, catalog))
                    invoice.discount_amount = cents_to_dollars(doc.get("discountAmount"))
                    invoice.paid_amount = cents_to_dollars(doc.get("paid"))
                    invoice.is_restored = bool(doc.get("isRestored"))
                    invoice.legacy_id = doc["id"]
                    if doc.get("status") == InvoiceStatus.EXONERATED.value:
                        invoice.status = InvoiceStatus.EXONERATED.value
                    elif invoice.status != InvoiceStatus.EXONERATED.value:
                        invoice.status = InvoiceStatus.UNPAID.value
                    recalculate(invoice)

                    if doc.get("total") is not None and invoice.total != cents_to_dollars(doc["total"]):
                        report.warn(
                            f"{label}: stored total {cents_to_dollars(doc['total'])} recomputed as {invoice.total}"
                        )
                    await db.flush()
                    report.action(f"{'Created' if created else 'Updated'} invoice for {label}: {invoice.total}")
                    report.count("created" if created else "updated")
            except AcademyAdminException as e:
                report.error(f"{label}: {e.message}")
            except SQLAlchemyError as e:
                report.error(f"{label}: {_db_error(e)}")

        return report

    async def _find_invoice(
        self,
        db: AsyncSession,
        legacy_id: str,
        student: Student,
        semester: Semester,
    ) -> Invoice | None:
        result = await db.execute(
            select(Invoice).where(Invoice.legacy_id == legacy_id).execution_options(populate_existing=True)
        )
        invoice = result.scalar_one_or_none()
        if invoice is None:
            invoice = await self.registrations.invoices.get_for_student(db, student.id, semester.id)
        return invoice

    def _invoice_lines(self, doc: dict, catalog: dict[str, Academy]) -> list[InvoiceLine]:
        lines = []
        for line in document_invoice_lines(doc):
            academy = catalog.get(price_key(line["academy"])) if line["academy"] else None
            lines.append(
                InvoiceLine(
                    type=InvoiceItemType.TUITION.value,
                    description=line["description"],
                    unit_price=cents_to_dollars(line["unit_cents"]),
                    quantity=line["quantity"],
                    academy_id=academy.id if academy else None,
                )
            )

        lunch_amount = cents_to_dollars(doc.get("lunchAmount"))
        if lunch_amount > ZERO:
            lunch = doc.get("lunch") or {}
            if lunch.get("semester"):
                lines.append(
                    InvoiceLine(
                        type=InvoiceItemType.LUNCH_SEMESTER.value,
                        description="Lunch (semester)",
                        unit_price=lunch_amount,
                    )
                )
            else:
                days = max(1, int(lunch.get("single") or 1))
                lines.append(
                    InvoiceLine(
                        type=InvoiceItemType.LUNCH_SINGLE.value,
                        description="Lunch (single day)",
                        unit_price=quantize(lunch_amount / days),
                        quantity=days,
                    )
                )
        return lines

    async def migrate_payments(self, db: AsyncSession, semester: Semester, dry_run: bool = False) -> JobReport:
        """Payment documents become payments on the student's semester invoice.

        Invoice paid amounts are migrated with the invoices; differences show
        up in ``reconcile-balances``.
        """
        report = JobReport(job="migrate payments", dry_run=dry_run)

        for doc in await self.store.list_collection(settings.payments_collection):
            existing = await db.execute(select(Payment.id).where(Payment.legacy_id == doc["id"]))
            if existing.scalar_one_or_none() is not None:
                report.count("existing")
                continue

            amount = cents_to_dollars(doc.get("amount"))
            if amount <= ZERO:
                report.warn(f"Payment {doc['id']} has no amount")
                report.count("skipped")
                continue

            result = await db.execute(select(Student).where(Student.legacy_id == doc.get("studentId")))
            student = result.scalar_one_or_none()
            if student is None:
                report.error(f"Payment {doc['id']}: registration {doc.get('studentId')} was not migrated")
                continue

            invoice = None
            if doc.get("invoiceId"):
                invoice = await self._find_invoice(db, doc["invoiceId"], student, semester)
            if invoice is None:
                report.warn(f"Payment {doc['id']} of {student.full_name} has no invoice")

            payment = Payment(
                invoice_id=invoice.id if invoice else None,
                student_id=student.id,
                amount=amount,
                method=payment_method(doc.get("method")),
                notes=doc.get("notes"),
                legacy_id=doc["id"],
            )
            paid_at = to_datetime(doc.get("date")) or to_datetime(doc.get("createdAt"))
            if paid_at is not None:
                payment.transaction_date = paid_at
            try:
                async with db.begin_nested():
                    db.add(payment)
                    await db.flush()
            except SQLAlchemyError as e:
                report.error(f"Payment {doc['id']}: {_db_error(e)}")
                continue
            report.action(f"Payment of {amount} by {student.full_name}")
            report.count("created")

        return report

    async def migrate_all(self, db: AsyncSession, dry_run: bool = False) -> list[JobReport]:
        """Run every migration in dependency order."""
        semester = await self.target_semester(db)
        return [
            await self.migrate_academies(db, semester, dry_run),
            await self.migrate_teachers(db, semester, dry_run),
            await self.migrate_registrations(db, semester, dry_run),
            await self.migrate_invoices(db, semester, dry_run),
            await self.migrate_payments(db, semester, dry_run),
        ]

    async def rename_document_academy(self, old: str, new: str, dry_run: bool = False) -> JobReport:
        """Rename an academy inside registration documents."""
        report = JobReport(job=f"rename academy '{old}' -> '{new}'", dry_run=dry_run)
        wanted = old.strip().lower()
        updates: dict[str, dict] = {}

        for doc in await self.store.list_collection(settings.registrations_collection):
            changes = {}
            selected = doc.get("selectedAcademies")
            if isinstance(selected, list) and any(
                isinstance(s, dict) and (s.get("academy") or "").strip().lower() == wanted for s in selected
            ):
                changes["selectedAcademies"] = [
                    {**s, "academy": new}
                    if isinstance(s, dict) and (s.get("academy") or "").strip().lower() == wanted
                    else s
                    for s in selected
                ]
            for period in ("firstPeriod", "secondPeriod"):
                value = doc.get(period)
                if isinstance(value, dict) and (value.get("academy") or "").strip().lower() == wanted:
                    changes[period] = {**value, "academy": new}

            if changes:
                updates[doc["id"]] = changes
                report.action(f"{registration_name(doc)}: {', '.join(sorted(changes))}")

        report.count("documents", len(updates))
        if updates and not dry_run:
            await self.store.update_many(settings.registrations_collection, updates)
        return report

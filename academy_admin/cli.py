"""``academy-admin`` maintenance command line.

Each subcommand runs one job against the document store, the relational
store or both and prints its report. Mutating jobs take ``--dry-run``:
relational work is rolled back at the end and document writes are skipped.

Usage:
    academy-admin backup
    academy-admin migrate all --dry-run
    academy-admin dedupe-students --keep <id> --remove <id> <id>
    academy-admin token admin@example.com
"""

import argparse
import asyncio
import logging
import sys
import uuid
from pathlib import Path

from academy_admin.database import close_db, get_db_context
from academy_admin.docstore import get_document_store
from academy_admin.exceptions import AcademyAdminException, NotFoundException
from academy_admin.models import Role, Semester
from academy_admin.schemas.maintenance import JobReport
from academy_admin.services.backup_service import backup
from academy_admin.services.dedup_service import get_dedup_service, remove_duplicate_invoices
from academy_admin.services.import_service import get_import_service
from academy_admin.services.migration_service import MigrationService
from academy_admin.services.pricing_service import audit_pricing
from academy_admin.services.profile_service import get_profile_service
from academy_admin.services.reconcile_service import (
    generate_missing_doc_invoices,
    get_reconcile_service,
    reconcile_doc_payments,
    restore_orphaned_invoices,
)
from academy_admin.services.semester_service import get_semester_service
from academy_admin.utils.log_config import configure_logging
from academy_admin.utils.security import create_access_token

logger = logging.getLogger(__name__)

MIGRATION_TARGETS = ("academies", "teachers", "registrations", "invoices", "payments", "all")


async def _semester(db, args) -> Semester:
    """The semester named by ``--semester``, else the active one."""
    service = get_semester_service()
    if args.semester:
        semester = await service.get_by_name(db, args.semester)
        if semester is None:
            raise NotFoundException(f"Semester '{args.semester}'")
        return semester
    return await service.get_active_semester(db)


async def cmd_backup(args) -> list[JobReport]:
    report = await backup(
        get_document_store(),
        target_dir=args.dir,
        collections=args.collection or None,
        dry_run=args.dry_run,
    )
    return [report]


async def cmd_migrate(args) -> list[JobReport]:
    service = MigrationService(get_document_store())
    async with get_db_context(dry_run=args.dry_run) as db:
        if args.target == "all":
            return await service.migrate_all(db, dry_run=args.dry_run)

        semester = await service.target_semester(db)
        job = getattr(service, f"migrate_{args.target}")
        return [await job(db, semester, dry_run=args.dry_run)]


async def cmd_rename_academy(args) -> list[JobReport]:
    service = MigrationService(get_document_store())
    return [await service.rename_document_academy(args.old, args.new, dry_run=args.dry_run)]


async def cmd_dedupe_invoices(args) -> list[JobReport]:
    return [await remove_duplicate_invoices(get_document_store(), dry_run=args.dry_run)]


async def cmd_dedupe_students(args) -> list[JobReport]:
    service = get_dedup_service()
    async with get_db_context(dry_run=args.dry_run) as db:
        if args.keep is None:
            return [await service.report_duplicate_students(db)]
        return [await service.merge_students(db, args.keep, args.remove, dry_run=args.dry_run)]


async def cmd_merge_teachers(args) -> list[JobReport]:
    service = get_dedup_service()
    async with get_db_context(dry_run=args.dry_run) as db:
        if args.keep is None:
            return [await service.report_duplicate_profiles(db)]
        return [await service.merge_profiles(db, args.keep, args.remove, dry_run=args.dry_run)]


async def cmd_canonicalize_catalog(args) -> list[JobReport]:
    async with get_db_context(dry_run=args.dry_run) as db:
        semester = await _semester(db, args)
        return [await get_dedup_service().canonicalize_catalog(db, semester, dry_run=args.dry_run)]


async def cmd_check_orphans(args) -> list[JobReport]:
    async with get_db_context(dry_run=args.dry_run) as db:
        report = await get_dedup_service().check_orphan_students(
            db, delete_orphans=args.delete, dry_run=args.dry_run
        )
        return [report]


async def cmd_check_enrollments(args) -> list[JobReport]:
    async with get_db_context(dry_run=True) as db:
        semester = await _semester(db, args)
        return [await get_reconcile_service().report_invalid_enrollments(db, semester)]


async def cmd_missing_invoices(args) -> list[JobReport]:
    async with get_db_context(dry_run=args.dry_run) as db:
        semester = await _semester(db, args)
        report = await get_reconcile_service().find_missing_invoices(
            db, semester, fix=args.fix, dry_run=args.dry_run
        )
        return [report]


async def cmd_reconcile_balances(args) -> list[JobReport]:
    async with get_db_context(dry_run=args.dry_run) as db:
        semester = await _semester(db, args)
        report = await get_reconcile_service().reconcile_invoice_balances(
            db, semester, fix=args.fix, dry_run=args.dry_run
        )
        return [report]


async def cmd_reconcile_payments(args) -> list[JobReport]:
    return [await reconcile_doc_payments(get_document_store(), fix=args.fix, dry_run=args.dry_run)]


async def cmd_restore_invoices(args) -> list[JobReport]:
    return [await restore_orphaned_invoices(get_document_store(), dry_run=args.dry_run)]


async def cmd_doc_invoices(args) -> list[JobReport]:
    return [await generate_missing_doc_invoices(get_document_store(), dry_run=args.dry_run)]


async def cmd_fix_pricing(args) -> list[JobReport]:
    return [await audit_pricing(get_document_store(), dry_run=args.dry_run)]


async def cmd_import_registrations(args) -> list[JobReport]:
    content = Path(args.file).read_text(encoding="utf-8-sig")
    report = JobReport(job=f"import {args.file}", dry_run=args.dry_run)
    async with get_db_context(dry_run=args.dry_run) as db:
        semester = await _semester(db, args)
        result = await get_import_service().import_registrations(db, content, semester)

    report.count("rows", result.total_rows)
    report.count("created", result.created)
    report.count("merged", result.merged)
    report.count("failed", result.failed)
    for error in result.errors:
        report.error(f"row {error.row}: {error.message}")
    return [report]


async def cmd_set_role(args) -> list[JobReport]:
    report = JobReport(job="set role", dry_run=args.dry_run)
    async with get_db_context(dry_run=args.dry_run) as db:
        profile = await get_profile_service().set_role(
            db, args.email, Role(args.role), create=args.create, full_name=args.name
        )
        report.action(f"{profile.email} is now {profile.role}")
    return [report]


async def cmd_token(args) -> list[JobReport]:
    """Print an API token for a user with access."""
    service = get_profile_service()
    async with get_db_context(dry_run=True) as db:
        role = await service.resolve_role(db, args.email)
        if role is None:
            raise NotFoundException(f"Active profile or admin e-mail {args.email}")
        profile = await service.get_by_email(db, args.email)

    print(create_access_token(args.email, role, name=profile.full_name if profile else ""))
    return []


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--dry-run", action="store_true", help="Report what would change without writing")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log at DEBUG level")
    parser.add_argument("--semester", help="Semester name (defaults to the active semester)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="academy-admin",
        description="Maintenance jobs for the academy registration stores",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add(name: str, handler, help_text: str) -> argparse.ArgumentParser:
        sub = subparsers.add_parser(name, help=help_text)
        _add_common(sub)
        sub.set_defaults(handler=handler)
        return sub

    sub = add("backup", cmd_backup, "Dump document collections to timestamped JSON files")
    sub.add_argument("--dir", help="Target directory (defaults to BACKUP_DIR)")
    sub.add_argument("--collection", action="append", help="Collection to back up (repeatable)")

    sub = add("migrate", cmd_migrate, "Copy documents into the relational store")
    sub.add_argument("target", choices=MIGRATION_TARGETS)

    sub = add("rename-academy", cmd_rename_academy, "Rename an academy inside registration documents")
    sub.add_argument("old")
    sub.add_argument("new")

    add("dedupe-invoices", cmd_dedupe_invoices, "Delete duplicate unpaid invoice documents")

    sub = add("dedupe-students", cmd_dedupe_students, "Report or merge duplicate students")
    sub.add_argument("--keep", type=uuid.UUID, help="Student to keep")
    sub.add_argument("--remove", type=uuid.UUID, nargs="+", default=[], help="Students to merge into --keep")

    sub = add("merge-teachers", cmd_merge_teachers, "Report or merge duplicate teacher profiles")
    sub.add_argument("--keep", help="E-mail of the profile to keep")
    sub.add_argument("--remove", nargs="+", default=[], help="E-mails to merge into --keep")

    add("canonicalize-catalog", cmd_canonicalize_catalog, "Merge alias academies and duplicate levels")

    sub = add("check-orphans", cmd_check_orphans, "Students without any enrollment")
    sub.add_argument("--delete", action="store_true", help="Delete orphans that have no payments")

    add("check-enrollments", cmd_check_enrollments, "Enrollments with a missing or mismatched level")

    sub = add("missing-invoices", cmd_missing_invoices, "Enrolled students without an invoice")
    sub.add_argument("--fix", action="store_true", help="Create the missing invoices")

    sub = add("reconcile-balances", cmd_reconcile_balances, "Invoices whose amounts disagree with payments")
    sub.add_argument("--fix", action="store_true", help="Recalculate the stale invoices")

    sub = add("reconcile-payments", cmd_reconcile_payments, "Check payment documents against invoices")
    sub.add_argument("--fix", action="store_true", help="Update stale invoice documents")

    add("restore-invoices", cmd_restore_invoices, "Recreate invoice documents for orphaned payments")
    add("doc-invoices", cmd_doc_invoices, "Create invoice documents for uninvoiced registrations")
    add("fix-pricing", cmd_fix_pricing, "Convert dollar prices in the pricing document to cents")

    sub = add("import-registrations", cmd_import_registrations, "Import registrations from a CSV file")
    sub.add_argument("file")

    sub = add("set-role", cmd_set_role, "Change a user's role")
    sub.add_argument("email")
    sub.add_argument("role", choices=[role.value for role in Role])
    sub.add_argument("--create", action="store_true", help="Create the profile when missing")
    sub.add_argument("--name", default="", help="Full name for a created profile")

    sub = add("token", cmd_token, "Print an API access token")
    sub.add_argument("email")

    return parser


async def run(args) -> list[JobReport]:
    try:
        return await args.handler(args)
    finally:
        await close_db()


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else None)

    try:
        reports = asyncio.run(run(args))
    except AcademyAdminException as e:
        details = "; ".join(err["message"] for err in getattr(e, "errors", []))
        logger.error(f"{args.command} failed: {e.message}{f' ({details})' if details else ''}")
        return 1
    except Exception:
        logger.exception(f"{args.command} failed")
        return 1

    for report in reports:
        print("\n".join(report.lines()))
        print()
    return 0 if all(report.ok for report in reports) else 1


if __name__ == "__main__":
    sys.exit(main())

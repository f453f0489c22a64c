"""JSON snapshots of document-store collections."""

import json
import logging
from datetime import date, datetime, timezone
from pathlib import Path

from academy_admin.config import settings
from academy_admin.docstore import DocumentStore
from academy_admin.schemas.maintenance import JobReport

logger = logging.getLogger(__name__)


def backup_collections() -> list[str]:
    """Collections included in a backup."""
    return [
        settings.registrations_collection,
        settings.invoices_collection,
        settings.payments_collection,
        settings.academies_collection,
        settings.teachers_collection,
        settings.settings_collection,
    ]


def _json_default(value):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    # Firestore references, geo points
    return str(value)


async def backup(
    store: DocumentStore,
    target_dir: str | Path | None = None,
    collections: list[str] | None = None,
    dry_run: bool = False,
    now: datetime | None = None,
) -> JobReport:
    """Write each collection to ``<dir>/<collection>_<timestamp>.json``."""
    report = JobReport(job="backup", dry_run=dry_run)
    stamp = (now or datetime.now(timezone.utc)).strftime("%Y%m%d_%H%M%S")
    directory = Path(target_dir or settings.backup_dir)
    if not dry_run:
        directory.mkdir(parents=True, exist_ok=True)

    for collection in collections or backup_collections():
        docs = await store.list_collection(collection)
        path = directory / f"{collection}_{stamp}.json"
        report.action(f"{collection}: {len(docs)} documents -> {path}")
        report.count("documents", len(docs))
        if dry_run:
            continue
        path.write_text(json.dumps(docs, default=_json_default, indent=2, ensure_ascii=False), encoding="utf-8")
        logger.info(f"Backed up {collection} to {path}")

    return report

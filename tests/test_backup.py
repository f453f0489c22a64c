"""Tests for document-store backups."""

import json
from datetime import datetime, timezone

import pytest

from academy_admin.config import settings
from academy_admin.services.backup_service import backup, backup_collections
from tests.fakes import MemoryDocumentStore

pytestmark = pytest.mark.anyio

NOW = datetime(2026, 3, 7, 14, 30, 5, tzinfo=timezone.utc)


@pytest.fixture
def store():
    return MemoryDocumentStore({
        settings.registrations_collection: [
            {"id": "r1", "firstName": "Ana", "createdAt": datetime(2026, 1, 10, tzinfo=timezone.utc)},
            {"id": "r2", "firstName": "Ben"},
        ],
        settings.invoices_collection: [{"id": "i1", "studentId": "r1", "total": 27000}],
    })


async def test_backup_writes_one_file_per_collection(store, tmp_path):
    report = await backup(store, target_dir=tmp_path, now=NOW)

    assert len(list(tmp_path.iterdir())) == len(backup_collections())
    assert report.counts == {"documents": 3}

    path = tmp_path / f"{settings.registrations_collection}_20260307_143005.json"
    docs = json.loads(path.read_text(encoding="utf-8"))
    assert [d["id"] for d in docs] == ["r1", "r2"]
    assert docs[0]["createdAt"] == "2026-01-10T00:00:00+00:00"


async def test_backup_selected_collections(store, tmp_path):
    await backup(store, target_dir=tmp_path, collections=[settings.invoices_collection], now=NOW)

    assert [p.name for p in tmp_path.iterdir()] == [f"{settings.invoices_collection}_20260307_143005.json"]


async def test_backup_dry_run(store, tmp_path):
    target = tmp_path / "not-created"

    report = await backup(store, target_dir=target, dry_run=True, now=NOW)

    assert not target.exists()
    assert len(report.actions) == len(backup_collections())

"""Tests for the pricing document audit."""

import pytest

from academy_admin.config import settings
from academy_admin.services.pricing_service import audit_pricing
from tests.fakes import MemoryDocumentStore

pytestmark = pytest.mark.anyio


def _store(pricing: dict | None) -> MemoryDocumentStore:
    docs = [{"id": settings.pricing_document, **pricing}] if pricing is not None else []
    return MemoryDocumentStore({settings.settings_collection: docs})


async def test_dollar_values_become_cents():
    store = _store({
        "academyPrices": {"Korean Language": 150, "Art Academy": 12000, "Piano": 90000, "Soccer": "abc"},
        "lunch": {"semester": 40, "single": 1200},
    })

    report = await audit_pricing(store)

    pricing = store.docs(settings.settings_collection)[settings.pricing_document]
    assert pricing["academyPrices"] == {"Korean Language": 15000, "Art Academy": 12000, "Piano": 90000, "Soccer": "abc"}
    assert pricing["lunch"] == {"semester": 4000, "single": 1200}
    assert report.counts == {"checked": 4, "fixed": 2}
    assert any("Piano" in w and "outside the usual range" in w for w in report.warnings)
    assert "Korean Language: $1.50 -> $150.00" in report.actions


async def test_dry_run_leaves_the_document_alone():
    store = _store({"academyPrices": {"Art Academy": 120}, "lunch": {"semester": 4000, "single": 4}})

    report = await audit_pricing(store, dry_run=True)

    assert report.counts["fixed"] == 2
    assert store.writes == []


async def test_missing_lunch_price_is_reported():
    store = _store({"academyPrices": {"Art Academy": 12000}, "lunch": {"semester": 4000}})

    report = await audit_pricing(store)

    assert report.warnings == ["Lunch single has no price"]
    assert store.writes == []


async def test_missing_document():
    report = await audit_pricing(_store(None))
    assert report.counts == {}
    assert len(report.warnings) == 1


async def test_lunch_prices_under_ten_dollars_are_dollars():
    store = _store({"academyPrices": {}, "lunch": {"semester": 40, "single": 5}})

    report = await audit_pricing(store)

    pricing = store.docs(settings.settings_collection)[settings.pricing_document]
    assert pricing["lunch"] == {"semester": 4000, "single": 500}
    assert report.actions == ["Lunch semester: $0.40 -> $40.00", "Lunch single: $0.05 -> $5.00"]

"""Pricing stored in the document store's ``settings/pricing`` document."""

import logging

from academy_admin.config import settings
from academy_admin.docstore import DocumentStore
from academy_admin.schemas.maintenance import JobReport
from academy_admin.services.legacy import PRICE_MAX_CENTS, PRICE_MIN_CENTS
from academy_admin.utils.money import format_usd, to_decimal

logger = logging.getLogger(__name__)


def _as_cents(value) -> int | None:
    amount = to_decimal(value)
    if amount < 0:
        return None
    return int(amount)


async def audit_pricing(store: DocumentStore, dry_run: bool = False) -> JobReport:
    """Repair prices saved in dollars where cents were expected.

    Academy and lunch prices between 0 and ``PRICE_MIN_CENTS`` are multiplied
    by 100. Academy prices outside the expected range are reported for review.
    """
    report = JobReport(job="fix pricing", dry_run=dry_run)
    doc = await store.get(settings.settings_collection, settings.pricing_document)
    if doc is None:
        report.warn(f"{settings.settings_collection}/{settings.pricing_document} does not exist")
        return report

    academy_prices = dict(doc.get("academyPrices") or {})
    fixed_prices = {}
    for academy, value in academy_prices.items():
        report.count("checked")
        cents = _as_cents(value)
        if cents is None:
            report.warn(f"{academy}: invalid price {value!r}")
        elif 0 < cents < PRICE_MIN_CENTS:
            fixed_prices[academy] = cents * 100
            report.action(f"{academy}: {format_usd(cents)} -> {format_usd(cents * 100)}")
        elif not PRICE_MIN_CENTS <= cents <= PRICE_MAX_CENTS:
            report.warn(f"{academy}: {format_usd(cents)} is outside the usual range, check it by hand")

    lunch = dict(doc.get("lunch") or {})
    fixed_lunch = {}
    for option in ("semester", "single"):
        cents = _as_cents(lunch.get(option, 0))
        if cents is None:
            report.warn(f"Lunch {option}: invalid price {lunch.get(option)!r}")
        elif 0 < cents < PRICE_MIN_CENTS:
            fixed_lunch[option] = cents * 100
            report.action(f"Lunch {option}: {format_usd(cents)} -> {format_usd(cents * 100)}")
        elif cents == 0:
            report.warn(f"Lunch {option} has no price")

    report.count("fixed", len(fixed_prices) + len(fixed_lunch))
    if (fixed_prices or fixed_lunch) and not dry_run:
        update = {}
        if fixed_prices:
            update["academyPrices"] = {**academy_prices, **fixed_prices}
        if fixed_lunch:
            update["lunch"] = {**lunch, **fixed_lunch}
        await store.update(settings.settings_collection, settings.pricing_document, update)
        logger.info(f"Updated {len(fixed_prices) + len(fixed_lunch)} prices")
    return report

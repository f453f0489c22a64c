"""Record shapes of the document store.

Registration, invoice and payment documents were written by several
generations of the public form and admin screens, so most fields have more
than one spelling. Amounts are integer cents.
"""

from academy_admin.exceptions import NotFoundException
from academy_admin.services.invoice_service import compute_status
from academy_admin.utils.money import cents_to_dollars, to_cents, to_decimal
from academy_admin.utils.normalization import (
    canonical_selection,
    is_empty_selection,
    normalize_academy,
    price_key,
)
from academy_admin.utils.validations import parse_date

# settings/pricing values outside this range (cents) need a human look
PRICE_MIN_CENTS = 1000
PRICE_MAX_CENTS = 50000

LEGACY_PAYMENT_METHODS = {
    "cash": "cash",
    "zelle": "zelle",
    "card": "card",
    "credit": "card",
    "credit card": "card",
    "debit": "card",
    "check": "check",
    "cheque": "check",
}


def _first(doc: dict, *keys, default=None):
    for key in keys:
        value = doc.get(key)
        if value not in (None, ""):
            return value
    return default


def registration_selections(doc: dict) -> list[tuple[str, str | None]]:
    """(academy, level) pairs of a registration document.

    Newer documents carry ``selectedAcademies``; older ones a
    ``firstPeriod``/``secondPeriod`` pair where the second period repeats
    the first academy when a student took a double slot.
    """
    pairs = []
    selected = doc.get("selectedAcademies")
    if isinstance(selected, list) and selected:
        for item in selected:
            if isinstance(item, dict):
                pairs.append((item.get("academy"), item.get("level")))
    else:
        first = doc.get("firstPeriod") or {}
        second = doc.get("secondPeriod") or {}
        if first.get("academy"):
            pairs.append((first.get("academy"), first.get("level")))
        if second.get("academy") and (
            normalize_academy(second.get("academy")).lower()
            != normalize_academy(first.get("academy")).lower()
        ):
            pairs.append((second.get("academy"), second.get("level")))
    return [(academy, level) for academy, level in pairs if not is_empty_selection(academy)]


def registration_name(doc: dict) -> str:
    return f"{doc.get('firstName') or ''} {doc.get('lastName') or ''}".strip() or doc.get("id", "?")


def registration_to_student_fields(doc: dict) -> dict:
    """Student column values for a registration document."""
    return {
        "first_name": (doc.get("firstName") or "").strip(),
        "last_name": (doc.get("lastName") or "").strip(),
        "email": (doc.get("email") or "").strip() or None,
        "phone": _first(doc, "cellNumber", "phone", "phoneNumber"),
        "birth_date": parse_date(doc.get("birthday")),
        "gender": doc.get("gender") or None,
        "address": {
            "street": doc.get("address") or "",
            "street2": doc.get("addressLine2") or "",
            "city": doc.get("city") or "",
            "state": doc.get("state") or "",
            "zip": _first(doc, "zipCode", "zip", default=""),
        },
        "guardian_name": _first(doc, "guardianName", "parentName"),
        "guardian_phone": _first(doc, "guardianPhone", "parentPhone"),
        "t_shirt_size": _first(doc, "tShirtSize", "tshirtSize"),
    }


def payment_method(value) -> str:
    return LEGACY_PAYMENT_METHODS.get(str(value or "").strip().lower(), "other")


def document_invoice_lines(doc: dict) -> list[dict]:
    """Billed lines of an invoice document, amounts in cents.

    Handles ``lines`` (academy/level/unitPrice/qty/amount) and the older
    ``items`` (description/amount).
    """
    lines = []
    for line in doc.get("lines") or []:
        quantity = int(line.get("qty") or line.get("quantity") or 1)
        unit = int(to_decimal(line.get("unitPrice", line.get("amount", 0))))
        amount = int(to_decimal(line["amount"])) if line.get("amount") is not None else unit * quantity
        lines.append({
            "academy": line.get("academy"),
            "level": line.get("level"),
            "description": line.get("description")
            or " - ".join(p for p in (line.get("academy"), line.get("level")) if p),
            "unit_cents": unit,
            "quantity": quantity,
            "amount_cents": amount,
        })
    if not lines:
        for item in doc.get("items") or []:
            amount = int(item.get("amount") or 0)
            lines.append({
                "academy": None,
                "level": None,
                "description": item.get("description") or "Tuition",
                "unit_cents": amount,
                "quantity": 1,
                "amount_cents": amount,
            })
    return lines


def document_invoice_status(total_cents: int, paid_cents: int, current: str | None = None) -> str:
    return compute_status(cents_to_dollars(total_cents), cents_to_dollars(paid_cents), current)


def academy_price_map(academy_docs: list[dict]) -> dict[str, int]:
    """Cents by normalized academy name; academy documents hold dollars."""
    prices = {}
    for doc in academy_docs:
        if not doc.get("name"):
            continue
        prices[price_key(doc["name"])] = to_cents(doc.get("price"))
    return prices


def build_document_invoice(registration: dict, prices: dict[str, int]) -> dict:
    """Invoice document for a registration, priced from the academies collection.

    Raises:
        NotFoundException: If an academy has no price
    """
    lines = []
    for raw_academy, raw_level in registration_selections(registration):
        academy, level = canonical_selection(raw_academy, raw_level)
        price = prices.get(price_key(academy))
        if price is None:
            raise NotFoundException(f"Price for academy '{academy}'")
        lines.append({
            "academy": academy,
            "level": level or "N/A",
            "unitPrice": price,
            "qty": 1,
            "amount": price,
        })

    subtotal = sum(line["amount"] for line in lines)
    total = max(0, subtotal)
    return {
        "studentId": registration["id"],
        "studentName": registration_name(registration),
        "lines": lines,
        "subtotal": subtotal,
        "lunch": {"semester": False, "single": 0},
        "lunchAmount": 0,
        "discountAmount": 0,
        "total": total,
        "paid": 0,
        "balance": total,
        "status": document_invoice_status(total, 0),
        "method": None,
    }

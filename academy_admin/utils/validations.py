"""Field validators for registration data."""

import re
from datetime import date, datetime

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
ZIP_PATTERN = re.compile(r"^\d{5}(-\d{4})?$")
PHONE_SEPARATORS = re.compile(r"[\s\-().+]")


def is_required(value) -> bool:
    return value is not None and str(value).strip() != ""


def is_valid_email(email) -> bool:
    return bool(email) and bool(EMAIL_PATTERN.match(str(email).strip()))


def is_valid_phone(phone) -> bool:
    """7 to 15 digits once spaces, dashes, dots and parentheses are removed."""
    if not phone:
        return False
    digits = PHONE_SEPARATORS.sub("", str(phone))
    return digits.isdigit() and 7 <= len(digits) <= 15


def is_valid_zip(zip_code) -> bool:
    return bool(zip_code) and bool(ZIP_PATTERN.match(str(zip_code).strip()))


def parse_date(value) -> date | None:
    """Parse an ISO (YYYY-MM-DD) or US (MM/DD/YYYY) date string."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    for fmt in ("%Y-%m-%d", "%m/%d/%Y"):
        try:
            return datetime.strptime(text[:10], fmt).date()
        except ValueError:
            continue
    return None


def compute_age(birthday, today: date | None = None) -> int | None:
    """Age in whole years on ``today``."""
    born = parse_date(birthday)
    if born is None:
        return None
    today = today or date.today()
    age = today.year - born.year
    if (today.month, today.day) < (born.month, born.day):
        age -= 1
    return age

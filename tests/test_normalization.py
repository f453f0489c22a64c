from datetime import date, datetime, timezone

import pytest

from academy_admin.utils.normalization import (
    canonical_selection,
    email_key,
    is_empty_selection,
    normalize_academy,
    normalize_level,
    price_key,
    student_key,
)
from academy_admin.utils.timestamps import to_datetime, to_millis
from academy_admin.utils.validations import (
    compute_age,
    is_valid_email,
    is_valid_phone,
    is_valid_zip,
    parse_date,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("", "No Academy"),
        (None, "No Academy"),
        ("korean language academy", "Korean Language"),
        ("Korean", "Korean Language"),
        ("  Art   Academy ", "Art Academy"),
    ],
)
def test_normalize_academy(raw, expected):
    assert normalize_academy(raw) == expected


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("", "No Level"),
        ("Alphabet Level", "Alphabet"),
        ("beginner 1", "Beginner"),
        ("Intermediate", "Intermediate"),
        ("K-Movie conversation", "K-Movie Conversation"),
        ("Conversation class", "Conversation"),
        ("Level 2", "2"),
    ],
)
def test_normalize_level(raw, expected):
    assert normalize_level(raw) == expected


def test_alias_academy_becomes_a_level():
    assert canonical_selection("Korean Conversation") == ("Korean Language", "Conversation")
    assert canonical_selection("korean conversation", "Beginner") == ("Korean Language", "Conversation")


def test_selection_without_level():
    assert canonical_selection("Art Academy", "N/A") == ("Art Academy", None)
    assert canonical_selection("Korean", "beginner") == ("Korean Language", "Beginner")


def test_empty_selection_values():
    assert is_empty_selection("N/A")
    assert is_empty_selection(" none ")
    assert not is_empty_selection("Art Academy")


def test_keys():
    assert price_key("Korean language") == "korean language"
    assert email_key("  Ana@Example.COM ") == "ana@example.com"
    assert email_key("   ") is None
    assert student_key(None, "Ana", "Lopez") == "ana_lopez"
    assert student_key("Ana@example.com", "Ana", "Lopez") == "ana@example.com"


def test_to_datetime_shapes():
    expected = datetime(2026, 1, 15, tzinfo=timezone.utc)
    seconds = int(expected.timestamp())
    assert to_datetime(expected.replace(tzinfo=None)) == expected
    assert to_datetime("2026-01-15T00:00:00Z") == expected
    assert to_datetime(seconds) == expected
    assert to_datetime(seconds * 1000) == expected
    assert to_datetime({"seconds": seconds}) == expected
    assert to_datetime({"_seconds": seconds, "_nanoseconds": 0}) == expected
    assert to_datetime(date(2026, 1, 15)) == expected
    assert to_datetime("not a date") is None
    assert to_datetime(True) is None
    assert to_millis(None) == 0
    assert to_millis(seconds) == seconds * 1000


@pytest.mark.parametrize("email, valid", [("a@b.co", True), ("a@b", False), ("", False), ("a b@c.com", False)])
def test_email_validation(email, valid):
    assert is_valid_email(email) is valid


@pytest.mark.parametrize(
    "phone, valid",
    [("(407) 555-0100", True), ("+82 10 1234 5678", True), ("12345", False), ("555-CALL-NOW", False)],
)
def test_phone_validation(phone, valid):
    assert is_valid_phone(phone) is valid


def test_zip_and_dates():
    assert is_valid_zip("32801")
    assert is_valid_zip("32801-1234")
    assert not is_valid_zip("3280")
    assert parse_date("2015-06-01") == date(2015, 6, 1)
    assert parse_date("06/01/2015") == date(2015, 6, 1)
    assert parse_date("yesterday") is None
    assert compute_age("2015-06-01", today=date(2026, 5, 31)) == 10
    assert compute_age("2015-06-01", today=date(2026, 6, 1)) == 11
    assert compute_age(None) is None

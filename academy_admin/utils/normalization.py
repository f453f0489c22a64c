"""Canonical naming for academies, levels and students."""

import re

NO_ACADEMY = "No Academy"
NO_LEVEL = "No Level"
KOREAN_LANGUAGE = "Korean Language"

# Legacy catalog entries that are really a level of another academy
ACADEMY_ALIASES: dict[str, tuple[str, str]] = {
    "korean conversation": (KOREAN_LANGUAGE, "Conversation"),
}

# Academy names renamed in place
ACADEMY_RENAMES: dict[str, str] = {
    "korean": KOREAN_LANGUAGE,
}

EMPTY_SELECTIONS = {"", "n/a", "na", "none"}

_LEVEL_WORD = re.compile(r"\blevel\b", re.IGNORECASE)
_SPACES = re.compile(r"\s+")


def _clean(value) -> str:
    return _SPACES.sub(" ", str(value or "")).strip()


def normalize_academy(name) -> str:
    """Return the display name used for an academy."""
    cleaned = _clean(name)
    if not cleaned:
        return NO_ACADEMY
    lowered = cleaned.lower()
    if "korean" in lowered and "language" in lowered:
        return KOREAN_LANGUAGE
    if lowered in ACADEMY_RENAMES:
        return ACADEMY_RENAMES[lowered]
    return cleaned


def normalize_level(level) -> str:
    """Return the canonical level name."""
    cleaned = _clean(level)
    if not cleaned:
        return NO_LEVEL
    lowered = cleaned.lower()
    if "alphabet" in lowered:
        return "Alphabet"
    if "beginner" in lowered:
        return "Beginner"
    if "intermediate" in lowered:
        return "Intermediate"
    if "movie" in lowered:
        return "K-Movie Conversation"
    if "conversation" in lowered:
        return "Conversation"
    stripped = _clean(_LEVEL_WORD.sub("", cleaned))
    return stripped or NO_LEVEL


def is_empty_selection(name) -> bool:
    """Check whether a form value means "no academy chosen"."""
    return _clean(name).lower() in EMPTY_SELECTIONS


def canonical_selection(academy, level=None) -> tuple[str, str | None]:
    """Map a raw (academy, level) pair to canonical names.

    Alias academies fold into their parent academy and become a level there.
    Levels are only canonicalized when one was given.
    """
    cleaned = _clean(academy)
    alias = ACADEMY_ALIASES.get(cleaned.lower())
    if alias:
        return alias

    name = normalize_academy(cleaned)
    level_name = _clean(level)
    if not level_name or is_empty_selection(level_name):
        return name, None
    return name, normalize_level(level_name)


def price_key(name) -> str:
    """Key used to look up an academy price."""
    return normalize_academy(name).lower()


def email_key(email) -> str | None:
    """Lowercased e-mail used as the student's natural key."""
    cleaned = _clean(email).lower()
    return cleaned or None


def name_key(first_name, last_name) -> str:
    """Lowercased ``first_last`` used when no e-mail is available."""
    return f"{_clean(first_name)}_{_clean(last_name)}".lower()


def student_key(email, first_name, last_name) -> str:
    """Identity key for a registration: e-mail, else name."""
    return email_key(email) or name_key(first_name, last_name)

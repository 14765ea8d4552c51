"""
Value transformers and sanitizers for raw form values.

Form frameworks deliver almost everything as strings. These helpers turn
those strings into the typed values the remote API expects. None of them
raise: a value that cannot be converted comes back as None (or False for
booleans) and the caller decides what to do with it.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)

_ACCENTS = str.maketrans({"á": "a", "é": "e", "í": "i", "ó": "o", "ú": "u"})
_AFFIRMATIVE = {"si", "yes", "accepted"}  # "sí" becomes "si" after normalization

_NUMERIC_STRING_RE = re.compile(r"^\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?\s*$")
_CLEANED_NUMBER_RE = re.compile(r"^-?(\d+\.?\d*|\.\d+)$")
_STRICT_DMY_RE = re.compile(r"^\d{2}-\d{2}-\d{4}$")

_TAG_RE = re.compile(r"<[^>]*>")
_WHITESPACE_RE = re.compile(r"\s+")
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _truncates_to_one(number: Union[int, float]) -> bool:
    # integer cast semantics: 1.9 counts as 1; NaN and infinities never do
    try:
        return int(number) == 1
    except (ValueError, OverflowError):
        return False


def to_bool(value: Any) -> bool:
    """
    Convert common affirmative form values to a boolean.

    Handles "Sí", "Si", "Yes", "Accepted" (case-insensitive) and 1 / "1".
    Anything else is False.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return _truncates_to_one(value)
    if isinstance(value, str):
        if _NUMERIC_STRING_RE.match(value):
            return _truncates_to_one(float(value))
        cleaned = value.strip().lower().translate(_ACCENTS)
        return cleaned in _AFFIRMATIVE
    return False


def format_date(value: Any) -> Optional[str]:
    """
    Convert a strict ``dd-mm-YYYY`` date into ``YYYY-mm-dd``.

    The parsed date is formatted back and compared with the input, so that
    anything the parser would silently correct is rejected instead.
    """
    if not value or not isinstance(value, str):
        return None

    raw = value.strip()
    if _STRICT_DMY_RE.match(raw):
        try:
            parsed = datetime.strptime(raw, "%d-%m-%Y")
        except ValueError as e:
            logger.warning("Exception while parsing date '%s': %s", value, e)
            return None
        if parsed.strftime("%d-%m-%Y") == raw:
            return parsed.strftime("%Y-%m-%d")

    logger.warning("Invalid or non 'dd-mm-YYYY' date received: '%s'. Could not parse.", value)
    return None


def to_numeric(value: Any) -> Optional[Union[int, float]]:
    """
    Convert a string such as "$1,234.50" into a number.

    Currency symbols, spaces and thousands separators are dropped; the dot
    and the minus sign are kept. Returns a float when a decimal point
    remains, otherwise an int.
    """
    if value is None or str(value).strip() == "":
        return None

    cleaned = re.sub(r"[^\d.-]", "", str(value).strip())
    if not _CLEANED_NUMBER_RE.match(cleaned):
        logger.warning(
            "Could not convert value to numeric after cleaning: original='%s' cleaned='%s'",
            value,
            cleaned,
        )
        return None
    return float(cleaned) if "." in cleaned else int(cleaned)


def clean_digits(value: Any) -> str:
    """Keep only the digits of a value (national IDs, phone numbers)."""
    if value is None:
        return ""
    return re.sub(r"\D", "", str(value))


def sanitize_text_field(value: str) -> str:
    """Strip markup, collapse line breaks and repeated whitespace, trim."""
    without_tags = _TAG_RE.sub("", value)
    return _WHITESPACE_RE.sub(" ", without_tags).strip()


def sanitize_email(value: str) -> str:
    """Return the trimmed address, or an empty string if it is not a valid e-mail."""
    candidate = value.strip()
    if not _EMAIL_RE.match(candidate):
        return ""
    return candidate

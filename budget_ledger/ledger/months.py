"""
Month normalization.

The finance service names its months ("July", "JULY", "Jul"), while the
ledger addresses them by zero-based position. Everything that compares
months goes through `month_index` first.
"""

import re

from budget_ledger.models.ledger import MONTH_NAMES


_BY_NAME = {name.lower(): index for index, name in enumerate(MONTH_NAMES)}
# Three-letter prefixes are unique across the twelve names
_BY_ABBREVIATION = {name[:3].lower(): index for index, name in enumerate(MONTH_NAMES)}
_ISO_MONTH = re.compile(r"^\d{4}-(\d{1,2})(?:-\d{1,2})?$")


def month_index(value) -> int:
    """
    Zero-based month index for a month name, abbreviation or number.

    Numbers, numeric strings and ISO "YYYY-MM" values are one-based, as the
    finance service sends them.

    Raises:
        ValueError: If the value does not name a month
    """
    if isinstance(value, bool):
        raise ValueError(f"Not a month: {value!r}")
    if isinstance(value, int):
        return _from_number(value)

    text = str(value).strip().lower()
    if text in _BY_NAME:
        return _BY_NAME[text]
    # "sept", "octob"
    if len(text) >= 3 and text[:3] in _BY_ABBREVIATION:
        index = _BY_ABBREVIATION[text[:3]]
        if MONTH_NAMES[index].lower().startswith(text):
            return index
    if text.isdigit():
        return _from_number(int(text))

    match = _ISO_MONTH.match(text)
    if match:
        return _from_number(int(match.group(1)))

    raise ValueError(f"Not a month: {value!r}")


def _from_number(number: int) -> int:
    if not 1 <= number <= 12:
        raise ValueError(f"Month number must be 1-12, got {number}")
    return number - 1


def validate_month(month: int) -> int:
    """Check a zero-based month index."""
    if isinstance(month, bool) or not isinstance(month, int) or not 0 <= month <= 11:
        raise ValueError(f"Month index must be 0-11, got {month!r}")
    return month

"""
Conversion between editable text and typed model values.

Numbers typed into a field, comma-separated number lists and free-text tag
lists all go through here before they reach the staged model.
"""

import math
from typing import Any, List, NamedTuple, Optional, Union

DATE_LIKE_KINDS = ('date', 'time', 'datetime')

Number = Union[int, float]


class CsvNumbers(NamedTuple):
    """Result of parsing a comma-separated number list."""
    values: List[Number]
    invalid: List[str]


def parse_number(raw: Any) -> Optional[Number]:
    """
    Parse a single numeric value.

    Returns None for empty, unparseable or non-finite input. Whole floats are
    normalised to int so ``3.0`` is stored as ``3``.
    """
    if raw is None or isinstance(raw, bool):
        return None

    if isinstance(raw, (int, float)):
        number = raw
    else:
        text = str(raw).strip()
        if not text:
            return None
        try:
            number = int(text)
        except ValueError:
            try:
                number = float(text)
            except ValueError:
                return None

    if isinstance(number, float):
        if not math.isfinite(number):
            return None
        if number.is_integer():
            return int(number)
    return number


def coerce_scalar(kind: str, raw: Any) -> Any:
    """Convert raw widget input into the value stored for a scalar field kind."""
    if kind == 'number':
        return parse_number(raw)
    if kind == 'checkbox':
        return bool(raw)
    if kind in DATE_LIKE_KINDS:
        return raw or None
    return raw if raw is not None else None


def _tokens(text: Optional[str]) -> List[str]:
    if not text:
        return []
    return [token.strip() for token in str(text).split(",") if token.strip()]


def parse_csv_numbers(text: Optional[str]) -> CsvNumbers:
    """
    Split a comma-separated list into numbers.

    Tokens that are not finite numbers are left out of ``values`` and echoed
    in ``invalid`` so the model stays well-typed while the UI can still tell
    the user which tokens were rejected.
    """
    values: List[Number] = []
    invalid: List[str] = []
    for token in _tokens(text):
        number = parse_number(token)
        if number is None:
            invalid.append(token)
        else:
            values.append(number)
    return CsvNumbers(values, invalid)


def to_csv_numbers(values: Any) -> str:
    if not isinstance(values, list):
        return ""
    return ", ".join(str(value) for value in values)


def parse_csv_text(text: Optional[str]) -> List[str]:
    """Split a comma-separated tag list. Never rejects input."""
    return _tokens(text)


def to_csv_text(values: Any) -> str:
    if not isinstance(values, list):
        return ""
    return ", ".join(str(value) for value in values)

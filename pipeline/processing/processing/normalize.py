"""Scalar normalization for loosely typed upstream values.

Every function here accepts *any* value and returns a canonical scalar or
``None`` (``0`` for :func:`parse_integer`).  Nothing raises on malformed
input: upstream sources (crawler tables, CRM rows, third-party API payloads)
are outside our control and a partial aggregate beats a failed one.

Epoch numbers are interpreted as **milliseconds**, which is what the host
application and the crawler store.
"""

from __future__ import annotations

import json
import math
import re
from collections.abc import Mapping
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any

_NUMBER_TYPES = (int, float, Decimal)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_BR_DATE_RE = re.compile(r"^(\d{2})/(\d{2})/(\d{4})$")
_LEADING_INT_RE = re.compile(r"^[+-]?\d+")

_TRUE_TOKENS = frozenset({
    "1", "true", "t", "yes", "y", "sim", "on",
    "habilitado", "habilitada", "ativo", "ativa",
})
_FALSE_TOKENS = frozenset({
    "0", "false", "f", "no", "n", "nao", "não", "off",
    "desabilitado", "desabilitada", "inativo", "inativa",
})


# ------------------------------------------------------------------ #
# Internal helpers                                                     #
# ------------------------------------------------------------------ #


def _is_number(value: Any) -> bool:
    return isinstance(value, _NUMBER_TYPES) and not isinstance(value, bool)


def _is_finite_number(value: Any) -> bool:
    return _is_number(value) and math.isfinite(value)


def _number_to_string(value: int | float | Decimal) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _from_epoch_ms(value: int | float | Decimal) -> datetime | None:
    if not math.isfinite(value):
        return None
    try:
        return _EPOCH + timedelta(milliseconds=float(value))
    except OverflowError:
        return None


def _parse_iso(text: str) -> datetime | None:
    try:
        return _to_utc(datetime.fromisoformat(text))
    except ValueError:
        return None


def _parse_br_date(text: str) -> date | None:
    match = _BR_DATE_RE.match(text)
    if not match:
        return None
    day, month, year = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _format_timestamp(value: datetime) -> str:
    return _to_utc(value).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# ------------------------------------------------------------------ #
# Strings                                                              #
# ------------------------------------------------------------------ #


def normalize_string(value: Any) -> str | None:
    """Trimmed text, or ``None`` for empty / non-textual input.

    Finite numbers are rendered in decimal form (``1500.0`` -> ``"1500"``).
    """
    if _is_finite_number(value):
        return _number_to_string(value)
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


def normalize_uppercase(value: Any) -> str | None:
    normalized = normalize_string(value)
    return normalized.upper() if normalized else None


# ------------------------------------------------------------------ #
# Dates and timestamps                                                 #
# ------------------------------------------------------------------ #


def normalize_date(value: Any) -> str | None:
    """Canonical ``YYYY-MM-DD`` date, or ``None`` when unparseable.

    Accepts ``date``/``datetime`` objects, epoch milliseconds, ISO 8601
    strings and literal ``DD/MM/YYYY`` strings.  Aware datetimes are
    converted to UTC before the date is taken.

    >>> normalize_date("31/01/2024")
    '2024-01-31'
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return _to_utc(value).date().isoformat()

    if isinstance(value, date):
        return value.isoformat()

    if _is_number(value):
        parsed = _from_epoch_ms(value)
        return parsed.date().isoformat() if parsed else None

    if isinstance(value, str):
        trimmed = value.strip()
        if not trimmed:
            return None

        parsed = _parse_iso(trimmed)
        if parsed is not None:
            return parsed.date().isoformat()

        br_date = _parse_br_date(trimmed)
        if br_date is not None:
            return br_date.isoformat()

    return None


def normalize_timestamp(value: Any) -> str | None:
    """Full UTC ISO 8601 timestamp (``2024-01-05T10:30:00.000Z``).

    A non-empty string that does not parse as a date is returned trimmed
    rather than discarded: third-party APIs sometimes send opaque timestamps
    that are still worth displaying.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return _format_timestamp(value)

    if isinstance(value, date):
        return _format_timestamp(datetime(value.year, value.month, value.day))

    if _is_number(value):
        parsed = _from_epoch_ms(value)
        return _format_timestamp(parsed) if parsed else None

    if isinstance(value, str):
        trimmed = value.strip()
        if not trimmed:
            return None

        parsed = _parse_iso(trimmed)
        if parsed is not None:
            return _format_timestamp(parsed)

        br_date = _parse_br_date(trimmed)
        if br_date is not None:
            return _format_timestamp(datetime(br_date.year, br_date.month, br_date.day))

        return trimmed

    return None


# ------------------------------------------------------------------ #
# Booleans and integers                                                #
# ------------------------------------------------------------------ #


def parse_boolean_flag(value: Any) -> bool | None:
    """Tri-state boolean: ``True``, ``False`` or ``None`` when unrecognized.

    Strings are matched case-insensitively against English and Portuguese
    tokens (``"sim"``, ``"não"``, ``"habilitado"``, ``"inativo"``...).
    """
    if isinstance(value, bool):
        return value

    if _is_number(value):
        if not math.isfinite(value):
            return None
        return value != 0

    if isinstance(value, str):
        token = value.strip().lower()
        if token in _TRUE_TOKENS:
            return True
        if token in _FALSE_TOKENS:
            return False

    return None


def parse_optional_integer(value: Any) -> int | None:
    """Integer truncated toward zero, or ``None`` when not numeric.

    For strings the leading integer is used
    (``"12abc"`` -> ``12``, ``"-3.9"`` -> ``-3``).
    """
    if _is_finite_number(value):
        return int(value)

    if isinstance(value, str):
        match = _LEADING_INT_RE.match(value.strip())
        if match:
            return int(match.group())

    return None


def parse_integer(value: Any) -> int:
    """Like :func:`parse_optional_integer` but ``0`` on invalid input."""
    parsed = parse_optional_integer(value)
    return 0 if parsed is None else parsed


# ------------------------------------------------------------------ #
# JSON columns                                                         #
# ------------------------------------------------------------------ #


def parse_json_column(value: Any) -> Any:
    """Decode a JSON column that may arrive as text, bytes or already parsed.

    Text that is not valid JSON is returned trimmed; empty text is ``None``.
    """
    if value is None:
        return None

    if isinstance(value, (bytes, bytearray, memoryview)):
        value = bytes(value).decode("utf-8", errors="replace")

    if isinstance(value, str):
        trimmed = value.strip()
        if not trimmed:
            return None
        try:
            return json.loads(trimmed)
        except ValueError:
            return trimmed

    return value


def as_plain_object(value: Any) -> dict[str, Any] | None:
    if isinstance(value, Mapping):
        return dict(value)
    return None


def to_array_or_null(value: Any) -> list[Any] | None:
    """Coerce a list-ish value to a list.

    Lists pass through, JSON-encoded lists are decoded, a bare non-JSON
    string becomes a one-element list and ``{"rows": [...]}`` wrappers are
    unwrapped.  Anything else is ``None``.
    """
    if value is None:
        return None

    if isinstance(value, (list, tuple)):
        return list(value)

    if isinstance(value, str):
        trimmed = value.strip()
        if not trimmed:
            return None
        try:
            parsed = json.loads(trimmed)
        except ValueError:
            return [trimmed]
        return parsed if isinstance(parsed, list) else None

    if isinstance(value, Mapping) and isinstance(value.get("rows"), list):
        return list(value["rows"])

    return None


def normalize_mixed_collection(
    items: list[Any] | None,
) -> list[str | dict[str, Any] | None] | None:
    """Keep strings and objects, stringify scalars, null out the rest."""
    if items is None:
        return None

    normalized: list[str | dict[str, Any] | None] = []
    for item in items:
        if isinstance(item, str):
            normalized.append(item)
        elif isinstance(item, bool):
            normalized.append("true" if item else "false")
        elif _is_number(item):
            normalized.append(normalize_string(item))
        elif isinstance(item, Mapping):
            normalized.append(dict(item))
        else:
            normalized.append(None)
    return normalized

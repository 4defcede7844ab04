"""Scalar coercion helpers used by aggregates, graphs and expressions."""
from __future__ import annotations

import datetime as dt
import math
import re
from decimal import Decimal

import pyarrow as pa

_NUMERIC_PATTERN = re.compile(r"^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\s*$")
_INTEGRAL_PATTERN = re.compile(r"^\s*[+-]?\d+\s*$")


def to_number(value: object) -> int | float:
    """Coerce ``value`` to ``int`` or ``float``.

    Numeric strings such as ``"500"`` or ``"0.35"`` are accepted so that
    datasets straight out of CSV files aggregate the same way as typed ones.
    Raises :class:`ValueError` for anything else.
    """

    if isinstance(value, bool):
        raise ValueError(f"boolean {value!r} is not a number")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, str) and _NUMERIC_PATTERN.match(value):
        if _INTEGRAL_PATTERN.match(value):
            return int(value)
        return float(value)
    raise ValueError(f"{value!r} is not a number")


def is_number(value: object) -> bool:
    try:
        to_number(value)
    except ValueError:
        return False
    return True


def display(value: object) -> str:
    """Return the text shown in a cell for ``value``."""

    if value is None:
        return ""
    if isinstance(value, bool):
        return "1" if value else ""
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer() and abs(value) < 1e15:
            return str(int(value))
        return _float_text(value)
    if isinstance(value, (dt.date, dt.datetime)):
        return value.isoformat()
    return str(value)


def _float_text(value: float) -> str:
    # 14 significant digits; exponents as 1.0E-5 / 1.0E+25
    text = format(value, ".14G")
    mantissa, marker, exponent = text.partition("E")
    if not marker:
        return text
    if "." not in mantissa:
        mantissa += ".0"
    return f"{mantissa}E{int(exponent):+d}"


def table_to_records(table: pa.Table) -> list[dict[str, object]]:
    records: list[dict[str, object]] = []
    for row in table.to_pylist():
        converted = {key: _plain(value) for key, value in row.items()}
        records.append(converted)
    return records


def _plain(value: object) -> object:
    if isinstance(value, (dt.date, dt.datetime)):
        return value.isoformat()
    return value


__all__ = ["display", "is_number", "table_to_records", "to_number"]

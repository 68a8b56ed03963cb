"""
Month Keys

Every record is grouped by a `YYYY-MM` string. Keys of this shape sort
lexicographically in chronological order, so plain string comparison is
used everywhere a month ordering is needed.
"""

import re
from datetime import date
from typing import Iterable, Optional

MONTH_KEY_RE = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")

MONTH_NAMES_PT = [
    "Janeiro", "Fevereiro", "Março", "Abril", "Maio", "Junho",
    "Julho", "Agosto", "Setembro", "Outubro", "Novembro", "Dezembro",
]


def _today() -> date:
    return date.today()


def month_key_of(value: date) -> str:
    """
    Month key of a date or datetime.

    Uses the value's own calendar fields; an aware datetime is not
    converted to another timezone first.
    """
    return f"{value.year:04d}-{value.month:02d}"


def today_key() -> str:
    """Month key of the current local date."""
    return month_key_of(_today())


def rolling_months(count: int, start: Optional[date] = None) -> list[str]:
    """
    `count` consecutive month keys starting at the current month.

    Args:
        count: How many months to produce (non-positive gives an empty list)
        start: Any date inside the first month (default: today)

    Returns:
        Month keys in chronological order, crossing year boundaries
    """
    first = start or _today()
    year, month = first.year, first.month

    months = []
    for _ in range(max(count, 0)):
        months.append(f"{year:04d}-{month:02d}")
        month += 1
        if month > 12:
            month = 1
            year += 1
    return months


def distinct_months_present(
    incomes: Iterable,
    charges: Iterable,
    debits: Iterable,
) -> list[str]:
    """Every month that has at least one record, ascending."""
    months = set()
    for records in (incomes, charges, debits):
        months.update(record.month for record in records)
    return sorted(months)


def month_label(month: str) -> str:
    """Portuguese label for a month key, e.g. "2024-03" -> "Março 2024"."""
    match = MONTH_KEY_RE.match(month)
    if not match:
        raise ValueError(f"Invalid month key: {month!r}")
    year, month_number = match.groups()
    return f"{MONTH_NAMES_PT[int(month_number) - 1]} {year}"

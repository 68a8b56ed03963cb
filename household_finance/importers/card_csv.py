"""
Card Statement CSV Importer

Parses the CSV export of a card statement into CardCharge records.

Expected layout (header row first, extra columns ignored):

    date,title,amount
    2024-03-10,"Loja X - Parcela 2/3","50,00"

DESIGN DECISION: Import is tolerant per row and strict per file.
- A file with no data rows is rejected (MalformedInputError).
- A row that cannot be read (missing fields, bad date, zero or
  non-numeric amount, inconsistent installment numbers) is skipped and
  reported, never fatal. Bank exports are heterogeneous.

The amount on each row is the value of that installment; the purchase
total is reconstructed from the "Parcela i/n" marker in the title.
Every imported charge starts unpaid, mirroring the bank's pending state.
"""

import re
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Optional

import structlog
from pydantic import ValidationError

from household_finance.calculations.months import month_key_of
from household_finance.models.records import CardCharge


logger = structlog.get_logger(__name__)

INSTALLMENT_RE = re.compile(r"Parcela\s+(\d+)/(\d+)", re.IGNORECASE)
INSTALLMENT_SUFFIX_RE = re.compile(r"\s*-\s*Parcela\s+\d+/\d+", re.IGNORECASE)
NUMBER_PREFIX_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")


class CsvImportError(Exception):
    """Base exception for card CSV imports."""
    pass


class MalformedInputError(CsvImportError):
    """The CSV has no header plus data rows."""
    pass


class NoRecordsParsedError(CsvImportError):
    """The CSV was readable but no row produced a card charge."""
    pass


@dataclass(frozen=True)
class SkippedRow:
    """A data row that was dropped during parsing."""
    line_number: int
    reason: str
    content: str


@dataclass
class CsvParseReport:
    """Parsed charges plus the rows that were dropped."""
    charges: list[CardCharge] = field(default_factory=list)
    skipped_rows: list[SkippedRow] = field(default_factory=list)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped_rows)


def decode_csv_bytes(raw: bytes) -> str:
    """Decode an uploaded CSV file (UTF-8, with or without BOM)."""
    return raw.decode("utf-8-sig")


def split_csv_line(line: str) -> list[str]:
    """
    Split one CSV line on commas, honouring double quotes.

    A quote toggles quoted mode and is dropped; commas inside quotes
    are kept as text. Each field is whitespace-trimmed.
    """
    fields = []
    current = []
    in_quotes = False

    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(char)
    fields.append("".join(current).strip())

    return fields


def parse_amount(raw: str) -> Decimal:
    """
    Parse a Brazilian-formatted amount ("6,13" -> 6.13).

    Quotes and whitespace are removed and the decimal comma becomes a
    point. Only the leading numeric part is read, exponent included
    ("1e3" -> 1000); anything unreadable is 0.
    """
    cleaned = re.sub(r'["\s]', "", raw).replace(",", ".", 1)
    match = NUMBER_PREFIX_RE.match(cleaned)
    if not match:
        return Decimal("0")
    try:
        value = Decimal(match.group(0))
        if value.as_tuple().exponent > 0:
            value = value.quantize(Decimal(1))
    except InvalidOperation:
        return Decimal("0")
    return value


def parse_installment_title(title: str) -> tuple[str, int, int]:
    """
    Extract installment info from a transaction title.

    "Loja X - Parcela 2/3" -> ("Loja X", 2, 3)
    "Supermercado"         -> ("Supermercado", 1, 1)
    "- Parcela 2/3"        -> ("- Parcela 2/3", 2, 3)

    Returns:
        (description, installment_index, installment_count)
    """
    match = INSTALLMENT_RE.search(title)
    if match:
        description = INSTALLMENT_SUFFIX_RE.sub("", title, count=1).strip() or title.strip()
        return description, int(match.group(1)), int(match.group(2))
    return title.strip(), 1, 1


def _parse_row(fields: list[str]) -> tuple[Optional[CardCharge], str]:
    """Build a charge from split fields, or explain why the row is dropped."""
    if len(fields) < 3:
        return None, "fewer than 3 fields"

    date_field, title, amount_field = fields[0], fields[1], fields[2]
    if not date_field or not title or not amount_field:
        return None, "empty date, title or amount"

    amount = parse_amount(amount_field)
    if amount <= 0:
        return None, f"amount not positive: {amount_field!r}"

    try:
        start_date = date.fromisoformat(date_field[:10])
    except ValueError:
        return None, f"date is not YYYY-MM-DD: {date_field!r}"

    description, installment_index, installment_count = parse_installment_title(title)

    total_amount = amount * installment_count if installment_count > 1 else amount

    try:
        charge = CardCharge(
            description=description,
            total_amount=total_amount,
            installment_count=installment_count,
            installment_index=installment_index,
            installment_amount=amount,
            start_date=start_date,
            month=month_key_of(start_date),
            paid=False,
        )
    except ValidationError as e:
        return None, f"invalid charge: {e.error_count()} validation error(s)"

    return charge, ""


def parse_card_charges_csv_report(content: str) -> CsvParseReport:
    """
    Parse a card statement CSV and keep track of skipped rows.

    Raises:
        MalformedInputError: fewer than two non-blank lines
    """
    lines = [line for line in content.split("\n") if line.strip()]
    if len(lines) < 2:
        raise MalformedInputError(
            "The CSV file is empty or has no data rows below the header."
        )

    report = CsvParseReport()

    # Line numbers count non-blank lines, header is line 1
    for line_number, line in enumerate(lines[1:], start=2):
        charge, reason = _parse_row(split_csv_line(line))
        if charge is None:
            report.skipped_rows.append(
                SkippedRow(line_number=line_number, reason=reason, content=line.strip())
            )
            logger.debug("csv_row_skipped", line_number=line_number, reason=reason)
            continue
        report.charges.append(charge)

    logger.info(
        "csv_parsed",
        charges=len(report.charges),
        skipped=report.skipped_count,
    )
    return report


def parse_card_charges_csv(content: str) -> list[CardCharge]:
    """
    Parse a card statement CSV into unpaid CardCharge records.

    The result may be empty; callers replacing the stored charges must
    treat that as a failure (see NoRecordsParsedError).

    Raises:
        MalformedInputError: fewer than two non-blank lines
    """
    return parse_card_charges_csv_report(content).charges

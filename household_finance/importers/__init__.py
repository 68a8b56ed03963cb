"""Statement import package."""

from household_finance.importers.card_csv import (
    CsvImportError,
    CsvParseReport,
    MalformedInputError,
    NoRecordsParsedError,
    SkippedRow,
    decode_csv_bytes,
    parse_card_charges_csv,
    parse_card_charges_csv_report,
)

__all__ = [
    "CsvImportError",
    "CsvParseReport",
    "MalformedInputError",
    "NoRecordsParsedError",
    "SkippedRow",
    "decode_csv_bytes",
    "parse_card_charges_csv",
    "parse_card_charges_csv_report",
]

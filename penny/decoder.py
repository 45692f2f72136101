"""
Result set decoding

Turns the engine's text rows into records keyed by column name, with
numeric cells parsed. Decoding fails fast: a bad value in an expected
numeric column aborts the whole decode instead of being read as zero,
so a report is never built on wrong totals.
"""

import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Sequence, Tuple, Union

from .core import BillingRecord, DecodeError, ResultSet


logger = logging.getLogger(__name__)

# Integers with a leading zero (account ids, zip codes) stay text
NUMBER_PATTERN = re.compile(r'^[+-]?(0|[1-9]\d*)(\.\d+)?([eE][+-]?\d+)?$|^[+-]?\.\d+([eE][+-]?\d+)?$')
INTEGER_PATTERN = re.compile(r'^[+-]?(0|[1-9]\d*)$')


@dataclass(frozen=True)
class DecodedResult:
    """Typed records of a result set"""
    columns: Tuple[str, ...]
    records: Tuple[Dict[str, Any], ...]

    @property
    def is_empty(self) -> bool:
        return not self.records


def parse_number(cell: str) -> Union[int, float, None]:
    """Parse a numeric-looking cell, None if it does not look numeric"""
    text = cell.strip()
    if not NUMBER_PATTERN.match(text):
        return None
    if INTEGER_PATTERN.match(text):
        return int(text)
    value = float(text)
    return value if math.isfinite(value) else None


class ResultSetDecoder:
    """
    Decoder for header-first result sets

    Args:
        category_column: Column holding the spend category
        amount_column: Column holding the spend amount (always numeric)
        numeric_columns: Further columns that must parse as numbers
    """

    def __init__(self, category_column: str = "service", amount_column: str = "cost",
                 numeric_columns: Iterable[str] = ()):
        self.category_column = category_column
        self.amount_column = amount_column
        self.numeric_columns = set(numeric_columns) | {amount_column}

    def decode(self, raw_rows: Union[ResultSet, Sequence[Sequence[str]]]) -> DecodedResult:
        """
        Decode rows into records

        Args:
            raw_rows: ResultSet or rows with the header first

        Returns:
            DecodedResult; zero records when only the header is present

        Raises:
            DecodeError: missing header, ragged rows, or a non-numeric value
                in an expected numeric column
        """
        rows = raw_rows.rows if isinstance(raw_rows, ResultSet) else raw_rows
        if not rows:
            raise DecodeError("Result set has no header row")

        columns = tuple(str(name).strip() for name in rows[0])
        if not columns or not all(columns):
            raise DecodeError(f"Result set header has blank column names: {list(rows[0])}")
        if len(set(columns)) != len(columns):
            raise DecodeError(f"Result set header has duplicate column names: {list(columns)}")

        records = []
        for line, row in enumerate(rows[1:], start=2):
            if len(row) != len(columns):
                raise DecodeError(
                    f"Row {line} has {len(row)} cells, header has {len(columns)}"
                )
            records.append({name: self._decode_cell(name, cell, line)
                            for name, cell in zip(columns, row)})

        logger.debug("[Decoder] Decoded %d records with columns %s", len(records), list(columns))
        return DecodedResult(columns=columns, records=tuple(records))

    def _decode_cell(self, column: str, cell: str, line: int) -> Any:
        value = parse_number(cell)
        if value is not None:
            return value
        if column in self.numeric_columns:
            raise DecodeError(f"Row {line}, column '{column}': expected a number, got {cell!r}")
        return cell

    def billing_records(self, decoded: DecodedResult) -> List[BillingRecord]:
        """
        Map decoded records to billing records

        Raises:
            DecodeError: if the category or amount column is missing
        """
        for column in (self.category_column, self.amount_column):
            if column not in decoded.columns:
                raise DecodeError(
                    f"Result set has no '{column}' column (columns: {', '.join(decoded.columns)})"
                )

        return [
            BillingRecord(category=str(record[self.category_column]),
                          amount=float(record[self.amount_column]))
            for record in decoded.records
        ]

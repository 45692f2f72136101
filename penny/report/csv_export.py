"""
CSV export of result sets

Every cell is wrapped in double quotes, header row first, one line per
result row. Cells are written exactly as the engine returned them, so
decode_csv(encode_csv(rows)) gives back the original cells.
"""

import csv
import io
from datetime import date
from typing import List, Sequence

from ..core import ResultSet


def attachment_filename(query_name: str, as_of: date) -> str:
    """`{query_name}_{ISO date}.csv`"""
    return f"{query_name}_{as_of.isoformat()}.csv"


def encode_csv(rows: Sequence[Sequence[str]]) -> str:
    if isinstance(rows, ResultSet):
        rows = rows.rows
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL)
    writer.writerows(rows)
    return buffer.getvalue()


def decode_csv(text: str) -> List[List[str]]:
    return [row for row in csv.reader(io.StringIO(text, newline=''))]

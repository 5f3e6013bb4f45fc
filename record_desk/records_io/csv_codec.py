from __future__ import annotations

import csv
import io
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from record_desk.core.records import Record
from record_desk.validation.errors import ImportFormatError, ValidationIssue

logger = logging.getLogger(__name__)

_EDGE_QUOTES = re.compile(r'^"|"$')


class CsvParser(str, Enum):
    """
    STANDARD honours quoted commas and doubled quotes. LEGACY splits every
    line on commas and strips one layer of surrounding quotes per cell.
    """
    STANDARD = "standard"
    LEGACY = "legacy"


@dataclass(frozen=True)
class CellCountProblem:
    line: Optional[int]
    found: int
    expected: int

    @property
    def message(self) -> str:
        where = f"Line {self.line}" if self.line is not None else "A row"
        return f"{where} has {self.found} values, but {self.expected} were expected."


@dataclass
class CsvTable:
    """
    Parsed CSV text.

    - rows: one dict per data row, header -> cell text ("" for absent cells)
    - line_numbers: 1-based line of each row in the non-blank text
    - problems: rows whose cell count differs from the header's
    """
    headers: List[str]
    rows: List[Dict[str, str]] = field(default_factory=list)
    line_numbers: List[int] = field(default_factory=list)
    problems: List[CellCountProblem] = field(default_factory=list)


def _non_blank_lines(text: str) -> List[str]:
    return [line for line in text.splitlines() if line.strip()]


def read_csv_table(text: str, parser: CsvParser = CsvParser.STANDARD) -> CsvTable:
    """
    Parse CSV text whose first non-blank line is the header row.

    Raises:
        ImportFormatError: if the text holds no header or no data rows
    """
    lines = _non_blank_lines(text or "")
    if len(lines) < 2:
        raise ImportFormatError([
            ValidationIssue("empty_csv", "CSV file is empty or has no data rows.")
        ])

    if parser == CsvParser.LEGACY:
        table = _read_legacy(lines)
    else:
        table = _read_standard(lines)

    logger.info(
        "Parsed CSV",
        extra={"parser": parser.value, "rows": len(table.rows), "problems": len(table.problems)},
    )
    return table


def _read_legacy(lines: List[str]) -> CsvTable:
    headers = [_EDGE_QUOTES.sub("", h.strip()) for h in lines[0].strip().split(",")]
    table = CsvTable(headers=headers)
    for line_no, line in enumerate(lines[1:], start=2):
        cells = [_EDGE_QUOTES.sub("", c.strip()) for c in line.split(",")]
        if len(cells) != len(headers):
            table.problems.append(CellCountProblem(line_no, len(cells), len(headers)))
        padded = cells + [""] * (len(headers) - len(cells))
        table.rows.append(dict(zip(headers, padded)))
        table.line_numbers.append(line_no)
    return table


def _read_standard(lines: List[str]) -> CsvTable:
    long_rows: List[int] = []

    def _on_bad_line(fields: List[str]) -> List[str]:
        long_rows.append(len(fields))
        return fields[:expected]

    expected = len(_split_header(lines[0]))
    body = "\n".join(lines)

    frame = _frame_from(body, on_bad_line=_on_bad_line, index_col=None)
    implicit_index = not isinstance(frame.index, pd.RangeIndex)
    if implicit_index:
        # The first data row had one cell more than the header; pandas then
        # reads that cell as an index instead of reporting the row.
        long_rows.insert(0, expected + 1)
        frame = _frame_from(body, on_bad_line=_on_bad_line, index_col=False)

    headers = [str(c).strip() for c in frame.columns]
    frame.columns = headers
    table = CsvTable(headers=headers)

    for count in long_rows:
        table.problems.append(CellCountProblem(None, count, expected))

    absent = frame.isna()
    for pos in range(len(frame)):
        row_absent = absent.iloc[pos]
        if row_absent.any():
            found = int((~row_absent).sum())
            table.problems.append(CellCountProblem(pos + 2, found, expected))
        values = frame.iloc[pos].fillna("")
        table.rows.append({h: str(values.iloc[i]).strip() for i, h in enumerate(headers)})
        table.line_numbers.append(pos + 2)
    return table


def _split_header(line: str) -> List[str]:
    return next(csv.reader([line]))


def _frame_from(body: str, *, on_bad_line, index_col) -> pd.DataFrame:
    return pd.read_csv(
        io.StringIO(body),
        dtype=object,
        keep_default_na=False,
        engine="python",
        on_bad_lines=on_bad_line,
        index_col=index_col,
    )


def cell_text(value: Any) -> str:
    """Text written for one CSV cell."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else repr(value)
    if isinstance(value, (list, tuple)):
        return "; ".join(cell_text(v) for v in value)
    return str(value)


def export_csv(records: Iterable[Record], columns: Sequence[Tuple[str, str]]) -> str:
    """
    Header row plus one row per record. Every cell is wrapped in double
    quotes with embedded quotes doubled.

    :param columns: (header, field name) pairs in output order
    """
    headers = [h for h, _ in columns]
    rows = [[cell_text(r.get(name)) for _, name in columns] for r in records]
    frame = pd.DataFrame(rows, columns=headers, dtype=object)
    return frame.to_csv(index=False, quoting=csv.QUOTE_ALL, lineterminator="\n")


def template_csv(headers: Sequence[str], example: Optional[Dict[str, str]] = None) -> str:
    """Header-only CSV, optionally followed by one example row."""
    columns = [(h, h) for h in headers]
    return export_csv([example] if example else [], columns)

# analysis/ingest.py
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from analysis.profiler import infer_column_types
from schemas.results import ColumnSummary
from schemas.table import Row, Table, Value

log = logging.getLogger(__name__)

# decimal, exponent, hex/bin/oct and Infinity literals
_NUMERIC_RE = re.compile(
    r"^(?:[+-]?(?:\d+\.?\d*(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?|Infinity)"
    r"|0[xX][0-9a-fA-F]+|0[bB][01]+|0[oO][0-7]+)$"
)
_INT_RE = re.compile(r"^[+-]?\d+$")
_MAX_SAFE_INT = 2 ** 53


class ParseError(ValueError):
    kind = "parse_error"


class EmptyInputError(ParseError):
    kind = "empty_input"


class NoValidRowsError(ParseError):
    kind = "no_valid_rows"


@dataclass
class DroppedRow:
    line: int
    expected: int
    actual: int
    raw: str


@dataclass
class ParseReport:
    warnings: List[str] = field(default_factory=list)
    dropped_rows: List[DroppedRow] = field(default_factory=list)


def _split_fields(line: str) -> List[str]:
    return [f.strip().strip('"').strip() for f in line.split(",")]


def _dedupe_headers(headers: List[str]) -> Tuple[List[str], List[Tuple[str, str]]]:
    """Later copies of a name get the first free `.1`, `.2`, ... suffix (pandas read_csv style)."""
    taken = set(headers)
    seen = set()
    out: List[str] = []
    renamed: List[Tuple[str, str]] = []
    for h in headers:
        if h not in seen:
            seen.add(h)
            out.append(h)
            continue
        i = 1
        while f"{h}.{i}" in taken:
            i += 1
        new = f"{h}.{i}"
        taken.add(new)
        seen.add(new)
        out.append(new)
        renamed.append((h, new))
    return out, renamed


def coerce_value(raw: str) -> Value:
    """Numeric literal -> int/float, anything else (including '') stays a string."""
    if raw == "" or not _NUMERIC_RE.match(raw):
        return raw
    if _INT_RE.match(raw):
        n = int(raw)
        return n if abs(n) < _MAX_SAFE_INT else float(n)
    if raw[:2].lower() in ("0x", "0b", "0o"):
        return int(raw, 0)
    return float(raw.replace("Infinity", "inf"))


def parse_csv(
    text: str,
    *,
    logger: Optional[logging.Logger] = None,
    report: Optional[ParseReport] = None,
) -> Tuple[Table, ColumnSummary]:
    """
    Parse raw comma-delimited text into a Table and its ColumnSummary.

    No quoting support: fields are split on every comma, then trimmed and
    stripped of surrounding double quotes. Rows whose field count differs
    from the header are dropped.

    Raises:
        EmptyInputError: fewer than two non-empty lines.
        NoValidRowsError: every data line was dropped.
    """
    logger = logger or log
    report = report if report is not None else ParseReport()

    lines = [ln for ln in (text or "").split("\n") if ln.strip()]
    if len(lines) < 2:
        logger.error("CSV parsing error: need a header and at least one data row",
                     extra={"context": {"lines": len(lines)}})
        raise EmptyInputError("CSV must have at least a header and one data row")

    headers = _split_fields(lines[0])
    if any(h == "" for h in headers):
        msg = "Empty header detected"
        report.warnings.append(msg)
        logger.warning("CSV parsing warning: %s", msg, extra={"context": {"headers": headers}})

    headers, renamed = _dedupe_headers(headers)
    for old, new in renamed:
        msg = f"Duplicate header '{old}' renamed to '{new}'"
        report.warnings.append(msg)
        logger.warning("CSV parsing warning: %s", msg, extra={"context": {"header": old, "renamed": new}})

    rows: List[Row] = []
    for i, line in enumerate(lines[1:], start=2):
        values = _split_fields(line)
        if len(values) != len(headers):
            report.dropped_rows.append(DroppedRow(line=i, expected=len(headers), actual=len(values), raw=line))
            logger.warning(
                "CSV parsing warning: row %d has %d columns, expected %d. Skipping row.",
                i, len(values), len(headers),
                extra={"context": {"row": i, "expectedColumns": len(headers), "actualColumns": len(values)}},
            )
            continue
        rows.append({h: coerce_value(v) for h, v in zip(headers, values)})

    if not rows:
        logger.error("CSV parsing error: no valid data rows after validation")
        raise NoValidRowsError("No valid data rows found in the CSV file.")

    table = Table(columns=tuple(headers), rows=tuple(rows))
    numeric, categorical = infer_column_types(table)

    summary = ColumnSummary(
        total_rows=len(rows),
        total_columns=len(headers),
        numeric_columns=numeric,
        categorical_columns=categorical,
    )

    logger.info(
        "CSV parsing successful: %d rows, %d columns (%d numeric, %d categorical)",
        summary.total_rows, summary.total_columns, len(numeric), len(categorical),
        extra={"context": {"dropped": len(report.dropped_rows)}},
    )
    return table, summary


def cap_rows(
    table: Table,
    summary: ColumnSummary,
    *,
    max_rows: int,
    sample_size: int,
    logger: Optional[logging.Logger] = None,
) -> Tuple[Table, ColumnSummary]:
    """Keep the first `sample_size` rows once the table exceeds `max_rows`. Column roles are not re-inferred."""
    logger = logger or log
    if len(table) <= max_rows:
        return table, summary

    sampled = table.head(sample_size)
    logger.warning(
        "Large dataset detected, sampling %d of %d rows", len(sampled), len(table),
        extra={"context": {"originalRows": len(table), "sampledRows": len(sampled)}},
    )
    return sampled, summary.with_total_rows(len(sampled))


def infer_schema(table: Table, summary: ColumnSummary) -> Dict[str, Any]:
    numeric = set(summary.numeric_columns)
    df = table.to_frame(summary.numeric_columns)
    cols = []
    for c in df.columns:
        s = df[c]
        cols.append({
            "name": str(c),
            "role": "numeric" if c in numeric else "categorical",
            "missing": int(s.isna().sum()),
            "n_unique": int(s.nunique(dropna=True)),
        })

    return {
        "n_rows": int(df.shape[0]),
        "n_cols": int(df.shape[1]),
        "columns": cols,
    }

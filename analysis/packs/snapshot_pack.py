from __future__ import annotations

from typing import Dict, Any, Optional

from analysis.ingest import ParseReport
from schemas.results import ColumnSummary
from schemas.table import Table

PREVIEW_ROWS = 10


def run_snapshot_pack(
    table: Table,
    summary: ColumnSummary,
    report: Optional[ParseReport] = None,
    *,
    preview_rows: int = PREVIEW_ROWS,
) -> Dict[str, Any]:
    """
    Snapshot / data quality pack.
    Returns:
      {
        "shape": {...},
        "sample_rows": [...],
        "missing_by_col": {...},
        "duplicate_rows": N,
        "parse": {"warnings": [...], "dropped_rows": N},
        "charts": [...],
        "skipped": "...",         # optional
      }
    """
    out: Dict[str, Any] = {}

    out["shape"] = {
        "rows": summary.total_rows,
        "cols": summary.total_columns,
        "numeric": len(summary.numeric_columns),
        "categorical": len(summary.categorical_columns),
    }
    out["sample_rows"] = table.records(limit=preview_rows)

    if report is not None:
        out["parse"] = {
            "warnings": list(report.warnings),
            "dropped_rows": len(report.dropped_rows),
            "dropped_lines": [d.line for d in report.dropped_rows[:20]],
        }

    out["duplicate_rows"] = int(table.to_frame().duplicated().sum())

    # non-finite values in numeric columns count as missing, same as the statistics
    df = table.to_frame(summary.numeric_columns)
    missing_s = df.isna().sum().sort_values(ascending=False, kind="stable").head(20)
    missing = {str(c): int(n) for c, n in missing_s.items()}
    out["missing_by_col"] = missing

    # ✅ If no missing at all -> don't emit empty charts
    if sum(missing.values()) <= 0:
        out["charts"] = []
        out["skipped"] = "No missing values."
        return out

    total_rows = max(len(table), 1)
    values = [
        {"column": c, "missing": m, "percent": m / total_rows * 100.0}
        for c, m in missing.items()
    ]

    chart_missing = {
        "$schema": "https://vega.github.io/schema/vega-lite/v5.json",
        "description": "Missing values by column",
        "data": {"values": values},
        "mark": {"type": "bar"},
        "encoding": {
            "y": {"field": "column", "type": "nominal", "sort": "-x", "title": "Column"},
            "x": {"field": "missing", "type": "quantitative", "title": "Missing count"},
            "tooltip": [
                {"field": "column", "type": "nominal"},
                {"field": "missing", "type": "quantitative"},
                {"field": "percent", "type": "quantitative", "format": ".2f", "title": "Missing %"},
            ],
        },
    }

    out["charts"] = [
        {"id": "missing_count", "title": "Missing values by column", "spec": chart_missing, "priority": 90, "tags": ["quality", "snapshot"]},
    ]
    return out

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import numpy as np

from schemas.results import TrendLabel, TrendResult
from schemas.table import Table

log = logging.getLogger(__name__)

MIN_VALUES = 10
STABLE_SLOPE = 0.01


def regression_slope(values: np.ndarray) -> float:
    """OLS slope of values against their index 0..n-1."""
    n = len(values)
    x = np.arange(n, dtype=float)
    y = np.asarray(values, dtype=float)
    sum_x = x.sum()
    sum_y = y.sum()
    sum_xy = (x * y).sum()
    sum_x2 = (x * x).sum()
    denom = n * sum_x2 - sum_x * sum_x
    if denom == 0:
        return 0.0
    return float((n * sum_xy - sum_x * sum_y) / denom)


def classify_slope(slope: float) -> TrendLabel:
    if abs(slope) < STABLE_SLOPE:
        return "stable"
    return "increasing" if slope > 0 else "decreasing"


def detect_trends(
    table: Table,
    numeric_columns: List[str],
    *,
    logger: Optional[logging.Logger] = None,
) -> List[TrendResult]:
    logger = logger or log
    trends: List[TrendResult] = []
    for col in numeric_columns:
        values = table.finite_values(col)
        if len(values) <= MIN_VALUES:
            logger.debug("Skipping trend for '%s': %d values", col, len(values))
            continue
        trends.append(TrendResult(column=col, trend=classify_slope(regression_slope(values))))
    return trends


def run_trend_pack(table: Table, numeric_columns: List[str], trends: Optional[List[TrendResult]] = None) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "numeric_cols": numeric_columns[:5],
        "insights": [],
        "charts": [],
    }
    if trends is None:
        trends = detect_trends(table, numeric_columns)
    out["trends"] = [t.model_dump() for t in trends]

    if not trends:
        out["skipped"] = "Not enough values for trend detection."
        return out

    for t in trends:
        if t.trend == "stable":
            continue
        out["insights"].append({
            "severity": "info",
            "title": f"'{t.column}' is {t.trend} across rows",
            "recommendation": "Check whether row order reflects time before forecasting on it.",
        })

    col0 = trends[0].column
    values = table.finite_values(col0)
    if len(values) > 2000:
        values = values[:2000]

    spec_line = {
        "$schema": "https://vega.github.io/schema/vega-lite/v5.json",
        "description": f"Trend: {col0}",
        "data": {"values": [{"index": i, col0: float(v)} for i, v in enumerate(values)]},
        "layer": [
            {"mark": {"type": "line", "color": "#4f46e5"}},
            {"mark": {"type": "line", "color": "#999999", "strokeDash": [4, 4]},
             "transform": [{"regression": col0, "on": "index"}]},
        ],
        "encoding": {
            "x": {"field": "index", "type": "quantitative", "title": "Row"},
            "y": {"field": col0, "type": "quantitative", "title": col0},
        },
    }
    out["charts"].append({
        "id": "trend_line",
        "title": f"Trend: {col0} ({trends[0].trend})",
        "spec": spec_line,
        "priority": 85,
        "tags": ["trend"],
    })
    return out

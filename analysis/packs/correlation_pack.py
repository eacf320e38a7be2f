from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import numpy as np

from schemas.results import CorrelationResult
from schemas.table import Table

log = logging.getLogger(__name__)

MIN_VALUES = 10
MIN_ABS_CORRELATION = 0.3


def pearson(x: np.ndarray, y: np.ndarray) -> float:
    """
    Pearson r over the first min(len(x), len(y)) values, sum formula.
    Zero variance on either side gives 0.
    """
    n = min(len(x), len(y))
    if n < 2:
        return 0.0
    x = np.asarray(x[:n], dtype=float)
    y = np.asarray(y[:n], dtype=float)

    sum_x = x.sum()
    sum_y = y.sum()
    sum_xy = (x * y).sum()
    sum_x2 = (x * x).sum()
    sum_y2 = (y * y).sum()

    numerator = n * sum_xy - sum_x * sum_y
    denom_sq = (n * sum_x2 - sum_x * sum_x) * (n * sum_y2 - sum_y * sum_y)
    if denom_sq <= 0:
        return 0.0
    r = float(numerator / np.sqrt(denom_sq))
    return float(np.clip(r, -1.0, 1.0))


def correlate(
    table: Table,
    numeric_columns: List[str],
    *,
    logger: Optional[logging.Logger] = None,
) -> List[CorrelationResult]:
    """
    Pairwise Pearson correlation over numeric columns, strongest first.

    Each column is filtered to finite values on its own and the two vectors
    are paired by position, not by row.
    """
    logger = logger or log
    vectors = {c: table.finite_values(c) for c in numeric_columns}

    found: List[CorrelationResult] = []
    for i in range(len(numeric_columns)):
        for j in range(i + 1, len(numeric_columns)):
            a, b = numeric_columns[i], numeric_columns[j]
            va, vb = vectors[a], vectors[b]
            if len(va) <= MIN_VALUES or len(vb) <= MIN_VALUES:
                logger.debug("Skipping pair (%s, %s): not enough values", a, b)
                continue
            r = pearson(va, vb)
            if abs(r) > MIN_ABS_CORRELATION:
                found.append(CorrelationResult(x=a, y=b, correlation=r))

    # sorted() is stable: ties keep pair order
    return sorted(found, key=lambda c: abs(c.correlation), reverse=True)


def run_correlation_pack(table: Table, numeric_columns: List[str], correlations: Optional[List[CorrelationResult]] = None) -> Dict[str, Any]:
    """
    Correlation pack:
      - significant pairs (|r| > 0.3)
      - heatmap over the columns that appear in a pair
    """
    out: Dict[str, Any] = {"summary": {}, "charts": []}
    if len(numeric_columns) < 2:
        out["skipped"] = "Need at least two numeric columns."
        return out

    if correlations is None:
        correlations = correlate(table, numeric_columns)
    out["summary"]["n_pairs"] = len(correlations)
    out["summary"]["pairs"] = [c.model_dump() for c in correlations]

    if not correlations:
        out["skipped"] = "No significant correlations."
        return out

    cells = []
    for c in correlations:
        cells.append({"x": c.x, "y": c.y, "corr": c.correlation})
        cells.append({"x": c.y, "y": c.x, "corr": c.correlation})

    spec = {
        "$schema": "https://vega.github.io/schema/vega-lite/v5.json",
        "description": "Significant correlations",
        "data": {"values": cells},
        "mark": {"type": "rect"},
        "encoding": {
            "x": {"field": "x", "type": "nominal", "title": None},
            "y": {"field": "y", "type": "nominal", "title": None},
            "color": {"field": "corr", "type": "quantitative", "scale": {"domain": [-1, 1]}},
            "tooltip": [
                {"field": "x", "type": "nominal"},
                {"field": "y", "type": "nominal"},
                {"field": "corr", "type": "quantitative", "format": ".3f"},
            ],
        },
    }
    out["charts"].append({
        "id": "correlation_heatmap",
        "title": "Correlation heatmap",
        "spec": spec,
        "priority": 95,
        "tags": ["numeric", "correlation"],
    })
    return out

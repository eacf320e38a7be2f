from __future__ import annotations
from typing import Dict, Any, List, Optional

from analysis.statistics import compute_statistics
from schemas.results import StatRecord
from schemas.table import Table


def run_numeric_pack(table: Table, numeric_cols: List[str], statistics: Optional[Dict[str, StatRecord]] = None) -> Dict[str, Any]:
    """
    Numeric pack:
      - Per-column statistics (mean, median, std dev, min, max, missing)
      - Up to 2 histograms, widest spread first
    Returns:
      {
        "summary": {...},
        "charts": [...],
        "skipped": "..."
      }
    """
    out: Dict[str, Any] = {"summary": {}, "charts": []}

    if not numeric_cols:
        out["skipped"] = "No numeric columns."
        return out

    if statistics is None:
        statistics = compute_statistics(table, numeric_cols)

    out["summary"]["numeric_cols"] = numeric_cols[:12]
    out["summary"]["statistics"] = {c: s.model_dump() for c, s in statistics.items()}

    # -----------------------
    # Histograms (top spread)
    # -----------------------
    ranked = sorted(statistics.items(), key=lambda kv: kv[1].std_dev, reverse=True)
    hist_cols = [c for c, s in ranked if s.missing < len(table)][:2]

    for i, col in enumerate(hist_cols, start=1):
        values = table.finite_values(col)
        if len(values) > 20000:
            values = values[:20000]

        hist_spec = {
            "$schema": "https://vega.github.io/schema/vega-lite/v5.json",
            "description": f"Histogram for {col}",
            "data": {"values": [{"value": float(v)} for v in values]},
            "mark": {"type": "bar"},
            "encoding": {
                "x": {"field": "value", "type": "quantitative", "bin": {"maxbins": 30}, "title": col},
                "y": {"aggregate": "count", "type": "quantitative", "title": "Count"},
            },
        }

        out["charts"].append({
            "id": f"numeric_hist_{i}",
            "title": f"Histogram: {col}",
            "spec": hist_spec,
            "priority": 80,
            "tags": ["numeric"]
        })

    return out

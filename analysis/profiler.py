from __future__ import annotations
from typing import Dict, Any, List, Tuple

from schemas.results import ColumnSummary
from schemas.table import Table

TYPE_SAMPLE_ROWS = 100
NUMERIC_THRESHOLD = 0.7


def is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def infer_column_types(
    table: Table,
    *,
    sample_rows: int = TYPE_SAMPLE_ROWS,
    threshold: float = NUMERIC_THRESHOLD,
) -> Tuple[List[str], List[str]]:
    """
    Classify each column from the first `sample_rows` rows only.
    Numeric when the share of number values is strictly above `threshold`.
    """
    numeric: List[str] = []
    categorical: List[str] = []

    sample = table.rows[:sample_rows]
    n = len(sample)
    for c in table.columns:
        if n <= 0:
            categorical.append(c)
            continue
        numeric_count = sum(1 for row in sample if is_number(row.get(c)))
        if numeric_count / n > threshold:
            numeric.append(c)
        else:
            categorical.append(c)
    return numeric, categorical


def basic_profile(table: Table, summary: ColumnSummary) -> Dict[str, Any]:
    df = table.to_frame(summary.numeric_columns)
    missing = df.isna().sum()
    return {
        "roles": {"numeric": list(summary.numeric_columns), "categorical": list(summary.categorical_columns)},
        "missing_total": int(missing.sum()),
        "missing_by_col": {str(c): int(n) for c, n in missing.items()},
        "duplicates": int(table.to_frame().duplicated().sum()),
        "top_categoricals": {
            c: {str(k): int(v) for k, v in df[c].value_counts(dropna=True).head(5).items()}
            for c in summary.categorical_columns[:8]
        },
    }

from __future__ import annotations

import logging
from typing import Dict, List, Optional

import numpy as np

from schemas.results import StatRecord
from schemas.table import Table

log = logging.getLogger(__name__)


def column_statistics(values: np.ndarray, total_rows: int) -> StatRecord:
    """Statistics over already-filtered finite values. Empty input gives a zeroed record."""
    missing = total_rows - int(values.size)
    if values.size == 0:
        return StatRecord(missing=total_rows)

    mean = float(np.mean(values))
    return StatRecord(
        mean=mean,
        median=float(np.median(values)),
        # population std dev
        std_dev=float(np.sqrt(np.mean((values - mean) ** 2))),
        min=float(np.min(values)),
        max=float(np.max(values)),
        missing=missing,
    )


def compute_statistics(
    table: Table,
    numeric_columns: List[str],
    *,
    logger: Optional[logging.Logger] = None,
) -> Dict[str, StatRecord]:
    logger = logger or log
    total = len(table)
    out: Dict[str, StatRecord] = {}
    for col in numeric_columns:
        rec = column_statistics(table.finite_values(col), total)
        if rec.missing == total and total > 0:
            logger.warning("Column '%s' has no finite numeric values", col)
        out[col] = rec
    logger.debug("Computed statistics for %d columns", len(out))
    return out

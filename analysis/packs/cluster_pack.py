from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Optional

import numpy as np

from schemas.results import ClusterResult
from schemas.table import Table

log = logging.getLogger(__name__)

MAX_CLUSTERS = 4
SIZE_JITTER = 10
CENTROID_RANGE = 100.0


class ApproximateClusterEstimator:
    """
    Placeholder segmentation. Sizes are an even split of the row count with
    a random offset in [-10, 10]; centroids are uniform draws in [0, 100)
    and do not look at the data. Not k-means.
    """

    def __init__(self, rng: Optional[np.random.Generator] = None, seed: Optional[int] = None):
        self.rng = rng if rng is not None else np.random.default_rng(seed)

    @staticmethod
    def cluster_count(n_rows: int) -> int:
        if n_rows <= 0:
            return 0
        return min(MAX_CLUSTERS, int(math.floor(math.sqrt(n_rows / 2))))

    def estimate(self, n_rows: int, numeric_columns: List[str]) -> List[ClusterResult]:
        k = self.cluster_count(n_rows)
        clusters: List[ClusterResult] = []
        for i in range(k):
            offset = int(self.rng.integers(-SIZE_JITTER, SIZE_JITTER + 1))
            clusters.append(ClusterResult(
                cluster=i,
                size=max(0, n_rows // k + offset),
                centroid=[float(v) for v in self.rng.uniform(0.0, CENTROID_RANGE, size=len(numeric_columns))],
            ))
        return clusters


def cluster(
    table: Table,
    numeric_columns: List[str],
    *,
    estimator: Optional[ApproximateClusterEstimator] = None,
    logger: Optional[logging.Logger] = None,
) -> List[ClusterResult]:
    logger = logger or log
    if len(numeric_columns) < 2:
        logger.debug("Clustering skipped: %d numeric columns", len(numeric_columns))
        return []
    estimator = estimator or ApproximateClusterEstimator()
    return estimator.estimate(len(table), numeric_columns)


def run_cluster_pack(table: Table, numeric_columns: List[str], clusters: Optional[List[ClusterResult]] = None) -> Dict[str, Any]:
    out: Dict[str, Any] = {"summary": {}, "charts": []}
    if clusters is None:
        clusters = cluster(table, numeric_columns)
    if not clusters:
        out["skipped"] = "Clustering needs at least two numeric columns and two rows."
        return out

    n = max(len(table), 1)
    out["summary"]["clusters"] = [
        {**c.model_dump(), "share_pct": round(c.size / n * 100.0, 1)}
        for c in clusters
    ]

    x_col, y_col = numeric_columns[0], numeric_columns[1]
    points = [
        {"cluster": str(c.cluster), "size": c.size, x_col: c.centroid[0], y_col: c.centroid[1]}
        for c in clusters
    ]
    spec = {
        "$schema": "https://vega.github.io/schema/vega-lite/v5.json",
        "description": "Approximate cluster centroids",
        "data": {"values": points},
        "mark": {"type": "circle", "opacity": 0.8},
        "encoding": {
            "x": {"field": x_col, "type": "quantitative"},
            "y": {"field": y_col, "type": "quantitative"},
            "size": {"field": "size", "type": "quantitative"},
            "color": {"field": "cluster", "type": "nominal"},
        },
    }
    out["charts"].append({
        "id": "cluster_centroids",
        "title": "Cluster centroids (approximate)",
        "spec": spec,
        "priority": 60,
        "tags": ["cluster"],
    })
    return out

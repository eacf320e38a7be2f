from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

TrendLabel = Literal["increasing", "decreasing", "stable"]
NarrativeSource = Literal["llm", "fallback"]


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class ColumnSummary(_Frozen):
    total_rows: int
    total_columns: int
    numeric_columns: List[str] = Field(default_factory=list)
    categorical_columns: List[str] = Field(default_factory=list)

    def with_total_rows(self, total_rows: int) -> "ColumnSummary":
        # column roles are kept as inferred
        return self.model_copy(update={"total_rows": total_rows})


class StatRecord(_Frozen):
    mean: float = 0.0
    median: float = 0.0
    std_dev: float = 0.0
    min: float = 0.0
    max: float = 0.0
    missing: int = 0


class CorrelationResult(_Frozen):
    x: str
    y: str
    correlation: float = Field(..., ge=-1.0, le=1.0)


class TrendResult(_Frozen):
    column: str
    trend: TrendLabel


class ClusterResult(_Frozen):
    cluster: int
    size: int
    centroid: List[float]


class Narrative(_Frozen):
    text: str
    source: NarrativeSource = "llm"

    @property
    def is_fallback(self) -> bool:
        return self.source == "fallback"


class AnalysisResult(_Frozen):
    data: List[Dict[str, Any]]
    columns: List[str]
    summary: ColumnSummary
    statistics: Dict[str, StatRecord] = Field(default_factory=dict)
    correlations: List[CorrelationResult] = Field(default_factory=list)
    trends: List[TrendResult] = Field(default_factory=list)
    clusters: List[ClusterResult] = Field(default_factory=list)
    insights: Optional[Narrative] = None

from __future__ import annotations
from typing import Any, Dict, List, TypedDict, Optional

from schemas.results import AnalysisResult, ColumnSummary, Narrative
from schemas.table import Table


class AppState(TypedDict, total=False):
    file_name: str
    text: str

    dataset_id: str
    table: Table
    summary: ColumnSummary
    parse_report: Any              # analysis.ingest.ParseReport

    schema: Dict[str, Any]
    profile: Dict[str, Any]

    analysis: AnalysisResult
    pack_results: Dict[str, Any]
    charts: List[Dict[str, Any]]

    insights: Optional[Narrative]
    report: Dict[str, Any]
    errors: List[str]

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional, Tuple

from langgraph.graph import StateGraph, END

from analysis.ingest import ParseReport, cap_rows, infer_schema, parse_csv
from analysis.profiler import basic_profile
from analysis.statistics import compute_statistics
from analysis.packs.cluster_pack import ApproximateClusterEstimator, cluster, run_cluster_pack
from analysis.packs.correlation_pack import correlate, run_correlation_pack
from analysis.packs.numeric_pack import run_numeric_pack
from analysis.packs.snapshot_pack import run_snapshot_pack
from analysis.packs.trend_pack import detect_trends, run_trend_pack
from llm.narrator import generate_detailed_insights, generate_initial_insights
from schemas.results import AnalysisResult, ColumnSummary
from schemas.table import Table
from schemas.types import AppState
from tools.config import Dataset, Settings, get_settings, put_dataset

log = logging.getLogger(__name__)

MAX_CHARTS_TOTAL = 12
MAX_CHARTS_PER_PACK = 3

ProgressCallback = Callable[[dict], None]


# -------------------------
# Analysis engine
# -------------------------
def run_analysis(
    table: Table,
    summary: ColumnSummary,
    *,
    logger: Optional[logging.Logger] = None,
    estimator: Optional[ApproximateClusterEstimator] = None,
    parallel: bool = True,
) -> AnalysisResult:
    """
    Statistics, correlations, trends and clusters over one table.
    The four passes only read the table, so they run side by side.
    """
    logger = logger or log
    cols = list(summary.numeric_columns)
    tasks = {
        "statistics": lambda: compute_statistics(table, cols, logger=logger),
        "correlations": lambda: correlate(table, cols, logger=logger),
        "trends": lambda: detect_trends(table, cols, logger=logger),
        "clusters": lambda: cluster(table, cols, estimator=estimator, logger=logger),
    }

    if parallel:
        with ThreadPoolExecutor(max_workers=len(tasks)) as ex:
            futures = {name: ex.submit(fn) for name, fn in tasks.items()}
            out = {name: f.result() for name, f in futures.items()}
    else:
        out = {name: fn() for name, fn in tasks.items()}

    logger.info(
        "Analysis completed: %d correlations, %d trends, %d clusters",
        len(out["correlations"]), len(out["trends"]), len(out["clusters"]),
    )
    return AnalysisResult(
        data=table.records(),
        columns=list(table.columns),
        summary=summary,
        **out,
    )


def analysis_packs(table: Table, result: AnalysisResult) -> Dict[str, Any]:
    cols = list(result.summary.numeric_columns)
    return {
        "numeric": run_numeric_pack(table, cols, result.statistics),
        "correlation": run_correlation_pack(table, cols, result.correlations),
        "trend": run_trend_pack(table, cols, result.trends),
        "cluster": run_cluster_pack(table, cols, result.clusters),
    }


def flatten_charts(pack_results: Dict[str, Any]) -> List[Dict[str, Any]]:
    items: List[Dict[str, Any]] = []
    for pack_name, pack in (pack_results or {}).items():
        charts = sorted(pack.get("charts") or [], key=lambda x: x.get("priority", 50), reverse=True)
        for ch in charts[:MAX_CHARTS_PER_PACK]:
            items.append({
                "pack": pack_name,
                "title": ch.get("title") or pack_name,
                "spec": ch.get("spec"),
                "priority": int(ch.get("priority", 50)),
                "tags": ch.get("tags") or [pack_name],
                "id": ch.get("id") or f"{pack_name}_{len(items)}",
            })
    items.sort(key=lambda x: x.get("priority", 0), reverse=True)
    return items[:MAX_CHARTS_TOTAL]


# -------------------------
# Graph plumbing
# -------------------------
def _emit(cb: Optional[ProgressCallback], **evt):
    if cb:
        evt.setdefault("ts", time.time())
        cb(evt)


Step = Tuple[str, Callable[[AppState], AppState], str, str]


def _compile(steps: List[Step], progress_cb: Optional[ProgressCallback]):
    total_steps = len(steps)
    step_index = {name: i for i, (name, _, _, _) in enumerate(steps)}

    def progress_for(step: str, status: str) -> int:
        i = step_index.get(step, 0)
        if status == "done":
            return int(((i + 1) / total_steps) * 100)
        return int((i / total_steps) * 100)

    def wrap(node_fn, step_name: str, start_msg: str, done_msg: str):
        def _wrapped(state: AppState) -> AppState:
            started = time.time()
            _emit(progress_cb, type="step", step=step_name, status="running",
                  detail=start_msg, progress_pct=progress_for(step_name, "running"))
            out = node_fn(state)
            _emit(progress_cb, type="step", step=step_name, status="done", detail=done_msg,
                  duration_ms=int((time.time() - started) * 1000),
                  progress_pct=progress_for(step_name, "done"))
            return out
        return _wrapped

    g = StateGraph(AppState)
    for name, fn, start_msg, done_msg in steps:
        g.add_node(name, wrap(fn, name, start_msg, done_msg))

    g.set_entry_point(steps[0][0])
    for (a, _, _, _), (b, _, _, _) in zip(steps, steps[1:]):
        g.add_edge(a, b)
    g.add_edge(steps[-1][0], END)
    return g.compile()


# -------------------------
# Upload: parse -> sample -> initial insights
# -------------------------
def run_upload_pipeline(
    text: str,
    file_name: str,
    *,
    settings: Optional[Settings] = None,
    progress_cb: Optional[ProgressCallback] = None,
    logger: Optional[logging.Logger] = None,
) -> Dict[str, Any]:
    """
    Returns the upload report (dataset id, preview, summary, insights).
    ParseError propagates to the caller.
    """
    settings = settings or get_settings()
    logger = logger or log

    def node_ingest(state: AppState) -> AppState:
        report = ParseReport()
        table, summary = parse_csv(state["text"], logger=logger, report=report)
        errors = state.get("errors", []) + [f"parse_warning: {w}" for w in report.warnings]
        if report.dropped_rows:
            errors.append(f"parse_warning: {len(report.dropped_rows)} malformed rows skipped")
        return {**state, "table": table, "summary": summary, "parse_report": report, "errors": errors}

    def node_sample(state: AppState) -> AppState:
        table, summary = cap_rows(
            state["table"], state["summary"],
            max_rows=settings.app.max_rows, sample_size=settings.app.sample_size, logger=logger,
        )
        ds = put_dataset(state["file_name"], table, summary)
        return {
            **state,
            "table": table,
            "summary": summary,
            "dataset_id": ds.id,
            "schema": infer_schema(table, summary),
            "profile": basic_profile(table, summary),
        }

    def node_initial_insights(state: AppState) -> AppState:
        narrative = generate_initial_insights(state["table"], state["summary"], settings=settings, logger=logger)
        snapshot = run_snapshot_pack(state["table"], state["summary"], state.get("parse_report"))
        report = {
            "dataset_id": state["dataset_id"],
            "file_name": state["file_name"],
            "columns": list(state["table"].columns),
            "summary": state["summary"].model_dump(),
            "schema": state.get("schema", {}),
            "profile": state.get("profile", {}),
            "snapshot": snapshot,
            "insights": narrative.model_dump(),
            "errors": state.get("errors", []),
        }
        return {**state, "insights": narrative, "report": report}

    graph = _compile([
        ("ingest", node_ingest, "Reading and parsing CSV", "Parsed"),
        ("sample", node_sample, "Checking dataset size", "Dataset stored"),
        ("initial_insights", node_initial_insights, "Generating initial insights", "Insights ready"),
    ], progress_cb)

    _emit(progress_cb, type="meta", status="started", detail=f"Upload started for {file_name}", progress_pct=0)
    final = graph.invoke({"text": text, "file_name": file_name, "errors": []})
    _emit(progress_cb, type="meta", status="finished", detail="Upload finished", progress_pct=100)
    return final["report"]


# -------------------------
# Analysis: engine -> detailed insights
# -------------------------
def run_analysis_pipeline(
    dataset: Dataset,
    *,
    settings: Optional[Settings] = None,
    progress_cb: Optional[ProgressCallback] = None,
    logger: Optional[logging.Logger] = None,
    estimator: Optional[ApproximateClusterEstimator] = None,
) -> Dict[str, Any]:
    settings = settings or get_settings()
    logger = logger or log

    def node_analyze(state: AppState) -> AppState:
        result = run_analysis(state["table"], state["summary"], logger=logger, estimator=estimator)
        packs = analysis_packs(state["table"], result)
        return {**state, "analysis": result, "pack_results": packs, "charts": flatten_charts(packs)}

    def node_detailed_insights(state: AppState) -> AppState:
        narrative = generate_detailed_insights(state["analysis"], settings=settings, logger=logger)
        result = state["analysis"].model_copy(update={"insights": narrative})
        report = {
            "dataset_id": state["dataset_id"],
            "file_name": state["file_name"],
            "analysis": result.model_dump(),
            "pack_results": state.get("pack_results", {}),
            "charts": state.get("charts", []) or [],
            "errors": state.get("errors", []),
        }
        return {**state, "analysis": result, "insights": narrative, "report": report}

    graph = _compile([
        ("analyze", node_analyze, "Running statistics, correlations, trends and clustering", "Analysis complete"),
        ("detailed_insights", node_detailed_insights, "Generating detailed insights", "Report generated"),
    ], progress_cb)

    _emit(progress_cb, type="meta", status="started", detail=f"Analysis started for {dataset.file_name}", progress_pct=0)
    final = graph.invoke({
        "dataset_id": dataset.id,
        "file_name": dataset.file_name,
        "table": dataset.table,
        "summary": dataset.summary,
        "errors": [],
    })
    _emit(progress_cb, type="meta", status="finished", detail="Analysis finished", progress_pct=100)
    return final["report"]
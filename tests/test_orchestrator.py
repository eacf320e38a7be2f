import pytest

from analysis.ingest import NoValidRowsError, parse_csv
from analysis.packs.cluster_pack import ApproximateClusterEstimator
from tools.config import AppSettings, Settings, get_dataset, put_dataset
from tools.orchestrator import flatten_charts, run_analysis, run_analysis_pipeline, run_upload_pipeline


def test_run_analysis_on_linear_data(linear_csv):
    table, summary = parse_csv(linear_csv)
    result = run_analysis(table, summary, estimator=ApproximateClusterEstimator(seed=0))

    assert list(result.statistics) == ["a", "b"]
    assert result.statistics["a"].mean == pytest.approx(6.0)
    assert len(result.correlations) == 1
    assert [t.trend for t in result.trends] == ["increasing", "increasing"]
    assert len(result.clusters) == 2
    assert result.columns == ["a", "b"]
    assert len(result.data) == 11


def test_parallel_and_sequential_agree(linear_csv):
    table, summary = parse_csv(linear_csv)
    before = table.records()
    a = run_analysis(table, summary, estimator=ApproximateClusterEstimator(seed=9), parallel=True)
    b = run_analysis(table, summary, estimator=ApproximateClusterEstimator(seed=9), parallel=False)
    assert a == b
    assert table.records() == before


def test_flatten_charts_caps_and_orders():
    packs = {
        "p1": {"charts": [{"id": f"a{i}", "priority": i} for i in range(5)]},
        "p2": {"charts": [{"id": f"b{i}", "priority": 10 + i} for i in range(5)]},
        "p3": {"skipped": "nothing"},
    }
    charts = flatten_charts(packs)
    assert len(charts) == 6
    assert [c["id"] for c in charts[:3]] == ["b4", "b3", "b2"]
    assert {c["pack"] for c in charts} == {"p1", "p2"}


def test_flatten_charts_total_limit():
    packs = {f"p{i}": {"charts": [{"id": f"c{i}{j}"} for j in range(3)]} for i in range(6)}
    assert len(flatten_charts(packs)) == 12


def test_upload_pipeline_report_and_progress(linear_csv):
    events = []
    report = run_upload_pipeline(linear_csv, "linear.csv", progress_cb=events.append)

    assert report["file_name"] == "linear.csv"
    assert report["columns"] == ["a", "b"]
    assert report["summary"]["total_rows"] == 11
    assert report["insights"]["source"] == "fallback"
    assert report["snapshot"]["shape"]["rows"] == 11
    assert get_dataset(report["dataset_id"]) is not None

    assert events[0]["type"] == "meta" and events[0]["status"] == "started"
    assert events[-1]["status"] == "finished" and events[-1]["progress_pct"] == 100
    done_steps = [e["step"] for e in events if e["type"] == "step" and e["status"] == "done"]
    assert done_steps == ["ingest", "sample", "initial_insights"]


def test_upload_pipeline_records_parse_warnings():
    report = run_upload_pipeline("a,b\n1,2\n3\n4,5\n", "bad.csv")
    assert report["summary"]["total_rows"] == 2
    assert report["snapshot"]["parse"]["dropped_rows"] == 1
    assert any("malformed" in e for e in report["errors"])


def test_upload_pipeline_raises_parse_errors():
    with pytest.raises(NoValidRowsError):
        run_upload_pipeline("x,y\n1,2,3", "broken.csv")


def test_upload_pipeline_samples_large_input(linear_csv):
    settings = Settings(app=AppSettings(max_rows=5, sample_size=3))
    report = run_upload_pipeline(linear_csv, "linear.csv", settings=settings)
    assert report["summary"]["total_rows"] == 3
    assert report["summary"]["numeric_columns"] == ["a", "b"]
    assert len(get_dataset(report["dataset_id"]).table) == 3


def test_analysis_pipeline(linear_csv):
    table, summary = parse_csv(linear_csv)
    dataset = put_dataset("linear.csv", table, summary)
    events = []

    report = run_analysis_pipeline(
        dataset, progress_cb=events.append, estimator=ApproximateClusterEstimator(seed=3),
    )

    assert report["dataset_id"] == dataset.id
    analysis = report["analysis"]
    assert analysis["insights"]["source"] == "fallback"
    assert len(analysis["correlations"]) == 1
    assert len(analysis["clusters"]) == 2
    assert set(report["pack_results"]) == {"numeric", "correlation", "trend", "cluster"}
    assert isinstance(report["charts"], list) and report["charts"]
    assert events[-1]["progress_pct"] == 100

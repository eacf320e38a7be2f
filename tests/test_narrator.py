from types import SimpleNamespace

import pytest

from analysis.ingest import parse_csv
from llm import fallback
from llm.narrator import generate_detailed_insights, generate_executive_summary, generate_initial_insights
from schemas.results import AnalysisResult, ColumnSummary, CorrelationResult, TrendResult
from tools.config import Settings, validate_api_key


class FakeLLM:
    def __init__(self, failures=0, error="service unavailable", reply="LLM says hi"):
        self.failures = failures
        self.error = error
        self.reply = reply
        self.calls = 0
        self.last_messages = None

    def invoke(self, messages):
        self.calls += 1
        self.last_messages = messages
        if self.calls <= self.failures:
            raise RuntimeError(self.error)
        return SimpleNamespace(content=self.reply)


def no_sleep(_seconds):
    return None


@pytest.fixture
def parsed(linear_csv):
    return parse_csv(linear_csv)


@pytest.fixture
def analysis(parsed):
    table, summary = parsed
    return AnalysisResult(
        data=table.records(),
        columns=list(table.columns),
        summary=summary,
        correlations=[CorrelationResult(x="a", y="b", correlation=1.0)],
        trends=[TrendResult(column="a", trend="increasing")],
    )


def test_missing_key_uses_fallback(parsed):
    table, summary = parsed
    n = generate_initial_insights(table, summary)
    assert n.is_fallback
    assert n.text.startswith(fallback.INITIAL_TITLE)


def test_llm_reply_is_used(parsed):
    table, summary = parsed
    llm = FakeLLM()
    n = generate_initial_insights(table, summary, llm=llm, settings=Settings())
    assert n.source == "llm"
    assert n.text == "LLM says hi"
    assert llm.calls == 1
    assert len(llm.last_messages) == 2


def test_quota_error_falls_back_without_retrying(parsed):
    table, summary = parsed
    llm = FakeLLM(failures=100, error="You exceeded your current quota")
    n = generate_initial_insights(table, summary, llm=llm, settings=Settings(), sleep=no_sleep)
    assert n.is_fallback
    assert llm.calls == 1


def test_transient_errors_are_retried(parsed):
    table, summary = parsed
    llm = FakeLLM(failures=2)
    n = generate_initial_insights(table, summary, llm=llm, settings=Settings(), sleep=no_sleep)
    assert n.source == "llm"
    assert llm.calls == 3


def test_persistent_errors_fall_back(parsed):
    table, summary = parsed
    llm = FakeLLM(failures=100)
    n = generate_initial_insights(table, summary, llm=llm, settings=Settings(), sleep=no_sleep)
    assert n.is_fallback
    assert llm.calls == 4


def test_detailed_and_executive_fallbacks(analysis):
    detailed = generate_detailed_insights(analysis)
    assert detailed.is_fallback
    assert detailed.text.startswith(fallback.DETAILED_TITLE)
    assert "a <-> b" in detailed.text

    summary = generate_executive_summary(analysis)
    assert summary.text.startswith(fallback.EXECUTIVE_TITLE)
    assert "1 significant correlations" in summary.text


@pytest.mark.parametrize("rows,numeric,columns,score", [
    (50, 2, 2, 65),
    (500, 1, 2, 90),
    (20_000, 1, 2, 100),
    (5_000, 0, 4, 85),
])
def test_data_quality_score(rows, numeric, columns, score):
    summary = ColumnSummary(
        total_rows=rows,
        total_columns=columns,
        numeric_columns=[f"n{i}" for i in range(numeric)],
        categorical_columns=[f"c{i}" for i in range(columns - numeric)],
    )
    assert fallback.data_quality_score(summary) == score


@pytest.mark.parametrize("rows,label", [
    (10, "Small Dataset"),
    (1_001, "Medium Dataset"),
    (10_001, "Large Dataset"),
    (100_001, "Enterprise Scale"),
])
def test_dataset_size_category(rows, label):
    assert fallback.dataset_size_category(rows) == label


@pytest.mark.parametrize("key,ok", [
    (None, False),
    ("", False),
    ("sk-short", False),
    ("pk-" + "x" * 30, False),
    ("sk-" + "x" * 30, True),
])
def test_validate_api_key(key, ok):
    assert validate_api_key(key) is ok

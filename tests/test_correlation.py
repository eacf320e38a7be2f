import numpy as np
import pytest

from analysis.ingest import parse_csv
from analysis.packs.correlation_pack import correlate, pearson, run_correlation_pack


def test_linear_columns_correlate_fully(linear_csv):
    table, summary = parse_csv(linear_csv)
    result = correlate(table, summary.numeric_columns)
    assert len(result) == 1
    assert (result[0].x, result[0].y) == ("a", "b")
    assert result[0].correlation == pytest.approx(1.0)


def test_self_correlation_is_one():
    x = np.arange(20, dtype=float) ** 1.5
    assert pearson(x, x) == pytest.approx(1.0)


def test_pearson_is_symmetric():
    rng = np.random.default_rng(7)
    a, b = rng.normal(size=50), rng.normal(size=50)
    assert pearson(a, b) == pearson(b, a)


def test_zero_variance_gives_zero():
    assert pearson(np.ones(20), np.arange(20.0)) == 0.0


def test_pearson_uses_shorter_prefix():
    x = np.arange(15.0)
    y = np.concatenate([np.arange(12.0), [-100.0, 50.0, 3.0]])
    assert pearson(x[:12], y[:12]) == pytest.approx(pearson(x[:12], y))


def test_ten_values_are_not_enough(make_csv):
    rows = [[i, i * 2] for i in range(10)]
    table, summary = parse_csv(make_csv(["a", "b"], rows))
    assert correlate(table, summary.numeric_columns) == []


def test_weak_correlation_is_filtered(make_csv):
    rows = [[i, 1 if i % 2 == 0 else -1] for i in range(20)]
    table, summary = parse_csv(make_csv(["x", "y"], rows))
    assert abs(pearson(table.finite_values("x"), table.finite_values("y"))) < 0.3
    assert correlate(table, summary.numeric_columns) == []


def test_sorted_by_strength_and_ties_keep_pair_order(make_csv):
    rows = [[i, 2 * i, -i] for i in range(20)]
    table, summary = parse_csv(make_csv(["a", "b", "c"], rows))
    result = correlate(table, summary.numeric_columns)

    assert [(r.x, r.y) for r in result] == [("a", "b"), ("a", "c"), ("b", "c")]
    assert [r.correlation for r in result] == pytest.approx([1.0, -1.0, -1.0])


def test_results_are_unique_ranked_and_significant(make_csv):
    rng = np.random.default_rng(3)
    base = np.arange(40.0)
    rows = [
        [base[i], base[i] + rng.normal() * 5, -base[i] + rng.normal() * 20, rng.normal()]
        for i in range(40)
    ]
    table, summary = parse_csv(make_csv(["a", "b", "c", "d"], rows))
    result = correlate(table, summary.numeric_columns)

    pairs = [frozenset((r.x, r.y)) for r in result]
    assert len(pairs) == len(set(pairs))
    assert all(r.x != r.y for r in result)
    assert all(abs(r.correlation) > 0.3 for r in result)
    strengths = [abs(r.correlation) for r in result]
    assert strengths == sorted(strengths, reverse=True)


def test_pairs_values_by_position_not_by_row(make_csv):
    # x is missing on the first row only; after filtering, the vectors shift by one
    ys = [0 if i % 2 == 0 else 10 for i in range(15)]
    xs = ["na"] + ys[1:]
    table, summary = parse_csv(make_csv(["x", "y"], list(zip(xs, ys))))
    assert summary.numeric_columns == ["x", "y"]

    result = correlate(table, summary.numeric_columns)
    assert len(result) == 1
    assert result[0].correlation == pytest.approx(-1.0)


def test_pack_builds_heatmap(linear_csv):
    table, summary = parse_csv(linear_csv)
    out = run_correlation_pack(table, summary.numeric_columns)
    assert out["summary"]["n_pairs"] == 1
    assert out["charts"][0]["id"] == "correlation_heatmap"


def test_pack_skips_single_column():
    table, summary = parse_csv("a\n1\n2\n")
    out = run_correlation_pack(table, summary.numeric_columns)
    assert "skipped" in out


def test_duplicate_header_columns_are_not_self_paired(make_csv):
    rows = [[i, 2 * i] for i in range(12)]
    table, summary = parse_csv(make_csv(["a", "a"], rows))
    result = correlate(table, summary.numeric_columns)
    assert [(r.x, r.y) for r in result] == [("a", "a.1")]

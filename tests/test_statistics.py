import math

import pytest

from analysis.ingest import parse_csv
from analysis.statistics import compute_statistics
from schemas.table import Table


def test_non_numeric_value_counts_as_missing():
    table, summary = parse_csv("v\n1\n2\n3\n4\nabc\n")
    assert summary.numeric_columns == ["v"]

    s = compute_statistics(table, summary.numeric_columns)["v"]
    assert s.missing == 1
    assert s.mean == pytest.approx(2.5)
    assert s.median == pytest.approx(2.5)
    assert s.std_dev == pytest.approx(math.sqrt(1.25))
    assert s.min == 1
    assert s.max == 4


def test_odd_count_median():
    table, summary = parse_csv("v\n5\n1\n3\n")
    s = compute_statistics(table, ["v"])["v"]
    assert s.median == 3
    assert s.missing == 0


def test_population_std_dev():
    table, _ = parse_csv("v\n2\n4\n4\n4\n5\n5\n7\n9\n")
    assert compute_statistics(table, ["v"])["v"].std_dev == pytest.approx(2.0)


def test_all_missing_column_is_zeroed():
    table = Table(columns=("v",), rows=({"v": "a"}, {"v": "b"}, {"v": ""}))
    s = compute_statistics(table, ["v"])["v"]
    assert (s.mean, s.median, s.std_dev, s.min, s.max) == (0, 0, 0, 0, 0)
    assert s.missing == 3


def test_infinite_values_are_excluded():
    table, _ = parse_csv("v\n1\n3\nInfinity\n")
    s = compute_statistics(table, ["v"])["v"]
    assert s.missing == 1
    assert s.max == 3


def test_absent_key_counts_as_missing():
    table = Table(columns=("v", "w"), rows=({"v": 1, "w": 1}, {"w": 2}))
    assert compute_statistics(table, ["v"])["v"].missing == 1


@pytest.mark.parametrize("text", [
    "v\n-3\n10\n0.5\n7\n7\n",
    "v\n1\n",
    "v\n100\n-100\nx\n",
])
def test_ordering_properties(text):
    table, _ = parse_csv(text)
    s = compute_statistics(table, ["v"])["v"]
    assert s.std_dev >= 0
    assert s.min <= s.median <= s.max


def test_does_not_touch_the_table(linear_csv):
    table, summary = parse_csv(linear_csv)
    before = table.records()
    compute_statistics(table, summary.numeric_columns)
    assert table.records() == before

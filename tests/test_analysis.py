"""
tests/test_analysis.py
----------------------
Filtered analysis modes: temporal, group, residence, positivity and the
unknown-mode error payload.

Run with:
    pytest tests/test_analysis.py -v
"""

from datetime import date

import pytest

from conftest import make_csv
from core.data import empty_dataset, parse_csv_text
from core.filters import AnalysisFilters, apply_filters, normalize_filters
from core.metrics_analysis import ANALYSIS_MODES, run_analysis


@pytest.fixture
def week_dataset():
    # One record per day, 2021-01-01 .. 2021-01-05, positives 1..5 out of 20 tests each.
    return parse_csv_text(make_csv(*[f"2021-01-0{d},A,X,{d},{20 - d}" for d in range(1, 6)]))


# ══════════════════════════════════════════════════════════════════
# Filters
# ══════════════════════════════════════════════════════════════════

class TestFilters:

    def test_normalize_from_strings(self):
        f = normalize_filters({"start_date": "2021-01-02", "end_date": "", "test_types": ["A", "", None]})
        assert f == AnalysisFilters(start_date=date(2021, 1, 2), end_date=None, test_types=["A"])

    def test_unparseable_date_means_no_bound(self):
        assert normalize_filters({"start_date": "soon"}).start_date is None

    def test_relative_date_word_means_no_bound(self, example_dataset):
        result = run_analysis(example_dataset, "temporal", {"start_date": "now", "end_date": "today"})
        assert result["filters"]["start_date"] is None
        assert result["record_count"] == 3

    def test_none_is_no_filtering(self, example_dataset):
        assert len(apply_filters(example_dataset, normalize_filters(None))) == 3

    def test_date_range_is_inclusive(self, week_dataset):
        f = AnalysisFilters(start_date=date(2021, 1, 2), end_date=date(2021, 1, 4))
        filtered = apply_filters(week_dataset, f)
        assert filtered["positive"].tolist() == [2, 3, 4]

    def test_test_type_filter(self, example_dataset):
        filtered = apply_filters(example_dataset, AnalysisFilters(test_types=["B"]))
        assert filtered["test_type"].unique().tolist() == ["B"]

    def test_input_is_not_mutated(self, example_dataset):
        apply_filters(example_dataset, AnalysisFilters(test_types=["B"]))
        assert len(example_dataset) == 3


# ══════════════════════════════════════════════════════════════════
# Temporal
# ══════════════════════════════════════════════════════════════════

class TestTemporal:

    def test_example(self, example_dataset):
        result = run_analysis(example_dataset, "temporal")
        assert result["type"] == "Temporal Analysis"
        assert result["total_days"] == 2
        assert result["peak_day"] == "2021-01-01"
        assert result["peak_cases"] == 10
        assert result["avg_daily_cases"] == 7.5
        assert result["avg_daily_tests"] == 125.0
        assert result["series"] == {"labels": ["2021-01-01", "2021-01-02"], "positive": [10, 5]}

    def test_date_filter_applies(self, week_dataset):
        result = run_analysis(week_dataset, "temporal", {"start_date": "2021-01-02", "end_date": "2021-01-04"})
        assert result["total_days"] == 3
        assert result["record_count"] == 3
        assert result["peak_day"] == "2021-01-04"
        assert result["avg_daily_cases"] == 3.0

    def test_peak_tie_goes_to_earliest_day(self):
        df = parse_csv_text(make_csv("2021-01-03,A,X,7,0", "2021-01-01,A,X,7,0", "2021-01-02,A,X,2,0"))
        assert run_analysis(df, "temporal")["peak_day"] == "2021-01-01"

    def test_no_days(self):
        result = run_analysis(empty_dataset(), "temporal")
        assert result["total_days"] == 0
        assert result["peak_day"] is None
        assert result["peak_cases"] == 0
        assert result["avg_daily_cases"] == 0.0
        assert result["avg_daily_tests"] == 0.0


# ══════════════════════════════════════════════════════════════════
# Group / residence
# ══════════════════════════════════════════════════════════════════

class TestBreakdowns:

    def test_group_example(self, example_dataset):
        result = run_analysis(example_dataset, "group")
        assert result["groups"] == {
            "A": {"positive": 15, "total": 150, "positivity_rate": 10.0},
            "B": {"positive": 0, "total": 100, "positivity_rate": 0.0},
        }
        assert result["series"] == {"labels": ["A", "B"], "positive": [15, 0]}

    def test_residence_example(self, example_dataset):
        result = run_analysis(example_dataset, "residence")
        assert result["type"] == "Residence Analysis"
        assert result["residences"]["X"] == {"positive": 15, "total": 150, "positivity_rate": 10.0}
        assert result["residences"]["Y"]["positivity_rate"] == 0.0

    def test_zero_total_group_has_zero_rate(self):
        df = parse_csv_text(make_csv("2021-01-01,A,X,0,0"))
        assert run_analysis(df, "group")["groups"]["A"]["positivity_rate"] == 0.0

    def test_group_respects_type_filter(self, example_dataset):
        result = run_analysis(example_dataset, "group", AnalysisFilters(test_types=["A"]))
        assert list(result["groups"]) == ["A"]


# ══════════════════════════════════════════════════════════════════
# Positivity
# ══════════════════════════════════════════════════════════════════

class TestPositivity:

    def test_example(self, example_dataset):
        result = run_analysis(example_dataset, "positivity")
        assert result["avg_positivity"] == 7.5
        assert result["max_positivity"] == 10.0
        # Exactly 10% is not above the threshold.
        assert result["high_positivity_days"] == 0
        assert result["total_days"] == 2

    def test_zero_rate_days_are_excluded(self):
        df = parse_csv_text(
            make_csv(
                "2021-01-01,A,X,2,18",  # 10%
                "2021-01-02,A,X,0,50",  # 0% -> excluded
                "2021-01-03,A,X,0,0",  # no tests -> excluded
                "2021-01-04,A,X,6,14",  # 30%
            )
        )
        result = run_analysis(df, "positivity")
        assert result["total_days"] == 2
        assert result["avg_positivity"] == 20.0
        assert result["max_positivity"] == 30.0
        assert result["high_positivity_days"] == 1
        # The chart still shows every day.
        assert result["series"]["rate"] == [10.0, 0.0, 0.0, 30.0]

    def test_no_signal(self):
        df = parse_csv_text(make_csv("2021-01-01,A,X,0,10"))
        result = run_analysis(df, "positivity")
        assert result["total_days"] == 0
        assert result["avg_positivity"] == 0.0
        assert result["max_positivity"] == 0.0
        assert result["high_positivity_days"] == 0


# ══════════════════════════════════════════════════════════════════
# Dispatch
# ══════════════════════════════════════════════════════════════════

def test_unknown_mode_returns_error_payload(example_dataset):
    result = run_analysis(example_dataset, "forecast")
    assert result["error"] == "Unknown analysis type"
    assert result["mode"] == "forecast"


@pytest.mark.parametrize("mode", list(ANALYSIS_MODES))
def test_every_mode_runs_on_empty_dataset(mode):
    result = run_analysis(empty_dataset(), mode)
    assert "error" not in result
    assert result["record_count"] == 0
    assert result["type"] == ANALYSIS_MODES[mode]

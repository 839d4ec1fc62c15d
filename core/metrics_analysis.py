from __future__ import annotations

from dataclasses import asdict
from typing import Any, Callable, Dict, Union

import pandas as pd

from core.aggregate import GROUP_KEYS, build_series, group_by, grouped_series, positivity_rates, rounded_rates
from core.data import round_half_up
from core.filters import AnalysisFilters, apply_filters, normalize_filters


HIGH_POSITIVITY_THRESHOLD = 10.0

ANALYSIS_MODES: Dict[str, str] = {
    "temporal": "Temporal Analysis",
    "group": "Group Analysis",
    "residence": "Residence Analysis",
    "positivity": "Positivity Analysis",
}

UNKNOWN_ANALYSIS_ERROR = "Unknown analysis type"


def _mean(values: pd.Series) -> float:
    if values.empty:
        return 0.0
    return round_half_up(float(values.mean()), 2)


def _category_breakdown(buckets: pd.DataFrame) -> Dict[str, Dict[str, Any]]:
    rates = rounded_rates(buckets)
    return {
        str(key): {
            "positive": int(row["positive"]),
            "total": int(row["total"]),
            "positivity_rate": rates[key],
        }
        for key, row in buckets.iterrows()
    }


def compute_temporal(filtered: pd.DataFrame) -> Dict[str, Any]:
    daily = group_by(filtered, "day")
    peak_day = None
    peak_cases = 0
    if not daily.empty:
        # idxmax returns the first (earliest) day on ties.
        peak_key = daily["positive"].idxmax()
        peak_day = GROUP_KEYS["day"].label(peak_key)
        peak_cases = int(daily.loc[peak_key, "positive"])
    return {
        "total_days": int(len(daily)),
        "peak_day": peak_day,
        "peak_cases": peak_cases,
        "avg_daily_cases": _mean(daily["positive"]),
        "avg_daily_tests": _mean(daily["total"]),
        "series": build_series(daily, {"positive": "positive"}, label=GROUP_KEYS["day"].label),
    }


def compute_group(filtered: pd.DataFrame) -> Dict[str, Any]:
    buckets = group_by(filtered, "test_type")
    return {
        "groups": _category_breakdown(buckets),
        "series": build_series(buckets, {"positive": "positive"}),
    }


def compute_residence(filtered: pd.DataFrame) -> Dict[str, Any]:
    buckets = group_by(filtered, "residence")
    return {
        "residences": _category_breakdown(buckets),
        "series": build_series(buckets, {"positive": "positive"}),
    }


def compute_positivity(filtered: pd.DataFrame) -> Dict[str, Any]:
    daily = group_by(filtered, "day")
    # Zero-rate days (no positives or no tests) carry no signal and are left out.
    rates = positivity_rates(daily)
    rates = rates[rates > 0]
    return {
        "avg_positivity": _mean(rates),
        "max_positivity": round_half_up(float(rates.max()), 2) if not rates.empty else 0.0,
        "high_positivity_days": int((rates > HIGH_POSITIVITY_THRESHOLD).sum()),
        "total_days": int(len(rates)),
        "series": grouped_series(filtered, "day", {"rate": rounded_rates}),
    }


ANALYSES: Dict[str, Callable[[pd.DataFrame], Dict[str, Any]]] = {
    "temporal": compute_temporal,
    "group": compute_group,
    "residence": compute_residence,
    "positivity": compute_positivity,
}


def run_analysis(
    dataset: pd.DataFrame,
    mode: str,
    filters: Union[AnalysisFilters, dict, None] = None,
) -> Dict[str, Any]:
    """Filter ``dataset`` and run one analysis mode over it.

    An unknown ``mode`` produces a payload with an ``error`` key instead of raising.
    """
    f = filters if isinstance(filters, AnalysisFilters) else normalize_filters(filters)
    analysis = ANALYSES.get(mode)
    if analysis is None:
        return {
            "mode": mode,
            "type": "Unknown Analysis",
            "filters": asdict(f),
            "error": UNKNOWN_ANALYSIS_ERROR,
        }

    filtered = apply_filters(dataset, f)
    payload: Dict[str, Any] = {
        "mode": mode,
        "type": ANALYSIS_MODES[mode],
        "filters": asdict(f),
        "record_count": int(len(filtered)),
    }
    payload.update(analysis(filtered))
    return payload

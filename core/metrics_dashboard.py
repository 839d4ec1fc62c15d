from __future__ import annotations

from typing import Any, Dict, Tuple

import pandas as pd

from core.aggregate import GROUP_KEYS, build_series, group_by, grouped_series, rounded_rates
from core.data import format_month_label, round_half_up


NO_PEAK_LABEL = "N/A"


def positivity_rate_percent(positive: int, total: int) -> float:
    if not total:
        return 0.0
    return round_half_up(positive * 100 / total, 2)


def find_peak_month(monthly: pd.DataFrame) -> Tuple[str, int]:
    """Month with the most positives, scanning chronologically; earliest wins ties.

    A month only qualifies with at least one positive, otherwise the peak is "N/A".
    """
    if monthly.empty:
        return NO_PEAK_LABEL, 0
    peak_positive = int(monthly["positive"].max())
    if peak_positive <= 0:
        return NO_PEAK_LABEL, 0
    return format_month_label(monthly["positive"].idxmax()), peak_positive


def compute_dashboard(dataset: pd.DataFrame) -> Dict[str, Any]:
    total_positive = int(dataset["positive"].sum())
    total_negative = int(dataset["negative"].sum())
    total_tests = total_positive + total_negative

    monthly = group_by(dataset, "month")
    peak_month, peak_month_positive = find_peak_month(monthly)

    series: Dict[str, Dict[str, list]] = {
        "daily": grouped_series(dataset, "day", {"positive": "positive", "negative": "negative"}),
        "category": grouped_series(dataset, "test_type", {"positive": "positive"}),
        "positivity": grouped_series(dataset, "day", {"rate": rounded_rates}),
        "monthly": build_series(monthly, {"positive": "positive", "total": "total"}, label=GROUP_KEYS["month"].label),
    }

    return {
        "record_count": int(len(dataset)),
        "total_positive": total_positive,
        "total_negative": total_negative,
        "total_tests": total_tests,
        "positivity_rate_percent": positivity_rate_percent(total_positive, total_tests),
        "peak_month": peak_month,
        "peak_month_positive": peak_month_positive,
        "series": series,
    }

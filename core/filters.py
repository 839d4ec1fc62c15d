from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List, Optional

import pandas as pd

from core.data import parse_date


@dataclass(frozen=True)
class AnalysisFilters:
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    test_types: List[str] = field(default_factory=list)


def _as_date(value: object) -> Optional[date]:
    ts = parse_date(value)
    return ts.date() if ts is not None else None


def _as_str_list(values: Optional[Iterable[object]]) -> List[str]:
    if not values:
        return []
    if isinstance(values, str):
        values = [values]
    return [str(v) for v in values if v is not None and str(v) != ""]


def normalize_filters(raw: Optional[dict]) -> AnalysisFilters:
    raw = raw or {}
    return AnalysisFilters(
        start_date=_as_date(raw.get("start_date")),
        end_date=_as_date(raw.get("end_date")),
        test_types=_as_str_list(raw.get("test_types")),
    )


def apply_filters(dataset: pd.DataFrame, filters: AnalysisFilters) -> pd.DataFrame:
    """Keep records within [start_date, end_date] (both inclusive) and of the selected test types."""
    filtered = dataset
    if filters.start_date is not None:
        filtered = filtered[filtered["date"] >= pd.Timestamp(filters.start_date)]
    if filters.end_date is not None:
        filtered = filtered[filtered["date"] <= pd.Timestamp(filters.end_date)]
    if filters.test_types:
        filtered = filtered[filtered["test_type"].isin(set(filters.test_types))]
    return filtered

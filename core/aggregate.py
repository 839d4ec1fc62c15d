"""Grouping primitive and series builder shared by the dashboard and analysis pages.

Every chart series in the app is produced by ``group_by`` + ``build_series``:
a key extractor picks the bucket for each record, value extractors pick what
to plot from the resulting buckets. Day and month keys are structured
(normalized Timestamp, monthly Period) and only turned into labels here.
"""

from __future__ import annotations

from typing import Callable, Dict, Mapping, NamedTuple, Optional, Union

import pandas as pd

from core.data import format_day_label, format_month_label, round_half_up


KeyFn = Callable[[pd.DataFrame], pd.Series]
ValueFn = Union[str, Callable[[pd.DataFrame], pd.Series]]


class GroupKey(NamedTuple):
    extract: KeyFn
    sort: bool
    label: Callable[[object], str]


GROUP_KEYS: Dict[str, GroupKey] = {
    "day": GroupKey(lambda df: df["date"], True, format_day_label),
    "month": GroupKey(lambda df: df["date"].dt.to_period("M"), True, format_month_label),
    # Categorical keys keep first-seen order.
    "test_type": GroupKey(lambda df: df["test_type"], False, str),
    "residence": GroupKey(lambda df: df["residence"], False, str),
}


def _empty_buckets() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "positive": pd.Series(dtype="int64"),
            "negative": pd.Series(dtype="int64"),
            "total": pd.Series(dtype="int64"),
        }
    )


def _resolve_key(key: Union[str, KeyFn]) -> GroupKey:
    if isinstance(key, str):
        if key not in GROUP_KEYS:
            raise ValueError(f"Unknown group key: {key!r}")
        return GROUP_KEYS[key]
    return GroupKey(key, False, str)


def group_by(dataset: pd.DataFrame, key: Union[str, KeyFn], *, sort: Optional[bool] = None) -> pd.DataFrame:
    """Sum positive/negative per key into buckets with total = positive + negative."""
    group_key = _resolve_key(key)
    if dataset.empty:
        return _empty_buckets()
    sort = group_key.sort if sort is None else sort
    keys = group_key.extract(dataset).rename("key")
    buckets = dataset[["positive", "negative"]].groupby(keys, sort=sort, dropna=False).sum()
    buckets["total"] = buckets["positive"] + buckets["negative"]
    return buckets


def positivity_rates(buckets: pd.DataFrame) -> pd.Series:
    """Percent positive per bucket; 0 where the bucket has no tests."""
    total = buckets["total"]
    rates = buckets["positive"] * 100 / total.where(total > 0)
    return rates.fillna(0.0).astype(float)


def rounded_rates(buckets: pd.DataFrame, ndigits: int = 2) -> pd.Series:
    return positivity_rates(buckets).map(lambda v: round_half_up(v, ndigits))


def build_series(
    buckets: pd.DataFrame,
    values: Mapping[str, ValueFn],
    label: Callable[[object], str] = str,
) -> Dict[str, list]:
    series: Dict[str, list] = {"labels": [label(k) for k in buckets.index]}
    for name, extract in values.items():
        column = buckets[extract] if isinstance(extract, str) else extract(buckets)
        series[name] = column.tolist()
    return series


def grouped_series(dataset: pd.DataFrame, key: str, values: Mapping[str, ValueFn]) -> Dict[str, list]:
    """Group ``dataset`` by a named key and build a labelled series in the key's order."""
    buckets = group_by(dataset, key)
    return build_series(buckets, values, label=GROUP_KEYS[key].label)

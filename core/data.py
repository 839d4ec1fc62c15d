from __future__ import annotations

import logging
import re
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import pandas as pd


logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parents[1]
# Synthetic sample shipped at the repo root; replace it with a real export to preload that instead.
SAMPLE_FILE_NAME = "UM_C19_2021.csv"
SAMPLE_DATA_PATH = DATA_DIR / SAMPLE_FILE_NAME

PREVIEW_LIMIT = 10

# Positional layout of every data line; the header line is never inspected.
COLUMNS = ["date", "test_type", "residence", "positive", "negative"]
COUNT_COLUMNS = ["positive", "negative"]

_LEADING_INT = re.compile(r"^\s*\+?(\d+)")
INT64_MAX = 2**63 - 1


def empty_dataset() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "date": pd.Series(dtype="datetime64[ns]"),
            "test_type": pd.Series(dtype=object),
            "residence": pd.Series(dtype=object),
            "positive": pd.Series(dtype="int64"),
            "negative": pd.Series(dtype="int64"),
        }
    )


def parse_date(value: object) -> Optional[pd.Timestamp]:
    """Parse a calendar date, returning a midnight Timestamp or None if invalid."""
    if value is None:
        return None
    if isinstance(value, (datetime, date)):
        ts = pd.Timestamp(value)
    else:
        s = str(value).strip()
        # Relative words like "now" or "today" are not calendar dates.
        if not s or not any(ch.isdigit() for ch in s):
            return None
        ts = pd.to_datetime(s, errors="coerce")
    if ts is None or pd.isna(ts):
        return None
    if ts.tzinfo is not None:
        ts = ts.tz_convert(None)
    return ts.normalize()


def parse_count(value: object) -> int:
    """Leading-integer parse: '12', ' 12', '12abc' -> 12; '', 'n/a', '-3' -> 0; counts beyond int64 -> 0."""
    if value is None:
        return 0
    match = _LEADING_INT.match(str(value))
    if not match:
        return 0
    count = int(match.group(1))
    return count if count <= INT64_MAX else 0


def parse_csv_text(text: Optional[str]) -> pd.DataFrame:
    """Parse raw CSV text into a dataset.

    The first line is a header and is skipped. Each remaining line is split on
    commas (no quoting) into date, test type, residence, positive, negative.
    Rows whose date does not parse are dropped; unparseable counts become 0.
    Row order follows the input.
    """
    lines = (text or "").strip().split("\n")
    rows: List[Dict[str, object]] = []
    for line in lines[1:]:
        values: List[Optional[str]] = list(line.rstrip("\r").split(","))
        values += [None] * (len(COLUMNS) - len(values))
        day = parse_date(values[0])
        if day is None:
            continue
        rows.append(
            {
                "date": day,
                "test_type": values[1] if values[1] is not None else "",
                "residence": values[2] if values[2] is not None else "",
                "positive": parse_count(values[3]),
                "negative": parse_count(values[4]),
            }
        )

    if not rows:
        logger.debug("Parsed 0 records from %d data lines", max(0, len(lines) - 1))
        return empty_dataset()

    df = pd.DataFrame(rows, columns=COLUMNS)
    df["date"] = pd.to_datetime(df["date"])
    for col in COUNT_COLUMNS:
        df[col] = df[col].astype("int64")
    logger.debug("Parsed %d records from %d data lines", len(df), len(lines) - 1)
    return df


def read_csv_file(path: Union[str, Path]) -> str:
    return Path(path).read_text(encoding="utf-8-sig")


def file_signature(path: Union[str, Path]) -> Tuple[str, float]:
    p = Path(path)
    return (str(p.resolve()), p.stat().st_mtime)


@lru_cache(maxsize=4)
def _load_dataset_cached(file_sig: Tuple[str, float]) -> pd.DataFrame:
    return parse_csv_text(read_csv_file(file_sig[0]))


def load_dataset_file(path: Union[str, Path]) -> pd.DataFrame:
    # Copy so callers never mutate the cached frame.
    return _load_dataset_cached(file_signature(path)).copy()


def preview_records(dataset: pd.DataFrame, limit: int = PREVIEW_LIMIT) -> List[Dict[str, object]]:
    head = dataset.head(max(0, int(limit))).copy()
    head["date"] = head["date"].dt.strftime("%Y-%m-%d")
    return head.to_dict(orient="records")


def distinct_values(dataset: pd.DataFrame, col: str) -> List[str]:
    """Distinct labels of a categorical column in first-seen order."""
    if dataset.empty or col not in dataset.columns:
        return []
    return [str(v) for v in pd.unique(dataset[col])]


def round_half_up(value: object, ndigits: int = 0) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    q = Decimal(10) ** -ndigits
    return float(Decimal(str(value)).quantize(q, rounding=ROUND_HALF_UP))


def format_day_label(value: pd.Timestamp) -> str:
    return pd.Timestamp(value).strftime("%Y-%m-%d")


def format_month_label(value: pd.Period) -> str:
    """(year, month) period -> 'January 2021'."""
    return value.strftime("%B %Y")

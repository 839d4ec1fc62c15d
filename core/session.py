"""Stateful dashboard session.

The session owns the one current dataset and hands snapshots of it to the pure
compute functions. Loading builds the new frame completely before swapping the
reference, so a failed load leaves the previous dataset in place.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import pandas as pd

from core.data import (
    PREVIEW_LIMIT,
    SAMPLE_DATA_PATH,
    distinct_values,
    empty_dataset,
    load_dataset_file,
    parse_csv_text,
    preview_records,
)
from core.filters import AnalysisFilters
from core.metrics_analysis import run_analysis
from core.metrics_dashboard import compute_dashboard


logger = logging.getLogger(__name__)

SAMPLE_LOAD_ERROR = "Error loading sample data. Please upload a CSV file."
UPLOAD_PARSE_ERROR = "Error parsing CSV file. Please check the format."
UPLOAD_MISSING = "Please select a file first."
UPLOAD_SUCCESS = "Data uploaded successfully!"


@dataclass(frozen=True)
class Notice:
    level: str  # success | warning | danger
    message: str

    @property
    def ok(self) -> bool:
        return self.level == "success"


class DashboardSession:
    def __init__(self, sample_path: Optional[Union[str, Path]] = None) -> None:
        self.sample_path = Path(sample_path) if sample_path is not None else SAMPLE_DATA_PATH
        self.dataset: pd.DataFrame = empty_dataset()

    @property
    def record_count(self) -> int:
        return int(len(self.dataset))

    def _install(self, dataset: pd.DataFrame) -> None:
        self.dataset = dataset
        logger.info("Loaded %d records", len(dataset))

    def load_sample(self) -> Notice:
        try:
            dataset = load_dataset_file(self.sample_path)
        except Exception:
            logger.exception("Error loading sample data from %s", self.sample_path)
            return Notice("danger", SAMPLE_LOAD_ERROR)
        self._install(dataset)
        return Notice("success", f"Loaded {len(dataset)} records from {self.sample_path.name}.")

    def load_upload(self, content: Optional[Union[bytes, str]]) -> Notice:
        if content is None:
            return Notice("warning", UPLOAD_MISSING)
        try:
            text = content.decode("utf-8-sig") if isinstance(content, bytes) else content
            dataset = parse_csv_text(text)
        except Exception:
            logger.exception("Error parsing uploaded CSV")
            return Notice("danger", UPLOAD_PARSE_ERROR)
        self._install(dataset)
        return Notice("success", UPLOAD_SUCCESS)

    def dashboard(self) -> Dict[str, Any]:
        return compute_dashboard(self.dataset)

    def analysis(self, mode: str, filters: Union[AnalysisFilters, dict, None] = None) -> Dict[str, Any]:
        return run_analysis(self.dataset, mode, filters)

    def preview(self, limit: int = PREVIEW_LIMIT) -> List[Dict[str, object]]:
        return preview_records(self.dataset, limit)

    def test_types(self) -> List[str]:
        return distinct_values(self.dataset, "test_type")

    def residences(self) -> List[str]:
        return distinct_values(self.dataset, "residence")

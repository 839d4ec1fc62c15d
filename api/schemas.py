from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class AnalysisFiltersModel(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    test_types: List[str] = Field(default_factory=list)


class NoticeModel(BaseModel):
    level: str
    message: str


class LoadResponse(BaseModel):
    notice: NoticeModel
    record_count: int


class PreviewResponse(BaseModel):
    records: List[Dict[str, Any]]
    record_count: int

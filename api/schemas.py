from __future__ import annotations

from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field


class SortModel(BaseModel):
    field: str = "taxpayers"
    direction: str = "desc"


class ViewFiltersModel(BaseModel):
    year: int = 2025
    query: str = ""
    tier: str = "all"
    sort: SortModel = Field(default_factory=SortModel)


class EditKeyModel(BaseModel):
    region: str
    year: int


class StageFieldModel(EditKeyModel):
    field: str
    value: Union[str, float, int, None] = None


class StageRecordModel(EditKeyModel):
    values: Dict[str, Union[str, float, int, None]] = Field(default_factory=dict)


class PendingEditModel(BaseModel):
    region: str
    year: int
    status: str
    error: Optional[str] = None
    changes: Dict[str, float] = Field(default_factory=dict)
    record: Dict[str, float] = Field(default_factory=dict)


class PendingListResponse(BaseModel):
    edits: List[PendingEditModel]

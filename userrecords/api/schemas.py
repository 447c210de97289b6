"""
Request and response models for the records API.
Request models only check that name and email are strings when present; the
service applies no further validation.
"""

from pydantic import BaseModel, ConfigDict, field_validator
from typing import Optional, List

from ..core.config import BULK_DEFAULT_COUNT


class RecordCreateRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    email: Optional[str] = None


class RecordUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    email: Optional[str] = None


class BulkCreateRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    count: Optional[int] = BULK_DEFAULT_COUNT

    @field_validator('count')
    @classmethod
    def null_count_uses_default(cls, v):
        if v is None:
            return BULK_DEFAULT_COUNT
        return v


class RecordResponse(BaseModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    createdAt: Optional[str] = None


class BulkCreateResponse(BaseModel):
    message: str
    records: List[RecordResponse]


class SearchResponse(BaseModel):
    results: List[RecordResponse]
    count: int


class StatsResponse(BaseModel):
    totalRecords: int
    recordsCreatedToday: int
    recentRecords: List[RecordResponse]
    lastUpdated: str


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    status: str
    version: str
    store_backend: str
    store_health: bool
    record_count: int

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class EventOut(_CamelModel):
    id: str
    title: str
    city: str = ""
    state: str = ""
    start_date: Optional[str] = Field(
        default=None, description="Calendar date, e.g. 2026-03-01"
    )
    end_date: Optional[str] = None
    distances: List[str] = Field(default_factory=list)
    price: Optional[str] = None
    rating: Optional[float] = None
    organizer: str = ""
    registration_deadline: Optional[str] = None
    url: str = ""
    source: str
    region: str = "India"


class EventsResponse(_CamelModel):
    events: List[EventOut]
    total: int = Field(..., description="Unfiltered event count")
    fetched_at: str
    cached: bool
    stale: Optional[bool] = None


class RefreshResponse(_CamelModel):
    success: bool = True
    count: int


class SourceStatus(_CamelModel):
    key: str
    name: str
    ok: Optional[bool] = None
    count: int = 0


class SourcesResponse(_CamelModel):
    finished_at: Optional[str] = None
    sources: List[SourceStatus] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    error: str

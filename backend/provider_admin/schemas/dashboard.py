"""Dashboard view-state requests."""

from pydantic import BaseModel, Field


class FilterRequest(BaseModel):
    filter_key: str = Field(..., description="dashboard, pending, active, rejected, payments, hidden or audit")


class SearchRequest(BaseModel):
    term: str = Field("", max_length=255)


class SortRequest(BaseModel):
    key: str = Field(..., max_length=64)


class SelectionRequest(BaseModel):
    provider_id: str
    checked: bool


class SelectAllRequest(BaseModel):
    checked: bool

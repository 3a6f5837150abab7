from datetime import datetime

from pydantic import Field

from provider_admin.schemas.provider import CamelModel


class ReviewRead(CamelModel):
    id: str
    provider_id: str
    rating: int = Field(..., ge=0, le=5)
    comment: str | None = None
    created_at: datetime
    provider_response: str | None = None
    provider_response_at: datetime | None = None


class ReviewPageRead(CamelModel):
    reviews: list[ReviewRead]
    next_cursor: str | None = None
    has_more: bool

"""Review service: cursor-paginated, read-only access to provider reviews."""

from dataclasses import dataclass, field

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from provider_admin.core.errors import NotFoundError
from provider_admin.models.review import Review
from provider_admin.services import store


@dataclass
class ReviewPage:
    reviews: list[Review] = field(default_factory=list)
    next_cursor: str | None = None
    # A full page is reported as "more may exist" even when it is the last one.
    has_more: bool = False


async def fetch_paginated_reviews(
    db: AsyncSession,
    provider_id: str,
    page_size: int = 10,
    cursor: str | None = None,
) -> ReviewPage:
    """Reviews for a provider, newest first.

    ``cursor`` is the id of the last review on the previous page; the next
    page starts strictly after it.
    """
    stmt = (
        select(Review)
        .where(Review.provider_id == provider_id)
        .order_by(Review.created_at.desc(), Review.id.desc())
    )
    if cursor is not None:
        anchor = await store.fetch_one(
            db,
            select(Review).where(Review.id == cursor, Review.provider_id == provider_id),
            context="review cursor",
        )
        if anchor is None:
            raise NotFoundError(f"Review cursor {cursor} not found")
        stmt = stmt.where(
            or_(
                Review.created_at < anchor.created_at,
                and_(Review.created_at == anchor.created_at, Review.id < anchor.id),
            )
        )

    reviews = await store.fetch_all(db, stmt.limit(page_size), context="reviews")
    return ReviewPage(
        reviews=reviews,
        next_cursor=reviews[-1].id if reviews else None,
        has_more=len(reviews) == page_size,
    )

"""Store access helpers shared by the data access services.

Reads and writes against the database go through here so a store error
always surfaces as ``TransportFailure`` and is logged once, while a read
that simply finds nothing stays an empty result.
"""

import logging

from sqlalchemy import Select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from provider_admin.core.errors import TransportFailure

logger = logging.getLogger("provider_admin.store")


async def fetch_all(db: AsyncSession, stmt: Select, *, context: str) -> list:
    """Execute a select and return all scalar rows."""
    try:
        result = await db.execute(stmt)
    except SQLAlchemyError as exc:
        logger.exception("Error fetching %s", context)
        raise TransportFailure(f"Could not load {context}") from exc
    return list(result.scalars().all())


async def fetch_one(db: AsyncSession, stmt: Select, *, context: str):
    """Execute a select and return the single scalar row, or None."""
    try:
        result = await db.execute(stmt)
    except SQLAlchemyError as exc:
        logger.exception("Error fetching %s", context)
        raise TransportFailure(f"Could not load {context}") from exc
    return result.scalar_one_or_none()


async def flush(db: AsyncSession, *, context: str) -> None:
    """Flush pending writes."""
    try:
        await db.flush()
    except SQLAlchemyError as exc:
        logger.exception("Error writing %s", context)
        raise TransportFailure(f"Could not save {context}") from exc

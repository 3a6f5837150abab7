import uuid
from datetime import datetime

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import JSON

from provider_admin.models.base import Base, generate_uuid, utcnow


class ActivityLogEntry(Base):
    """Append-only admin activity log. No UPDATE or DELETE at application level."""

    __tablename__ = "activity_logs"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=generate_uuid)
    action: Mapped[str] = mapped_column("action", String(100), nullable=False, index=True)
    details: Mapped[dict | None] = mapped_column("details", JSON, nullable=True)
    admin_id: Mapped[str | None] = mapped_column("adminId", String(64), nullable=True, index=True)
    admin_email: Mapped[str | None] = mapped_column("adminEmail", String(255), nullable=True)
    timestamp: Mapped[datetime] = mapped_column(
        "timestamp",
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
        index=True,
    )

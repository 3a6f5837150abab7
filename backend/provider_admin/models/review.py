from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from provider_admin.models.base import Base, generate_document_id, utcnow


class Review(Base):
    """Customer review of a provider. Read-only from the admin side."""

    __tablename__ = "reviews"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=generate_document_id)
    provider_id: Mapped[str] = mapped_column(
        "providerId", ForeignKey("providers.id"), nullable=False, index=True
    )
    rating: Mapped[int] = mapped_column("rating", Integer, nullable=False)
    comment: Mapped[str | None] = mapped_column("comment", Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        "createdAt",
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
        index=True,
    )
    provider_response: Mapped[str | None] = mapped_column("providerResponse", Text, nullable=True)
    provider_response_at: Mapped[datetime | None] = mapped_column(
        "providerResponseAt", DateTime(timezone=True), nullable=True
    )

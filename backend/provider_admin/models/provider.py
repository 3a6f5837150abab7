"""Provider records.

Column names are the field names of the provider documents written by the
self-registration flow and must not be renamed.
"""

import enum
from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import JSON

from provider_admin.models.base import Base, generate_document_id, utcnow


class ProviderStatus(str, enum.Enum):
    pending = "pending"
    active = "active"
    rejected = "rejected"


class PaymentStatus(str, enum.Enum):
    paid = "paid"
    unpaid = "unpaid"


class Provider(Base):
    """A service provider account. Created externally, never deleted here."""

    __tablename__ = "providers"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=generate_document_id)

    full_name: Mapped[str | None] = mapped_column("fullName", String(255), nullable=True)
    name: Mapped[str | None] = mapped_column("name", String(255), nullable=True)
    business_name: Mapped[str | None] = mapped_column("businessName", String(255), nullable=True)
    email: Mapped[str | None] = mapped_column("email", String(255), nullable=True)
    phone_number: Mapped[str | None] = mapped_column("phoneNumber", String(50), nullable=True)
    phone: Mapped[str | None] = mapped_column("phone", String(50), nullable=True)
    service_area: Mapped[Any | None] = mapped_column("serviceArea", JSON, nullable=True)

    status: Mapped[str] = mapped_column(
        "status", String(20), default=ProviderStatus.pending.value, nullable=False, index=True
    )
    verified: Mapped[bool] = mapped_column("verified", Boolean, default=False, nullable=False)
    payment_status: Mapped[str] = mapped_column(
        "paymentStatus", String(20), default=PaymentStatus.unpaid.value, nullable=False
    )
    amount_paid: Mapped[str | None] = mapped_column("amountPaid", String(20), nullable=True)
    availability_status: Mapped[str | None] = mapped_column(
        "availabilityStatus", String(50), nullable=True
    )

    subscription_start_date: Mapped[datetime | None] = mapped_column(
        "subscriptionStartDate", DateTime(timezone=True), nullable=True
    )
    subscription_end_date: Mapped[datetime | None] = mapped_column(
        "subscriptionEndDate", DateTime(timezone=True), nullable=True
    )
    grace_period_end_date: Mapped[datetime | None] = mapped_column(
        "gracePeriodEndDate", DateTime(timezone=True), nullable=True
    )
    last_payment_date: Mapped[datetime | None] = mapped_column(
        "lastPaymentDate", DateTime(timezone=True), nullable=True
    )
    billing_cycle: Mapped[str | None] = mapped_column("billingCycle", String(20), nullable=True)

    documents: Mapped[dict | None] = mapped_column("documents", JSON, nullable=True)
    admin_notes: Mapped[str | None] = mapped_column("adminNotes", Text, nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column("rejectionReason", Text, nullable=True)
    registration_source: Mapped[dict | None] = mapped_column(
        "registrationSource", JSON, nullable=True
    )
    # Remaining self-registration fields, including legacy aliases.
    profile: Mapped[dict | None] = mapped_column("profile", JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        "createdAt",
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
        index=True,
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        "updatedAt", DateTime(timezone=True), nullable=True
    )
    last_processed_by: Mapped[str | None] = mapped_column(
        "lastProcessedBy", String(100), nullable=True
    )

"""Provider schemas.

``ProviderRecord`` is the one place where the aliased fields written by the
self-registration flow are resolved. Everything downstream (derivations,
tables, sorting, search) reads the canonical record only.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from provider_admin.derived_views.status import coerce_timestamp
from provider_admin.models.provider import Provider

REFERRAL_SOURCE_TYPES = {"Referral", "friend"}

_AREA_FIELDS_BEFORE = ("areas", "areaCovered")
_AREA_FIELDS_AFTER = ("area", "location", "serviceAreas")


def _first(*values: Any) -> Any:
    for value in values:
        if value:
            return value
    return None


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class RegistrationSource(CamelModel):
    type: str = "Other"
    referred_name: str = "Unknown"

    @property
    def is_referral(self) -> bool:
        return self.type in REFERRAL_SOURCE_TYPES


class ProviderRecord(CamelModel):
    """Canonical, typed view of a provider document."""

    id: str
    display_name: str = ""
    email: str | None = None
    phone: str | None = None
    area: str | None = None
    status: str = "pending"
    verified: bool = False
    payment_status: str = "unpaid"
    amount_paid: str | None = None
    availability_status: str | None = None
    subscription_start_date: datetime | None = None
    subscription_end_date: datetime | None = None
    grace_period_end_date: datetime | None = None
    last_payment_date: datetime | None = None
    billing_cycle: str | None = None
    documents: dict[str, Any] = Field(default_factory=dict)
    admin_notes: str | None = None
    rejection_reason: str | None = None
    registration_source: RegistrationSource = Field(default_factory=RegistrationSource)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_model(cls, provider: Provider) -> "ProviderRecord":
        profile = provider.profile or {}
        raw_source = provider.registration_source or {}

        area = _first(
            *(profile.get(key) for key in _AREA_FIELDS_BEFORE),
            provider.service_area,
            *(profile.get(key) for key in _AREA_FIELDS_AFTER),
        )
        if isinstance(area, (list, tuple)):
            area = ", ".join(str(a) for a in area)

        source = RegistrationSource(
            type=_first(
                raw_source.get("type"),
                raw_source.get("sourceType"),
                profile.get("referralSource"),
                profile.get("sourceType"),
                profile.get("source"),
            ) or "Other",
            referred_name=_first(
                raw_source.get("referredName"),
                raw_source.get("referralName"),
                profile.get("referrerName"),
                profile.get("referralName"),
                profile.get("referral"),
            ) or "Unknown",
        )

        return cls(
            id=provider.id,
            display_name=_first(provider.full_name, provider.name, provider.business_name) or "",
            email=provider.email,
            phone=_first(provider.phone_number, provider.phone),
            area=str(area) if area else None,
            status=provider.status or "pending",
            verified=bool(provider.verified),
            payment_status=provider.payment_status or "unpaid",
            amount_paid=provider.amount_paid,
            availability_status=provider.availability_status,
            subscription_start_date=coerce_timestamp(provider.subscription_start_date),
            subscription_end_date=coerce_timestamp(provider.subscription_end_date),
            grace_period_end_date=coerce_timestamp(provider.grace_period_end_date),
            last_payment_date=coerce_timestamp(provider.last_payment_date),
            billing_cycle=provider.billing_cycle,
            documents=dict(provider.documents or {}),
            admin_notes=provider.admin_notes,
            rejection_reason=provider.rejection_reason,
            registration_source=source,
            created_at=coerce_timestamp(provider.created_at or profile.get("timestamp")),
            updated_at=coerce_timestamp(provider.updated_at),
        )


class RecentProvidersRead(CamelModel):
    """Result of a recent-providers fetch. ``degraded`` means ordering was dropped."""

    data: list[ProviderRecord]
    degraded: bool = False


class HiddenProviderRead(CamelModel):
    provider: ProviderRecord
    reasons: list[str]


class RejectRequest(BaseModel):
    reason: str = Field(..., max_length=2000)


class AdminNotesRequest(BaseModel):
    notes: str = Field(..., max_length=10000)


class MetricsRead(CamelModel):
    total: int
    pending: int
    active: int
    payments_pending: int = 0

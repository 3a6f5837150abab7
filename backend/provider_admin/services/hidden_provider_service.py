"""Hidden providers: who is missing from the public listing, and why.

Rejected and pending providers are hidden unconditionally. Active
providers are evaluated against availability, subscription and document
expiry rules; those with no reason are visible and left out.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from provider_admin.derived_views.status import (
    PRDP_DOCUMENT_KEY,
    ROADWORTHY_DOCUMENT_KEY,
    Availability,
    availability,
    document_expiry,
    subscription_lapsed,
)
from provider_admin.models.provider import ProviderStatus
from provider_admin.schemas.provider import ProviderRecord
from provider_admin.services import provider_service

logger = logging.getLogger("provider_admin.hidden")

REASON_REJECTED = "Profile Rejected by Admin"
REASON_PENDING = "Pending Admin Approval"
REASON_FULLY_BOOKED = "Fully Booked"
REASON_UNAVAILABLE = "Temporarily Unavailable"
REASON_SUBSCRIPTION = "Subscription Not Paid / Expired"
REASON_PRDP_EXPIRED = "PrDP Permit Expired"
REASON_ROADWORTHY_EXPIRED = "Roadworthy Certificate Expired"


@dataclass
class HiddenProvider:
    provider: ProviderRecord
    reasons: list[str]


def hidden_reasons(provider: ProviderRecord, now: datetime) -> list[str]:
    """Reasons an active provider is kept off the public listing."""
    reasons = []

    state = availability(provider.availability_status)
    if state is Availability.fully_booked:
        reasons.append(REASON_FULLY_BOOKED)
    elif state is Availability.temporarily_unavailable:
        reasons.append(REASON_UNAVAILABLE)

    if subscription_lapsed(now, provider.subscription_end_date, provider.grace_period_end_date):
        reasons.append(REASON_SUBSCRIPTION)

    prdp_expiry = document_expiry(provider.documents, PRDP_DOCUMENT_KEY)
    if prdp_expiry is not None and prdp_expiry <= now:
        reasons.append(REASON_PRDP_EXPIRED)

    roadworthy_expiry = document_expiry(provider.documents, ROADWORTHY_DOCUMENT_KEY)
    if roadworthy_expiry is not None and roadworthy_expiry <= now:
        reasons.append(REASON_ROADWORTHY_EXPIRED)

    return reasons


def merge_hidden(
    rejected: list[ProviderRecord],
    pending: list[ProviderRecord],
    active: list[ProviderRecord],
    now: datetime,
) -> list[HiddenProvider]:
    """Combine the three sources in order, first occurrence of an id wins."""
    candidates = [HiddenProvider(p, [REASON_REJECTED]) for p in rejected]
    candidates += [HiddenProvider(p, [REASON_PENDING]) for p in pending]
    for provider in active:
        reasons = hidden_reasons(provider, now)
        if reasons:
            candidates.append(HiddenProvider(provider, reasons))

    seen = set()
    merged = []
    for candidate in candidates:
        if candidate.provider.id in seen:
            continue
        seen.add(candidate.provider.id)
        merged.append(candidate)
    return merged


async def fetch_hidden_providers(
    db: AsyncSession,
    *,
    now: datetime | None = None,
) -> list[HiddenProvider]:
    """All hidden providers with their reasons.

    Any read failure propagates as TransportFailure; a partial list is
    never returned.
    """
    now = now or datetime.now(timezone.utc)
    rejected = await provider_service.fetch_providers_by_status(db, ProviderStatus.rejected.value)
    pending = await provider_service.fetch_providers_by_status(db, ProviderStatus.pending.value)
    active = await provider_service.fetch_providers_by_status(db, ProviderStatus.active.value)

    hidden = merge_hidden(rejected, pending, active, now)
    logger.info(
        "hidden providers=%d rejected=%d pending=%d active_evaluated=%d",
        len(hidden),
        len(rejected),
        len(pending),
        len(active),
    )
    return hidden

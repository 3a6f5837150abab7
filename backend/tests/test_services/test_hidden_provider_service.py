from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from provider_admin.derived_views.status import SubscriptionStatus, subscription_status
from provider_admin.models.provider import Provider
from provider_admin.schemas.provider import ProviderRecord
from provider_admin.services import hidden_provider_service
from provider_admin.services.hidden_provider_service import (
    REASON_FULLY_BOOKED,
    REASON_PENDING,
    REASON_PRDP_EXPIRED,
    REASON_REJECTED,
    REASON_ROADWORTHY_EXPIRED,
    REASON_SUBSCRIPTION,
    REASON_UNAVAILABLE,
    hidden_reasons,
    merge_hidden,
)

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


def _paid_up(**kwargs) -> dict:
    """Fields of an active provider with a running subscription."""
    fields = {
        "status": "active",
        "subscription_end_date": NOW + timedelta(days=20),
        "grace_period_end_date": NOW + timedelta(days=25),
    }
    fields.update(kwargs)
    return fields


async def _create_provider(db_session: AsyncSession, id: str, **kwargs) -> Provider:
    provider = Provider(id=id, full_name=f"Provider {id}", **kwargs)
    db_session.add(provider)
    await db_session.commit()
    return provider


# --- hidden_reasons ---

def test_visible_provider_has_no_reasons():
    assert hidden_reasons(ProviderRecord(id="p1", **_paid_up()), NOW) == []


def test_lapsed_subscription_is_hidden():
    """Ended ten days ago, grace ended five days ago."""
    provider = ProviderRecord(
        id="p1",
        status="active",
        subscription_end_date=NOW - timedelta(days=10),
        grace_period_end_date=NOW - timedelta(days=5),
    )
    assert subscription_status(
        NOW, provider.subscription_end_date, provider.grace_period_end_date
    ) == SubscriptionStatus.expired
    assert REASON_SUBSCRIPTION in hidden_reasons(provider, NOW)


def test_running_subscription_not_a_reason():
    """Ends in three days: active, no subscription reason."""
    provider = ProviderRecord(
        id="p1", status="active", subscription_end_date=NOW + timedelta(days=3)
    )
    assert subscription_status(NOW, provider.subscription_end_date, None) == SubscriptionStatus.active
    assert REASON_SUBSCRIPTION not in hidden_reasons(provider, NOW)


def test_grace_window_keeps_provider_visible():
    provider = ProviderRecord(id="p1", **_paid_up(
        subscription_end_date=NOW - timedelta(days=2),
        grace_period_end_date=NOW + timedelta(days=3),
    ))
    assert hidden_reasons(provider, NOW) == []


def test_never_subscribed_is_hidden():
    assert hidden_reasons(ProviderRecord(id="p1", status="active"), NOW) == [REASON_SUBSCRIPTION]


@pytest.mark.parametrize("raw, reason", [
    ("full", REASON_FULLY_BOOKED),
    ("Fully Booked", REASON_FULLY_BOOKED),
    ("unavailable", REASON_UNAVAILABLE),
    ("temporary", REASON_UNAVAILABLE),
])
def test_availability_reasons(raw, reason):
    provider = ProviderRecord(id="p1", **_paid_up(availability_status=raw))
    assert hidden_reasons(provider, NOW) == [reason]


def test_expired_documents():
    provider = ProviderRecord(id="p1", **_paid_up(documents={
        "prdp": {"url": "https://cdn.example.com/prdp.pdf", "expiryDate": NOW.isoformat()},
        "roadworthy": {"url": "https://cdn.example.com/rw.jpg",
                       "expiryDate": (NOW - timedelta(days=40)).isoformat()},
    }))
    assert hidden_reasons(provider, NOW) == [REASON_PRDP_EXPIRED, REASON_ROADWORTHY_EXPIRED]


def test_documents_expiring_soon_are_not_reasons():
    provider = ProviderRecord(id="p1", **_paid_up(documents={
        "prdp": {"url": "x", "expiryDate": (NOW + timedelta(days=3)).isoformat()},
    }))
    assert hidden_reasons(provider, NOW) == []


def test_all_reasons_in_evaluation_order():
    provider = ProviderRecord(
        id="p1",
        status="active",
        availability_status="full",
        documents={
            "prdp": {"url": "x", "expiryDate": "2020-01-01T00:00:00Z"},
            "roadworthy": {"url": "y", "expiryDate": "2020-01-01T00:00:00Z"},
        },
    )
    assert hidden_reasons(provider, NOW) == [
        REASON_FULLY_BOOKED,
        REASON_SUBSCRIPTION,
        REASON_PRDP_EXPIRED,
        REASON_ROADWORTHY_EXPIRED,
    ]


# --- merge_hidden ---

def test_merge_order_and_fixed_reasons():
    rejected = [ProviderRecord(id="r1", status="rejected")]
    pending = [ProviderRecord(id="n1", status="pending")]
    active = [
        ProviderRecord(id="a1", **_paid_up()),
        ProviderRecord(id="a2", status="active"),
    ]
    merged = merge_hidden(rejected, pending, active, NOW)
    assert [(h.provider.id, h.reasons) for h in merged] == [
        ("r1", [REASON_REJECTED]),
        ("n1", [REASON_PENDING]),
        ("a2", [REASON_SUBSCRIPTION]),
    ]


def test_merge_deduplicates_first_wins():
    provider = ProviderRecord(id="dup", status="rejected")
    merged = merge_hidden([provider], [provider], [ProviderRecord(id="dup", status="active")], NOW)
    assert len(merged) == 1
    assert merged[0].reasons == [REASON_REJECTED]


def test_merge_empty_sources():
    assert merge_hidden([], [], [], NOW) == []


# --- fetch_hidden_providers ---

@pytest.mark.asyncio
async def test_fetch_hidden_providers(db_session: AsyncSession):
    await _create_provider(db_session, "rej", status="rejected")
    await _create_provider(db_session, "pen", status="pending")
    await _create_provider(db_session, "ok", **_paid_up())
    await _create_provider(db_session, "lapsed", status="active",
                           subscription_end_date=NOW - timedelta(days=10),
                           grace_period_end_date=NOW - timedelta(days=5))
    await _create_provider(db_session, "booked", **_paid_up(availability_status="full"))

    hidden = await hidden_provider_service.fetch_hidden_providers(db_session, now=NOW)
    by_id = {h.provider.id: h.reasons for h in hidden}

    assert set(by_id) == {"rej", "pen", "lapsed", "booked"}
    assert by_id["lapsed"] == [REASON_SUBSCRIPTION]
    assert by_id["booked"] == [REASON_FULLY_BOOKED]
    assert [h.provider.id for h in hidden][:2] == ["rej", "pen"]


@pytest.mark.asyncio
async def test_fetch_hidden_providers_idempotent(db_session: AsyncSession):
    """Two runs over unchanged data give the same ids and reasons."""
    await _create_provider(db_session, "rej", status="rejected")
    await _create_provider(db_session, "a1", status="active", availability_status="unavailable")
    await _create_provider(db_session, "a2", **_paid_up())

    first = await hidden_provider_service.fetch_hidden_providers(db_session, now=NOW)
    second = await hidden_provider_service.fetch_hidden_providers(db_session, now=NOW)

    assert {h.provider.id: sorted(h.reasons) for h in first} == {
        h.provider.id: sorted(h.reasons) for h in second
    }


@pytest.mark.asyncio
async def test_fetch_hidden_providers_millisecond_document_expiry(db_session: AsyncSession):
    """Epoch-millisecond expiries are read; an unrepresentable one is ignored."""
    expired_ms = int((NOW - timedelta(days=3)).timestamp() * 1000)
    await _create_provider(db_session, "ms", **_paid_up(documents={
        "prdp": {"url": "x", "expiryDate": expired_ms},
    }))
    await _create_provider(db_session, "junk", **_paid_up(documents={
        "prdp": {"url": "x", "expiryDate": {"seconds": 10**20}},
    }))

    hidden = await hidden_provider_service.fetch_hidden_providers(db_session, now=NOW)

    assert {h.provider.id: h.reasons for h in hidden} == {"ms": [REASON_PRDP_EXPIRED]}


@pytest.mark.asyncio
async def test_fetch_hidden_providers_propagates_failure(db_session: AsyncSession, monkeypatch):
    """No partial list when one of the reads fails."""
    from provider_admin.core.errors import TransportFailure
    from provider_admin.services import provider_service

    async def _failing(db, status):
        if status == "active":
            raise TransportFailure("Could not load active providers")
        return []

    monkeypatch.setattr(provider_service, "fetch_providers_by_status", _failing)

    with pytest.raises(TransportFailure):
        await hidden_provider_service.fetch_hidden_providers(db_session, now=NOW)

"""Row builders, badges and the profile view."""

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from provider_admin.derived_views.tables import (
    NOT_AVAILABLE,
    UNNAMED_PROVIDER,
    audit_row,
    availability_badge,
    document_cards,
    document_label,
    format_date,
    hidden_row,
    is_pdf_url,
    payment_row,
    profile_view,
    provider_row,
    source_badge,
    status_badge,
)
from provider_admin.schemas.activity import ActivityLogRead
from provider_admin.schemas.provider import ProviderRecord, RegistrationSource

NOW = datetime(2024, 6, 15, tzinfo=timezone.utc)


@pytest.mark.parametrize("url", [
    "https://cdn.example.com/docs/permit.pdf",
    "https://cdn.example.com/docs/PERMIT.PDF?token=abc",
    "https://cdn.example.com/render?format=pdf",
    "https://cdn.example.com/pdf/12345",
    "https://docs.example.com/d/abc/view?export=pdf",
])
def test_pdf_urls(url):
    assert is_pdf_url(url) is True


@pytest.mark.parametrize("url", [
    "https://cdn.example.com/docs/permit.jpg",
    "https://cdn.example.com/docs/permit.png?size=large",
    None,
    42,
])
def test_non_pdf_urls(url):
    assert is_pdf_url(url) is False


def test_document_label():
    assert document_label("roadworthyCertificate") == "ROADWORTHY CERTIFICATE"
    assert document_label("idDocument") == "ID DOCUMENT"
    assert document_label("prdp") == "PRDP PERMIT"


def test_document_cards():
    cards = document_cards({
        "idDocument": "https://cdn.example.com/id.jpg",
        "prdp": {"url": "https://cdn.example.com/prdp.pdf", "expiryDate": "2025-01-01"},
    })
    assert cards[0]["kind"] == "image"
    assert cards[1] == {
        "key": "prdp",
        "label": "PRDP PERMIT",
        "url": "https://cdn.example.com/prdp.pdf",
        "kind": "pdf",
    }


def test_badges():
    assert status_badge(None) == {"label": "PENDING", "variant": "pending"}
    assert status_badge("active") == {"label": "ACTIVE", "variant": "active"}
    assert availability_badge("full") == {"label": "Fully Booked", "variant": "rejected"}
    assert availability_badge(None)["label"] == "Available"


def test_source_badge_referral_shows_name():
    badge = source_badge(RegistrationSource(type="friend", referred_name="Sipho"))
    assert badge["label"] == "Referral: Sipho"
    assert source_badge(RegistrationSource(type="Facebook"))["label"] == "Facebook"


def test_format_date():
    assert format_date(datetime(2024, 1, 5)) == "5 January 2024"
    assert format_date(None) == NOT_AVAILABLE


def test_provider_row_placeholders():
    row = provider_row(ProviderRecord(id="p1"))
    assert row["name"] == NOT_AVAILABLE
    assert row["area"] == NOT_AVAILABLE
    assert row["payment"]["label"] == "UNPAID"


def test_payment_row_subscription_for_active_paid():
    row = payment_row(ProviderRecord(id="p1", status="active", payment_status="paid"))
    assert row["payment_type"] == "Subscription"
    assert row["amount"] == "R49"


def test_payment_row_registration_otherwise():
    row = payment_row(ProviderRecord(id="p1", status="pending", payment_status="paid"))
    assert row["payment_type"] == "Registration"
    assert row["amount"] == "R99"


def test_payment_row_recorded_amount_wins():
    row = payment_row(ProviderRecord(id="p1", amount_paid="R150"))
    assert row["amount"] == "R150"


def test_hidden_row_copies_reasons():
    reasons = ["Fully Booked"]
    row = hidden_row(ProviderRecord(id="p1", display_name="Thabo"), reasons)
    assert row["reasons"] == ["Fully Booked"]
    assert row["reasons"] is not reasons


def test_audit_row():
    entry = ActivityLogRead(
        id=uuid.uuid4(),
        action="provider.bulk_approved",
        details={"count": 2, "provider_ids": ["a", "b"]},
        admin_email="ops@example.com",
        timestamp=NOW,
    )
    row = audit_row(entry)
    assert row["admin"] == "ops@example.com"
    assert row["count"] == 2
    assert row["timestamp"].startswith("2024-06-15")


def test_audit_row_system_actor():
    entry = ActivityLogRead(id=uuid.uuid4(), action="auth.logout", timestamp=NOW)
    assert audit_row(entry)["admin"] == "system"


def test_profile_view():
    provider = ProviderRecord(
        id="p1",
        display_name="Thabo Mokoena",
        status="active",
        payment_status="paid",
        subscription_end_date=NOW + timedelta(days=10),
        grace_period_end_date=NOW + timedelta(days=15),
        documents={"prdp": {"url": "https://cdn.example.com/prdp.pdf",
                            "expiryDate": (NOW - timedelta(days=2)).isoformat()}},
        registration_source=RegistrationSource(type="Referral", referred_name="Lerato"),
        created_at=datetime(2024, 1, 15, tzinfo=timezone.utc),
    )
    view = profile_view(provider, NOW)
    assert view["name"] == "Thabo Mokoena"
    assert view["personal"]["joined"] == "15 January 2024"
    assert view["personal"]["email"] == NOT_AVAILABLE
    assert view["source"] == {"type": "Referral", "referred_name": "Lerato"}
    assert view["subscription"]["status"] == "Active"
    assert view["compliance"] == [{
        "document": "PrDP Permit",
        "band": "Expired",
        "days_remaining": -2,
        "label": "Expired 2 days ago",
    }]
    assert view["documents"][0]["kind"] == "pdf"


def test_profile_view_unnamed():
    view = profile_view(ProviderRecord(id="p1"), NOW)
    assert view["name"] == UNNAMED_PROVIDER
    assert view["subscription"]["status"] == "Expired"
    assert view["source"]["referred_name"] is None
    assert view["compliance"] == []

"""Table rows, badges and the profile view for the admin UI.

Builders are pure: they take canonical records and return plain dicts the
front-end renders verbatim. Nothing here fetches or mutates.
"""

import re
from datetime import datetime
from typing import Any

from provider_admin.config import settings
from provider_admin.derived_views.status import (
    EXPIRING_DOCUMENTS,
    availability,
    document_compliance,
    subscription_status,
)
from provider_admin.schemas.activity import ActivityLogRead
from provider_admin.schemas.provider import ProviderRecord, RegistrationSource

NOT_AVAILABLE = "N/A"
UNNAMED_PROVIDER = "Unnamed Provider"

PDF_EXPORT_MARKER = "export=pdf"


def _badge(label: str, variant: str) -> dict:
    return {"label": label, "variant": variant}


def status_badge(status: str | None) -> dict:
    value = status or "pending"
    return _badge(value.upper(), value)


def payment_badge(payment_status: str | None) -> dict:
    if payment_status == "paid":
        return _badge("PAID", "active")
    return _badge("UNPAID", "pending")


def source_badge(source: RegistrationSource | None) -> dict:
    if source is None:
        return _badge("Other", "info")
    if source.is_referral:
        return _badge(f"Referral: {source.referred_name}", "info")
    return _badge(source.type, "info")


def availability_badge(raw: str | None) -> dict:
    state = availability(raw)
    variant = {
        "Available": "active",
        "Fully Booked": "rejected",
        "Temporarily Unavailable": "pending",
    }[state.value]
    return _badge(state.value, variant)


def is_pdf_url(url: Any) -> bool:
    """Guess whether a document URL points at a PDF. No content probing."""
    if not isinstance(url, str):
        return False
    lowered = url.lower()
    return (
        lowered.split("?")[0].endswith(".pdf")
        or "format=pdf" in lowered
        or "/pdf" in lowered
        or PDF_EXPORT_MARKER in lowered
    )


def document_label(key: str) -> str:
    """``roadworthyCertificate`` -> ``ROADWORTHY CERTIFICATE``."""
    if key in EXPIRING_DOCUMENTS:
        return EXPIRING_DOCUMENTS[key].upper()
    return re.sub(r"([A-Z])", r" \1", key).strip().upper()


def document_cards(documents: dict | None) -> list[dict]:
    cards = []
    for key, entry in (documents or {}).items():
        url = entry.get("url") if isinstance(entry, dict) else entry
        cards.append({
            "key": key,
            "label": document_label(key),
            "url": url,
            "kind": "pdf" if is_pdf_url(url) else "image",
        })
    return cards


def format_date(moment: datetime | None) -> str:
    if moment is None:
        return NOT_AVAILABLE
    return f"{moment.day} {moment:%B %Y}"


def provider_row(provider: ProviderRecord) -> dict:
    return {
        "id": provider.id,
        "name": provider.display_name or NOT_AVAILABLE,
        "area": provider.area or NOT_AVAILABLE,
        "source": source_badge(provider.registration_source),
        "payment": payment_badge(provider.payment_status),
        "status": status_badge(provider.status),
        "availability": availability_badge(provider.availability_status),
    }


def payment_row(provider: ProviderRecord) -> dict:
    is_subscription = provider.status == "active" and provider.payment_status == "paid"
    return {
        "id": provider.id,
        "name": provider.display_name or NOT_AVAILABLE,
        "phone": provider.phone or NOT_AVAILABLE,
        "payment_type": "Subscription" if is_subscription else "Registration",
        "amount": provider.amount_paid
        or (settings.subscription_fee if is_subscription else settings.registration_fee),
        "payment": payment_badge(provider.payment_status),
    }


def hidden_row(provider: ProviderRecord, reasons: list[str]) -> dict:
    return {
        "id": provider.id,
        "name": provider.display_name or NOT_AVAILABLE,
        "phone": provider.phone or NOT_AVAILABLE,
        "status": status_badge(provider.status),
        "reasons": list(reasons),
    }


def audit_row(entry: ActivityLogRead) -> dict:
    details = entry.details or {}
    return {
        "id": str(entry.id),
        "action": entry.action,
        "admin": entry.admin_email or entry.admin_id or "system",
        "provider_name": details.get("provider_name"),
        "count": details.get("count"),
        "details": details,
        "timestamp": entry.timestamp.isoformat() if entry.timestamp else None,
    }


def profile_view(provider: ProviderRecord, now: datetime) -> dict:
    """Everything the provider profile page shows."""
    source = provider.registration_source
    sub_status = subscription_status(
        now, provider.subscription_end_date, provider.grace_period_end_date
    )
    return {
        "id": provider.id,
        "name": provider.display_name or UNNAMED_PROVIDER,
        "status": status_badge(provider.status),
        "verified": provider.verified,
        "personal": {
            "email": provider.email or NOT_AVAILABLE,
            "phone": provider.phone or NOT_AVAILABLE,
            "area": provider.area or NOT_AVAILABLE,
            "joined": format_date(provider.created_at),
        },
        "source": {
            "type": source.type,
            "referred_name": source.referred_name if source.is_referral else None,
        },
        "payment": payment_badge(provider.payment_status),
        "availability": availability_badge(provider.availability_status),
        "subscription": {
            "status": sub_status.value,
            "start_date": format_date(provider.subscription_start_date),
            "end_date": format_date(provider.subscription_end_date),
            "grace_period_end_date": format_date(provider.grace_period_end_date),
            "last_payment_date": format_date(provider.last_payment_date),
            "billing_cycle": provider.billing_cycle,
        },
        "compliance": [
            {
                "document": EXPIRING_DOCUMENTS.get(w.document_key, w.document_key),
                "band": w.band.value,
                "days_remaining": w.days_remaining,
                "label": w.label,
            }
            for w in document_compliance(now, provider.documents)
        ],
        "documents": document_cards(provider.documents),
        "admin_notes": provider.admin_notes,
        "rejection_reason": provider.rejection_reason,
    }

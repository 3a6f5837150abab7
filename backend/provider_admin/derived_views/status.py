"""Status derivation: pure functions over stored provider timestamps.

Nothing computed here is persisted. Every function takes ``now`` explicitly
and is total: missing or unparseable inputs map to a defined result.
"""

import calendar
import enum
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

COMPLIANCE_WARNING_DAYS = 30

PRDP_DOCUMENT_KEY = "prdp"
ROADWORTHY_DOCUMENT_KEY = "roadworthy"

EXPIRING_DOCUMENTS = {
    PRDP_DOCUMENT_KEY: "PrDP Permit",
    ROADWORTHY_DOCUMENT_KEY: "Roadworthy Certificate",
}

_FULLY_BOOKED_VALUES = {"full", "fully booked"}
_UNAVAILABLE_VALUES = {"unavailable", "temporary", "temporarily unavailable"}

# 10**11 seconds is past the year 5000; larger bare epochs are milliseconds.
MILLISECOND_EPOCH_THRESHOLD = 10**11


class SubscriptionStatus(str, enum.Enum):
    active = "Active"
    grace = "Grace"
    expired = "Expired"


class ComplianceBand(str, enum.Enum):
    ok = "OK"
    warning = "Warning"
    expired = "Expired"


class Availability(str, enum.Enum):
    available = "Available"
    fully_booked = "Fully Booked"
    temporarily_unavailable = "Temporarily Unavailable"


@dataclass(frozen=True)
class ComplianceWarning:
    document_key: str
    expiry_date: datetime
    days_remaining: int
    band: ComplianceBand
    label: str


def coerce_timestamp(value: Any) -> datetime | None:
    """Normalize a stored timestamp to an aware UTC datetime.

    Accepts datetimes, ISO-8601 strings, epoch numbers and timestamp
    objects of the form ``{"seconds": ...}`` / ``{"_seconds": ...}``.
    Bare epoch numbers at or above ``MILLISECOND_EPOCH_THRESHOLD`` are read
    as milliseconds. Anything else, including epochs outside the range
    ``datetime`` can represent, yields None.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, bool):
        return None
    elif isinstance(value, (int, float)):
        moment = _from_epoch(value, milliseconds=abs(value) >= MILLISECOND_EPOCH_THRESHOLD)
    elif isinstance(value, dict):
        seconds = value.get("seconds", value.get("_seconds"))
        if not isinstance(seconds, (int, float)) or isinstance(seconds, bool):
            return None
        moment = _from_epoch(seconds)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            moment = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if moment is None:
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def _from_epoch(value: float, *, milliseconds: bool = False) -> datetime | None:
    try:
        return datetime.fromtimestamp(value / 1000 if milliseconds else value, tz=timezone.utc)
    except (ValueError, OverflowError, OSError):
        return None


def add_one_month(moment: datetime) -> datetime:
    """Same day next calendar month, clamped to the last day of that month."""
    year = moment.year + (1 if moment.month == 12 else 0)
    month = 1 if moment.month == 12 else moment.month + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def subscription_status(
    now: datetime,
    end_date: datetime | None,
    grace_end_date: datetime | None,
) -> SubscriptionStatus:
    """Active before the end date, Grace until the grace end (inclusive), else Expired.

    A missing end date means the provider never subscribed.
    """
    if end_date is None:
        return SubscriptionStatus.expired
    if now < end_date:
        return SubscriptionStatus.active
    if grace_end_date is not None and now <= grace_end_date:
        return SubscriptionStatus.grace
    return SubscriptionStatus.expired


def subscription_lapsed(
    now: datetime,
    end_date: datetime | None,
    grace_end_date: datetime | None,
) -> bool:
    """True when both the subscription and its grace window are absent or past."""
    end_past = end_date is None or end_date <= now
    grace_past = grace_end_date is None or grace_end_date < now
    return end_past and grace_past


def compliance_band(
    now: datetime,
    expiry_date: datetime | None,
    *,
    document_key: str = "",
    warning_days: int = COMPLIANCE_WARNING_DAYS,
) -> ComplianceWarning | None:
    """Band a document expiry by whole days remaining (rounded up).

    Returns None when there is no expiry date to evaluate.
    """
    if expiry_date is None:
        return None
    days_remaining = math.ceil((expiry_date - now) / timedelta(days=1))
    if days_remaining <= 0:
        band = ComplianceBand.expired
        overdue = -days_remaining
        label = f"Expired {overdue} day{'' if overdue == 1 else 's'} ago"
    elif days_remaining <= warning_days:
        band = ComplianceBand.warning
        label = f"Expires in {days_remaining} day{'' if days_remaining == 1 else 's'}"
    else:
        band = ComplianceBand.ok
        label = f"Valid for {days_remaining} days"
    return ComplianceWarning(
        document_key=document_key,
        expiry_date=expiry_date,
        days_remaining=days_remaining,
        band=band,
        label=label,
    )


def document_expiry(documents: dict | None, key: str) -> datetime | None:
    """Expiry of a document entry stored as ``{"url": ..., "expiryDate": ...}``."""
    if not documents:
        return None
    entry = documents.get(key)
    if not isinstance(entry, dict):
        return None
    return coerce_timestamp(entry.get("expiryDate") or entry.get("expiry"))


def document_compliance(now: datetime, documents: dict | None) -> list[ComplianceWarning]:
    """Compliance warnings for the documents that carry an expiry."""
    warnings = []
    for key in EXPIRING_DOCUMENTS:
        warning = compliance_band(now, document_expiry(documents, key), document_key=key)
        if warning is not None:
            warnings.append(warning)
    return warnings


def availability(raw: str | None) -> Availability:
    value = (raw or "").strip().lower()
    if value in _FULLY_BOOKED_VALUES:
        return Availability.fully_booked
    if value in _UNAVAILABLE_VALUES:
        return Availability.temporarily_unavailable
    return Availability.available


def availability_label(raw: str | None) -> str:
    return availability(raw).value

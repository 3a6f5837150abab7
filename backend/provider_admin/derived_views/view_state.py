"""Dashboard view state: filter, search, sort and selection.

``ViewState`` is a plain serializable value. Transitions return a new
state and never touch the fetched data; search and sort are projections
over the in-memory list held by the dashboard controller.
"""

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_snake

from provider_admin.config import settings
from provider_admin.schemas.provider import ProviderRecord


class ViewMode(str, enum.Enum):
    provider_list = "provider-list"
    payment_list = "payment-list"
    hidden_list = "hidden-list"
    audit_list = "audit-list"


class SortDirection(str, enum.Enum):
    asc = "asc"
    desc = "desc"


@dataclass(frozen=True)
class FilterDefinition:
    key: str
    status: str | None
    view_mode: ViewMode
    title: str
    table_title: str
    limit: int

    @property
    def empty_message(self) -> str:
        if self.view_mode is ViewMode.payment_list:
            return "No payment records found."
        if self.view_mode is ViewMode.hidden_list:
            return "No hidden providers. Every active provider is visible."
        if self.view_mode is ViewMode.audit_list:
            return "No admin activity recorded yet."
        if self.status:
            return f"No providers found with status: {self.status.upper()}"
        return "No providers found in the database."


DEFAULT_FILTER = "dashboard"

FILTERS: dict[str, FilterDefinition] = {
    definition.key: definition
    for definition in (
        FilterDefinition("dashboard", None, ViewMode.provider_list, "Overview",
                         "Recent Provider Registrations", settings.recent_providers_limit),
        FilterDefinition("pending", "pending", ViewMode.provider_list, "Pending Providers",
                         "Providers Awaiting Approval", settings.filtered_providers_limit),
        FilterDefinition("active", "active", ViewMode.provider_list, "Active Providers",
                         "Live Service Providers", settings.filtered_providers_limit),
        FilterDefinition("rejected", "rejected", ViewMode.provider_list, "Rejected Providers",
                         "Rejected Registrations", settings.filtered_providers_limit),
        FilterDefinition("payments", None, ViewMode.payment_list, "Payments",
                         "Financial Overview", settings.payment_providers_limit),
        FilterDefinition("hidden", None, ViewMode.hidden_list, "Hidden Providers",
                         "Providers Not Visible to the Public", 0),
        FilterDefinition("audit", None, ViewMode.audit_list, "Audit Trail",
                         "Recent Admin Activity", settings.activity_log_limit),
    )
}


class ViewState(BaseModel):
    filter_key: str = DEFAULT_FILTER
    search_term: str = ""
    sort_key: str | None = None
    sort_direction: SortDirection = SortDirection.asc
    selected_ids: set[str] = Field(default_factory=set)
    view_mode: ViewMode = ViewMode.provider_list

    @property
    def filter(self) -> FilterDefinition:
        return FILTERS[self.filter_key]


def select_filter(state: ViewState, filter_key: str) -> ViewState:
    """Switch filter. Search, selection and sort reset to defaults."""
    if filter_key not in FILTERS:
        raise ValueError(f"Unknown filter '{filter_key}'. Must be one of: {list(FILTERS)}")
    return ViewState(filter_key=filter_key, view_mode=FILTERS[filter_key].view_mode)


def set_search(state: ViewState, term: str) -> ViewState:
    return state.model_copy(update={"search_term": term})


def toggle_sort(state: ViewState, key: str) -> ViewState:
    """Same column flips direction; a new column sorts ascending."""
    if key == state.sort_key:
        direction = (
            SortDirection.desc if state.sort_direction is SortDirection.asc else SortDirection.asc
        )
        return state.model_copy(update={"sort_direction": direction})
    return state.model_copy(update={"sort_key": key, "sort_direction": SortDirection.asc})


def toggle_row(state: ViewState, item_id: str, checked: bool) -> ViewState:
    selected = set(state.selected_ids)
    if checked:
        selected.add(item_id)
    else:
        selected.discard(item_id)
    return state.model_copy(update={"selected_ids": selected})


def toggle_all(state: ViewState, rendered_ids: list[str], checked: bool) -> ViewState:
    """Set membership of every currently rendered row to ``checked``."""
    selected = set(state.selected_ids)
    if checked:
        selected.update(rendered_ids)
    else:
        selected.difference_update(rendered_ids)
    return state.model_copy(update={"selected_ids": selected})


def clear_selection(state: ViewState) -> ViewState:
    return state.model_copy(update={"selected_ids": set()})


# --- Projections over fetched items ---

def provider_of(item: Any) -> ProviderRecord | None:
    if isinstance(item, ProviderRecord):
        return item
    return getattr(item, "provider", None)


def item_id(item: Any) -> str:
    provider = provider_of(item)
    if provider is not None:
        return provider.id
    return str(item.id)


def _search_fields(item: Any) -> list[str]:
    provider = provider_of(item)
    if provider is not None:
        return [provider.display_name, provider.phone or ""]
    if hasattr(item, "action"):
        details = item.details or {}
        return [str(details.get("provider_name") or ""), item.action, item.admin_email or ""]
    return []


def search_items(items: list, term: str) -> list:
    """Case-insensitive substring match on display name or phone.

    Returns a new list; ``items`` is never modified.
    """
    needle = (term or "").strip().lower()
    if not needle:
        return list(items)
    return [
        item for item in items
        if any(needle in field.lower() for field in _search_fields(item))
    ]


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (list, tuple, set)):
        return ", ".join(str(v) for v in value)
    return str(value)


def sort_key_value(item: Any, key: str) -> str:
    """String projection of a column, lowercased for comparison.

    ``name`` resolves through the canonical display name; every other key
    is the raw field (camelCase or snake_case) coerced to a string.
    """
    attr = to_snake(key)
    provider = provider_of(item)
    if attr in ("name", "display_name") and provider is not None:
        return provider.display_name.lower()

    value = None
    if provider is not None and not hasattr(item, attr):
        value = getattr(provider, attr, None)
    else:
        value = getattr(item, attr, None)
    return _as_text(value).lower()


def sort_items(items: list, key: str, direction: SortDirection) -> list:
    """Sort ``items`` in place and return it.

    Descending is the exact reverse of the stable ascending order, so
    flipping direction reverses the rendered sequence.
    """
    items.sort(key=lambda item: sort_key_value(item, key))
    if direction is SortDirection.desc:
        items.reverse()
    return items

"""Dashboard controller: one admin's view state plus the rows it was built from.

Only a filter change fetches. Search, sort and selection work on the
list already in memory. Controllers live in a per-process registry keyed
by session token; each is only touched by requests from its own session.
The registry is bounded: idle controllers are evicted once their session
must have expired, and the least recently used go past
``settings.dashboard_controller_limit``.
"""

import logging
import time
from collections import OrderedDict
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from provider_admin.config import settings
from provider_admin.core.errors import AdminServiceError, BulkActionError, ValidationFailure
from provider_admin.derived_views import tables
from provider_admin.derived_views.view_state import (
    ViewMode,
    ViewState,
    clear_selection,
    item_id,
    search_items,
    select_filter,
    set_search,
    sort_items,
    toggle_all,
    toggle_row,
    toggle_sort,
)
from provider_admin.models.provider import ProviderStatus
from provider_admin.models.user import User
from provider_admin.schemas.activity import ActivityLogRead
from provider_admin.services import activity_service, hidden_provider_service, provider_service

logger = logging.getLogger("provider_admin.dashboard")

# action -> (fields applied to each provider, activity log action, past tense)
BULK_ACTIONS: dict[str, tuple[dict, str, str]] = {
    "approve": (
        {"status": ProviderStatus.active.value, "verified": True},
        "provider.bulk_approved",
        "approved",
    ),
    "reject": (
        {"status": ProviderStatus.rejected.value},
        "provider.bulk_rejected",
        "rejected",
    ),
}


class DashboardController:
    def __init__(self, state: ViewState | None = None):
        self.state = state or ViewState()
        self.items: list = []
        self.degraded = False
        self.loaded = False
        self.notice: str | None = None
        self.error: str | None = None
        self.last_used = time.monotonic()

    # --- Fetching ---

    @staticmethod
    async def _fetch(
        db: AsyncSession, state: ViewState, now: datetime | None
    ) -> tuple[list, bool]:
        current = state.filter
        if current.view_mode is ViewMode.hidden_list:
            return await hidden_provider_service.fetch_hidden_providers(db, now=now), False
        if current.view_mode is ViewMode.audit_list:
            entries = await activity_service.fetch_activity_log(db, limit=current.limit)
            return [ActivityLogRead.model_validate(e) for e in entries], False
        result = await provider_service.fetch_recent_providers(db, current.limit, current.status)
        return result.data, result.degraded

    async def load(
        self,
        db: AsyncSession,
        *,
        state: ViewState | None = None,
        now: datetime | None = None,
    ) -> None:
        """Fetch the source set for ``state`` (default: the current one).

        State and items are replaced together, only once the fetch has
        succeeded. A failed fetch leaves the controller as it was.
        """
        state = state or self.state
        items, degraded = await self._fetch(db, state, now)
        if state.sort_key:
            sort_items(items, state.sort_key, state.sort_direction)

        self.state = state
        self.items = items
        self.degraded = degraded
        self.loaded = True
        logger.info(
            "view=%s rows=%d degraded=%s", state.filter.key, len(items), degraded
        )

    async def ensure_loaded(self, db: AsyncSession) -> None:
        if not self.loaded:
            await self.load(db)

    async def select_filter(self, db: AsyncSession, filter_key: str) -> None:
        state = select_filter(self.state, filter_key)
        self.notice = None
        self.error = None
        await self.load(db, state=state)

    # --- In-memory transitions ---

    def search(self, term: str) -> None:
        self.state = set_search(self.state, term)

    def sort(self, key: str) -> None:
        self.state = toggle_sort(self.state, key)
        sort_items(self.items, self.state.sort_key, self.state.sort_direction)

    def toggle_row(self, provider_id: str, checked: bool) -> None:
        self.state = toggle_row(self.state, provider_id, checked)

    def toggle_all(self, checked: bool) -> None:
        self.state = toggle_all(self.state, self.rendered_ids(), checked)

    def visible_items(self) -> list:
        return search_items(self.items, self.state.search_term)

    def rendered_ids(self) -> list[str]:
        return [item_id(item) for item in self.visible_items()]

    # --- Bulk actions ---

    def _ordered_selection(self) -> list[str]:
        """Selected ids in current list order, then any not in the list."""
        listed = [item_id(item) for item in self.items]
        selected = self.state.selected_ids
        ordered = [pid for pid in listed if pid in selected]
        ordered += sorted(selected - set(ordered))
        return ordered

    async def bulk_apply(
        self,
        db: AsyncSession,
        action: str,
        *,
        admin: User | None = None,
    ) -> str:
        """Apply ``action`` to every selected provider, one at a time.

        Each update is committed as it completes. The first failure stops
        the batch: completed updates stay applied, the selection is kept
        and ``BulkActionError`` is raised. Returns the success notice.
        """
        if action not in BULK_ACTIONS:
            raise ValidationFailure(
                f"Unknown bulk action '{action}'. Must be one of: {list(BULK_ACTIONS)}"
            )
        if self.state.view_mode is ViewMode.audit_list:
            raise ValidationFailure("Bulk actions apply to provider lists only.")
        provider_ids = self._ordered_selection()
        if not provider_ids:
            raise ValidationFailure("No providers selected.")

        fields, log_action, verb = BULK_ACTIONS[action]
        identity = activity_service.actor(admin)
        completed: list[str] = []

        for provider_id in provider_ids:
            try:
                await provider_service.update_provider(db, provider_id, dict(fields))
                await db.commit()
            except (AdminServiceError, SQLAlchemyError) as exc:
                await db.rollback()
                detail = getattr(exc, "detail", None) or str(exc)
                logger.warning(
                    "bulk %s stopped at provider=%s after %d of %d: %s",
                    action, provider_id, len(completed), len(provider_ids), detail,
                )
                await activity_service.append_audit_log(
                    db,
                    log_action,
                    {
                        "count": len(completed),
                        "provider_ids": completed,
                        "failed_id": provider_id,
                        "error": detail,
                    },
                    **identity,
                )
                await db.commit()
                self.error = f"Error updating provider {provider_id}: {detail}"
                raise BulkActionError(
                    self.error, completed_ids=completed, failed_id=provider_id
                ) from exc
            completed.append(provider_id)

        await activity_service.append_audit_log(
            db,
            log_action,
            {"count": len(completed), "provider_ids": completed},
            **identity,
        )
        await db.commit()

        self.notice = f"{len(completed)} provider(s) {verb} successfully."
        self.error = None
        self.state = clear_selection(self.state)
        await self.load(db)
        return self.notice

    # --- Rendering ---

    def render(self) -> dict:
        current = self.state.filter
        visible = self.visible_items()
        mode = self.state.view_mode

        if mode is ViewMode.payment_list:
            rows = [tables.payment_row(p) for p in visible]
        elif mode is ViewMode.hidden_list:
            rows = [tables.hidden_row(h.provider, h.reasons) for h in visible]
        elif mode is ViewMode.audit_list:
            rows = [tables.audit_row(e) for e in visible]
        else:
            rows = [tables.provider_row(p) for p in visible]

        for row in rows:
            row["selected"] = row["id"] in self.state.selected_ids

        if rows:
            empty_message = None
        elif self.state.search_term:
            noun = "payments" if mode is ViewMode.payment_list else "providers"
            empty_message = f'No {noun} found matching "{self.state.search_term}"'
        else:
            empty_message = current.empty_message

        return {
            "state": self.state.model_dump(mode="json"),
            "title": current.title,
            "table_title": current.table_title,
            "rows": rows,
            "empty_message": empty_message,
            "degraded": self.degraded,
            "notice": self.notice,
            "error": self.error,
        }


# session token -> controller, least recently used first
_controllers: OrderedDict[str, DashboardController] = OrderedDict()


def _prune(now: float) -> None:
    """Evict controllers idle longer than a session can live, then the oldest over the cap."""
    idle_limit = settings.session_duration_hours * 3600
    for token in [t for t, c in _controllers.items() if now - c.last_used > idle_limit]:
        del _controllers[token]
    while len(_controllers) > settings.dashboard_controller_limit:
        _controllers.popitem(last=False)


def get_controller(session_token: str, *, now: float | None = None) -> DashboardController:
    now = time.monotonic() if now is None else now
    controller = _controllers.pop(session_token, None) or DashboardController()
    controller.last_used = now
    _controllers[session_token] = controller
    _prune(now)
    return controller


def drop_controller(session_token: str) -> None:
    _controllers.pop(session_token, None)

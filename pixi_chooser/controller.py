from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any, Protocol

from pixi_chooser.events import (
    LoadingStateChanged,
    LoadPackagesCompleted,
    OpenPackageRequested,
    RowsChanged,
    SearchTermChanged,
    SortChanged,
    Subscription,
)
from pixi_chooser.models import (
    PACKAGE_COLUMNS,
    DialogSession,
    PackageRow,
    SortDirection,
)
from pixi_chooser.settings import ChooserSettings
from pixi_chooser.sorting import sort_indicators
from pixi_chooser.viewmodel import PackageChooserViewModel

logger = logging.getLogger(__name__)


class Timer(Protocol):
    def stop(self) -> None: ...


class Scheduler(Protocol):
    """The host's event loop, as seen by the controller.

    ``call_after_refresh`` runs a callback once pending layout and rendering
    work is done (background priority).
    """

    def call_after_refresh(self, callback: Callable[..., Any], *args: Any) -> bool: ...

    def set_timer(self, delay: float, callback: Callable[[], Any]) -> Timer: ...


class ChooserView(Protocol):
    async def show_modal(self) -> None: ...

    def hide(self) -> None: ...

    def close(self) -> None: ...

    def focus_search_box(self) -> None: ...

    def set_search_text(self, text: str) -> None: ...

    def clear_selection(self) -> None: ...

    def render_rows(self, rows: tuple[PackageRow, ...]) -> None: ...

    def set_loading(self, is_loading: bool, status: str) -> None: ...

    def show_error(self, message: str) -> None: ...

    def redraw_sort_glyph(
        self, indicators: Mapping[str, SortDirection | None]
    ) -> None: ...


class PackageChooserController:
    """Sequences the dialog's loads, searches, sorting and visibility changes.

    Every handler runs on the host's event loop. Handlers for keyboard input
    return ``True`` when they consumed the key and ``False`` when the host
    should apply its default behaviour.
    """

    def __init__(
        self,
        view_model: PackageChooserViewModel,
        *,
        view: ChooserView,
        scheduler: Scheduler,
        settings: ChooserSettings,
    ) -> None:
        self._view_model = view_model
        self._view = view
        self._scheduler = scheduler
        self._settings = settings
        self.session = DialogSession(auto_load_enabled=view_model.auto_load_packages)
        self._search_timer: Timer | None = None
        events = view_model.events
        self._subscriptions: list[Subscription] = [
            events.subscribe(LoadPackagesCompleted, self._on_load_packages_completed),
            events.subscribe(SortChanged, self._on_sort_changed),
            events.subscribe(OpenPackageRequested, self._on_open_package_requested),
            events.subscribe(RowsChanged, self._on_rows_changed),
            events.subscribe(LoadingStateChanged, self._on_loading_state_changed),
            events.subscribe(SearchTermChanged, self._on_search_term_changed),
        ]

    @property
    def view_model(self) -> PackageChooserViewModel:
        return self._view_model

    # Inbound commands

    async def show(self, search_term: str | None = None) -> None:
        """Show the dialog and return once it has been hidden again."""
        if self.session.closed:
            raise RuntimeError("The package chooser has been closed.")
        self.session.pending_search_term = search_term
        try:
            await self._view.show_modal()
        finally:
            self.session.pending_search_term = None

    def request_close(self) -> None:
        if self.session.closed:
            logger.debug("Ignoring close request after teardown")
            return
        self._stop_search_timer()
        self._view_model.cancel_command.execute(None)
        self._view.clear_selection()
        self._view_model.selected_row = None
        self._view.hide()

    def force_close(self) -> None:
        if self.session.closed:
            return
        self.session.closed = True
        self._stop_search_timer()
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions.clear()
        self._view.close()

    # Visibility and focus

    def on_visibility_changed(self, is_visible: bool) -> None:
        if self.session.closed:
            return
        self.session.is_visible = is_visible
        # The first signal arrives before the first layout; on_loaded covers it.
        if not (is_visible and self.session.is_loaded):
            return

        pending = self.session.pending_search_term
        if pending:
            self._invoke_search(pending)
        else:
            self._scheduler.call_after_refresh(self._on_after_show)

    def on_loaded(self) -> None:
        self.session.is_loaded = True
        if self.session.closed or self.session.initial_load_requested:
            return
        self.session.initial_load_requested = True
        if not self.session.auto_load_enabled:
            return

        pending = self.session.pending_search_term
        if pending:
            self._scheduler.call_after_refresh(self._invoke_search, pending)
        else:
            self._scheduler.call_after_refresh(self._load_packages)

    def on_focus_search_requested(self) -> bool:
        self._view.focus_search_box()
        return True

    def _on_after_show(self) -> None:
        self._view_model.on_after_show()
        self._view.focus_search_box()

    def _load_packages(self) -> None:
        self._view_model.load_command.execute(None)

    # Search

    def on_enter_key(self, term: str | None = None) -> bool:
        self._stop_search_timer()
        self._invoke_search(term)
        return True

    def on_escape_key(self) -> bool:
        clear_search_command = self._view_model.clear_search_command
        if not clear_search_command.can_execute(None):
            return False
        self._stop_search_timer()
        clear_search_command.execute(None)
        return True

    def on_search_text_changed(self, text: str) -> None:
        if text == self._view_model.search_state.current_term:
            return
        self._view_model.set_search_text(text)
        delay = self._settings.search_debounce_seconds
        if delay is None or self.session.closed:
            return
        self._stop_search_timer()
        self._search_timer = self._scheduler.set_timer(delay, self._debounced_search)

    def on_package_source_submitted(self, source: str) -> bool:
        if not source or not source.strip():
            return False
        self._stop_search_timer()
        self._view_model.change_package_source_command.execute(source)
        return True

    def _invoke_search(self, term: str | None) -> None:
        self._view_model.search_command.execute(term)

    def _debounced_search(self) -> None:
        self._search_timer = None
        if self.session.closed:
            return
        self._invoke_search(None)

    def _stop_search_timer(self) -> None:
        timer = self._search_timer
        self._search_timer = None
        if timer is not None:
            timer.stop()

    # Sorting

    def on_sort_interaction(self, column: str) -> bool:
        sort_command = self._view_model.sort_command
        if sort_command.can_execute(column):
            sort_command.execute(column)
        return True

    def _on_sort_changed(self, event: SortChanged) -> None:
        self._view.redraw_sort_glyph(sort_indicators(PACKAGE_COLUMNS, event.state))

    # Rows

    def on_row_highlighted(self, row: PackageRow | None) -> None:
        self._view_model.selected_row = row

    def on_row_activate(self, row: PackageRow) -> bool:
        if row.showing_all_versions:
            return False
        self._view_model.open_command.execute(row)
        return True

    def on_toggle_versions(self, row: PackageRow | None) -> bool:
        show_all_versions_command = self._view_model.show_all_versions_command
        if not show_all_versions_command.can_execute(row):
            return False
        show_all_versions_command.execute(row)
        return True

    # View model notifications

    def _on_open_package_requested(self, event: OpenPackageRequested) -> None:
        logger.info("Opening %s", event.selection.match_spec)
        self._view.hide()

    def _on_load_packages_completed(self, event: LoadPackagesCompleted) -> None:
        if event.error is not None:
            self._view.show_error(f"Failed to load packages: {event.error!s}")
        if self.session.is_visible:
            self._view.focus_search_box()

    def _on_rows_changed(self, event: RowsChanged) -> None:
        self._view.render_rows(event.rows)

    def _on_loading_state_changed(self, event: LoadingStateChanged) -> None:
        self._view.set_loading(event.is_loading, event.status)

    def _on_search_term_changed(self, event: SearchTermChanged) -> None:
        self._view.set_search_text(event.term)

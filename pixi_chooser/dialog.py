from __future__ import annotations

import asyncio
from collections.abc import Mapping

from rich.text import Text
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume, ScreenSuspend
from textual.screen import ModalScreen
from textual.widgets import DataTable, Input, Static

from pixi_chooser.controller import PackageChooserController
from pixi_chooser.models import PACKAGE_COLUMNS, PackageRow, SortDirection
from pixi_chooser.rendering import format_column_label, format_row_cells
from pixi_chooser.settings import ChooserSettings
from pixi_chooser.viewmodel import PackageChooserViewModel

CHOOSER_SCREEN_NAME = "package-chooser"


class PackageChooserDialog(ModalScreen[None]):
    """Reusable modal listing the packages of a channel.

    Hiding pops the screen but keeps it installed, so the next show reuses the
    loaded rows. ``close`` uninstalls it for good.
    """

    BINDINGS = [
        Binding("escape", "escape", "Close", show=False),
        Binding("ctrl+e", "focus_search", "Search"),
        Binding("v", "toggle_versions", "Versions"),
    ]

    def __init__(
        self, view_model: PackageChooserViewModel, *, settings: ChooserSettings
    ) -> None:
        super().__init__()
        self._view_model = view_model
        self._rows: tuple[PackageRow, ...] = ()
        self._rows_by_key: dict[str, PackageRow] = {}
        self._indicators: dict[str, SortDirection | None] = {
            column: None for column in PACKAGE_COLUMNS
        }
        self._hidden: asyncio.Future[None] | None = None
        self.controller = PackageChooserController(
            view_model, view=self, scheduler=self, settings=settings
        )

    def compose(self) -> ComposeResult:
        with Vertical(id="chooser"):
            with Horizontal(id="chooser-toolbar"):
                yield Input(placeholder="Search packages", id="search-box")
                yield Input(
                    value=self._view_model.source.channel,
                    placeholder="Channel",
                    id="source-box",
                )
            yield DataTable(id="package-grid", cursor_type="row", zebra_stripes=True)
            yield Static("", id="chooser-status")

    def on_mount(self) -> None:
        self._rebuild_grid()

    def on_screen_resume(self, event: ScreenResume) -> None:
        del event
        self.controller.on_visibility_changed(True)
        if not self.controller.session.is_loaded:
            self.call_after_refresh(self.controller.on_loaded)

    def on_screen_suspend(self, event: ScreenSuspend) -> None:
        del event
        self.controller.on_visibility_changed(False)

    # View

    async def show_modal(self) -> None:
        self._hidden = asyncio.get_running_loop().create_future()
        await self.app.push_screen(self)
        await self._hidden

    def hide(self) -> None:
        if self.is_current:
            self.app.pop_screen()
        self._resolve_hidden()

    def close(self) -> None:
        if self.is_current:
            self.app.pop_screen()
        self.app.uninstall_screen(self)
        self._resolve_hidden()

    def _resolve_hidden(self) -> None:
        hidden = self._hidden
        self._hidden = None
        if hidden is not None and not hidden.done():
            hidden.set_result(None)

    def focus_search_box(self) -> None:
        if not self.is_mounted:
            return
        search_box = self.query_one("#search-box", Input)
        if search_box.disabled or not search_box.can_focus:
            return
        search_box.focus()
        search_box.cursor_position = len(search_box.value)

    def set_search_text(self, text: str) -> None:
        if not self.is_mounted:
            return
        self.query_one("#search-box", Input).value = text

    def clear_selection(self) -> None:
        if not self.is_mounted:
            return
        package_grid = self.query_one("#package-grid", DataTable)
        if package_grid.row_count:
            package_grid.move_cursor(row=0)

    def render_rows(self, rows: tuple[PackageRow, ...]) -> None:
        self._rows = rows
        self._rows_by_key = {row.key: row for row in rows}
        if self.is_mounted:
            self._render_grid_rows(self.query_one("#package-grid", DataTable))

    def set_loading(self, is_loading: bool, status: str) -> None:
        if not self.is_mounted:
            return
        self.query_one("#package-grid", DataTable).loading = is_loading
        self.query_one("#chooser-status", Static).update(Text(status))

    def show_error(self, message: str) -> None:
        self.notify(message, title="Packages", severity="error")

    def redraw_sort_glyph(self, indicators: Mapping[str, SortDirection | None]) -> None:
        self._indicators = dict(indicators)
        if self.is_mounted:
            self._rebuild_grid()

    def _rebuild_grid(self) -> None:
        package_grid = self.query_one("#package-grid", DataTable)
        package_grid.clear(columns=True)
        for column in PACKAGE_COLUMNS:
            package_grid.add_column(
                format_column_label(column, self._indicators.get(column)), key=column
            )
        self._render_grid_rows(package_grid)

    def _render_grid_rows(self, package_grid: DataTable) -> None:
        highlighted = self._highlighted_row()
        package_grid.clear()
        for row in self._rows:
            package_grid.add_row(*format_row_cells(row), key=row.key)

        if highlighted is None:
            return
        keys = [row.key for row in self._rows]
        if highlighted.key in keys:
            package_grid.move_cursor(row=keys.index(highlighted.key))

    def _highlighted_row(self) -> PackageRow | None:
        return self._view_model.selected_row

    def _row_for_key(self, key: str | None) -> PackageRow | None:
        if key is None:
            return None
        return self._rows_by_key.get(key)

    # Input

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id == "search-box":
            self.controller.on_enter_key(event.value)
            event.stop()
            return

        if event.input.id == "source-box":
            if not self.controller.on_package_source_submitted(event.value):
                self.notify(
                    "Channel cannot be empty.",
                    title="Channel",
                    severity="warning",
                )
            event.stop()

    def on_input_changed(self, event: Input.Changed) -> None:
        if event.input.id != "search-box":
            return
        self.controller.on_search_text_changed(event.value)

    def on_data_table_header_selected(self, event: DataTable.HeaderSelected) -> None:
        if self.controller.on_sort_interaction(str(event.column_key.value)):
            event.stop()

    def on_data_table_row_highlighted(self, event: DataTable.RowHighlighted) -> None:
        self.controller.on_row_highlighted(self._row_for_key(event.row_key.value))

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        row = self._row_for_key(event.row_key.value)
        if row is None:
            return
        if self.controller.on_row_activate(row):
            event.stop()

    def action_escape(self) -> None:
        search_box = self.query_one("#search-box", Input)
        if self.focused is search_box and self.controller.on_escape_key():
            return
        self.controller.request_close()

    def action_focus_search(self) -> None:
        self.controller.on_focus_search_requested()

    def action_toggle_versions(self) -> None:
        self.controller.on_toggle_versions(self._highlighted_row())

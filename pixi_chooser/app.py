from __future__ import annotations

import logging
from collections.abc import Coroutine
from typing import Any

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import Footer, Static

from pixi_chooser.dialog import CHOOSER_SCREEN_NAME, PackageChooserDialog
from pixi_chooser.events import OpenPackageRequested
from pixi_chooser.models import PackageSelection
from pixi_chooser.provider import GatewayPackageProvider, PackageProvider
from pixi_chooser.repodata import create_gateway, default_cache_path
from pixi_chooser.settings import ChooserSettings
from pixi_chooser.viewmodel import PackageChooserViewModel

logger = logging.getLogger(__name__)


class PackageChooserApp(App[PackageSelection | None]):
    CSS_PATH = "chooser.tcss"
    ENABLE_COMMAND_PALETTE = False
    BINDINGS = [
        Binding("o", "open_chooser", "Open"),
        Binding("q", "quit", "Quit"),
        Binding("ctrl+c", "quit", show=False),
    ]

    def __init__(
        self,
        *,
        settings: ChooserSettings | None = None,
        search_term: str | None = None,
        provider: PackageProvider | None = None,
    ) -> None:
        super().__init__()
        self.theme = "rose-pine"
        self._settings = settings or ChooserSettings()
        self._search_term = search_term
        if provider is None:
            provider = GatewayPackageProvider(
                create_gateway(cache_dir=default_cache_path())
            )
        self._selection: PackageSelection | None = None
        self._dialog: PackageChooserDialog | None = None
        self.view_model = PackageChooserViewModel(
            provider,
            settings=self._settings,
            run_worker=self._run_query_worker,
        )
        self.view_model.events.subscribe(
            OpenPackageRequested, self._on_open_package_requested
        )

    def compose(self) -> ComposeResult:
        yield Static("Press o to choose a package.", id="editor-placeholder")
        yield Footer()

    def on_mount(self) -> None:
        self._dialog = PackageChooserDialog(self.view_model, settings=self._settings)
        self.install_screen(self._dialog, name=CHOOSER_SCREEN_NAME)
        self._open_chooser(self._search_term)

    def _run_query_worker(self, query: Coroutine[Any, Any, None]) -> None:
        self.run_worker(query, group="package-query", exit_on_error=False)

    def _open_chooser(self, search_term: str | None = None) -> None:
        if self._dialog is None or self.screen is self._dialog:
            return
        self.run_worker(
            self._choose(self._dialog, search_term),
            group="package-chooser",
            exclusive=True,
            exit_on_error=False,
        )

    async def _choose(
        self, dialog: PackageChooserDialog, search_term: str | None
    ) -> None:
        self._selection = None
        await dialog.controller.show(search_term)
        if self._selection is not None:
            self.exit(self._selection)
            return
        self.query_one("#editor-placeholder", Static).update(
            "No package chosen. Press o to open the chooser again."
        )

    def _on_open_package_requested(self, event: OpenPackageRequested) -> None:
        self._selection = event.selection

    def action_open_chooser(self) -> None:
        self._open_chooser()

    async def action_quit(self) -> None:
        if self._dialog is not None:
            self._dialog.controller.force_close()
            self._dialog = None
        self.exit(self._selection)

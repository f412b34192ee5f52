from __future__ import annotations

import logging
from collections.abc import Callable, Coroutine, Sequence
from typing import Any

from pixi_chooser.commands import Command
from pixi_chooser.events import (
    CancelRequested,
    EventHub,
    LoadingStateChanged,
    LoadPackagesCompleted,
    LoadRequested,
    OpenPackageRequested,
    PackageSourceChanged,
    RowsChanged,
    SearchRequested,
    SearchTermChanged,
    SortChanged,
    SortRequested,
)
from pixi_chooser.exceptions import PackageProviderError
from pixi_chooser.models import (
    PackagePage,
    PackageRow,
    PackageSelection,
    PackageSource,
    SearchState,
    SortState,
)
from pixi_chooser.provider import PackageProvider
from pixi_chooser.rendering import format_page_status
from pixi_chooser.settings import ChooserSettings
from pixi_chooser.sorting import is_sortable_column, next_sort_state, sort_rows
from pixi_chooser.tokens import OperationToken, OperationTokenSource

logger = logging.getLogger(__name__)

WorkerRunner = Callable[[Coroutine[Any, Any, None]], object]


class PackageChooserViewModel:
    """State and commands behind the package chooser dialog.

    Loads and searches share one token slot: issuing either makes the previous
    one stale, and a stale completion never touches the rows or the search
    state. Version expansions use their own slot and are also dropped when the
    row set they were requested against has been replaced.
    """

    def __init__(
        self,
        provider: PackageProvider,
        *,
        settings: ChooserSettings,
        run_worker: WorkerRunner,
        events: EventHub | None = None,
    ) -> None:
        self._provider = provider
        self._settings = settings
        self._run_worker = run_worker
        self.events = events or EventHub()
        self._tokens = OperationTokenSource()
        self._version_tokens = OperationTokenSource()
        self.source = PackageSource(
            channel=settings.default_channel.strip() or "conda-forge",
            platforms=tuple(settings.default_platforms),
        )
        self.search_state = SearchState()
        self.sort_state = SortState()
        self.rows: list[PackageRow] = []
        self.total = 0
        self.is_loading = False
        self.has_loaded = False
        self.status = ""
        self.selected_row: PackageRow | None = None
        self.last_error: Exception | None = None

        self.load_command: Command[None] = Command(self._load)
        self.search_command: Command[str | None] = Command(self._search)
        self.clear_search_command: Command[None] = Command(
            self._clear_search, self._can_clear_search
        )
        self.cancel_command: Command[None] = Command(
            self._cancel, lambda _: self.is_loading
        )
        self.sort_command: Command[str] = Command(self._sort, self._can_sort)
        self.change_package_source_command: Command[str] = Command(
            self._change_package_source,
            lambda source: bool(source and source.strip()),
        )
        self.open_command: Command[PackageRow | None] = Command(
            self._open, self._can_open
        )
        self.show_all_versions_command: Command[PackageRow | None] = Command(
            self._toggle_versions,
            lambda row: row is not None and row.kind == "package",
        )

    @property
    def auto_load_packages(self) -> bool:
        return self._settings.auto_load_packages

    def set_search_text(self, text: str) -> None:
        self.search_state.current_term = text

    def on_after_show(self) -> None:
        if not self.auto_load_packages or self.has_loaded or self.is_loading:
            return
        # The previous show cycle was closed before anything arrived.
        logger.info("No packages loaded for %s yet, reloading", self.source.channel)
        if self.search_state.is_search_active:
            self._search(None)
        else:
            self._load(None)

    def _set_rows(self, rows: Sequence[PackageRow]) -> None:
        self.rows = list(rows)
        self.events.publish(RowsChanged(tuple(self.rows)))

    def _set_loading(self, is_loading: bool, status: str) -> None:
        self.is_loading = is_loading
        self.status = status
        self.events.publish(LoadingStateChanged(is_loading=is_loading, status=status))

    def _set_search_term(self, term: str) -> None:
        if self.search_state.current_term == term:
            return
        self.search_state.current_term = term
        self.events.publish(SearchTermChanged(term))

    def _start_query(
        self, status: str, query: Coroutine[Any, Any, PackagePage]
    ) -> OperationToken:
        token = self._tokens.start()
        self._version_tokens.cancel()
        logger.debug("Starting query %d: %s", token.generation, status)
        self._set_loading(True, status)
        self._run_worker(self._run_query(token, query))
        return token

    async def _run_query(
        self, token: OperationToken, query: Coroutine[Any, Any, PackagePage]
    ) -> None:
        page: PackagePage | None = None
        error: Exception | None = None
        try:
            page = await query
        except PackageProviderError as exc:
            error = exc
        finally:
            self._finish_query(token, page, error)

    def _finish_query(
        self,
        token: OperationToken,
        page: PackagePage | None,
        error: Exception | None,
    ) -> None:
        if self._tokens.is_stale(token):
            logger.debug("Discarding result of superseded query %d", token.generation)
            return

        self.last_error = error
        if page is not None:
            self.total = page.total
            self.has_loaded = True
            self._set_rows(sort_rows(page.rows, self.sort_state))
            status = format_page_status(page, self.source.channel)
        elif error is not None:
            logger.warning(
                "Loading packages from %s failed: %s", self.source.channel, error
            )
            status = f"Failed to load packages: {error!s}"
        else:
            status = "Loading packages failed."
        self._set_loading(False, status)
        self.events.publish(LoadPackagesCompleted(error=error))

    def _load(self, _argument: None = None) -> None:
        self.search_state.is_search_active = False
        self.events.publish(LoadRequested(self.source))
        self._start_query(
            f"Loading packages from {self.source.channel}...",
            self._provider.load_packages(self.source, limit=self._settings.page_size),
        )

    def _search(self, term: str | None) -> None:
        if term is not None:
            self._set_search_term(term)
        query = self.search_state.current_term.strip()
        if not query:
            self._load(None)
            return

        self.search_state.is_search_active = True
        self.events.publish(SearchRequested(query))
        self._start_query(
            f"Searching {self.source.channel} for '{query}'...",
            self._provider.search_packages(
                self.source, query, limit=self._settings.page_size
            ),
        )

    def _can_clear_search(self, _argument: None = None) -> bool:
        search_state = self.search_state
        return bool(search_state.current_term) or search_state.is_search_active

    def _clear_search(self, _argument: None = None) -> None:
        self._set_search_term("")
        self._load(None)

    def _cancel(self, _argument: None = None) -> None:
        self._tokens.cancel()
        self._version_tokens.cancel()
        self.events.publish(CancelRequested())
        if self.is_loading:
            self._set_loading(False, "Cancelled.")

    def _can_sort(self, column: str) -> bool:
        return is_sortable_column(column) and not self.is_loading

    def _sort(self, column: str) -> SortState:
        state = next_sort_state(
            self.sort_state,
            column,
            new_column_direction=self._settings.new_sort_column_direction,
        )
        self.sort_state = state
        assert state.column is not None
        self.events.publish(SortRequested(state.column))
        self._set_rows(sort_rows(self.rows, state))
        self.events.publish(SortChanged(state))
        return state

    def _change_package_source(self, source: str) -> None:
        self.source = PackageSource(
            channel=source.strip(), platforms=self.source.platforms
        )
        self.has_loaded = False
        self.events.publish(PackageSourceChanged(self.source))
        if self.search_state.is_search_active:
            self._search(None)
        else:
            self._load(None)

    def _can_open(self, row: PackageRow | None) -> bool:
        return row is not None and not row.showing_all_versions

    def _open(self, row: PackageRow | None) -> None:
        if row is None:
            return
        selection = PackageSelection(
            channel=self.source.channel,
            name=row.name,
            version=str(row.version) if row.version is not None else None,
        )
        self.events.publish(OpenPackageRequested(selection))

    def _find_row(self, row: PackageRow) -> int | None:
        for index, candidate in enumerate(self.rows):
            if candidate.kind == "package" and candidate.name == row.name:
                return index
        return None

    def _toggle_versions(self, row: PackageRow | None) -> None:
        if row is None or row.kind != "package":
            return
        index = self._find_row(row)
        if index is None:
            return

        if self.rows[index].showing_all_versions:
            collapsed = [
                candidate
                for candidate in self.rows
                if not (candidate.kind == "version" and candidate.name == row.name)
            ]
            collapsed[index] = PackageRow(
                name=row.name,
                version=row.version,
                build_count=row.build_count,
                subdirs=row.subdirs,
            )
            self._set_rows(collapsed)
            return

        token = self._version_tokens.start()
        generation = self._tokens.generation
        self.status = f"Loading versions of {row.name}..."
        self.events.publish(
            LoadingStateChanged(is_loading=self.is_loading, status=self.status)
        )
        self._run_worker(
            self._run_versions(
                token,
                generation,
                row,
                self._provider.package_versions(self.source, row.name),
            )
        )

    async def _run_versions(
        self,
        token: OperationToken,
        generation: int,
        row: PackageRow,
        query: Coroutine[Any, Any, list[PackageRow]],
    ) -> None:
        versions: list[PackageRow] | None = None
        error: Exception | None = None
        try:
            versions = await query
        except PackageProviderError as exc:
            error = exc
        finally:
            self._finish_versions(token, generation, row, versions, error)

    def _finish_versions(
        self,
        token: OperationToken,
        generation: int,
        row: PackageRow,
        versions: list[PackageRow] | None,
        error: Exception | None,
    ) -> None:
        if (
            self._version_tokens.is_stale(token)
            or self._tokens.generation != generation
        ):
            logger.debug("Discarding superseded versions of %s", row.name)
            return

        index = self._find_row(row)
        if versions is None or index is None:
            if error is not None:
                self.status = f"Failed to load versions of {row.name}: {error!s}"
                self.events.publish(
                    LoadingStateChanged(is_loading=self.is_loading, status=self.status)
                )
            return

        current = self.rows[index]
        expanded = PackageRow(
            name=current.name,
            version=current.version,
            build_count=current.build_count,
            subdirs=current.subdirs,
            showing_all_versions=True,
        )
        rows = list(self.rows)
        rows[index : index + 1] = [expanded, *versions]
        self._set_rows(rows)
        self.status = f"{len(versions):,} versions of {row.name}."
        self.events.publish(
            LoadingStateChanged(is_loading=self.is_loading, status=self.status)
        )

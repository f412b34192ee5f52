import asyncio
from collections.abc import Callable, Coroutine, Mapping
from typing import Any

import pytest
from rattler.version import Version

from pixi_chooser.controller import PackageChooserController
from pixi_chooser.events import EventHub
from pixi_chooser.models import (
    PackagePage,
    PackageRow,
    PackageSource,
    SortDirection,
)
from pixi_chooser.search import rank_package_names
from pixi_chooser.settings import ChooserSettings
from pixi_chooser.viewmodel import PackageChooserViewModel

PACKAGES = {
    "numpy": ["1.26.4", "2.0.0", "2.1.3"],
    "pandas": ["2.2.2", "2.2.3"],
    "scipy": ["1.14.1"],
    "numba": ["0.60.0"],
}


class _Ready:
    """Awaitable that resolves immediately without creating a coroutine."""

    def __init__(self, value: Any = None, error: Exception | None = None) -> None:
        self._value = value
        self._error = error

    def __await__(self):
        if self._error is not None:
            raise self._error
        return self._value
        yield  # pragma: no cover


def package_row(name: str) -> PackageRow:
    versions = PACKAGES[name]
    return PackageRow(
        name=name,
        version=Version(versions[-1]),
        build_count=len(versions),
        subdirs=("noarch",),
    )


class FakeProvider:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []
        self.error: Exception | None = None

    def load_packages(self, source: PackageSource, *, limit: int) -> _Ready:
        self.calls.append(("load", source.channel))
        rows = [package_row(name) for name in sorted(PACKAGES)][:limit]
        return _Ready(PackagePage(rows=rows, total=len(PACKAGES)), self.error)

    def search_packages(
        self, source: PackageSource, term: str, *, limit: int
    ) -> _Ready:
        self.calls.append(("search", term))
        names = rank_package_names(term, PACKAGES)
        rows = [package_row(name) for name in names][:limit]
        return _Ready(PackagePage(rows=rows, total=len(names), term=term), self.error)

    def package_versions(self, source: PackageSource, package_name: str) -> _Ready:
        self.calls.append(("versions", package_name))
        rows = [
            PackageRow(
                name=package_name,
                version=Version(version),
                build_count=1,
                kind="version",
            )
            for version in reversed(PACKAGES[package_name])
        ]
        return _Ready(rows, self.error)


class FakeWorkers:
    def __init__(self) -> None:
        self.pending: list[Coroutine[Any, Any, None]] = []

    def __call__(self, coroutine: Coroutine[Any, Any, None]) -> None:
        self.pending.append(coroutine)

    def run_all(self) -> None:
        while self.pending:
            asyncio.run(self.pending.pop(0))

    def discard(self) -> None:
        while self.pending:
            self.pending.pop(0).close()


class FakeTimer:
    def __init__(self, delay: float, callback: Callable[[], Any]) -> None:
        self.delay = delay
        self.callback = callback
        self.stopped = False

    def stop(self) -> None:
        self.stopped = True

    def fire(self) -> None:
        if not self.stopped:
            self.callback()


class FakeScheduler:
    def __init__(self) -> None:
        self.callbacks: list[tuple[Callable[..., Any], tuple[Any, ...]]] = []
        self.timers: list[FakeTimer] = []

    def call_after_refresh(self, callback: Callable[..., Any], *args: Any) -> bool:
        self.callbacks.append((callback, args))
        return True

    def set_timer(self, delay: float, callback: Callable[[], Any]) -> FakeTimer:
        timer = FakeTimer(delay, callback)
        self.timers.append(timer)
        return timer

    def flush(self) -> None:
        while self.callbacks:
            callback, args = self.callbacks.pop(0)
            callback(*args)


class FakeView:
    def __init__(self) -> None:
        self.calls: list[str] = []
        self.rows: tuple[PackageRow, ...] = ()
        self.search_text = ""
        self.status = ""
        self.is_loading = False
        self.indicators: dict[str, SortDirection | None] = {}
        self.errors: list[str] = []

    async def show_modal(self) -> None:
        self.calls.append("show")

    def hide(self) -> None:
        self.calls.append("hide")

    def close(self) -> None:
        self.calls.append("close")

    def focus_search_box(self) -> None:
        self.calls.append("focus")

    def set_search_text(self, text: str) -> None:
        self.search_text = text

    def clear_selection(self) -> None:
        self.calls.append("clear_selection")

    def render_rows(self, rows: tuple[PackageRow, ...]) -> None:
        self.rows = rows

    def set_loading(self, is_loading: bool, status: str) -> None:
        self.is_loading = is_loading
        self.status = status

    def show_error(self, message: str) -> None:
        self.errors.append(message)

    def redraw_sort_glyph(self, indicators: Mapping[str, SortDirection | None]) -> None:
        self.indicators = dict(indicators)


class EventRecorder:
    def __init__(self, events: EventHub, *event_types: type) -> None:
        self.received: list[object] = []
        for event_type in event_types:
            events.subscribe(event_type, self.received.append)

    def types(self) -> list[type]:
        return [type(event) for event in self.received]


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def workers():
    runner = FakeWorkers()
    yield runner
    runner.discard()


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def view() -> FakeView:
    return FakeView()


@pytest.fixture
def make_view_model(provider: FakeProvider, workers: FakeWorkers):
    def _make(**settings: Any) -> PackageChooserViewModel:
        return PackageChooserViewModel(
            provider,
            settings=ChooserSettings(**settings),
            run_worker=workers,
        )

    return _make


@pytest.fixture
def make_controller(make_view_model, view: FakeView, scheduler: FakeScheduler):
    def _make(**settings: Any) -> PackageChooserController:
        view_model = make_view_model(**settings)
        return PackageChooserController(
            view_model,
            view=view,
            scheduler=scheduler,
            settings=ChooserSettings(**settings),
        )

    return _make


@pytest.fixture
def record_events():
    return EventRecorder

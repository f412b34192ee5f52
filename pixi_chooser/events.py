from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from pixi_chooser.models import (
    PackageRow,
    PackageSelection,
    PackageSource,
    SortState,
)

logger = logging.getLogger(__name__)

E = TypeVar("E")


@dataclass(frozen=True)
class OpenPackageRequested:
    selection: PackageSelection


@dataclass(frozen=True)
class PackageSourceChanged:
    source: PackageSource


@dataclass(frozen=True)
class SearchRequested:
    term: str


@dataclass(frozen=True)
class LoadRequested:
    source: PackageSource


@dataclass(frozen=True)
class SortRequested:
    column: str


@dataclass(frozen=True)
class CancelRequested:
    pass


@dataclass(frozen=True)
class LoadPackagesCompleted:
    error: Exception | None = None


@dataclass(frozen=True)
class SortChanged:
    state: SortState


@dataclass(frozen=True)
class RowsChanged:
    rows: tuple[PackageRow, ...]


@dataclass(frozen=True)
class LoadingStateChanged:
    is_loading: bool
    status: str


@dataclass(frozen=True)
class SearchTermChanged:
    term: str


class Subscription:
    def __init__(self, hub: EventHub, event_type: type, handler: Callable) -> None:
        self._hub = hub
        self._event_type = event_type
        self._handler = handler
        self.active = True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self._hub._remove(self._event_type, self._handler)


class EventHub:
    """Synchronous publish/subscribe keyed by payload type.

    Handlers run in subscription order on the caller's turn. Exceptions raised
    by a handler propagate to the publisher.
    """

    def __init__(self) -> None:
        self._handlers: dict[type, list[Callable[[Any], None]]] = defaultdict(list)

    def subscribe(
        self, event_type: type[E], handler: Callable[[E], None]
    ) -> Subscription:
        self._handlers[event_type].append(handler)
        return Subscription(self, event_type, handler)

    def publish(self, event: object) -> None:
        handlers = list(self._handlers.get(type(event), ()))
        logger.debug("Publishing %r to %d handler(s)", event, len(handlers))
        for handler in handlers:
            handler(event)

    def subscriber_count(self, event_type: type) -> int:
        return len(self._handlers.get(event_type, ()))

    def _remove(self, event_type: type, handler: Callable) -> None:
        handlers = self._handlers.get(event_type)
        if handlers is None:
            return
        try:
            handlers.remove(handler)
        except ValueError:
            return
        if not handlers:
            del self._handlers[event_type]

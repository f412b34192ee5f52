from __future__ import annotations

from collections.abc import Callable
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class Command(Generic[T]):
    def __init__(
        self,
        execute: Callable[[T], Any],
        can_execute: Callable[[T], bool] | None = None,
    ) -> None:
        self._execute = execute
        self._can_execute = can_execute

    def can_execute(self, argument: T) -> bool:
        if self._can_execute is None:
            return True
        return self._can_execute(argument)

    def execute(self, argument: T) -> Any:
        return self._execute(argument)

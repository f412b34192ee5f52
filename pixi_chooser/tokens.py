from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class OperationToken:
    generation: int


class OperationTokenSource:
    """Hands out tokens for the load-or-search slot.

    Starting a token makes every earlier token stale. Nothing is aborted: the
    holder of a stale token is expected to drop its result.
    """

    def __init__(self) -> None:
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def start(self) -> OperationToken:
        self._generation += 1
        return OperationToken(self._generation)

    def cancel(self) -> None:
        self._generation += 1

    def is_stale(self, token: OperationToken) -> bool:
        return token.generation != self._generation

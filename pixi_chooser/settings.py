from __future__ import annotations

from dataclasses import dataclass

from rattler.platform import Platform

from pixi_chooser.models import NewColumnDirection


@dataclass(frozen=True)
class ChooserSettings:
    default_channel: str = "conda-forge"
    default_platforms: tuple[Platform, ...] = ()
    auto_load_packages: bool = True
    page_size: int = 100
    # None disables search-as-you-type; searches then only run on Enter.
    search_debounce_seconds: float | None = None
    new_sort_column_direction: NewColumnDirection = "ascending"

    def __post_init__(self) -> None:
        if self.page_size < 1:
            raise ValueError("page_size must be at least 1.")
        debounce = self.search_debounce_seconds
        if debounce is not None and debounce < 0:
            raise ValueError("search_debounce_seconds cannot be negative.")

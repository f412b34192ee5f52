from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

from pixi_chooser.models import (
    PACKAGE_COLUMNS,
    NewColumnDirection,
    PackageRow,
    SortDirection,
    SortState,
)


def is_sortable_column(column: str | None) -> bool:
    return column is not None and column.casefold() in PACKAGE_COLUMNS


def next_sort_state(
    state: SortState,
    column: str,
    *,
    new_column_direction: NewColumnDirection = "ascending",
) -> SortState:
    """Return the state after the user interacts with ``column``.

    Re-selecting the sorted column flips its direction. Any other column
    starts ascending, or inherits the previous direction under ``"preserve"``.
    """
    column = column.casefold()
    same_column = state.column is not None and state.column.casefold() == column
    if same_column and state.direction == "ascending":
        return SortState(column=column, direction="descending")
    if same_column:
        return SortState(column=column, direction="ascending")

    direction: SortDirection = "ascending"
    if new_column_direction == "preserve" and state.direction is not None:
        direction = state.direction
    return SortState(column=column, direction=direction)


def sort_indicators(
    columns: Iterable[str], state: SortState
) -> dict[str, SortDirection | None]:
    sorted_column = state.column.casefold() if state.column is not None else None
    return {
        column: (
            state.direction
            if sorted_column is not None and column.casefold() == sorted_column
            else None
        )
        for column in columns
    }


def _sort_value(row: PackageRow, column: str) -> Any:
    if column == "name":
        return row.name.casefold()
    if column == "version":
        return row.version
    if column == "builds":
        return row.build_count
    raise ValueError(f"Unknown sort column: {column}")


def _group_blocks(rows: Sequence[PackageRow]) -> list[list[PackageRow]]:
    # Version rows stay attached to the package row they were expanded from.
    blocks: list[list[PackageRow]] = []
    for row in rows:
        if row.kind == "version" and blocks and blocks[-1][0].name == row.name:
            blocks[-1].append(row)
        else:
            blocks.append([row])
    return blocks


def sort_rows(rows: Sequence[PackageRow], state: SortState) -> list[PackageRow]:
    if state.column is None or state.direction is None:
        return list(rows)

    column = state.column.casefold()
    blocks = _group_blocks(rows)
    present = [block for block in blocks if _sort_value(block[0], column) is not None]
    missing = [block for block in blocks if _sort_value(block[0], column) is None]
    present.sort(
        key=lambda block: (_sort_value(block[0], column), block[0].name),
        reverse=state.direction == "descending",
    )
    missing.sort(key=lambda block: block[0].name)
    return [row for block in (*present, *missing) for row in block]

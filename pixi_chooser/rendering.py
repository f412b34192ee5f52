from __future__ import annotations

from rich.text import Text

from pixi_chooser.models import PackagePage, PackageRow, SortDirection

COLUMN_TITLES = {
    "name": "Name",
    "version": "Version",
    "builds": "Builds",
}

SORT_GLYPHS = {
    "ascending": " ▲",
    "descending": " ▼",
}


def format_column_label(column: str, direction: SortDirection | None) -> Text:
    label = Text(COLUMN_TITLES.get(column, column.title()), style="bold")
    if direction is not None:
        label.append(SORT_GLYPHS[direction], style="bold red")
    return label


def format_row_cells(row: PackageRow) -> tuple[Text, Text, Text]:
    version = str(row.version) if row.version is not None else "not available"
    if row.kind == "version":
        name = Text(f"  └ {row.name}", style="dim")
        return name, Text(version), Text(str(row.build_count), justify="right")

    marker = "▾ " if row.showing_all_versions else ""
    name = Text(f"{marker}{row.name}")
    version_text = Text(version, style="dim" if row.version is None else "")
    return name, version_text, Text(str(row.build_count), justify="right")


def format_page_status(page: PackagePage, channel: str) -> str:
    shown = len(page.rows)
    if page.term:
        if page.total == 0:
            return f"No packages in {channel} match '{page.term}'."
        noun = "match" if page.total == 1 else "matches"
        return (
            f"Showing {shown:,} of {page.total:,} {noun} for "
            f"'{page.term}' in {channel}."
        )
    if page.total == 0:
        return f"No packages found in {channel}."
    return f"Showing {shown:,} of {page.total:,} packages in {channel}."

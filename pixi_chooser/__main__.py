from __future__ import annotations

import logging

import typer
from rattler.exceptions import ParsePlatformError
from rattler.platform import Platform
from textual.logging import TextualHandler

from pixi_chooser import __version__
from pixi_chooser.app import PackageChooserApp
from pixi_chooser.models import NewColumnDirection, PackageRow, PackageSelection
from pixi_chooser.settings import ChooserSettings

__all__ = [
    "PackageChooserApp",
    "PackageRow",
    "PackageSelection",
    "cli",
    "run",
]


def _version_callback(value: bool) -> None:
    if not value:
        return
    typer.echo(f"pixi-chooser {__version__}")
    raise typer.Exit()


def _configure_logging(level_name: str) -> None:
    level = logging.getLevelName(level_name.upper())
    if not isinstance(level, int):
        raise typer.BadParameter(f"Unknown log level: {level_name}")
    logging.basicConfig(level=level, handlers=[TextualHandler()], force=True)


cli = typer.Typer(
    add_completion=False,
    help="Choose a conda package from a channel in a Textual dialog.",
)


@cli.callback(invoke_without_command=True)
def run(
    channel: str = typer.Option(
        "conda-forge",
        "--channel",
        "-c",
        help="Channel listed when the chooser opens.",
    ),
    platform: list[str] | None = typer.Option(
        None,
        "--platform",
        "-p",
        help="Platforms to list. Repeat the flag to pass multiple platforms.",
    ),
    search: str | None = typer.Option(
        None,
        "--search",
        "-s",
        help="Search term run instead of the default listing.",
    ),
    auto_load: bool = typer.Option(
        True,
        "--auto-load/--no-auto-load",
        help="Load packages as soon as the chooser opens.",
    ),
    page_size: int = typer.Option(
        100,
        "--page-size",
        min=1,
        help="Maximum number of packages listed per load or search.",
    ),
    debounce: float | None = typer.Option(
        None,
        "--debounce",
        min=0.0,
        help="Search while typing after this many idle seconds.",
    ),
    sort_new_column: str = typer.Option(
        "ascending",
        "--sort-new-column",
        help="Direction of a newly sorted column: ascending or preserve.",
    ),
    log_level: str = typer.Option(
        "WARNING",
        "--log-level",
        help="Level of log records sent to the Textual console.",
    ),
    _version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    requested_platforms: list[Platform] = []
    if platform is not None:
        try:
            requested_platforms = [
                Platform(platform_name) for platform_name in platform
            ]
        except ParsePlatformError as exc:
            typer.echo(str(exc), err=True)
            raise typer.Exit(code=1) from exc

    if sort_new_column not in ("ascending", "preserve"):
        typer.echo(
            f"Invalid --sort-new-column value: {sort_new_column}", err=True
        )
        raise typer.Exit(code=1)
    new_column_direction: NewColumnDirection = (
        "preserve" if sort_new_column == "preserve" else "ascending"
    )

    _configure_logging(log_level)
    settings = ChooserSettings(
        default_channel=channel.strip() or "conda-forge",
        default_platforms=tuple(requested_platforms),
        auto_load_packages=auto_load,
        page_size=page_size,
        search_debounce_seconds=debounce,
        new_sort_column_direction=new_column_direction,
    )
    selection = PackageChooserApp(settings=settings, search_term=search).run()
    if selection is None:
        raise typer.Exit(code=1)
    typer.echo(selection.match_spec)


if __name__ == "__main__":
    cli()

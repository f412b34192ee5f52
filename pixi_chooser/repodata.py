from __future__ import annotations

import asyncio
from collections import defaultdict
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any

from rattler.exceptions import GatewayError
from rattler.platform import Platform
from rattler.repo_data import Gateway, SourceConfig

from pixi_chooser.models import PackageRow
from pixi_chooser.platform_utils import platform_sort_key


def default_cache_path() -> Path:
    cache_path = Path.home() / ".cache" / "pixi-chooser" / "repodata-gateway"
    cache_path.mkdir(parents=True, exist_ok=True)
    return cache_path


def create_gateway(*, cache_dir: Path) -> Gateway:
    return Gateway(
        cache_dir=cache_dir,
        default_config=SourceConfig(
            sharded_enabled=True,
            cache_action="cache-or-fetch",
        ),
        show_progress=False,
    )


async def discover_available_platforms(
    *,
    gateway: Gateway,
    channel_name: str,
    max_parallel: int = 12,
) -> list[Platform]:
    candidates = sorted(
        Platform.all(),
        key=platform_sort_key,
    )
    semaphore = asyncio.Semaphore(max_parallel)

    async def probe(platform: Platform) -> Platform | None:
        async with semaphore:
            try:
                names = await gateway.names(
                    sources=[channel_name],
                    platforms=[platform],
                )
            except GatewayError:
                return None

        return platform if names else None

    discovered = await asyncio.gather(*(probe(platform) for platform in candidates))
    return sorted(
        (platform for platform in discovered if platform is not None),
        key=platform_sort_key,
    )


async def fetch_package_names(
    *,
    gateway: Gateway,
    channel_name: str,
    selected_platforms: Iterable[Platform],
) -> tuple[list[Platform], list[str]]:
    platforms = sorted(
        set(selected_platforms),
        key=platform_sort_key,
    )
    names = await gateway.names(
        sources=[channel_name],
        platforms=platforms,
    )
    return platforms, sorted({name.normalized for name in names})


def record_identity_key(record: Any) -> tuple[str, str, int, str, str]:
    return (
        str(record.version),
        record.build,
        record.build_number,
        record.subdir,
        record.file_name,
    )


def record_sort_key(record: Any) -> tuple[Any, str, str, int]:
    return (record.version, record.build, record.subdir, record.build_number)


async def query_package_records(
    *,
    gateway: Gateway,
    channel_name: str,
    platforms: list[Platform],
    package_names: Sequence[str],
) -> dict[str, list[Any]]:
    """Query records for several packages at once, grouped by package name."""
    if not package_names:
        return {}

    unique_records: dict[str, dict[tuple[str, str, int, str, str], Any]] = (
        defaultdict(dict)
    )
    by_source = await gateway.query(
        sources=[channel_name],
        platforms=platforms,
        specs=list(package_names),
        recursive=False,
    )
    for source_records in by_source:
        for record in source_records:
            unique_records[record.name.normalized][record_identity_key(record)] = (
                record
            )

    return {
        package_name: sorted(records.values(), key=record_sort_key, reverse=True)
        for package_name, records in unique_records.items()
    }


def build_package_row(package_name: str, records: Sequence[Any]) -> PackageRow:
    if not records:
        return PackageRow(name=package_name)
    latest = max(records, key=record_sort_key)
    return PackageRow(
        name=package_name,
        version=latest.version,
        build_count=len(records),
        subdirs=tuple(sorted({record.subdir for record in records})),
    )


def build_version_rows(package_name: str, records: Sequence[Any]) -> list[PackageRow]:
    """One row per distinct version, newest first."""
    grouped_by_version: dict[str, list[Any]] = defaultdict(list)
    for record in records:
        grouped_by_version[str(record.version)].append(record)

    version_rows = [
        PackageRow(
            name=package_name,
            version=version_records[0].version,
            build_count=len(version_records),
            subdirs=tuple(sorted({record.subdir for record in version_records})),
            kind="version",
        )
        for version_records in grouped_by_version.values()
    ]
    version_rows.sort(key=lambda row: row.version, reverse=True)
    return version_rows

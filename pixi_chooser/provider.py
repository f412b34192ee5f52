from __future__ import annotations

import logging
from typing import Any, Protocol

from rattler.exceptions import GatewayError
from rattler.platform import Platform
from rattler.repo_data import Gateway

from pixi_chooser.exceptions import PackageProviderError
from pixi_chooser.models import PackagePage, PackageRow, PackageSource
from pixi_chooser.platform_utils import default_platform_selection, platform_sort_key
from pixi_chooser.repodata import (
    build_package_row,
    build_version_rows,
    discover_available_platforms,
    fetch_package_names,
    query_package_records,
)
from pixi_chooser.search import rank_package_names

logger = logging.getLogger(__name__)


class PackageProvider(Protocol):
    async def load_packages(
        self, source: PackageSource, *, limit: int
    ) -> PackagePage: ...

    async def search_packages(
        self, source: PackageSource, term: str, *, limit: int
    ) -> PackagePage: ...

    async def package_versions(
        self, source: PackageSource, package_name: str
    ) -> list[PackageRow]: ...


class GatewayPackageProvider:
    """Reads a conda channel through the sharded repodata gateway.

    Package names are fetched once per channel and platform selection; pages
    are filled with version information by querying only the listed packages.
    """

    def __init__(self, gateway: Gateway) -> None:
        self._gateway = gateway
        self._available_platforms: dict[str, list[Platform]] = {}
        self._names_cache: dict[tuple[str, tuple[str, ...]], list[str]] = {}
        self._platforms_cache: dict[tuple[str, tuple[str, ...]], list[Platform]] = {}

    async def _resolve_platforms(self, source: PackageSource) -> list[Platform]:
        available = self._available_platforms.get(source.channel)
        if available is None:
            available = await discover_available_platforms(
                gateway=self._gateway,
                channel_name=source.channel,
            )
            if not available:
                raise PackageProviderError(
                    "No reachable platform repodata endpoints found."
                )
            self._available_platforms[source.channel] = available

        selected = {platform for platform in source.platforms if platform in available}
        if not selected:
            selected = default_platform_selection(available)
        return sorted(selected, key=platform_sort_key)

    async def _package_names(
        self, source: PackageSource
    ) -> tuple[list[Platform], list[str]]:
        platforms = await self._resolve_platforms(source)
        cache_key = (source.channel, tuple(str(platform) for platform in platforms))
        cached = self._names_cache.get(cache_key)
        if cached is not None:
            return self._platforms_cache[cache_key], cached

        logger.info(
            "Fetching package names for %s (%s)",
            source.channel,
            ", ".join(str(platform) for platform in platforms),
        )
        platforms, names = await fetch_package_names(
            gateway=self._gateway,
            channel_name=source.channel,
            selected_platforms=platforms,
        )
        self._names_cache[cache_key] = names
        self._platforms_cache[cache_key] = platforms
        return platforms, names

    async def _build_page(
        self,
        source: PackageSource,
        platforms: list[Platform],
        names: list[str],
        *,
        total: int,
        term: str = "",
    ) -> PackagePage:
        records_by_name = await query_package_records(
            gateway=self._gateway,
            channel_name=source.channel,
            platforms=platforms,
            package_names=names,
        )
        rows = [
            build_package_row(package_name, records_by_name.get(package_name, []))
            for package_name in names
        ]
        return PackagePage(rows=rows, total=total, term=term)

    async def load_packages(self, source: PackageSource, *, limit: int) -> PackagePage:
        try:
            platforms, names = await self._package_names(source)
            return await self._build_page(
                source, platforms, names[:limit], total=len(names)
            )
        except GatewayError as exc:
            raise PackageProviderError(str(exc)) from exc

    async def search_packages(
        self, source: PackageSource, term: str, *, limit: int
    ) -> PackagePage:
        try:
            platforms, names = await self._package_names(source)
            matches = rank_package_names(term, names)
            return await self._build_page(
                source, platforms, matches[:limit], total=len(matches), term=term
            )
        except GatewayError as exc:
            raise PackageProviderError(str(exc)) from exc

    async def package_versions(
        self, source: PackageSource, package_name: str
    ) -> list[PackageRow]:
        try:
            platforms = await self._resolve_platforms(source)
            records_by_name: dict[str, list[Any]] = await query_package_records(
                gateway=self._gateway,
                channel_name=source.channel,
                platforms=platforms,
                package_names=[package_name],
            )
        except GatewayError as exc:
            raise PackageProviderError(str(exc)) from exc
        return build_version_rows(package_name, records_by_name.get(package_name, []))

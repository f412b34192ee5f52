from __future__ import annotations

from collections.abc import Iterable

from rattler.platform import Platform


def platform_sort_key(platform: Platform) -> tuple[bool, str]:
    platform_name = str(platform)
    return (platform_name == "noarch", platform_name)


def default_platform_selection(available: Iterable[Platform]) -> set[Platform]:
    available_platforms = sorted(available, key=platform_sort_key)
    if not available_platforms:
        return set()

    current_platform = Platform.current()
    noarch_platform = Platform("noarch")
    if current_platform in available_platforms:
        defaults = {current_platform}
        if noarch_platform in available_platforms:
            defaults.add(noarch_platform)
        return defaults

    if noarch_platform in available_platforms:
        return {noarch_platform}

    return {available_platforms[0]}

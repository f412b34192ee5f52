from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from rattler.platform import Platform
from rattler.version import Version

RowKind = Literal["package", "version"]
SortDirection = Literal["ascending", "descending"]
NewColumnDirection = Literal["ascending", "preserve"]

# Column identifiers of the package grid, in display order.
PACKAGE_COLUMNS: tuple[str, ...] = ("name", "version", "builds")


@dataclass(frozen=True)
class PackageSource:
    channel: str
    platforms: tuple[Platform, ...] = ()


@dataclass(frozen=True)
class PackageRow:
    name: str
    version: Version | None = None
    build_count: int = 0
    subdirs: tuple[str, ...] = ()
    kind: RowKind = "package"
    showing_all_versions: bool = False

    @property
    def key(self) -> str:
        if self.kind == "version":
            return f"{self.name}=={self.version}"
        return self.name


@dataclass(frozen=True)
class PackagePage:
    rows: list[PackageRow]
    total: int
    term: str = ""


@dataclass(frozen=True)
class PackageSelection:
    channel: str
    name: str
    version: str | None = None

    @property
    def match_spec(self) -> str:
        spec = f"{self.channel}::{self.name}"
        if self.version is not None:
            spec += f"=={self.version}"
        return spec


@dataclass(frozen=True)
class SortState:
    column: str | None = None
    direction: SortDirection | None = None


@dataclass
class SearchState:
    current_term: str = ""
    is_search_active: bool = False


@dataclass
class DialogSession:
    auto_load_enabled: bool = True
    is_visible: bool = False
    is_loaded: bool = False
    pending_search_term: str | None = None
    initial_load_requested: bool = False
    closed: bool = False

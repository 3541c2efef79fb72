"""Coverage data models: raw per-resource ranges and the derived report."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from bundlelens.utils.pagination import PageResult

BYTES_PER_KB = 1024


@dataclass(frozen=True)
class CoverageRange:
    """Half-open byte interval ``[start, end)`` that was executed or applied."""

    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start


@dataclass
class CoverageRecord:
    """Raw coverage for one resource, as returned by a coverage provider."""

    url: str
    """Resource URL (may be a ``data:`` or ``blob:`` URL for inline code)."""

    source_length: int
    """Length of the resource source in bytes."""

    ranges: list[CoverageRange] = field(default_factory=list)
    """Executed ranges, ordered and non-overlapping."""


@dataclass(frozen=True)
class CoverageEntry:
    """Usage statistics for a single JS or CSS resource."""

    url: str
    total_bytes: int
    used_bytes: int
    unused_bytes: int
    usage_percent: float
    is_external: bool

    @property
    def unused_percent(self) -> float:
        return 100.0 - self.usage_percent

    @property
    def size_kb(self) -> float:
        return self.total_bytes / BYTES_PER_KB


@dataclass(frozen=True)
class CoverageSummary:
    """Totals over every classified resource, independent of pagination."""

    total_resources: int = 0
    total_bytes: int = 0
    used_bytes: int = 0
    unused_bytes: int = 0
    overall_usage_percent: float = 0.0


@dataclass(frozen=True)
class CoverageOptions:
    """Which resource types the active tracking session collects."""

    include_js: bool = True
    include_css: bool = True


@dataclass
class CoverageCollection:
    """Records returned by a coverage provider when tracking stops."""

    js: list[CoverageRecord] = field(default_factory=list)
    css: list[CoverageRecord] = field(default_factory=list)


@dataclass
class CoverageReport:
    """Complete coverage report for one tracking session.

    ``js_coverage`` and ``css_coverage`` hold every entry, sorted by unused
    bytes (most wasted first).  The pagination fields carry the window a
    renderer should display; they are ``None`` for a type with no entries.
    """

    js_coverage: list[CoverageEntry] = field(default_factory=list)
    """All JavaScript entries, most unused bytes first."""

    css_coverage: list[CoverageEntry] = field(default_factory=list)
    """All CSS entries, most unused bytes first."""

    summary: CoverageSummary = field(default_factory=CoverageSummary)
    """Totals computed over both full lists."""

    js_pagination: PageResult[CoverageEntry] | None = None
    """Requested page of ``js_coverage``."""

    css_pagination: PageResult[CoverageEntry] | None = None
    """Requested page of ``css_coverage``."""

"""CodeSplitAnalyzer agent and the bundle optimization heuristics.

The heuristics turn coverage entries and loading chains into suggestions:
1. Detects heavy third-party libraries by filename and proposes lighter alternatives
2. Scores each oversized bundle's priority from its unused bytes and percentage
3. Picks first-party, mostly unused bundles as lazy-load candidates
4. Proposes chained bundles as merge candidates and emits preload tags

Every heuristic is a pure function over already-collected data.  Static
tables (dependency alternatives, vendor path patterns) are passed in as a
:class:`HeuristicTables` so tests and configuration can substitute them.
"""

from __future__ import annotations

import functools
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Literal

from bundlelens.agents.analyzers.classifier import DEFAULT_VENDOR_PATTERNS
from bundlelens.agents.base import BaseAgent, TaskInput, TaskOutput, TaskStatus, failed
from bundlelens.models.coverage import BYTES_PER_KB

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from bundlelens.models.coverage import CoverageEntry
    from bundlelens.models.network import BundleChain
    from bundlelens.session import SessionContext

logger = logging.getLogger(__name__)

Effort = Literal["low", "medium", "high"]

# ── Constants ────────────────────────────────────────────────────


class Priority(Enum):
    """Optimization priority of an oversized bundle."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    Priority.CRITICAL: 0,
    Priority.HIGH: 1,
    Priority.MEDIUM: 2,
    Priority.LOW: 3,
}

# (unused bytes, unused percent) a bundle must strictly exceed, per priority.
_PRIORITY_LADDER = (
    (Priority.CRITICAL, 100 * BYTES_PER_KB, 50.0),
    (Priority.HIGH, 50 * BYTES_PER_KB, 30.0),
    (Priority.MEDIUM, 20 * BYTES_PER_KB, 20.0),
)

DEFAULT_MIN_BUNDLE_SIZE_KB = 50.0
DEFAULT_MIN_UNUSED_PERCENT = 20.0
LAZY_LOAD_USAGE_THRESHOLD = 50.0
ESTIMATED_SAVINGS_RATIO = 0.7

MERGE_REASON = "Always loaded together in sequence (observed in this session)"


@dataclass(frozen=True)
class DependencyAlternative:
    """A lighter replacement for a heavy dependency."""

    alternative: str
    size_savings_kb: float
    effort: Effort


def _alts(*rows: tuple[str, float, Effort]) -> tuple[DependencyAlternative, ...]:
    return tuple(DependencyAlternative(name, savings, effort) for name, savings, effort in rows)


DEFAULT_DEPENDENCY_ALTERNATIVES: Mapping[str, tuple[DependencyAlternative, ...]] = MappingProxyType(
    {
        "moment": _alts(
            ("dayjs", 58, "low"),
            ("date-fns", 45, "medium"),
            ("luxon", 30, "medium"),
        ),
        "lodash": _alts(
            ("lodash-es (tree-shakeable)", 60, "low"),
            ("Native methods + individual imports", 65, "medium"),
        ),
        "underscore": _alts(
            ("lodash-es", 15, "low"),
            ("Native methods", 20, "medium"),
        ),
        "jquery": _alts(
            ("Native DOM APIs", 85, "high"),
            ("cash-dom", 75, "low"),
        ),
        "axios": _alts(
            ("fetch (native)", 12, "medium"),
            ("ky", 8, "low"),
        ),
        "chart.js": _alts(
            ("uPlot", 150, "high"),
            ("Chart.js with tree-shaking", 80, "medium"),
        ),
        "react-icons": _alts(("Individual icon imports", 100, "low")),
        "core-js": _alts(("Targeted polyfills only", 80, "medium")),
        "validator": _alts(("validator/es (tree-shakeable)", 40, "low")),
        "numeral": _alts(("Intl.NumberFormat (native)", 25, "medium")),
        "highlight.js": _alts(("Prism.js with selected languages", 200, "medium")),
        "quill": _alts(("Tiptap", 100, "high")),
        "draft-js": _alts(("Slate.js", 80, "high")),
        "antd": _alts(("Individual component imports", 300, "medium")),
        "material-ui": _alts(("Individual component imports", 250, "medium")),
    }
)


@dataclass(frozen=True)
class HeuristicTables:
    """Read-only lookup tables the heuristics are evaluated against."""

    dependency_alternatives: Mapping[str, tuple[DependencyAlternative, ...]] = field(
        default_factory=lambda: DEFAULT_DEPENDENCY_ALTERNATIVES
    )
    """Known heavy dependencies, in match-priority order."""

    vendor_patterns: tuple[str, ...] = DEFAULT_VENDOR_PATTERNS
    """Same-origin path fragments that mark a vendor bundle."""


DEFAULT_HEURISTICS = HeuristicTables()


# ── Data models ──────────────────────────────────────────────────


@dataclass
class CodeSplitSuggestion:
    """An oversized, under-used JavaScript bundle worth optimizing."""

    url: str
    priority: Priority
    total_bytes: int
    used_bytes: int
    unused_bytes: int
    usage_percent: float
    is_external: bool
    detected_dependency: str | None = None
    """Heavy library recognized from the URL, if any."""

    @property
    def unused_percent(self) -> float:
        return 100.0 - self.usage_percent


@dataclass
class MergeCandidate:
    """Bundles observed loading back to back that could ship as one."""

    urls: list[str]
    combined_size_kb: float
    reason: str = MERGE_REASON


@dataclass
class HeavyDependency:
    """A detected heavy library, the bundle it was found in, and its alternatives."""

    name: str
    suggestion: CodeSplitSuggestion
    alternatives: tuple[DependencyAlternative, ...] = ()


# ── Heuristics ───────────────────────────────────────────────────


@functools.lru_cache(maxsize=256)
def _dependency_pattern(name: str) -> re.Pattern[str]:
    # Name must sit on a filename boundary: /lodash/, /lodash.js, lodash-4.js,
    # vendor-lodash.js, npm.lodash.js, vendors~moment.js, vendor_jquery.js
    return re.compile(r"(?:^|[/._~-])" + re.escape(name.lower()) + r"(?:[/.?#~-]|$)")


def detect_heavy_dependency(
    url: str,
    alternatives: Mapping[str, Sequence[DependencyAlternative]] = DEFAULT_DEPENDENCY_ALTERNATIVES,
) -> str | None:
    """Return the first known heavy dependency whose name appears in *url*.

    Matching is case-insensitive and respects filename boundaries, so
    ``my-lodashthing.js`` does not match ``lodash``.  When several names
    match, the one declared first in *alternatives* wins.
    """
    lower_url = url.lower()
    for name in alternatives:
        if _dependency_pattern(name).search(lower_url):
            return name
    return None


def determine_priority(unused_bytes: int, unused_percent: float) -> Priority:
    """Score a bundle on its own (not relative to other bundles)."""
    for priority, byte_threshold, percent_threshold in _PRIORITY_LADDER:
        if unused_bytes > byte_threshold or unused_percent > percent_threshold:
            return priority
    return Priority.LOW


def select_split_candidates(
    js_coverage: Iterable[CoverageEntry],
    min_bundle_size_kb: float = DEFAULT_MIN_BUNDLE_SIZE_KB,
    min_unused_percent: float = DEFAULT_MIN_UNUSED_PERCENT,
    alternatives: Mapping[str, Sequence[DependencyAlternative]] = DEFAULT_DEPENDENCY_ALTERNATIVES,
) -> list[CodeSplitSuggestion]:
    """Filter JS entries to optimization candidates, most urgent first.

    Candidates are ordered by priority (critical first), then by unused bytes.
    """
    candidates = [
        CodeSplitSuggestion(
            url=entry.url,
            priority=determine_priority(entry.unused_bytes, entry.unused_percent),
            total_bytes=entry.total_bytes,
            used_bytes=entry.used_bytes,
            unused_bytes=entry.unused_bytes,
            usage_percent=entry.usage_percent,
            is_external=entry.is_external,
            detected_dependency=detect_heavy_dependency(entry.url, alternatives),
        )
        for entry in js_coverage
        if entry.size_kb >= min_bundle_size_kb and entry.unused_percent >= min_unused_percent
    ]
    candidates.sort(key=lambda c: (c.priority.rank, -c.unused_bytes))
    return candidates


def lazy_load_candidates(candidates: Iterable[CodeSplitSuggestion]) -> list[CodeSplitSuggestion]:
    """First-party candidates that are less than half used on initial load."""
    return [
        c for c in candidates if c.usage_percent < LAZY_LOAD_USAGE_THRESHOLD and not c.is_external
    ]


def heavy_dependencies(
    candidates: Iterable[CodeSplitSuggestion],
    alternatives: Mapping[str, Sequence[DependencyAlternative]] = DEFAULT_DEPENDENCY_ALTERNATIVES,
) -> list[HeavyDependency]:
    """Group candidates by detected dependency, in first-detection order.

    If a dependency shows up in several bundles, the last one seen is kept.
    """
    found: dict[str, CodeSplitSuggestion] = {}
    for candidate in candidates:
        if candidate.detected_dependency:
            found[candidate.detected_dependency] = candidate
    return [
        HeavyDependency(
            name=name, suggestion=suggestion, alternatives=tuple(alternatives.get(name, ()))
        )
        for name, suggestion in found.items()
    ]


def identify_merge_candidates(chains: Iterable[BundleChain]) -> list[MergeCandidate]:
    """Propose every chain of two or more bundles for merging.

    A chain is only evidence from the observed page load, not proof the
    bundles are always needed together.
    """
    candidates: list[MergeCandidate] = []
    for chain in chains:
        if len(chain.urls) < 2:
            continue
        combined_size = sum(node.size_bytes for node in chain.nodes())
        candidates.append(
            MergeCandidate(urls=list(chain.urls), combined_size_kb=combined_size / BYTES_PER_KB)
        )
    return candidates


def generate_preload_tags(chains: Iterable[BundleChain]) -> list[str]:
    """Preload every chained script except the head, which the parser already finds."""
    return [
        f'<link rel="preload" href="{url}" as="script">'
        for chain in chains
        for url in chain.urls[1:]
    ]


def lazy_load_advice(url: str, unused_percent: float) -> str:
    """Natural-language advice for lazy loading the module at *url*."""
    file_name = url.rstrip("/").rsplit("/", 1)[-1] or "this module"
    short_name = "..." + file_name[-37:] if len(file_name) > 40 else file_name
    return (
        f"**{short_name}** has {unused_percent:.0f}% unused code on initial load. "
        "Consider lazy loading this module so it's only fetched when actually needed. "
        "Convert static imports to dynamic imports and load the module on user "
        "interaction or route change."
    )


# ── CodeSplitAnalyzer ────────────────────────────────────────────


@dataclass
class CodeSplitTask(TaskInput):
    """Task input for code-split suggestions."""

    task_type: str = "suggest_code_splits"

    min_bundle_size_kb: float = DEFAULT_MIN_BUNDLE_SIZE_KB
    """Minimum bundle size in KB to analyze."""

    min_unused_percent: float = DEFAULT_MIN_UNUSED_PERCENT
    """Minimum unused percentage to flag as an optimization opportunity."""

    def validate(self) -> list[str]:
        errors: list[str] = []
        if self.min_bundle_size_kb < 0:
            errors.append(
                f"min_bundle_size_kb must be non-negative (got: {self.min_bundle_size_kb})"
            )
        if not 0.0 <= self.min_unused_percent <= 100.0:
            errors.append(
                f"min_unused_percent must be between 0 and 100 (got: {self.min_unused_percent})"
            )
        return errors


@dataclass
class CodeSplitAnalysis:
    """Result of code-split analysis over the last coverage report."""

    min_bundle_size_kb: float = DEFAULT_MIN_BUNDLE_SIZE_KB
    min_unused_percent: float = DEFAULT_MIN_UNUSED_PERCENT

    has_js_coverage: bool = True
    """False when the coverage report contained no JavaScript."""

    candidates: list[CodeSplitSuggestion] = field(default_factory=list)
    """All candidates, most urgent first."""

    heavy_dependencies: list[HeavyDependency] = field(default_factory=list)
    lazy_load_candidates: list[CodeSplitSuggestion] = field(default_factory=list)

    @property
    def total_unused_bytes(self) -> int:
        return sum(c.unused_bytes for c in self.candidates)

    @property
    def estimated_savings_bytes(self) -> float:
        return self.total_unused_bytes * ESTIMATED_SAVINGS_RATIO

    def count(self, priority: Priority) -> int:
        return sum(1 for c in self.candidates if c.priority is priority)


NO_COVERAGE_HELP = [
    "You must run coverage tracking before using this tool:",
    "1. Call `coverage_start` to begin tracking",
    "2. Navigate or interact with the page",
    "3. Call `coverage_stop` to collect data",
    "4. Then call `suggest_code_splits` to analyze",
]


def analyze_code_splits(
    js_coverage: Sequence[CoverageEntry],
    min_bundle_size_kb: float = DEFAULT_MIN_BUNDLE_SIZE_KB,
    min_unused_percent: float = DEFAULT_MIN_UNUSED_PERCENT,
    tables: HeuristicTables = DEFAULT_HEURISTICS,
) -> CodeSplitAnalysis:
    """Run every code-split heuristic over *js_coverage*."""
    analysis = CodeSplitAnalysis(
        min_bundle_size_kb=min_bundle_size_kb,
        min_unused_percent=min_unused_percent,
        has_js_coverage=bool(js_coverage),
    )
    analysis.candidates = select_split_candidates(
        js_coverage, min_bundle_size_kb, min_unused_percent, tables.dependency_alternatives
    )
    analysis.heavy_dependencies = heavy_dependencies(
        analysis.candidates, tables.dependency_alternatives
    )
    analysis.lazy_load_candidates = lazy_load_candidates(analysis.candidates)
    return analysis


class CodeSplitAnalyzer(BaseAgent):
    """Agent that turns the session's last coverage report into split suggestions."""

    def __init__(
        self, session: SessionContext, *, tables: HeuristicTables = DEFAULT_HEURISTICS
    ) -> None:
        self._session = session
        self._tables = tables

    @property
    def name(self) -> str:
        return "suggest_code_splits"

    @property
    def description(self) -> str:
        return "Suggests lazy loading, tree shaking and lighter dependencies for oversized bundles"

    async def run(self, task: TaskInput) -> TaskOutput:
        if not isinstance(task, CodeSplitTask):
            return failed("Task must be a CodeSplitTask instance")

        errors = task.validate()
        if errors:
            return failed(*errors)

        report = self._session.get_last_coverage_report()
        if report is None:
            output = failed("No Coverage Data Available")
            output.messages.extend(NO_COVERAGE_HELP)
            return output

        analysis = analyze_code_splits(
            report.js_coverage, task.min_bundle_size_kb, task.min_unused_percent, self._tables
        )
        logger.info(
            "Code split analysis: %d candidates, %d heavy dependencies, %d lazy-load candidates",
            len(analysis.candidates),
            len(analysis.heavy_dependencies),
            len(analysis.lazy_load_candidates),
        )
        return TaskOutput(status=TaskStatus.COMPLETED, result={"code_split_analysis": analysis})

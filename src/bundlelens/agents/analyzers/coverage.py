"""CoverageAnalyzer agent — tracks JS/CSS coverage and builds unused-byte reports.

This agent:
1. Starts coverage tracking through a coverage provider (``coverage_start``)
2. Stops tracking and classifies every collected resource (``coverage_stop``)
3. Sorts each resource type by unused bytes, most wasted first
4. Summarizes the full data set and paginates each type for display
5. Stores the report in the session for later code-split analysis

Only one tracking session may run at a time.  A failed stop leaves the
previously stored report untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from bundlelens.agents.analyzers.classifier import DEFAULT_VENDOR_PATTERNS, classify
from bundlelens.agents.base import BaseAgent, TaskInput, TaskOutput, TaskStatus, failed
from bundlelens.models.coverage import CoverageOptions, CoverageReport, CoverageSummary
from bundlelens.utils.pagination import MAX_PAGE_SIZE, PaginationOptions, paginate

if TYPE_CHECKING:
    from collections.abc import Sequence

    from bundlelens.adapters.base import CoverageProvider
    from bundlelens.models.coverage import CoverageEntry, CoverageRecord
    from bundlelens.session import SessionContext

logger = logging.getLogger(__name__)

NOT_RUNNING_HELP = [
    "To use coverage tracking:",
    "1. First call coverage_start to begin tracking",
    "2. Navigate or interact with the page",
    "3. Then call coverage_stop to get the report",
]


# ── Tasks ────────────────────────────────────────────────────────


@dataclass
class CoverageStartTask(TaskInput):
    """Task input for starting coverage tracking."""

    task_type: str = "coverage_start"

    reset_on_navigation: bool = True
    """Whether coverage data resets when the page navigates."""

    include_js: bool = True
    """Track JavaScript coverage."""

    include_css: bool = True
    """Track CSS coverage."""

    def validate(self) -> list[str]:
        if not self.include_js and not self.include_css:
            return ["at least one of include_js or include_css must be true"]
        return []


@dataclass
class CoverageStopTask(TaskInput):
    """Task input for stopping coverage tracking and building the report."""

    task_type: str = "coverage_stop"

    page_size: int = MAX_PAGE_SIZE
    """Results per page, between 1 and 5."""

    page_idx: int = 0
    """0-based page index."""

    def validate(self) -> list[str]:
        errors: list[str] = []
        if not 1 <= self.page_size <= MAX_PAGE_SIZE:
            errors.append(
                f"page_size must be between 1 and {MAX_PAGE_SIZE} (got: {self.page_size})"
            )
        if self.page_idx < 0:
            errors.append(f"page_idx must be non-negative (got: {self.page_idx})")
        return errors


# ── Report building ──────────────────────────────────────────────


def _summarize(entries: Sequence[CoverageEntry]) -> CoverageSummary:
    total_bytes = sum(e.total_bytes for e in entries)
    used_bytes = sum(e.used_bytes for e in entries)
    return CoverageSummary(
        total_resources=len(entries),
        total_bytes=total_bytes,
        used_bytes=used_bytes,
        unused_bytes=sum(e.unused_bytes for e in entries),
        overall_usage_percent=(used_bytes / total_bytes) * 100 if total_bytes > 0 else 0.0,
    )


def build_coverage_report(
    js_records: Sequence[CoverageRecord],
    css_records: Sequence[CoverageRecord],
    page_url: str,
    pagination: PaginationOptions | None = None,
    *,
    vendor_patterns: Sequence[str] = DEFAULT_VENDOR_PATTERNS,
) -> CoverageReport:
    """Classify, sort, summarize and paginate raw coverage records.

    The summary always covers every record, whatever page is requested.
    """
    options = pagination or PaginationOptions()

    js_coverage = [classify(r, page_url, vendor_patterns=vendor_patterns) for r in js_records]
    css_coverage = [classify(r, page_url, vendor_patterns=vendor_patterns) for r in css_records]

    # Stable sort: ties keep discovery order.
    js_coverage.sort(key=lambda e: e.unused_bytes, reverse=True)
    css_coverage.sort(key=lambda e: e.unused_bytes, reverse=True)

    return CoverageReport(
        js_coverage=js_coverage,
        css_coverage=css_coverage,
        summary=_summarize([*js_coverage, *css_coverage]),
        js_pagination=paginate(js_coverage, options) if js_coverage else None,
        css_pagination=paginate(css_coverage, options) if css_coverage else None,
    )


# ── CoverageAnalyzer ─────────────────────────────────────────────


class CoverageAnalyzer(BaseAgent):
    """Agent owning the Idle → Running → Idle coverage tracking cycle."""

    def __init__(
        self,
        provider: CoverageProvider,
        session: SessionContext,
        *,
        vendor_patterns: Sequence[str] = DEFAULT_VENDOR_PATTERNS,
    ) -> None:
        self._provider = provider
        self._session = session
        self._vendor_patterns = tuple(vendor_patterns)

    @property
    def name(self) -> str:
        return "coverage"

    @property
    def description(self) -> str:
        return "Tracks which JavaScript and CSS bytes a page actually uses"

    async def run(self, task: TaskInput) -> TaskOutput:
        """Dispatch to :meth:`start` or :meth:`stop` based on the task type."""
        if isinstance(task, CoverageStartTask):
            return await self.start(task)
        if isinstance(task, CoverageStopTask):
            return await self.stop(task)
        return failed("Task must be a CoverageStartTask or CoverageStopTask instance")

    async def start(self, task: CoverageStartTask) -> TaskOutput:
        """Begin tracking.  Rejected without state change if already running."""
        if self._session.is_running_coverage():
            return failed(
                "coverage tracking is already running. Use coverage_stop to stop it. "
                "Only one coverage session can be running at any given time."
            )

        errors = task.validate()
        if errors:
            return failed(*errors)

        self._session.set_running_coverage(True)
        self._session.set_coverage_options(
            CoverageOptions(include_js=task.include_js, include_css=task.include_css)
        )

        try:
            await self._provider.begin(
                reset_on_navigation=task.reset_on_navigation,
                include_js=task.include_js,
                include_css=task.include_css,
            )
        except Exception as exc:
            self._session.set_running_coverage(False)
            logger.exception("Error starting coverage")
            return failed(f"Error starting coverage tracking: {exc}")

        types = [
            label
            for label, enabled in (("JavaScript", task.include_js), ("CSS", task.include_css))
            if enabled
        ]
        message = (
            f"Coverage tracking started for {' and '.join(types)}. "
            "Use coverage_stop to stop tracking and get the report."
        )
        logger.info("Coverage tracking started for %s", " and ".join(types))
        return TaskOutput(
            status=TaskStatus.COMPLETED,
            result={"types": types},
            messages=[message],
        )

    async def stop(self, task: CoverageStopTask) -> TaskOutput:
        """Stop tracking and build the report.

        Always returns the session to Idle.  The stored report is replaced only
        when the new report was built completely.
        """
        if not self._session.is_running_coverage():
            output = failed("No coverage tracking is running.")
            output.messages.extend(NOT_RUNNING_HELP)
            return output

        errors = task.validate()
        if errors:
            return failed(*errors)

        try:
            options = self._session.get_coverage_options()
            collection = await self._provider.end()
            report = build_coverage_report(
                collection.js if options.include_js else [],
                collection.css if options.include_css else [],
                self._provider.page_url,
                PaginationOptions(page_size=task.page_size, page_idx=task.page_idx),
                vendor_patterns=self._vendor_patterns,
            )
        except Exception as exc:
            logger.exception("Error stopping coverage")
            return failed(f"An error occurred generating the coverage report: {exc}")
        finally:
            self._session.set_running_coverage(False)

        self._session.set_last_coverage_report(report)
        logger.info(
            "Coverage report built: %d JS, %d CSS, %.1f%% overall usage",
            len(report.js_coverage),
            len(report.css_coverage),
            report.summary.overall_usage_percent,
        )
        return TaskOutput(
            status=TaskStatus.COMPLETED,
            result={"coverage_report": report},
            messages=["Coverage tracking has been stopped."],
        )

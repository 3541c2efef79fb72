"""In-memory session state shared by the analysis agents.

The session holds whether coverage tracking is running, which resource types
the running session collects, and the last report produced by a successful
stop.  Nothing here is persisted; a new process starts with a fresh session.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from bundlelens.models.coverage import CoverageOptions, CoverageReport

logger = logging.getLogger(__name__)


@dataclass
class SessionContext:
    """Mutable per-session state, read and written only through accessors."""

    _running_coverage: bool = False
    _coverage_options: CoverageOptions = field(default_factory=CoverageOptions)
    _last_coverage_report: CoverageReport | None = None

    def is_running_coverage(self) -> bool:
        return self._running_coverage

    def set_running_coverage(self, running: bool) -> None:
        logger.debug("Coverage running flag: %s -> %s", self._running_coverage, running)
        self._running_coverage = running

    def get_coverage_options(self) -> CoverageOptions:
        return self._coverage_options

    def set_coverage_options(self, options: CoverageOptions) -> None:
        self._coverage_options = options

    def get_last_coverage_report(self) -> CoverageReport | None:
        return self._last_coverage_report

    def set_last_coverage_report(self, report: CoverageReport) -> None:
        """Replace the stored report; earlier reports are overwritten, never merged."""
        self._last_coverage_report = report

"""Reporters for rendering analysis results."""

from __future__ import annotations

from bundlelens.agents.reporters.json_reporter import JSONReporter
from bundlelens.agents.reporters.terminal import reporter

__all__ = [
    "JSONReporter",
    "reporter",
]

"""JSON reporter — generates structured JSON analysis reports.

Produces machine-readable output of coverage reports, bundle chains and
code-split suggestions for downstream tooling.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from bundlelens import __version__

if TYPE_CHECKING:
    from pathlib import Path

    from bundlelens.agents.analyzers.bundle import CodeSplitAnalysis, CodeSplitSuggestion
    from bundlelens.agents.analyzers.chains import ChainAnalysis
    from bundlelens.models.coverage import CoverageEntry, CoverageReport
    from bundlelens.models.network import BundleChain
    from bundlelens.utils.pagination import PageResult

logger = logging.getLogger(__name__)


class JSONReporter:
    """Generate structured JSON reports from analysis results."""

    def generate(
        self,
        output_path: Path,
        *,
        coverage_report: CoverageReport | None = None,
        chain_analysis: ChainAnalysis | None = None,
        code_split_analysis: CodeSplitAnalysis | None = None,
    ) -> Path:
        """Write a JSON report file.

        Returns:
            The path to the generated JSON file.
        """
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(
            self.generate_string(
                coverage_report=coverage_report,
                chain_analysis=chain_analysis,
                code_split_analysis=code_split_analysis,
            ),
            encoding="utf-8",
        )
        logger.info("JSON report written to %s", output_path)
        return output_path

    def generate_string(
        self,
        *,
        coverage_report: CoverageReport | None = None,
        chain_analysis: ChainAnalysis | None = None,
        code_split_analysis: CodeSplitAnalysis | None = None,
    ) -> str:
        """Return the JSON report as a string."""
        report = build_report(
            coverage_report=coverage_report,
            chain_analysis=chain_analysis,
            code_split_analysis=code_split_analysis,
        )
        return json.dumps(report, indent=2, ensure_ascii=False, default=str)


def build_report(
    *,
    coverage_report: CoverageReport | None = None,
    chain_analysis: ChainAnalysis | None = None,
    code_split_analysis: CodeSplitAnalysis | None = None,
) -> dict[str, Any]:
    """Build the JSON report structure; absent sections are omitted."""
    report: dict[str, Any] = {
        "tool": "bundlelens",
        "version": __version__,
        "timestamp": datetime.now(tz=UTC).isoformat(),
    }
    if coverage_report is not None:
        report["coverage"] = serialize_coverage_report(coverage_report)
    if chain_analysis is not None:
        report["bundle_chains"] = serialize_chain_analysis(chain_analysis)
    if code_split_analysis is not None:
        report["code_splits"] = serialize_code_split_analysis(code_split_analysis)
    return report


def _serialize_page(page: PageResult[CoverageEntry] | None) -> dict[str, Any] | None:
    if page is None:
        return None
    return {
        "start_index": page.start_index,
        "end_index": page.end_index,
        "total_items": page.total_items,
        "current_page": page.current_page,
        "total_pages": page.total_pages,
        "has_next_page": page.has_next_page,
        "has_previous_page": page.has_previous_page,
        "items": [asdict(entry) for entry in page.items],
    }


def serialize_coverage_report(report: CoverageReport) -> dict[str, Any]:
    """Serialize a ``CoverageReport``, including full lists and page windows."""
    return {
        "summary": asdict(report.summary),
        "js_coverage": [asdict(entry) for entry in report.js_coverage],
        "css_coverage": [asdict(entry) for entry in report.css_coverage],
        "js_pagination": _serialize_page(report.js_pagination),
        "css_pagination": _serialize_page(report.css_pagination),
    }


def _serialize_chain(chain: BundleChain) -> dict[str, Any]:
    return {
        "depth": chain.depth,
        "total_time_ms": chain.total_time_ms,
        "urls": list(chain.urls),
        "nodes": [
            {
                "url": node.url,
                "size_bytes": node.size_bytes,
                "start_time_ms": node.start_time_ms,
                "end_time_ms": node.end_time_ms,
                "load_time_ms": node.load_time_ms,
            }
            for node in chain.nodes()
        ],
    }


def serialize_chain_analysis(analysis: ChainAnalysis) -> dict[str, Any]:
    """Serialize a ``ChainAnalysis``."""
    return {
        "scripts_analyzed": analysis.scripts_analyzed,
        "min_chain_depth": analysis.min_chain_depth,
        "min_chain_time_ms": analysis.min_chain_time_ms,
        "total_chain_time_ms": analysis.total_chain_time_ms,
        "average_depth": analysis.average_depth,
        "estimated_savings_ms": analysis.estimated_savings_ms,
        "chains": [_serialize_chain(chain) for chain in analysis.chains],
        "preload_tags": list(analysis.preload_tags),
        "merge_candidates": [asdict(candidate) for candidate in analysis.merge_candidates],
    }


def _serialize_suggestion(suggestion: CodeSplitSuggestion) -> dict[str, Any]:
    data = asdict(suggestion)
    data["priority"] = suggestion.priority.value
    return data


def serialize_code_split_analysis(analysis: CodeSplitAnalysis) -> dict[str, Any]:
    """Serialize a ``CodeSplitAnalysis``."""
    return {
        "min_bundle_size_kb": analysis.min_bundle_size_kb,
        "min_unused_percent": analysis.min_unused_percent,
        "has_js_coverage": analysis.has_js_coverage,
        "total_unused_bytes": analysis.total_unused_bytes,
        "estimated_savings_bytes": analysis.estimated_savings_bytes,
        "candidates": [_serialize_suggestion(c) for c in analysis.candidates],
        "lazy_load_candidates": [c.url for c in analysis.lazy_load_candidates],
        "heavy_dependencies": [
            {
                "name": dep.name,
                "url": dep.suggestion.url,
                "unused_percent": dep.suggestion.unused_percent,
                "alternatives": [asdict(alt) for alt in dep.alternatives],
            }
            for dep in analysis.heavy_dependencies
        ],
    }

"""Analyzer agents for bundlelens."""

from bundlelens.agents.analyzers.bundle import (
    CodeSplitAnalysis,
    CodeSplitAnalyzer,
    CodeSplitSuggestion,
    CodeSplitTask,
    DependencyAlternative,
    HeuristicTables,
    MergeCandidate,
    Priority,
    detect_heavy_dependency,
    determine_priority,
)
from bundlelens.agents.analyzers.chains import (
    BundleChainAnalyzer,
    BundleChainTask,
    ChainAnalysis,
    detect_bundle_chains,
)
from bundlelens.agents.analyzers.classifier import classify, is_third_party
from bundlelens.agents.analyzers.coverage import (
    CoverageAnalyzer,
    CoverageStartTask,
    CoverageStopTask,
    build_coverage_report,
)

__all__ = [
    "BundleChainAnalyzer",
    "BundleChainTask",
    "ChainAnalysis",
    "CodeSplitAnalysis",
    "CodeSplitAnalyzer",
    "CodeSplitSuggestion",
    "CodeSplitTask",
    "CoverageAnalyzer",
    "CoverageStartTask",
    "CoverageStopTask",
    "DependencyAlternative",
    "HeuristicTables",
    "MergeCandidate",
    "Priority",
    "build_coverage_report",
    "classify",
    "detect_bundle_chains",
    "detect_heavy_dependency",
    "determine_priority",
    "is_third_party",
]

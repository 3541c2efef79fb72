"""Data models for bundlelens."""

from bundlelens.models.coverage import (
    CoverageCollection,
    CoverageEntry,
    CoverageOptions,
    CoverageRange,
    CoverageRecord,
    CoverageReport,
    CoverageSummary,
)
from bundlelens.models.network import BundleChain, BundleChainNode, NetworkTimingRecord

__all__ = [
    "BundleChain",
    "BundleChainNode",
    "CoverageCollection",
    "CoverageEntry",
    "CoverageOptions",
    "CoverageRange",
    "CoverageRecord",
    "CoverageReport",
    "CoverageSummary",
    "NetworkTimingRecord",
]

"""BundleChainAnalyzer agent — detects sequential script loading chains.

A chain is a run of scripts where each one starts loading within a short gap
after the previous one finished, which means it was only discovered once its
predecessor had executed.  Chains are reconstructed greedily over scripts
sorted by end time; every script joins at most one chain.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from bundlelens.agents.analyzers.bundle import (
    MergeCandidate,
    generate_preload_tags,
    identify_merge_candidates,
)
from bundlelens.agents.base import BaseAgent, TaskInput, TaskOutput, TaskStatus, failed
from bundlelens.models.network import BundleChain, BundleChainNode

if TYPE_CHECKING:
    from collections.abc import Sequence

    from bundlelens.adapters.base import NetworkProvider
    from bundlelens.models.network import NetworkTimingRecord

logger = logging.getLogger(__name__)

# ── Constants ────────────────────────────────────────────────────

CHAIN_GAP_THRESHOLD_MS = 50.0
"""Max delay between a script finishing and its successor starting."""

MIN_CHAIN_DEPTH = 2
DEFAULT_MIN_CHAIN_TIME_MS = 100.0

# Share of chain time assumed recoverable by preloading.
ESTIMATED_SAVINGS_RATIO = 0.7


# ── Detection ────────────────────────────────────────────────────


def detect_bundle_chains(
    records: Sequence[NetworkTimingRecord],
    min_chain_depth: int = MIN_CHAIN_DEPTH,
    min_chain_time_ms: float = DEFAULT_MIN_CHAIN_TIME_MS,
    *,
    gap_threshold_ms: float = CHAIN_GAP_THRESHOLD_MS,
) -> list[BundleChain]:
    """Reconstruct sequential loading chains from network timing records.

    Args:
        records: All network records; non-script and untimed records are ignored.
        min_chain_depth: Minimum number of scripts in a reported chain (>= 2).
        min_chain_time_ms: Minimum head-start to tail-end time of a reported chain.
        gap_threshold_ms: Max gap between a script ending and the next starting.

    Returns:
        Chains in the order their head scripts finished loading.

    Raises:
        ValueError: If a threshold is out of range.
    """
    if min_chain_depth < MIN_CHAIN_DEPTH:
        raise ValueError(f"min_chain_depth must be at least 2 (got: {min_chain_depth})")
    if min_chain_time_ms < 0:
        raise ValueError(f"min_chain_time_ms must be non-negative (got: {min_chain_time_ms})")

    scripts = [r for r in records if r.is_script and r.has_timing]
    # Stable: identical end times keep input order.
    scripts.sort(key=lambda r: r.end_time_ms or 0.0)

    used = [False] * len(scripts)
    chains: list[BundleChain] = []

    for head in range(len(scripts)):
        if used[head]:
            continue

        members = [head]
        used[head] = True
        current = head
        while True:
            current_end = scripts[current].end_time_ms or 0.0
            window_end = current_end + gap_threshold_ms
            successor = next(
                (
                    idx
                    for idx, script in enumerate(scripts)
                    if not used[idx] and current_end <= (script.start_time_ms or 0.0) <= window_end
                ),
                None,
            )
            if successor is None:
                break
            used[successor] = True
            members.append(successor)
            current = successor

        if len(members) < min_chain_depth:
            continue

        nodes = [
            BundleChainNode(
                url=scripts[idx].url,
                size_bytes=scripts[idx].size_bytes,
                start_time_ms=scripts[idx].start_time_ms or 0.0,
                end_time_ms=scripts[idx].end_time_ms or 0.0,
            )
            for idx in members
        ]
        total_time_ms = nodes[-1].end_time_ms - nodes[0].start_time_ms
        if total_time_ms < min_chain_time_ms:
            continue

        for parent, child in zip(nodes, nodes[1:], strict=False):
            parent.children = [child]

        chains.append(
            BundleChain(
                depth=len(nodes),
                total_time_ms=total_time_ms,
                urls=[node.url for node in nodes],
                root=nodes[0],
            )
        )

    return chains


# ── Data models ──────────────────────────────────────────────────


@dataclass
class BundleChainTask(TaskInput):
    """Task input for bundle chain analysis."""

    task_type: str = "analyze_bundle_chains"

    min_chain_depth: int = MIN_CHAIN_DEPTH
    """Minimum chain depth to report."""

    min_chain_time_ms: float = DEFAULT_MIN_CHAIN_TIME_MS
    """Minimum total chain time in ms to report."""

    include_all: bool = True
    """Include requests from earlier navigations."""

    def validate(self) -> list[str]:
        errors: list[str] = []
        if self.min_chain_depth < MIN_CHAIN_DEPTH:
            errors.append(f"min_chain_depth must be at least 2 (got: {self.min_chain_depth})")
        if self.min_chain_time_ms < 0:
            errors.append(
                f"min_chain_time_ms must be non-negative (got: {self.min_chain_time_ms})"
            )
        return errors


@dataclass
class ChainAnalysis:
    """Result of a bundle chain analysis."""

    scripts_analyzed: int = 0
    """Number of script requests seen (with or without timing)."""

    min_chain_depth: int = MIN_CHAIN_DEPTH
    min_chain_time_ms: float = DEFAULT_MIN_CHAIN_TIME_MS

    chains: list[BundleChain] = field(default_factory=list)
    """Detected chains."""

    preload_tags: list[str] = field(default_factory=list)
    """``<link rel="preload">`` tags for every non-head chain script."""

    merge_candidates: list[MergeCandidate] = field(default_factory=list)
    """Chains proposed for merging into one bundle."""

    @property
    def total_chain_time_ms(self) -> float:
        return sum(chain.total_time_ms for chain in self.chains)

    @property
    def average_depth(self) -> float:
        if not self.chains:
            return 0.0
        return sum(chain.depth for chain in self.chains) / len(self.chains)

    @property
    def estimated_savings_ms(self) -> float:
        return self.total_chain_time_ms * ESTIMATED_SAVINGS_RATIO


# ── BundleChainAnalyzer ──────────────────────────────────────────


class BundleChainAnalyzer(BaseAgent):
    """Agent that finds scripts loading in sequence instead of in parallel."""

    def __init__(
        self,
        provider: NetworkProvider,
        *,
        gap_threshold_ms: float = CHAIN_GAP_THRESHOLD_MS,
    ) -> None:
        self._provider = provider
        self._gap_threshold_ms = gap_threshold_ms

    @property
    def name(self) -> str:
        return "analyze_bundle_chains"

    @property
    def description(self) -> str:
        return "Detects sequential JavaScript loading chains and suggests preloads and merges"

    async def run(self, task: TaskInput) -> TaskOutput:
        if not isinstance(task, BundleChainTask):
            return failed("Task must be a BundleChainTask instance")

        errors = task.validate()
        if errors:
            return failed(*errors)

        try:
            requests = await self._provider.current_requests(include_all=task.include_all)
        except Exception as exc:
            logger.exception("Error reading network requests")
            return failed(f"Error reading network requests: {exc}")

        analysis = ChainAnalysis(
            scripts_analyzed=sum(1 for r in requests if r.is_script),
            min_chain_depth=task.min_chain_depth,
            min_chain_time_ms=task.min_chain_time_ms,
        )
        if analysis.scripts_analyzed == 0:
            logger.info("No script requests to analyze")
            return TaskOutput(status=TaskStatus.COMPLETED, result={"chain_analysis": analysis})

        analysis.chains = detect_bundle_chains(
            requests,
            task.min_chain_depth,
            task.min_chain_time_ms,
            gap_threshold_ms=self._gap_threshold_ms,
        )
        analysis.preload_tags = generate_preload_tags(analysis.chains)
        analysis.merge_candidates = identify_merge_candidates(analysis.chains)

        logger.info(
            "Chain analysis complete: %d scripts, %d chains, %.0fms in chains",
            analysis.scripts_analyzed,
            len(analysis.chains),
            analysis.total_chain_time_ms,
        )
        return TaskOutput(status=TaskStatus.COMPLETED, result={"chain_analysis": analysis})

"""Tests for agents/analyzers/chains.py — chain detection and BundleChainAnalyzer."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from bundlelens.adapters.base import NetworkProvider, ProviderError
from bundlelens.agents.analyzers.bundle import MERGE_REASON
from bundlelens.agents.analyzers.chains import (
    BundleChainAnalyzer,
    BundleChainTask,
    ChainAnalysis,
    detect_bundle_chains,
)
from bundlelens.agents.base import TaskStatus
from bundlelens.models.network import NetworkTimingRecord


def _script(
    name: str, start: float | None, end: float | None, size: int = 10_240
) -> NetworkTimingRecord:
    return NetworkTimingRecord(
        url=f"https://example.com/{name}",
        resource_type="script",
        start_time_ms=start,
        end_time_ms=end,
        size_bytes=size,
    )


def _names(urls: list[str]) -> list[str]:
    return [u.rsplit("/", 1)[-1] for u in urls]


def _provider(records: list[NetworkTimingRecord]) -> MagicMock:
    provider = MagicMock(spec=NetworkProvider)
    provider.current_requests = AsyncMock(return_value=records)
    return provider


# ── detect_bundle_chains ─────────────────────────────────────────


class TestDetectBundleChains:
    def test_three_script_chain(self) -> None:
        records = [
            _script("a.js", 0, 100),
            _script("b.js", 110, 200),
            _script("c.js", 210, 300),
        ]

        chains = detect_bundle_chains(records)

        assert len(chains) == 1
        chain = chains[0]
        assert chain.depth == 3
        assert chain.total_time_ms == 300
        assert _names(chain.urls) == ["a.js", "b.js", "c.js"]
        assert [n.url for n in chain.nodes()] == chain.urls
        assert chain.root.load_time_ms == 100
        assert chain.root.children[0].children[0].children == []

    def test_result_independent_of_input_order(self) -> None:
        records = [
            _script("a.js", 0, 100),
            _script("b.js", 110, 200),
            _script("c.js", 210, 300),
            _script("x.js", 5, 150),
            _script("y.js", 160, 260),
            _script("lone.js", 900, 950),
        ]
        shuffled = [records[i] for i in (4, 0, 5, 2, 3, 1)]

        def summary(recs: list[NetworkTimingRecord]) -> list[tuple[list[str], int, float]]:
            return [
                (_names(c.urls), c.depth, c.total_time_ms) for c in detect_bundle_chains(recs)
            ]

        expected = summary(records)
        assert expected == [
            (["a.js", "b.js", "c.js"], 3, 300),
            (["x.js", "y.js"], 2, 255),
        ]
        assert summary(list(reversed(records))) == expected
        assert summary(shuffled) == expected

    def test_gap_above_threshold_breaks_chain(self) -> None:
        records = [_script("a.js", 0, 100), _script("b.js", 160, 300)]

        assert detect_bundle_chains(records) == []

    def test_gap_boundaries_are_inclusive(self) -> None:
        at_end = [_script("a.js", 0, 100), _script("b.js", 100, 200)]
        at_threshold = [_script("a.js", 0, 100), _script("b.js", 150, 250)]

        assert len(detect_bundle_chains(at_end)) == 1
        assert len(detect_bundle_chains(at_threshold)) == 1

    def test_script_starting_before_predecessor_ends_is_parallel(self) -> None:
        records = [_script("a.js", 0, 100), _script("b.js", 90, 200)]

        assert detect_bundle_chains(records) == []

    def test_custom_gap_threshold(self) -> None:
        records = [_script("a.js", 0, 100), _script("b.js", 160, 300)]

        chains = detect_bundle_chains(records, gap_threshold_ms=75)

        assert len(chains) == 1

    def test_chain_shorter_than_min_time_is_dropped(self) -> None:
        records = [_script("a.js", 0, 40), _script("b.js", 45, 90)]

        assert detect_bundle_chains(records) == []
        assert len(detect_bundle_chains(records, min_chain_time_ms=90)) == 1

    def test_min_depth(self) -> None:
        records = [_script("a.js", 0, 100), _script("b.js", 110, 200)]

        assert len(detect_bundle_chains(records, min_chain_depth=2)) == 1
        assert detect_bundle_chains(records, min_chain_depth=3) == []

    def test_non_scripts_and_untimed_records_are_ignored(self) -> None:
        records = [
            _script("a.js", 0, 100),
            NetworkTimingRecord(
                url="https://example.com/style.css",
                resource_type="stylesheet",
                start_time_ms=105,
                end_time_ms=200,
            ),
            _script("pending.js", None, None),
            _script("b.js", 120, 250),
        ]

        chains = detect_bundle_chains(records)

        assert len(chains) == 1
        assert _names(chains[0].urls) == ["a.js", "b.js"]

    def test_each_script_joins_at_most_one_chain(self) -> None:
        # b and c both start right after a; only the first in end-time order is taken.
        records = [
            _script("a.js", 0, 100),
            _script("b.js", 110, 200),
            _script("c.js", 120, 260),
            _script("d.js", 270, 400),
        ]

        chains = detect_bundle_chains(records)

        all_urls = [url for chain in chains for url in chain.urls]
        assert len(all_urls) == len(set(all_urls))
        assert _names(chains[0].urls) == ["a.js", "b.js"]
        assert _names(chains[1].urls) == ["c.js", "d.js"]

    def test_equal_end_times_keep_input_order(self) -> None:
        records = [
            _script("first.js", 0, 100),
            _script("second.js", 0, 100),
            _script("next.js", 120, 250),
        ]

        chains = detect_bundle_chains(records)

        assert len(chains) == 1
        assert _names(chains[0].urls) == ["first.js", "next.js"]

    def test_duplicate_urls_are_tracked_by_position(self) -> None:
        records = [
            _script("same.js", 0, 100),
            _script("same.js", 110, 200),
            _script("same.js", 210, 320),
        ]

        chains = detect_bundle_chains(records)

        assert len(chains) == 1
        assert chains[0].depth == 3

    def test_rejected_chain_does_not_hide_later_chains(self) -> None:
        records = [
            _script("a.js", 0, 10),
            _script("b.js", 15, 30),
            _script("x.js", 1000, 1100),
            _script("y.js", 1110, 1200),
        ]

        chains = detect_bundle_chains(records, min_chain_time_ms=150)

        assert len(chains) == 1
        assert _names(chains[0].urls) == ["x.js", "y.js"]

    def test_empty_input(self) -> None:
        assert detect_bundle_chains([]) == []

    def test_invalid_thresholds_raise(self) -> None:
        with pytest.raises(ValueError, match="min_chain_depth"):
            detect_bundle_chains([], min_chain_depth=1)
        with pytest.raises(ValueError, match="min_chain_time_ms"):
            detect_bundle_chains([], min_chain_time_ms=-1)


# ── ChainAnalysis ────────────────────────────────────────────────


class TestChainAnalysis:
    def test_summary_properties(self) -> None:
        chains = detect_bundle_chains(
            [
                _script("a.js", 0, 100),
                _script("b.js", 110, 200),
                _script("x.js", 1000, 1100),
                _script("y.js", 1110, 1200),
                _script("z.js", 1210, 1300),
            ]
        )
        analysis = ChainAnalysis(scripts_analyzed=5, chains=chains)

        assert analysis.total_chain_time_ms == 500
        assert analysis.average_depth == pytest.approx(2.5)
        assert analysis.estimated_savings_ms == pytest.approx(350)

    def test_empty(self) -> None:
        analysis = ChainAnalysis()

        assert analysis.total_chain_time_ms == 0
        assert analysis.average_depth == 0.0
        assert analysis.estimated_savings_ms == 0


# ── BundleChainAnalyzer ──────────────────────────────────────────


class TestBundleChainAnalyzer:
    @pytest.mark.asyncio
    async def test_detects_chain_with_preloads_and_merges(self) -> None:
        provider = _provider(
            [
                _script("a.js", 0, 100, size=1024),
                _script("b.js", 110, 200, size=2048),
                _script("c.js", 210, 300, size=1024),
            ]
        )
        analyzer = BundleChainAnalyzer(provider)

        output = await analyzer.run(BundleChainTask())

        assert output.status == TaskStatus.COMPLETED
        analysis = output.result["chain_analysis"]
        assert analysis.scripts_analyzed == 3
        assert len(analysis.chains) == 1
        assert analysis.preload_tags == [
            '<link rel="preload" href="https://example.com/b.js" as="script">',
            '<link rel="preload" href="https://example.com/c.js" as="script">',
        ]
        assert len(analysis.merge_candidates) == 1
        assert analysis.merge_candidates[0].combined_size_kb == pytest.approx(4.0)
        assert analysis.merge_candidates[0].reason == MERGE_REASON
        provider.current_requests.assert_awaited_once_with(include_all=True)

    @pytest.mark.asyncio
    async def test_no_scripts_completes_empty(self) -> None:
        provider = _provider(
            [NetworkTimingRecord(url="https://example.com/", resource_type="document")]
        )
        analyzer = BundleChainAnalyzer(provider)

        output = await analyzer.run(BundleChainTask())

        assert output.status == TaskStatus.COMPLETED
        analysis = output.result["chain_analysis"]
        assert analysis.scripts_analyzed == 0
        assert analysis.chains == []

    @pytest.mark.asyncio
    async def test_untimed_scripts_still_count_as_analyzed(self) -> None:
        analyzer = BundleChainAnalyzer(_provider([_script("pending.js", None, None)]))

        output = await analyzer.run(BundleChainTask())

        assert output.result["chain_analysis"].scripts_analyzed == 1
        assert output.result["chain_analysis"].chains == []

    @pytest.mark.asyncio
    async def test_provider_failure(self) -> None:
        provider = MagicMock(spec=NetworkProvider)
        provider.current_requests = AsyncMock(side_effect=ProviderError("no HAR"))
        analyzer = BundleChainAnalyzer(provider)

        output = await analyzer.run(BundleChainTask())

        assert output.status == TaskStatus.FAILED
        assert "no HAR" in output.errors[0]

    @pytest.mark.asyncio
    async def test_invalid_task_parameters(self) -> None:
        provider = _provider([])
        analyzer = BundleChainAnalyzer(provider)

        output = await analyzer.run(BundleChainTask(min_chain_depth=1))

        assert output.status == TaskStatus.FAILED
        provider.current_requests.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_include_all_forwarded(self) -> None:
        provider = _provider([])
        analyzer = BundleChainAnalyzer(provider)

        await analyzer.run(BundleChainTask(include_all=False))

        provider.current_requests.assert_awaited_once_with(include_all=False)

    @pytest.mark.asyncio
    async def test_gap_threshold_from_constructor(self) -> None:
        records = [_script("a.js", 0, 100), _script("b.js", 180, 300)]

        narrow = await BundleChainAnalyzer(_provider(records)).run(BundleChainTask())
        wide = await BundleChainAnalyzer(_provider(records), gap_threshold_ms=100).run(
            BundleChainTask()
        )

        assert narrow.result["chain_analysis"].chains == []
        assert len(wide.result["chain_analysis"].chains) == 1

"""Shared sample analysis results for the reporter and CLI tests."""

from __future__ import annotations

import pytest

from bundlelens.agents.analyzers.bundle import (
    CodeSplitAnalysis,
    analyze_code_splits,
    generate_preload_tags,
    identify_merge_candidates,
)
from bundlelens.agents.analyzers.chains import ChainAnalysis, detect_bundle_chains
from bundlelens.agents.analyzers.coverage import build_coverage_report
from bundlelens.models.coverage import CoverageRange, CoverageRecord, CoverageReport
from bundlelens.models.network import NetworkTimingRecord
from bundlelens.utils.pagination import PaginationOptions

PAGE_URL = "https://shop.example.com/"

KB = 1024
STATIC = "https://shop.example.com/static"


def _record(url: str, total_kb: int, used_kb: int) -> CoverageRecord:
    ranges = [CoverageRange(0, used_kb * KB)] if used_kb else []
    return CoverageRecord(url=url, source_length=total_kb * KB, ranges=ranges)


@pytest.fixture
def coverage_report() -> CoverageReport:
    js = [
        _record("https://shop.example.com/static/app.js", 300, 200),
        _record("https://cdn.example.net/lodash.js", 500, 50),
        _record("https://shop.example.com/static/dashboard.js", 200, 40),
        _record("https://shop.example.com/static/tiny.js", 4, 4),
        _record("https://shop.example.com/static/vendor.3fa2.js", 80, 60),
        _record("https://cdn.example.net/moment.min.js", 230, 20),
        _record("https://shop.example.com/static/checkout.js", 120, 100),
    ]
    css = [_record("https://shop.example.com/static/site.css", 60, 15)]
    return build_coverage_report(js, css, PAGE_URL, PaginationOptions(page_size=5, page_idx=0))


@pytest.fixture
def chain_analysis() -> ChainAnalysis:
    records = [
        NetworkTimingRecord(f"{STATIC}/app.js", "script", 0, 120, 40 * KB),
        NetworkTimingRecord(f"{STATIC}/route.js", "script", 130, 260, 20 * KB),
        NetworkTimingRecord(f"{STATIC}/widget.js", "script", 270, 400, 4 * KB),
        NetworkTimingRecord(f"{STATIC}/site.css", "stylesheet", 5, 50, KB),
    ]
    chains = detect_bundle_chains(records)
    return ChainAnalysis(
        scripts_analyzed=3,
        chains=chains,
        preload_tags=generate_preload_tags(chains),
        merge_candidates=identify_merge_candidates(chains),
    )


@pytest.fixture
def code_split_analysis(coverage_report: CoverageReport) -> CodeSplitAnalysis:
    return analyze_code_splits(coverage_report.js_coverage)

"""Tests for the Markdown reporter."""

from __future__ import annotations

from bundlelens.agents.analyzers.bundle import CodeSplitAnalysis, analyze_code_splits
from bundlelens.agents.analyzers.chains import ChainAnalysis
from bundlelens.agents.reporters.markdown import (
    format_chain_analysis,
    format_chain_tree,
    format_code_split_analysis,
    format_coverage_report,
    shorten_url,
)
from bundlelens.models.coverage import CoverageEntry, CoverageReport


class TestShortenUrl:
    def test_short_url_unchanged(self) -> None:
        assert shorten_url("https://a.com/x.js", 50) == "https://a.com/x.js"

    def test_keeps_tail(self) -> None:
        url = "https://example.com/very/long/path/to/bundle.js"
        short = shorten_url(url, 20)

        assert short == "...path/to/bundle.js"
        assert len(short) == 20


class TestFormatCoverageReport:
    def test_summary_and_pages(self, coverage_report: CoverageReport) -> None:
        text = format_coverage_report(coverage_report)

        assert text.startswith("## Coverage Report")
        assert "- Total resources: 8" in text
        assert f"- Unused bytes: {coverage_report.summary.unused_bytes:,}" in text
        assert "Showing 1-5 of 7 JS files (Page 1 of 2)" in text
        assert "Next page: 1" in text
        assert "Previous page" not in text
        assert "Showing 1-1 of 1 CSS files (Page 1 of 1)" in text

    def test_only_page_rows_are_listed(self, coverage_report: CoverageReport) -> None:
        text = format_coverage_report(coverage_report)

        assert "lodash.js | 3rd-party" in text
        assert "dashboard.js | Internal" in text
        # checkout.js and tiny.js sit on the second page.
        assert "checkout.js" not in text
        assert "tiny.js" not in text

    def test_row_fields(self, coverage_report: CoverageReport) -> None:
        text = format_coverage_report(coverage_report)

        assert "| 512,000 | 51,200 | 460,800 | 10.0% |" in text

    def test_empty_report(self) -> None:
        text = format_coverage_report(CoverageReport())

        assert "- Total resources: 0" in text
        assert "### JavaScript Coverage" not in text
        assert "### CSS Coverage" not in text


class TestFormatChainAnalysis:
    def test_chain_sections(self, chain_analysis: ChainAnalysis) -> None:
        text = format_chain_analysis(chain_analysis)

        assert "**Total scripts analyzed**: 3" in text
        assert "- Chains detected: 1" in text
        assert "- Total chain time: 400ms" in text
        assert "- Average chain depth: 3.0" in text
        assert "- Potential savings: ~280ms (estimated)" in text
        assert "#### Chain 1 (3 levels, 400ms)" in text
        assert "### Preload Suggestions" in text
        assert (
            '<link rel="preload" href="https://shop.example.com/static/route.js" as="script">'
            in text
        )
        assert "### Optimization Strategies" in text
        assert "### Merge Candidates" in text
        assert "  - Combined size: 64.0KB" in text
        assert "observed in this session" in text

    def test_tree_rendering(self, chain_analysis: ChainAnalysis) -> None:
        tree = format_chain_tree(chain_analysis.chains[0].root)

        assert tree.splitlines() == [
            "https://shop.example.com/static/app.js (120ms, 40.0KB)",
            "  => https://shop.example.com/static/route.js (130ms, 20.0KB)",
            "    => https://shop.example.com/static/widget.js (130ms, 4.0KB)",
        ]

    def test_no_scripts(self) -> None:
        text = format_chain_analysis(ChainAnalysis(scripts_analyzed=0))

        assert text == "No JavaScript requests found. Navigate to a page first."

    def test_no_chains(self) -> None:
        text = format_chain_analysis(ChainAnalysis(scripts_analyzed=4))

        assert "### No Loading Chains Detected" in text
        assert "depth >= 2 and time >= 100ms" in text
        assert "### Preload Suggestions" not in text


class TestFormatCodeSplitAnalysis:
    def test_sections(self, code_split_analysis: CodeSplitAnalysis) -> None:
        text = format_code_split_analysis(code_split_analysis)

        assert "## Code Split Suggestions" in text
        assert "- Critical issues: 3" in text
        assert "- High priority issues: 1" in text
        assert "- Total opportunities: 5" in text
        assert "### Heavy Dependencies with Lighter Alternatives" in text
        assert "| lodash | lodash-es (tree-shakeable) | 60KB | low |" in text
        assert "| moment | dayjs | 58KB | low |" in text
        assert "### Lazy Load Candidates" in text
        assert "**dashboard.js** has 80% unused code on initial load." in text
        assert "[critical]" in text
        assert "### Tree Shaking Opportunities" in text
        assert "**lodash** (90% unused)" in text
        assert "### All Optimization Opportunities" in text
        assert "more opportunities" not in text

    def test_no_js(self) -> None:
        text = format_code_split_analysis(CodeSplitAnalysis(has_js_coverage=False))

        assert text.startswith("## No JavaScript Coverage Data")

    def test_no_candidates(self) -> None:
        text = format_code_split_analysis(CodeSplitAnalysis())

        assert "### No Optimization Opportunities Found" in text
        assert "No bundles found with size >= 50KB and unused >= 20%." in text

    def test_opportunities_are_truncated(self) -> None:
        entries = [
            CoverageEntry(
                url=f"https://example.com/chunk-{i}.js",
                total_bytes=200 * 1024,
                used_bytes=20 * 1024,
                unused_bytes=180 * 1024,
                usage_percent=10.0,
                is_external=False,
            )
            for i in range(17)
        ]

        text = format_code_split_analysis(analyze_code_splits(entries))

        assert "*...and 2 more opportunities*" in text
        assert text.count("| critical |") == 15

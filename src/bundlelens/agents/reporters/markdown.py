"""Markdown reporter — renders analysis results as Markdown text.

Used for the ``--format markdown`` CLI output and anywhere a plain-text
report is needed (e.g. pasting into an issue).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from bundlelens.agents.analyzers.bundle import Priority, lazy_load_advice
from bundlelens.models.coverage import BYTES_PER_KB

if TYPE_CHECKING:
    from bundlelens.agents.analyzers.bundle import CodeSplitAnalysis
    from bundlelens.agents.analyzers.chains import ChainAnalysis
    from bundlelens.models.coverage import CoverageEntry, CoverageReport
    from bundlelens.models.network import BundleChainNode
    from bundlelens.utils.pagination import PageResult

_MAX_COVERAGE_URL_LENGTH = 50
_MAX_CHAIN_URL_LENGTH = 60
_MAX_MERGE_URL_LENGTH = 40
_MAX_CANDIDATE_URL_LENGTH = 35
_MAX_LAZY_LOAD_DISPLAY = 5
_MAX_OPPORTUNITIES_DISPLAY = 15


def shorten_url(url: str, max_length: int) -> str:
    """Keep the tail of *url* (the filename is the informative part)."""
    if len(url) <= max_length:
        return url
    return "..." + url[-(max_length - 3) :]


def _kb(num_bytes: float) -> str:
    return f"{num_bytes / BYTES_PER_KB:.1f}KB"


# ── Coverage ─────────────────────────────────────────────────────


def _coverage_section(
    title: str, label: str, entries: list[CoverageEntry], page: PageResult[CoverageEntry] | None
) -> list[str]:
    if not entries:
        return []
    lines = [f"### {title}", ""]
    rows = entries
    if page is not None:
        rows = page.items
        lines.append(page.showing(label))
        if page.has_next_page:
            lines.append(f"Next page: {page.current_page + 1}")
        if page.has_previous_page:
            lines.append(f"Previous page: {page.current_page - 1}")
        lines.append("")
    lines.append("| URL | Type | Total Bytes | Used Bytes | Unused Bytes | Usage % |")
    lines.append("|-----|------|-------------|------------|--------------|---------|")
    for entry in rows:
        kind = "3rd-party" if entry.is_external else "Internal"
        lines.append(
            f"| {shorten_url(entry.url, _MAX_COVERAGE_URL_LENGTH)} | {kind} "
            f"| {entry.total_bytes:,} | {entry.used_bytes:,} | {entry.unused_bytes:,} "
            f"| {entry.usage_percent:.1f}% |"
        )
    lines.append("")
    return lines


def format_coverage_report(report: CoverageReport) -> str:
    """Render a coverage report: summary plus the requested page per type."""
    summary = report.summary
    lines = [
        "## Coverage Report",
        "",
        "### Summary",
        f"- Total resources: {summary.total_resources}",
        f"- Total bytes: {summary.total_bytes:,}",
        f"- Used bytes: {summary.used_bytes:,}",
        f"- Unused bytes: {summary.unused_bytes:,}",
        f"- Overall usage: {summary.overall_usage_percent:.1f}%",
        "",
    ]
    lines.extend(
        _coverage_section(
            "JavaScript Coverage", "JS files", report.js_coverage, report.js_pagination
        )
    )
    lines.extend(
        _coverage_section("CSS Coverage", "CSS files", report.css_coverage, report.css_pagination)
    )
    return "\n".join(lines)


# ── Bundle chains ────────────────────────────────────────────────


def format_chain_tree(node: BundleChainNode, indent: int = 0) -> str:
    """Render a chain as an indented tree, one script per line."""
    prefix = "  " * indent
    arrow = "=> " if indent > 0 else ""
    line = (
        f"{prefix}{arrow}{shorten_url(node.url, _MAX_CHAIN_URL_LENGTH)} "
        f"({node.load_time_ms:.0f}ms, {node.size_bytes / BYTES_PER_KB:.1f}KB)"
    )
    for child in node.children:
        line += "\n" + format_chain_tree(child, indent + 1)
    return line


def format_chain_analysis(analysis: ChainAnalysis) -> str:
    """Render bundle chains, preload tags, strategies and merge candidates."""
    if analysis.scripts_analyzed == 0:
        return "No JavaScript requests found. Navigate to a page first."

    lines = [
        "## Bundle Chain Analysis",
        "",
        f"**Total scripts analyzed**: {analysis.scripts_analyzed}",
        "",
    ]

    if not analysis.chains:
        lines.extend(
            [
                "### No Loading Chains Detected",
                "",
                f"No sequential bundle chains found with depth >= {analysis.min_chain_depth} "
                f"and time >= {analysis.min_chain_time_ms:.0f}ms.",
                "",
                "This could mean:",
                "- Scripts are loaded in parallel (good!)",
                "- Scripts are preloaded or inlined",
                "- The page uses effective code splitting",
            ]
        )
        return "\n".join(lines)

    lines.extend(
        [
            "### Summary",
            f"- Chains detected: {len(analysis.chains)}",
            f"- Total chain time: {analysis.total_chain_time_ms:.0f}ms",
            f"- Average chain depth: {analysis.average_depth:.1f}",
            f"- Potential savings: ~{analysis.estimated_savings_ms:.0f}ms (estimated)",
            "",
            "### Loading Chains",
            "",
        ]
    )
    for number, chain in enumerate(analysis.chains, start=1):
        lines.extend(
            [
                f"#### Chain {number} ({chain.depth} levels, {chain.total_time_ms:.0f}ms)",
                "",
                "```",
                format_chain_tree(chain.root),
                "```",
                "",
            ]
        )

    if analysis.preload_tags:
        lines.append("### Preload Suggestions")
        lines.append(
            "Add these to your HTML `<head>` to hint the browser to fetch these scripts earlier:"
        )
        lines.extend(["", "```html", *analysis.preload_tags, "```", ""])

    lines.extend(
        [
            "### Optimization Strategies",
            "",
            "**1. Use resource hints**: Add `<link rel=\"preload\">` tags (shown above) to tell "
            "the browser about critical scripts before they are discovered in the dependency "
            "chain.",
            "",
            "**2. Configure your bundler for preloading**: Most bundlers support automatic "
            "preload injection. For dynamic imports, there are usually magic comments or "
            "configuration options to mark chunks as preloadable.",
            "",
            "**3. Consider code splitting boundaries**: If scripts are always loaded together in "
            "a chain, they might be better combined into a single chunk to reduce round trips.",
            "",
            "**4. Review dynamic import patterns**: Chains often form when dynamically imported "
            "modules import other modules. Consider whether the child dependencies should be "
            "bundled with their parent.",
            "",
        ]
    )

    if analysis.merge_candidates:
        lines.append("### Merge Candidates")
        lines.append("These bundles loaded together in this session and could be merged:")
        lines.append("")
        for candidate in analysis.merge_candidates:
            short_urls = [shorten_url(u, _MAX_MERGE_URL_LENGTH) for u in candidate.urls]
            lines.append(f"- {' + '.join(short_urls)}")
            lines.append(f"  - Combined size: {candidate.combined_size_kb:.1f}KB")
            lines.append(f"  - Reason: {candidate.reason}")

    return "\n".join(lines)


# ── Code splits ──────────────────────────────────────────────────


def format_code_split_analysis(analysis: CodeSplitAnalysis) -> str:
    """Render code-split suggestions with alternatives and lazy-load advice."""
    if not analysis.has_js_coverage:
        return "\n".join(
            [
                "## No JavaScript Coverage Data",
                "",
                "No JavaScript files were captured in the coverage report.",
            ]
        )

    lines = [
        "## Code Split Suggestions",
        "",
        "### Summary",
        f"- Total unused: {_kb(analysis.total_unused_bytes)}",
        f"- Potential savings: ~{_kb(analysis.estimated_savings_bytes)} (estimated)",
        f"- Critical issues: {analysis.count(Priority.CRITICAL)}",
        f"- High priority issues: {analysis.count(Priority.HIGH)}",
        f"- Total opportunities: {len(analysis.candidates)}",
        "",
    ]

    if not analysis.candidates:
        lines.extend(
            [
                "### No Optimization Opportunities Found",
                "",
                f"No bundles found with size >= {analysis.min_bundle_size_kb:g}KB "
                f"and unused >= {analysis.min_unused_percent:g}%.",
                "Your bundles appear well-optimized!",
            ]
        )
        return "\n".join(lines)

    if analysis.heavy_dependencies:
        lines.extend(
            [
                "### Heavy Dependencies with Lighter Alternatives",
                "",
                "| Current | Alternative | Savings | Effort |",
                "|---------|-------------|---------|--------|",
            ]
        )
        for dep in analysis.heavy_dependencies:
            for alt in dep.alternatives:
                lines.append(
                    f"| {dep.name} | {alt.alternative} | {alt.size_savings_kb:g}KB | {alt.effort} |"
                )
        lines.append("")

    if analysis.lazy_load_candidates:
        lines.append("### Lazy Load Candidates")
        lines.append(
            "These modules have low initial usage and should be lazy loaded "
            "to improve initial page load:"
        )
        lines.append("")
        for candidate in analysis.lazy_load_candidates[:_MAX_LAZY_LOAD_DISPLAY]:
            advice = lazy_load_advice(candidate.url, candidate.unused_percent)
            lines.append(f"- {advice} [{candidate.priority.value}]")
            lines.append("")

    if analysis.heavy_dependencies:
        lines.extend(
            [
                "### Tree Shaking Opportunities",
                "",
                "The following heavy dependencies were detected. Consider these optimizations:",
                "",
            ]
        )
        for dep in analysis.heavy_dependencies:
            suggestion = dep.suggestion
            lines.extend(
                [
                    f"**{dep.name}** ({suggestion.unused_percent:.0f}% unused)",
                    "",
                    f"- Only {suggestion.usage_percent:.0f}% of this library is being used. "
                    "Import only the specific functions you need instead of the entire library.",
                    "- Check if there's an ES modules version (often named with \"-es\" suffix) "
                    "that supports tree shaking.",
                    "- Consider whether a lighter alternative from the table above would meet "
                    "your needs.",
                    "",
                ]
            )

    lines.extend(
        [
            "### All Optimization Opportunities",
            "",
            "| URL | Priority | Size | Used | Unused | Usage % |",
            "|-----|----------|------|------|--------|---------|",
        ]
    )
    for candidate in analysis.candidates[:_MAX_OPPORTUNITIES_DISPLAY]:
        lines.append(
            f"| {shorten_url(candidate.url, _MAX_CANDIDATE_URL_LENGTH)} "
            f"| {candidate.priority.value} | {_kb(candidate.total_bytes)} "
            f"| {_kb(candidate.used_bytes)} | {_kb(candidate.unused_bytes)} "
            f"| {candidate.usage_percent:.1f}% |"
        )
    remaining = len(analysis.candidates) - _MAX_OPPORTUNITIES_DISPLAY
    if remaining > 0:
        lines.extend(["", f"*...and {remaining} more opportunities*"])

    return "\n".join(lines)

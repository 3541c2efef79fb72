"""Terminal reporter with rich output formatting."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from bundlelens.agents.analyzers.bundle import Priority, lazy_load_advice
from bundlelens.agents.reporters.markdown import shorten_url
from bundlelens.models.coverage import BYTES_PER_KB

if TYPE_CHECKING:
    from bundlelens.agents.analyzers.bundle import CodeSplitAnalysis
    from bundlelens.agents.analyzers.chains import ChainAnalysis
    from bundlelens.models.coverage import CoverageEntry, CoverageReport
    from bundlelens.models.network import BundleChain
    from bundlelens.utils.pagination import PageResult

console = Console()

# Display limits for truncation
_MAX_URL_LENGTH = 60
_MAX_TREE_URL_LENGTH = 70
_MAX_LAZY_LOAD_DISPLAY = 5
_MAX_OPPORTUNITIES_DISPLAY = 15

_PRIORITY_COLORS = {
    Priority.CRITICAL: "bold red",
    Priority.HIGH: "red",
    Priority.MEDIUM: "yellow",
    Priority.LOW: "dim",
}

_CHAIN_STRATEGIES = (
    (
        "Use resource hints",
        'Add <link rel="preload"> tags to tell the browser about critical scripts '
        "before they are discovered in the dependency chain.",
    ),
    (
        "Configure your bundler for preloading",
        "Most bundlers support automatic preload injection for dynamic imports.",
    ),
    (
        "Consider code splitting boundaries",
        "Scripts always loaded together in a chain may be better combined into one chunk.",
    ),
    (
        "Review dynamic import patterns",
        "Chains often form when dynamically imported modules import other modules.",
    ),
)


def _kb(num_bytes: float) -> str:
    return f"{num_bytes / BYTES_PER_KB:.1f}KB"


class CLIReporter:
    """Rich terminal output reporter for coverage and bundle analysis."""

    def __init__(self) -> None:
        """Initialize the CLI reporter."""
        self.console = console

    def print_header(self, title: str) -> None:
        """Print a bold header."""
        self.console.print(f"\n[bold cyan]{title}[/bold cyan]\n")

    def print_success(self, message: str) -> None:
        """Print a success message."""
        self.console.print(f"[green]✓[/green] {message}")

    def print_error(self, message: str) -> None:
        """Print an error message."""
        self.console.print(f"[red]✗[/red] {message}")

    def print_warning(self, message: str) -> None:
        """Print a warning message."""
        self.console.print(f"[yellow]⚠[/yellow] {message}")

    def print_info(self, message: str) -> None:
        """Print an info message."""
        self.console.print(f"[dim]{message}[/dim]")

    def _get_coverage_color(self, percentage: float) -> str:
        """Get a color based on usage percentage."""
        high_threshold = 80.0
        medium_threshold = 50.0

        if percentage >= high_threshold:
            return "green"
        if percentage >= medium_threshold:
            return "yellow"
        return "red"

    # ── Coverage report ────────────────────────────────────────────

    def print_coverage_report(self, report: CoverageReport) -> None:
        """Print the coverage summary and the requested page for each type."""
        summary = report.summary
        usage_color = self._get_coverage_color(summary.overall_usage_percent)
        self.console.print(
            Panel(
                f"Resources: [bold]{summary.total_resources}[/bold]   "
                f"Total: {summary.total_bytes:,} B   "
                f"Used: {summary.used_bytes:,} B   "
                f"Unused: [bold]{summary.unused_bytes:,}[/bold] B   "
                f"Usage: [{usage_color}]{summary.overall_usage_percent:.1f}%[/{usage_color}]",
                title="Coverage Report",
                border_style="cyan",
            )
        )
        self._print_coverage_table(
            "JavaScript Coverage", "JS files", report.js_coverage, report.js_pagination
        )
        self._print_coverage_table(
            "CSS Coverage", "CSS files", report.css_coverage, report.css_pagination
        )

    def _print_coverage_table(
        self,
        title: str,
        label: str,
        entries: list[CoverageEntry],
        page: PageResult[CoverageEntry] | None,
    ) -> None:
        if not entries:
            return

        table = Table(title=title, title_style="bold cyan")
        table.add_column("URL", style="bold")
        table.add_column("Type", justify="center")
        table.add_column("Total Bytes", justify="right")
        table.add_column("Used Bytes", justify="right")
        table.add_column("Unused Bytes", justify="right")
        table.add_column("Usage %", justify="right")

        for entry in page.items if page is not None else entries:
            color = self._get_coverage_color(entry.usage_percent)
            table.add_row(
                escape(shorten_url(entry.url, _MAX_URL_LENGTH)),
                "[magenta]3rd-party[/magenta]" if entry.is_external else "Internal",
                f"{entry.total_bytes:,}",
                f"{entry.used_bytes:,}",
                f"{entry.unused_bytes:,}",
                f"[{color}]{entry.usage_percent:.1f}%[/{color}]",
            )

        self.console.print(table)
        if page is not None:
            self.print_info(page.showing(label))
            if page.has_next_page:
                self.print_info(f"Next page: {page.current_page + 1}")
            if page.has_previous_page:
                self.print_info(f"Previous page: {page.current_page - 1}")

    # ── Bundle chains ──────────────────────────────────────────────

    def _chain_tree(self, number: int, chain: BundleChain) -> Tree:
        tree = Tree(
            f"[bold]Chain {number}[/bold] "
            f"[dim]({chain.depth} levels, {chain.total_time_ms:.0f}ms)[/dim]"
        )
        branch = tree
        for node in chain.nodes():
            branch = branch.add(
                f"{escape(shorten_url(node.url, _MAX_TREE_URL_LENGTH))} "
                f"[dim]({node.load_time_ms:.0f}ms, {_kb(node.size_bytes)})[/dim]"
            )
        return tree

    def print_chain_analysis(self, analysis: ChainAnalysis) -> None:
        """Print detected loading chains, preload tags and merge candidates."""
        if analysis.scripts_analyzed == 0:
            self.print_warning("No JavaScript requests found. Navigate to a page first.")
            return

        self.print_header("Bundle Chain Analysis")
        self.console.print(f"Total scripts analyzed: [bold]{analysis.scripts_analyzed}[/bold]")

        if not analysis.chains:
            self.print_success(
                f"No sequential bundle chains found with depth >= {analysis.min_chain_depth} "
                f"and time >= {analysis.min_chain_time_ms:.0f}ms."
            )
            return

        self.console.print(
            f"Chains detected: [bold]{len(analysis.chains)}[/bold]   "
            f"Total chain time: [bold]{analysis.total_chain_time_ms:.0f}ms[/bold]   "
            f"Average depth: {analysis.average_depth:.1f}   "
            f"Potential savings: [green]~{analysis.estimated_savings_ms:.0f}ms[/green] (estimated)"
        )
        self.console.print()
        for number, chain in enumerate(analysis.chains, start=1):
            self.console.print(self._chain_tree(number, chain))

        if analysis.preload_tags:
            self.console.print()
            self.console.print("[bold cyan]Preload Suggestions[/bold cyan]")
            for tag in analysis.preload_tags:
                self.console.print(tag, markup=False, highlight=False)

        self.console.print()
        self.console.print("[bold cyan]Optimization Strategies[/bold cyan]")
        for number, (title, detail) in enumerate(_CHAIN_STRATEGIES, start=1):
            self.console.print(f"  {number}. [bold]{title}[/bold]: {detail}")

        if analysis.merge_candidates:
            table = Table(title="Merge Candidates", title_style="bold yellow")
            table.add_column("Bundles", style="bold")
            table.add_column("Combined Size", justify="right")
            table.add_column("Reason")
            for candidate in analysis.merge_candidates:
                table.add_row(
                    "\n".join(escape(shorten_url(u, _MAX_URL_LENGTH)) for u in candidate.urls),
                    f"{candidate.combined_size_kb:.1f}KB",
                    escape(candidate.reason),
                )
            self.console.print()
            self.console.print(table)

    # ── Code splits ────────────────────────────────────────────────

    def print_code_split_analysis(self, analysis: CodeSplitAnalysis) -> None:
        """Print code-split suggestions, alternatives and lazy-load candidates."""
        if not analysis.has_js_coverage:
            self.print_warning("No JavaScript files were captured in the coverage report.")
            return

        self.print_header("Code Split Suggestions")
        self.console.print(
            f"Total unused: [bold]{_kb(analysis.total_unused_bytes)}[/bold]   "
            f"Potential savings: [green]~{_kb(analysis.estimated_savings_bytes)}[/green]   "
            f"Critical: [bold red]{analysis.count(Priority.CRITICAL)}[/bold red]   "
            f"High: [red]{analysis.count(Priority.HIGH)}[/red]   "
            f"Opportunities: {len(analysis.candidates)}"
        )

        if not analysis.candidates:
            self.print_success(
                f"No bundles found with size >= {analysis.min_bundle_size_kb:g}KB "
                f"and unused >= {analysis.min_unused_percent:g}%."
            )
            return

        if analysis.heavy_dependencies:
            table = Table(
                title="Heavy Dependencies with Lighter Alternatives", title_style="bold yellow"
            )
            table.add_column("Current", style="bold")
            table.add_column("Unused", justify="right")
            table.add_column("Alternative")
            table.add_column("Savings", justify="right")
            table.add_column("Effort", justify="center")
            for dep in analysis.heavy_dependencies:
                for alt in dep.alternatives:
                    table.add_row(
                        escape(dep.name),
                        f"{dep.suggestion.unused_percent:.0f}%",
                        escape(alt.alternative),
                        f"{alt.size_savings_kb:g}KB",
                        alt.effort,
                    )
            self.console.print(table)

        if analysis.lazy_load_candidates:
            self.console.print()
            self.console.print("[bold cyan]Lazy Load Candidates[/bold cyan]")
            for candidate in analysis.lazy_load_candidates[:_MAX_LAZY_LOAD_DISPLAY]:
                color = _PRIORITY_COLORS[candidate.priority]
                advice = lazy_load_advice(candidate.url, candidate.unused_percent)
                label = f"[{color}]\\[{candidate.priority.value}][/{color}]"
                self.console.print(f"  • {escape(advice.replace('**', ''))} {label}")

        if analysis.heavy_dependencies:
            self.console.print()
            self.console.print("[bold cyan]Tree Shaking Opportunities[/bold cyan]")
            for dep in analysis.heavy_dependencies:
                suggestion = dep.suggestion
                self.console.print(
                    f"  [bold]{escape(dep.name)}[/bold] "
                    f"({suggestion.unused_percent:.0f}% unused)"
                )
                self.console.print(
                    f"    • Only {suggestion.usage_percent:.0f}% of this library is being used. "
                    "Import only the specific functions you need instead of the entire library."
                )
                self.console.print(
                    '    • Check if there\'s an ES modules version (often named with "-es" '
                    "suffix) that supports tree shaking."
                )
                self.console.print(
                    "    • Consider whether a lighter alternative from the table above "
                    "would meet your needs."
                )

        table = Table(title="All Optimization Opportunities", title_style="bold cyan")
        table.add_column("URL", style="bold")
        table.add_column("Priority", justify="center")
        table.add_column("Size", justify="right")
        table.add_column("Used", justify="right")
        table.add_column("Unused", justify="right")
        table.add_column("Usage %", justify="right")
        table.add_column("Dependency")
        for candidate in analysis.candidates[:_MAX_OPPORTUNITIES_DISPLAY]:
            color = _PRIORITY_COLORS[candidate.priority]
            table.add_row(
                escape(shorten_url(candidate.url, _MAX_URL_LENGTH)),
                f"[{color}]{candidate.priority.value}[/{color}]",
                _kb(candidate.total_bytes),
                _kb(candidate.used_bytes),
                _kb(candidate.unused_bytes),
                f"{candidate.usage_percent:.1f}%",
                escape(candidate.detected_dependency or "-"),
            )
        self.console.print()
        self.console.print(table)

        remaining = len(analysis.candidates) - _MAX_OPPORTUNITIES_DISPLAY
        if remaining > 0:
            self.print_info(f"...and {remaining} more opportunities")


# Singleton instance for easy import
reporter = CLIReporter()

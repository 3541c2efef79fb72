"""bundlelens CLI — top-level command group."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import TYPE_CHECKING, Any

import click
import yaml
from rich.console import Console

from bundlelens import __version__
from bundlelens.adapters.coverage_json import CoverageJsonProvider
from bundlelens.adapters.har import HarNetworkProvider
from bundlelens.agents.analyzers.bundle import CodeSplitAnalyzer, CodeSplitTask
from bundlelens.agents.analyzers.chains import BundleChainAnalyzer, BundleChainTask
from bundlelens.agents.analyzers.coverage import (
    CoverageAnalyzer,
    CoverageStartTask,
    CoverageStopTask,
)
from bundlelens.agents.reporters.json_reporter import JSONReporter
from bundlelens.agents.reporters.markdown import (
    format_chain_analysis,
    format_code_split_analysis,
    format_coverage_report,
)
from bundlelens.agents.reporters.terminal import reporter
from bundlelens.config import CONFIG_FILENAME, load_config, validate_config
from bundlelens.session import SessionContext
from bundlelens.utils.pagination import MAX_PAGE_SIZE

if TYPE_CHECKING:
    from bundlelens.agents.analyzers.bundle import CodeSplitAnalysis
    from bundlelens.agents.analyzers.chains import ChainAnalysis
    from bundlelens.agents.base import TaskOutput
    from bundlelens.config import BundleLensConfig
    from bundlelens.models.coverage import CoverageReport

logger = logging.getLogger(__name__)
console = Console()

_FORMATS = click.Choice(["terminal", "markdown", "json"], case_sensitive=False)
_INPUT_FILE = click.Path(exists=True, dir_okay=False, path_type=Path)
_PROJECT_ROOT = click.Path(exists=True, file_okay=False, resolve_path=True)


# ── Helpers ──────────────────────────────────────────────────────


def _load_checked_config(path: str) -> BundleLensConfig:
    """Load ``.bundlelens.yml`` and exit 1 if it does not validate."""
    try:
        config = load_config(path)
    except (OSError, ValueError, yaml.YAMLError) as e:
        reporter.print_error(f"Failed to load configuration: {e}")
        sys.exit(1)
    errors = validate_config(config)
    if errors:
        reporter.print_error(f"Found {len(errors)} configuration error(s) in {CONFIG_FILENAME}:")
        for error in errors:
            console.print(f"  - [red]{error}[/red]")
        sys.exit(1)
    return config


def _exit_on_failure(output: TaskOutput) -> None:
    """Print a FAILED task's errors and help lines, then exit 1."""
    if output.ok:
        return
    for error in output.errors:
        reporter.print_error(error)
    for message in output.messages:
        reporter.print_info(message)
    sys.exit(1)


async def _collect_coverage(
    analyzer: CoverageAnalyzer, start: CoverageStartTask, stop: CoverageStopTask
) -> TaskOutput:
    """Run one start/stop coverage cycle against the analyzer's provider."""
    started = await analyzer.run(start)
    if not started.ok:
        return started
    return await analyzer.run(stop)


def _run_coverage(
    config: BundleLensConfig,
    session: SessionContext,
    coverage_file: Path,
    *,
    css_file: Path | None,
    page_url: str,
    page_size: int | None,
    page_idx: int | None,
    no_js: bool,
    no_css: bool,
) -> CoverageReport:
    provider = CoverageJsonProvider(coverage_file, page_url=page_url, css_path=css_file)
    analyzer = CoverageAnalyzer(
        provider, session, vendor_patterns=config.heuristic_tables().vendor_patterns
    )
    start = CoverageStartTask(
        reset_on_navigation=config.coverage.reset_on_navigation,
        include_js=config.coverage.include_js and not no_js,
        include_css=config.coverage.include_css and not no_css,
    )
    stop = CoverageStopTask(
        page_size=page_size if page_size is not None else config.coverage.page_size,
        page_idx=page_idx if page_idx is not None else config.coverage.page_idx,
    )
    output = asyncio.run(_collect_coverage(analyzer, start, stop))
    _exit_on_failure(output)
    report: CoverageReport = output.result["coverage_report"]
    return report


def _run_chains(
    config: BundleLensConfig,
    har_file: Path,
    *,
    min_chain_depth: int | None,
    min_chain_time_ms: float | None,
    current_page_only: bool,
) -> ChainAnalysis:
    analyzer = BundleChainAnalyzer(
        HarNetworkProvider(har_file), gap_threshold_ms=config.chains.gap_threshold_ms
    )
    task = BundleChainTask(
        min_chain_depth=(
            min_chain_depth if min_chain_depth is not None else config.chains.min_chain_depth
        ),
        min_chain_time_ms=(
            min_chain_time_ms if min_chain_time_ms is not None else config.chains.min_chain_time_ms
        ),
        include_all=not current_page_only,
    )
    output = asyncio.run(analyzer.run(task))
    _exit_on_failure(output)
    analysis: ChainAnalysis = output.result["chain_analysis"]
    return analysis


def _run_suggestions(
    config: BundleLensConfig,
    session: SessionContext,
    *,
    min_bundle_size_kb: float | None,
    min_unused_percent: float | None,
) -> CodeSplitAnalysis:
    analyzer = CodeSplitAnalyzer(session, tables=config.heuristic_tables())
    task = CodeSplitTask(
        min_bundle_size_kb=(
            min_bundle_size_kb
            if min_bundle_size_kb is not None
            else config.suggestions.min_bundle_size_kb
        ),
        min_unused_percent=(
            min_unused_percent
            if min_unused_percent is not None
            else config.suggestions.min_unused_percent
        ),
    )
    output = asyncio.run(analyzer.run(task))
    _exit_on_failure(output)
    analysis: CodeSplitAnalysis = output.result["code_split_analysis"]
    return analysis


def _emit(
    output_format: str,
    *,
    json_path: Path | None = None,
    coverage_report: CoverageReport | None = None,
    chain_analysis: ChainAnalysis | None = None,
    code_split_analysis: CodeSplitAnalysis | None = None,
) -> None:
    """Render results in the requested format and optionally save a JSON copy."""
    sections: dict[str, Any] = {
        "coverage_report": coverage_report,
        "chain_analysis": chain_analysis,
        "code_split_analysis": code_split_analysis,
    }
    json_reporter = JSONReporter()

    if output_format == "json":
        click.echo(json_reporter.generate_string(**sections))
    elif output_format == "markdown":
        parts: list[str] = []
        if coverage_report is not None:
            parts.append(format_coverage_report(coverage_report))
        if chain_analysis is not None:
            parts.append(format_chain_analysis(chain_analysis))
        if code_split_analysis is not None:
            parts.append(format_code_split_analysis(code_split_analysis))
        click.echo("\n\n".join(parts))
    else:
        if coverage_report is not None:
            reporter.print_coverage_report(coverage_report)
        if chain_analysis is not None:
            reporter.print_chain_analysis(chain_analysis)
        if code_split_analysis is not None:
            reporter.print_code_split_analysis(code_split_analysis)

    if json_path is not None:
        json_reporter.generate(json_path, **sections)
        if output_format != "json":
            reporter.print_success(f"JSON report written to {json_path}")


# ── Shared options ───────────────────────────────────────────────


def _project_option(func: Any) -> Any:
    return click.option(
        "--path",
        default=".",
        type=_PROJECT_ROOT,
        help=f"Project root containing {CONFIG_FILENAME}.",
    )(func)


def _output_options(func: Any) -> Any:
    func = click.option(
        "--output",
        "json_path",
        type=click.Path(dir_okay=False, path_type=Path),
        default=None,
        help="Also write the results as a JSON report to this file.",
    )(func)
    return click.option(
        "--format",
        "output_format",
        type=_FORMATS,
        default=None,
        help="Output format (default: report.format from config, else terminal).",
    )(func)


def _coverage_options(func: Any) -> Any:
    for option in reversed(
        [
            click.option(
                "--css",
                "css_file",
                type=_INPUT_FILE,
                default=None,
                help="Separate CSS coverage JSON file.",
            ),
            click.option(
                "--page-url",
                required=True,
                help="URL of the analyzed page, used to tell first- from third-party files.",
            ),
            click.option(
                "--page-size",
                type=click.IntRange(1, MAX_PAGE_SIZE),
                default=None,
                help=f"Entries per page (1-{MAX_PAGE_SIZE}).",
            ),
            click.option(
                "--page-idx",
                type=click.IntRange(min=0),
                default=None,
                help="Page to show (0-based).",
            ),
            click.option("--no-js", is_flag=True, help="Skip JavaScript coverage."),
            click.option("--no-css", is_flag=True, help="Skip CSS coverage."),
        ]
    ):
        func = option(func)
    return func


def _chain_options(func: Any) -> Any:
    func = click.option(
        "--current-page-only",
        is_flag=True,
        help="Ignore requests from earlier navigations in the HAR file.",
    )(func)
    func = click.option(
        "--min-chain-time-ms",
        type=click.FloatRange(min=0),
        default=None,
        help="Minimum total chain time in milliseconds (default: 100).",
    )(func)
    return click.option(
        "--min-chain-depth",
        type=click.IntRange(min=2),
        default=None,
        help="Minimum chain depth to report (default: 2).",
    )(func)


def _suggestion_options(func: Any) -> Any:
    func = click.option(
        "--min-unused-percent",
        type=click.FloatRange(0, 100),
        default=None,
        help="Minimum unused percentage to flag a bundle (default: 20).",
    )(func)
    return click.option(
        "--min-bundle-size-kb",
        type=click.FloatRange(min=0),
        default=None,
        help="Minimum bundle size in KB to analyze (default: 50).",
    )(func)


# ── Commands ─────────────────────────────────────────────────────


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.version_option(version=__version__, prog_name="bundlelens")
@click.pass_context
def cli(ctx: click.Context, *, verbose: bool) -> None:
    """bundlelens — find unused JavaScript/CSS and sequential script loading chains."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.argument("coverage_file", type=_INPUT_FILE)
@_coverage_options
@_output_options
@_project_option
def coverage(
    coverage_file: Path,
    css_file: Path | None,
    page_url: str,
    page_size: int | None,
    page_idx: int | None,
    output_format: str | None,
    json_path: Path | None,
    path: str,
    *,
    no_js: bool,
    no_css: bool,
) -> None:
    """Report unused bytes per file from exported coverage JSON.

    Example:
      bundlelens coverage coverage.json --page-url https://example.com
    """
    config = _load_checked_config(path)
    report = _run_coverage(
        config,
        SessionContext(),
        coverage_file,
        css_file=css_file,
        page_url=page_url,
        page_size=page_size,
        page_idx=page_idx,
        no_js=no_js,
        no_css=no_css,
    )
    _emit(output_format or config.report.format, json_path=json_path, coverage_report=report)


@cli.command()
@click.argument("har_file", type=_INPUT_FILE)
@_chain_options
@_output_options
@_project_option
def chains(
    har_file: Path,
    min_chain_depth: int | None,
    min_chain_time_ms: float | None,
    output_format: str | None,
    json_path: Path | None,
    path: str,
    *,
    current_page_only: bool,
) -> None:
    """Detect scripts that load one after another instead of in parallel.

    Example:
      bundlelens chains page.har --min-chain-depth 3
    """
    config = _load_checked_config(path)
    analysis = _run_chains(
        config,
        har_file,
        min_chain_depth=min_chain_depth,
        min_chain_time_ms=min_chain_time_ms,
        current_page_only=current_page_only,
    )
    _emit(output_format or config.report.format, json_path=json_path, chain_analysis=analysis)


@cli.command()
@click.argument("coverage_file", type=_INPUT_FILE)
@_coverage_options
@_suggestion_options
@_output_options
@_project_option
def suggest(
    coverage_file: Path,
    css_file: Path | None,
    page_url: str,
    page_size: int | None,
    page_idx: int | None,
    min_bundle_size_kb: float | None,
    min_unused_percent: float | None,
    output_format: str | None,
    json_path: Path | None,
    path: str,
    *,
    no_js: bool,
    no_css: bool,
) -> None:
    """Suggest code splitting, lazy loading and lighter dependencies.

    Example:
      bundlelens suggest coverage.json --page-url https://example.com
    """
    config = _load_checked_config(path)
    session = SessionContext()
    _run_coverage(
        config,
        session,
        coverage_file,
        css_file=css_file,
        page_url=page_url,
        page_size=page_size,
        page_idx=page_idx,
        no_js=no_js,
        no_css=no_css,
    )
    analysis = _run_suggestions(
        config,
        session,
        min_bundle_size_kb=min_bundle_size_kb,
        min_unused_percent=min_unused_percent,
    )
    _emit(output_format or config.report.format, json_path=json_path, code_split_analysis=analysis)


@cli.command()
@click.argument("coverage_file", type=_INPUT_FILE)
@click.argument("har_file", type=_INPUT_FILE)
@_coverage_options
@_chain_options
@_suggestion_options
@_output_options
@_project_option
def analyze(
    coverage_file: Path,
    har_file: Path,
    css_file: Path | None,
    page_url: str,
    page_size: int | None,
    page_idx: int | None,
    min_chain_depth: int | None,
    min_chain_time_ms: float | None,
    min_bundle_size_kb: float | None,
    min_unused_percent: float | None,
    output_format: str | None,
    json_path: Path | None,
    path: str,
    *,
    no_js: bool,
    no_css: bool,
    current_page_only: bool,
) -> None:
    """Run coverage, chain and code-split analysis in one pass.

    Example:
      bundlelens analyze coverage.json page.har --page-url https://example.com
    """
    config = _load_checked_config(path)
    session = SessionContext()
    report = _run_coverage(
        config,
        session,
        coverage_file,
        css_file=css_file,
        page_url=page_url,
        page_size=page_size,
        page_idx=page_idx,
        no_js=no_js,
        no_css=no_css,
    )
    chain_analysis = _run_chains(
        config,
        har_file,
        min_chain_depth=min_chain_depth,
        min_chain_time_ms=min_chain_time_ms,
        current_page_only=current_page_only,
    )
    code_split_analysis = _run_suggestions(
        config,
        session,
        min_bundle_size_kb=min_bundle_size_kb,
        min_unused_percent=min_unused_percent,
    )
    _emit(
        output_format or config.report.format,
        json_path=json_path,
        coverage_report=report,
        chain_analysis=chain_analysis,
        code_split_analysis=code_split_analysis,
    )


@cli.group("config")
def config_group() -> None:
    """Inspect `.bundlelens.yml` configuration."""


@config_group.command("show")
@_project_option
@click.option("--json-output", "as_json", is_flag=True, help="Output as JSON instead of YAML.")
def config_show(path: str, *, as_json: bool) -> None:
    """Display the resolved configuration, defaults included.

    Example:
      bundlelens config show --json-output
    """
    try:
        config = load_config(path)
    except (OSError, ValueError, yaml.YAMLError) as e:
        reporter.print_error(f"Failed to load configuration: {e}")
        raise click.Abort from e

    config_dict = asdict(config)
    config_dict.pop("raw", None)

    if as_json:
        click.echo(json.dumps(config_dict, indent=2))
    else:
        console.print()
        console.print("[bold cyan]Configuration:[/bold cyan]")
        console.print()
        click.echo(yaml.safe_dump(config_dict, sort_keys=False, default_flow_style=False))


@config_group.command("validate")
@_project_option
def config_validate(path: str) -> None:
    """Validate `.bundlelens.yml` values.

    Example:
      bundlelens config validate
    """
    try:
        config = load_config(path)
    except (OSError, ValueError, yaml.YAMLError) as e:
        reporter.print_error(f"Failed to load configuration: {e}")
        raise click.Abort from e

    errors = validate_config(config)
    if not errors:
        reporter.print_success("Configuration is valid!")
        return

    reporter.print_error(f"Found {len(errors)} configuration error(s):")
    console.print()
    for idx, error in enumerate(errors, start=1):
        console.print(f"  {idx}. [red]{error}[/red]")
    console.print()
    console.print(
        f"[dim]Fix these errors in {CONFIG_FILENAME} and run "
        "'bundlelens config validate' again.[/dim]"
    )
    sys.exit(1)

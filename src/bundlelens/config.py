"""Configuration parsing from ``.bundlelens.yml``."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml

from bundlelens.agents.analyzers.bundle import (
    DEFAULT_DEPENDENCY_ALTERNATIVES,
    DependencyAlternative,
    HeuristicTables,
)
from bundlelens.agents.analyzers.classifier import DEFAULT_VENDOR_PATTERNS
from bundlelens.utils.pagination import MAX_PAGE_SIZE

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".bundlelens.yml"

_ENV_VAR_RE = re.compile(r"\$\{(\w+)\}")

_REPORT_FORMATS = ("terminal", "markdown", "json")
_EFFORT_LEVELS = ("low", "medium", "high")


def _resolve_env_vars(value: str) -> str:
    """Replace ``${VAR_NAME}`` placeholders with environment variable values."""

    def _replace(match: re.Match[str]) -> str:
        var = match.group(1)
        resolved = os.environ.get(var)
        if resolved is None:
            logger.warning("Environment variable %s is not set (referenced in config)", var)
            return ""
        return resolved

    return _ENV_VAR_RE.sub(_replace, value)


def _resolve_dict(data: dict[str, Any]) -> dict[str, Any]:
    """Recursively resolve environment variables in a dictionary."""
    result: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, str):
            result[key] = _resolve_env_vars(value)
        elif isinstance(value, dict):
            result[key] = _resolve_dict(value)
        elif isinstance(value, list):
            result[key] = [
                _resolve_env_vars(item) if isinstance(item, str) else item for item in value
            ]
        else:
            result[key] = value
    return result


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    value = raw.get(name, {})
    return value if isinstance(value, dict) else {}


@dataclass
class CoverageConfig:
    """Coverage tracking and report pagination."""

    include_js: bool = True
    """Track JavaScript coverage."""

    include_css: bool = True
    """Track CSS coverage."""

    reset_on_navigation: bool = True
    """Reset coverage data when the page navigates."""

    page_size: int = MAX_PAGE_SIZE
    """Entries per report page (1-5)."""

    page_idx: int = 0
    """Page shown by default (0-based)."""


@dataclass
class ChainConfig:
    """Bundle chain detection thresholds."""

    min_chain_depth: int = 2
    """Minimum number of scripts in a reported chain."""

    min_chain_time_ms: float = 100.0
    """Minimum total chain time in milliseconds."""

    gap_threshold_ms: float = 50.0
    """Max gap between one script ending and the next starting."""


@dataclass
class SuggestionConfig:
    """Code-split suggestion filters."""

    min_bundle_size_kb: float = 50.0
    """Minimum bundle size in KB to analyze."""

    min_unused_percent: float = 20.0
    """Minimum unused percentage to flag a bundle."""


@dataclass
class HeuristicsConfig:
    """Additions to the built-in heuristic tables."""

    extra_vendor_patterns: list[str] = field(default_factory=list)
    """Path fragments appended to the built-in vendor-bundle patterns."""

    dependency_alternatives: dict[str, list[DependencyAlternative]] = field(default_factory=dict)
    """Extra heavy dependencies (or replacements for built-in entries)."""


@dataclass
class ReportConfig:
    """Reporting and output configuration."""

    format: str = "terminal"
    """Default output format: terminal, markdown, json."""


@dataclass
class BundleLensConfig:
    """Complete ``.bundlelens.yml`` configuration."""

    coverage: CoverageConfig = field(default_factory=CoverageConfig)
    chains: ChainConfig = field(default_factory=ChainConfig)
    suggestions: SuggestionConfig = field(default_factory=SuggestionConfig)
    heuristics: HeuristicsConfig = field(default_factory=HeuristicsConfig)
    report: ReportConfig = field(default_factory=ReportConfig)
    raw: dict[str, Any] = field(default_factory=dict)

    def heuristic_tables(self) -> HeuristicTables:
        """Build the read-only tables the heuristics run against.

        Configured dependencies are appended after the built-in ones, so a
        built-in name still wins a tie; naming a built-in replaces its
        alternatives in place.
        """
        alternatives: dict[str, tuple[DependencyAlternative, ...]] = dict(
            DEFAULT_DEPENDENCY_ALTERNATIVES
        )
        for name, alts in self.heuristics.dependency_alternatives.items():
            alternatives[name.lower()] = tuple(alts)

        patterns = DEFAULT_VENDOR_PATTERNS + tuple(
            p.lower() for p in self.heuristics.extra_vendor_patterns if p
        )
        return HeuristicTables(
            dependency_alternatives=MappingProxyType(alternatives),
            vendor_patterns=patterns,
        )


def _parse_alternatives(raw: dict[str, Any]) -> dict[str, list[DependencyAlternative]]:
    result: dict[str, list[DependencyAlternative]] = {}
    for name, items in raw.items():
        if not isinstance(items, list):
            logger.warning("Ignoring dependency_alternatives.%s: expected a list", name)
            continue
        alts: list[DependencyAlternative] = []
        for item in items:
            if not isinstance(item, dict) or "alternative" not in item:
                logger.warning("Ignoring malformed alternative for %s: %r", name, item)
                continue
            alts.append(
                DependencyAlternative(
                    alternative=str(item["alternative"]),
                    size_savings_kb=float(item.get("size_savings_kb", 0)),
                    effort=str(item.get("effort", "medium")).lower(),  # type: ignore[arg-type]
                )
            )
        result[str(name)] = alts
    return result


def _parse_heuristics_config(raw: dict[str, Any]) -> HeuristicsConfig:
    heuristics_raw = _section(raw, "heuristics")
    patterns = heuristics_raw.get("extra_vendor_patterns", [])
    alternatives = heuristics_raw.get("dependency_alternatives", {})
    return HeuristicsConfig(
        extra_vendor_patterns=[str(p) for p in patterns] if isinstance(patterns, list) else [],
        dependency_alternatives=(
            _parse_alternatives(alternatives) if isinstance(alternatives, dict) else {}
        ),
    )


def load_config(root: str | Path) -> BundleLensConfig:
    """Load and parse the complete ``.bundlelens.yml`` configuration.

    Falls back to defaults and environment variables when the YAML file is
    missing or incomplete.
    """
    config_path = Path(root).resolve() / CONFIG_FILENAME

    raw: dict[str, Any] = {}
    if config_path.is_file():
        parsed = yaml.safe_load(config_path.read_text(encoding="utf-8"))
        if isinstance(parsed, dict):
            raw = _resolve_dict(parsed)
        logger.debug("Loaded configuration from %s", config_path)

    coverage_raw = _section(raw, "coverage")
    coverage = CoverageConfig(
        include_js=bool(coverage_raw.get("include_js", True)),
        include_css=bool(coverage_raw.get("include_css", True)),
        reset_on_navigation=bool(coverage_raw.get("reset_on_navigation", True)),
        page_size=int(coverage_raw.get("page_size", MAX_PAGE_SIZE)),
        page_idx=int(coverage_raw.get("page_idx", 0)),
    )

    chains_raw = _section(raw, "chains")
    chains = ChainConfig(
        min_chain_depth=int(chains_raw.get("min_chain_depth", 2)),
        min_chain_time_ms=float(chains_raw.get("min_chain_time_ms", 100.0)),
        gap_threshold_ms=float(chains_raw.get("gap_threshold_ms", 50.0)),
    )

    suggestions_raw = _section(raw, "suggestions")
    suggestions = SuggestionConfig(
        min_bundle_size_kb=float(suggestions_raw.get("min_bundle_size_kb", 50.0)),
        min_unused_percent=float(suggestions_raw.get("min_unused_percent", 20.0)),
    )

    report_raw = _section(raw, "report")
    report = ReportConfig(
        format=str(
            report_raw.get("format", os.environ.get("BUNDLELENS_REPORT_FORMAT", "terminal"))
        ).lower(),
    )

    return BundleLensConfig(
        coverage=coverage,
        chains=chains,
        suggestions=suggestions,
        heuristics=_parse_heuristics_config(raw),
        report=report,
        raw=raw,
    )


def _validate_coverage_config(coverage: CoverageConfig) -> list[str]:
    errors: list[str] = []
    if not 1 <= coverage.page_size <= MAX_PAGE_SIZE:
        errors.append(
            f"coverage.page_size must be between 1 and {MAX_PAGE_SIZE} (got: {coverage.page_size})"
        )
    if coverage.page_idx < 0:
        errors.append(f"coverage.page_idx must be non-negative (got: {coverage.page_idx})")
    if not coverage.include_js and not coverage.include_css:
        errors.append("at least one of coverage.include_js or coverage.include_css must be true")
    return errors


def _validate_chain_config(chains: ChainConfig) -> list[str]:
    errors: list[str] = []
    if chains.min_chain_depth < 2:
        errors.append(f"chains.min_chain_depth must be at least 2 (got: {chains.min_chain_depth})")
    if chains.min_chain_time_ms < 0:
        errors.append(
            f"chains.min_chain_time_ms must be non-negative (got: {chains.min_chain_time_ms})"
        )
    if chains.gap_threshold_ms < 0:
        errors.append(
            f"chains.gap_threshold_ms must be non-negative (got: {chains.gap_threshold_ms})"
        )
    return errors


def _validate_suggestion_config(suggestions: SuggestionConfig) -> list[str]:
    max_percentage = 100.0
    errors: list[str] = []
    if suggestions.min_bundle_size_kb < 0:
        errors.append(
            f"suggestions.min_bundle_size_kb must be non-negative "
            f"(got: {suggestions.min_bundle_size_kb})"
        )
    if not 0.0 <= suggestions.min_unused_percent <= max_percentage:
        errors.append(
            f"suggestions.min_unused_percent must be between 0 and 100 "
            f"(got: {suggestions.min_unused_percent})"
        )
    return errors


def _validate_heuristics_config(heuristics: HeuristicsConfig) -> list[str]:
    errors: list[str] = []
    for name, alts in heuristics.dependency_alternatives.items():
        for alt in alts:
            if alt.effort not in _EFFORT_LEVELS:
                errors.append(
                    f"heuristics.dependency_alternatives.{name}: effort must be one of "
                    f"{', '.join(_EFFORT_LEVELS)} (got: {alt.effort})"
                )
    return errors


def validate_config(config: BundleLensConfig) -> list[str]:
    """Validate the configuration and return a list of error messages.

    Returns an empty list if the configuration is valid.
    """
    errors: list[str] = []
    errors.extend(_validate_coverage_config(config.coverage))
    errors.extend(_validate_chain_config(config.chains))
    errors.extend(_validate_suggestion_config(config.suggestions))
    errors.extend(_validate_heuristics_config(config.heuristics))
    if config.report.format not in _REPORT_FORMATS:
        errors.append(
            f"report.format must be one of {', '.join(_REPORT_FORMATS)} "
            f"(got: {config.report.format})"
        )
    return errors

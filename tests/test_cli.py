"""Tests for the bundlelens CLI commands."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import pytest
import yaml
from click.testing import CliRunner

from bundlelens import __version__
from bundlelens.cli import cli

if TYPE_CHECKING:
    from pathlib import Path

PAGE_URL = "https://shop.example.com/"
KB = 1024


def _coverage_entry(url: str, total_kb: int, used_kb: int) -> dict[str, Any]:
    return {
        "url": url,
        "sourceLength": total_kb * KB,
        "ranges": [{"start": 0, "end": used_kb * KB}] if used_kb else [],
    }


def _har_entry(url: str, started: str, wait_ms: float, size: int) -> dict[str, Any]:
    return {
        "pageref": "page_1",
        "startedDateTime": started,
        "_resourceType": "script",
        "request": {"method": "GET", "url": url},
        "response": {
            "status": 200,
            "headers": [{"name": "Content-Length", "value": str(size)}],
            "content": {"mimeType": "application/javascript"},
        },
        "timings": {"blocked": 0, "dns": -1, "connect": -1, "send": 0, "wait": wait_ms},
    }


@pytest.fixture
def coverage_file(tmp_path: Path) -> Path:
    path = tmp_path / "coverage.json"
    data = {
        "js": [
            _coverage_entry("https://shop.example.com/static/app.js", 300, 200),
            _coverage_entry("https://cdn.example.net/lodash.js", 500, 50),
            _coverage_entry("https://shop.example.com/static/dashboard.js", 200, 40),
        ],
        "css": [_coverage_entry("https://shop.example.com/static/site.css", 60, 15)],
    }
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


@pytest.fixture
def har_file(tmp_path: Path) -> Path:
    path = tmp_path / "page.har"
    data = {
        "log": {
            "version": "1.2",
            "pages": [{"id": "page_1"}],
            "entries": [
                _har_entry(
                    "https://shop.example.com/static/app.js",
                    "2024-05-01T10:00:00.000Z",
                    120,
                    4096,
                ),
                _har_entry(
                    "https://shop.example.com/static/route.js",
                    "2024-05-01T10:00:00.130Z",
                    130,
                    2048,
                ),
            ],
        }
    }
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def _invoke(tmp_path: Path, *args: str) -> Any:
    runner = CliRunner()
    return runner.invoke(cli, [*args, "--path", str(tmp_path)])


def test_version() -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_help() -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    for command in ("coverage", "chains", "suggest", "analyze", "config"):
        assert command in result.output


# ── bundlelens coverage ──────────────────────────────────────────


class TestCoverage:
    def test_terminal_output(self, tmp_path: Path, coverage_file: Path) -> None:
        result = _invoke(tmp_path, "coverage", str(coverage_file), "--page-url", PAGE_URL)

        assert result.exit_code == 0, result.output
        assert "Coverage Report" in result.output
        assert "Showing 1-3 of 3 JS files" in result.output

    def test_json_output(self, tmp_path: Path, coverage_file: Path) -> None:
        result = _invoke(
            tmp_path,
            "coverage",
            str(coverage_file),
            "--page-url",
            PAGE_URL,
            "--format",
            "json",
            "--page-size",
            "2",
        )

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        coverage = data["coverage"]
        assert coverage["summary"]["total_resources"] == 4
        assert coverage["js_coverage"][0]["url"] == "https://cdn.example.net/lodash.js"
        assert coverage["js_pagination"]["total_pages"] == 2
        assert len(coverage["js_pagination"]["items"]) == 2

    def test_markdown_output(self, tmp_path: Path, coverage_file: Path) -> None:
        result = _invoke(
            tmp_path,
            "coverage",
            str(coverage_file),
            "--page-url",
            PAGE_URL,
            "--format",
            "markdown",
            "--no-css",
        )

        assert result.exit_code == 0, result.output
        assert result.output.startswith("## Coverage Report")
        assert "### CSS Coverage" not in result.output

    def test_config_default_format(self, tmp_path: Path, coverage_file: Path) -> None:
        (tmp_path / ".bundlelens.yml").write_text(
            yaml.dump({"report": {"format": "markdown"}}), encoding="utf-8"
        )

        result = _invoke(tmp_path, "coverage", str(coverage_file), "--page-url", PAGE_URL)

        assert result.exit_code == 0, result.output
        assert "## Coverage Report" in result.output

    def test_writes_json_report(self, tmp_path: Path, coverage_file: Path) -> None:
        out = tmp_path / "out" / "report.json"

        result = _invoke(
            tmp_path,
            "coverage",
            str(coverage_file),
            "--page-url",
            PAGE_URL,
            "--output",
            str(out),
        )

        assert result.exit_code == 0, result.output
        assert json.loads(out.read_text(encoding="utf-8"))["tool"] == "bundlelens"

    def test_both_types_disabled_fails(self, tmp_path: Path, coverage_file: Path) -> None:
        result = _invoke(
            tmp_path,
            "coverage",
            str(coverage_file),
            "--page-url",
            PAGE_URL,
            "--no-js",
            "--no-css",
        )

        assert result.exit_code == 1
        assert "include_js" in result.output

    def test_page_size_out_of_range(self, tmp_path: Path, coverage_file: Path) -> None:
        result = _invoke(
            tmp_path,
            "coverage",
            str(coverage_file),
            "--page-url",
            PAGE_URL,
            "--page-size",
            "6",
        )

        assert result.exit_code == 2

    def test_invalid_coverage_json(self, tmp_path: Path) -> None:
        broken = tmp_path / "broken.json"
        broken.write_text("{nope", encoding="utf-8")

        result = _invoke(tmp_path, "coverage", str(broken), "--page-url", PAGE_URL)

        assert result.exit_code == 1
        assert "Invalid JSON" in result.output

    def test_invalid_config_exits(self, tmp_path: Path, coverage_file: Path) -> None:
        (tmp_path / ".bundlelens.yml").write_text(
            yaml.dump({"coverage": {"page_size": 50}}), encoding="utf-8"
        )

        result = _invoke(tmp_path, "coverage", str(coverage_file), "--page-url", PAGE_URL)

        assert result.exit_code == 1
        assert "coverage.page_size" in result.output


# ── bundlelens chains ────────────────────────────────────────────


class TestChains:
    def test_detects_chain(self, tmp_path: Path, har_file: Path) -> None:
        result = _invoke(tmp_path, "chains", str(har_file), "--format", "json")

        assert result.exit_code == 0, result.output
        chains = json.loads(result.output)["bundle_chains"]
        assert chains["scripts_analyzed"] == 2
        assert len(chains["chains"]) == 1
        assert chains["chains"][0]["depth"] == 2
        assert chains["preload_tags"] == [
            '<link rel="preload" href="https://shop.example.com/static/route.js" as="script">'
        ]

    def test_depth_filter(self, tmp_path: Path, har_file: Path) -> None:
        result = _invoke(
            tmp_path, "chains", str(har_file), "--min-chain-depth", "3", "--format", "markdown"
        )

        assert result.exit_code == 0, result.output
        assert "### No Loading Chains Detected" in result.output

    def test_depth_below_two_rejected(self, tmp_path: Path, har_file: Path) -> None:
        result = _invoke(tmp_path, "chains", str(har_file), "--min-chain-depth", "1")

        assert result.exit_code == 2


# ── bundlelens suggest / analyze ─────────────────────────────────


class TestSuggest:
    def test_suggestions(self, tmp_path: Path, coverage_file: Path) -> None:
        result = _invoke(
            tmp_path, "suggest", str(coverage_file), "--page-url", PAGE_URL, "--format", "json"
        )

        assert result.exit_code == 0, result.output
        splits = json.loads(result.output)["code_splits"]
        assert [c["url"] for c in splits["candidates"]] == [
            "https://cdn.example.net/lodash.js",
            "https://shop.example.com/static/dashboard.js",
            "https://shop.example.com/static/app.js",
        ]
        assert splits["lazy_load_candidates"] == ["https://shop.example.com/static/dashboard.js"]
        assert [d["name"] for d in splits["heavy_dependencies"]] == ["lodash"]

    def test_thresholds_from_options(self, tmp_path: Path, coverage_file: Path) -> None:
        result = _invoke(
            tmp_path,
            "suggest",
            str(coverage_file),
            "--page-url",
            PAGE_URL,
            "--min-bundle-size-kb",
            "400",
            "--format",
            "json",
        )

        assert result.exit_code == 0, result.output
        splits = json.loads(result.output)["code_splits"]
        assert [c["url"] for c in splits["candidates"]] == ["https://cdn.example.net/lodash.js"]

    def test_no_js_coverage(self, tmp_path: Path, coverage_file: Path) -> None:
        result = _invoke(
            tmp_path,
            "suggest",
            str(coverage_file),
            "--page-url",
            PAGE_URL,
            "--no-js",
            "--format",
            "markdown",
        )

        assert result.exit_code == 0, result.output
        assert "## No JavaScript Coverage Data" in result.output


class TestAnalyze:
    def test_all_sections(self, tmp_path: Path, coverage_file: Path, har_file: Path) -> None:
        result = _invoke(
            tmp_path,
            "analyze",
            str(coverage_file),
            str(har_file),
            "--page-url",
            PAGE_URL,
            "--format",
            "json",
        )

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert {"coverage", "bundle_chains", "code_splits"} <= set(data)


# ── bundlelens config ────────────────────────────────────────────


class TestConfigCommands:
    def test_show_json(self, tmp_path: Path) -> None:
        (tmp_path / ".bundlelens.yml").write_text(
            yaml.dump({"chains": {"min_chain_depth": 4}}), encoding="utf-8"
        )

        result = _invoke(tmp_path, "config", "show", "--json-output")

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["chains"]["min_chain_depth"] == 4
        assert data["coverage"]["page_size"] == 5
        assert "raw" not in data

    def test_show_yaml(self, tmp_path: Path) -> None:
        result = _invoke(tmp_path, "config", "show")

        assert result.exit_code == 0, result.output
        assert "min_bundle_size_kb: 50.0" in result.output

    def test_validate_ok(self, tmp_path: Path) -> None:
        result = _invoke(tmp_path, "config", "validate")

        assert result.exit_code == 0
        assert "Configuration is valid!" in result.output

    def test_validate_errors(self, tmp_path: Path) -> None:
        (tmp_path / ".bundlelens.yml").write_text(
            yaml.dump({"report": {"format": "html"}, "suggestions": {"min_unused_percent": 150}}),
            encoding="utf-8",
        )

        result = _invoke(tmp_path, "config", "validate")

        assert result.exit_code == 1
        assert "Found 2 configuration error(s)" in result.output
        assert "report.format" in result.output

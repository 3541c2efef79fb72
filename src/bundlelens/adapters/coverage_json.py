"""Coverage provider backed by exported coverage JSON files.

Accepts the formats browsers automation tools write out:

- Puppeteer / Playwright CSS: ``[{"url", "text", "ranges": [{"start", "end"}]}]``
- Raw V8 block coverage (Playwright JS): ``[{"url", "source",
  "functions": [{"ranges": [{"startOffset", "endOffset", "count"}]}]}]``
- Either of the above with ``sourceLength`` instead of the source text.

A single file may also hold both types as ``{"js": [...], "css": [...]}``.
"""

from __future__ import annotations

import json
import logging
import re
from typing import TYPE_CHECKING, Any

from bundlelens.adapters.base import CoverageProvider, ProviderError
from bundlelens.models.coverage import CoverageCollection, CoverageRange, CoverageRecord

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

_USED_RUN_RE = re.compile(rb"\x01+")


# ── Parsing ──────────────────────────────────────────────────────


def _source_length(raw: dict[str, Any]) -> int:
    length = raw.get("sourceLength")
    if isinstance(length, int) and length >= 0:
        return length
    for key in ("text", "source"):
        text = raw.get(key)
        if isinstance(text, str):
            return len(text)
    return 0


def _normalize_ranges(pairs: list[tuple[int, int]], length: int) -> list[CoverageRange]:
    """Clamp to ``[0, length]``, drop empty intervals and merge overlaps."""
    clamped = sorted(
        (max(0, start), min(length, end))
        for start, end in pairs
        if min(length, end) > max(0, start)
    )
    merged: list[list[int]] = []
    for start, end in clamped:
        if merged and start <= merged[-1][1]:
            merged[-1][1] = max(merged[-1][1], end)
        else:
            merged.append([start, end])
    return [CoverageRange(start, end) for start, end in merged]


def _v8_used_ranges(functions: list[Any], length: int) -> list[tuple[int, int]]:
    """Flatten V8 block coverage into executed byte ranges.

    Block ranges nest; an inner range's count overrides its enclosing range,
    so ranges are painted outermost first.
    """
    blocks: list[tuple[int, int, int]] = []
    for func in functions:
        if not isinstance(func, dict):
            continue
        for rng in func.get("ranges", []):
            if not isinstance(rng, dict):
                continue
            try:
                start = int(rng["startOffset"])
                end = int(rng["endOffset"])
                count = int(rng.get("count", 0))
            except (KeyError, TypeError, ValueError):
                continue
            start, end = max(0, start), min(length, end)
            if end > start:
                blocks.append((start, end, count))

    mask = bytearray(length)
    for start, end, count in sorted(blocks, key=lambda b: (b[0], -b[1])):
        mask[start:end] = (b"\x01" if count > 0 else b"\x00") * (end - start)
    return [(m.start(), m.end()) for m in _USED_RUN_RE.finditer(mask)]


def parse_coverage_entry(raw: dict[str, Any]) -> CoverageRecord | None:
    """Convert one exported coverage entry into a :class:`CoverageRecord`.

    Returns None for entries without a URL.  Malformed ranges are skipped.
    """
    url = raw.get("url")
    if not isinstance(url, str) or not url:
        return None

    length = _source_length(raw)

    if "functions" in raw:
        pairs = _v8_used_ranges(raw.get("functions") or [], length)
    else:
        pairs = []
        for rng in raw.get("ranges") or []:
            if not isinstance(rng, dict):
                continue
            try:
                pairs.append((int(rng["start"]), int(rng["end"])))
            except (KeyError, TypeError, ValueError):
                logger.debug("Skipping malformed range %r in %s", rng, url)

    return CoverageRecord(url=url, source_length=length, ranges=_normalize_ranges(pairs, length))


def parse_coverage_entries(data: Any) -> list[CoverageRecord]:
    """Parse a JSON list of coverage entries, keeping discovery order."""
    if not isinstance(data, list):
        raise ProviderError("Coverage data must be a JSON list of entries")
    records: list[CoverageRecord] = []
    for raw in data:
        if not isinstance(raw, dict):
            continue
        record = parse_coverage_entry(raw)
        if record is not None:
            records.append(record)
    return records


def _load_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ProviderError(f"Cannot read coverage file {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ProviderError(f"Invalid JSON in coverage file {path}: {exc}") from exc


# ── Provider ─────────────────────────────────────────────────────


class CoverageJsonProvider(CoverageProvider):
    """Replays coverage previously exported to JSON.

    ``begin`` checks that the files exist; ``end`` parses them for the types
    that were started.  When *css_path* is omitted, *js_path* may contain a
    combined ``{"js": [...], "css": [...]}`` document.
    """

    def __init__(self, js_path: Path, *, page_url: str, css_path: Path | None = None) -> None:
        self._js_path = js_path
        self._css_path = css_path
        self._page_url = page_url
        self._include_js = False
        self._include_css = False

    @property
    def name(self) -> str:
        return "coverage-json"

    @property
    def page_url(self) -> str:
        return self._page_url

    async def begin(
        self,
        *,
        reset_on_navigation: bool,
        include_js: bool,
        include_css: bool,
    ) -> None:
        for path in (self._js_path, self._css_path):
            if path is not None and not path.is_file():
                raise ProviderError(f"Coverage file not found: {path}")
        self._include_js = include_js
        self._include_css = include_css
        logger.info(
            "Replaying coverage from %s (js=%s, css=%s, reset_on_navigation=%s)",
            self._js_path,
            include_js,
            include_css,
            reset_on_navigation,
        )

    async def end(self) -> CoverageCollection:
        primary = _load_json(self._js_path)
        collection = CoverageCollection()

        if isinstance(primary, dict):
            if self._include_js:
                collection.js = parse_coverage_entries(primary.get("js", []))
            if self._include_css and self._css_path is None:
                collection.css = parse_coverage_entries(primary.get("css", []))
        elif self._include_js:
            collection.js = parse_coverage_entries(primary)

        if self._include_css and self._css_path is not None:
            collection.css = parse_coverage_entries(_load_json(self._css_path))

        logger.info(
            "Loaded %d JS and %d CSS coverage entries", len(collection.js), len(collection.css)
        )
        return collection

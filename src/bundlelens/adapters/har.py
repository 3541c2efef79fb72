"""Network provider backed by a HAR (HTTP Archive 1.2) file.

Chrome DevTools exports tag each entry with ``_resourceType``; other tools
only provide the response MIME type, from which the resource type is
inferred.  A request's end time is when its response headers arrived:
``startedDateTime`` plus the blocked, dns, connect, send and wait phases.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any

from bundlelens.adapters.base import NetworkProvider, ProviderError
from bundlelens.models.network import NetworkTimingRecord

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

# Phases completed by the time response headers are received.
_HEADER_PHASES = ("blocked", "dns", "connect", "send", "wait")

_MIME_RESOURCE_TYPES = (
    ("javascript", "script"),
    ("ecmascript", "script"),
    ("text/css", "stylesheet"),
    ("text/html", "document"),
    ("image/", "image"),
    ("font/", "font"),
    ("application/json", "fetch"),
)


def _infer_resource_type(entry: dict[str, Any]) -> str:
    declared = entry.get("_resourceType")
    if isinstance(declared, str) and declared:
        return declared.lower()
    content = (entry.get("response") or {}).get("content") or {}
    mime = str(content.get("mimeType", "")).lower()
    for needle, resource_type in _MIME_RESOURCE_TYPES:
        if needle in mime:
            return resource_type
    return "other"


def _header(headers: list[Any], name: str) -> str | None:
    wanted = name.lower()
    for header in headers:
        if isinstance(header, dict) and str(header.get("name", "")).lower() == wanted:
            return str(header.get("value", ""))
    return None


def _content_length(response: dict[str, Any]) -> int:
    value = _header(response.get("headers") or [], "content-length")
    if value is None:
        return 0
    try:
        return max(0, int(value.strip()))
    except ValueError:
        return 0


def _timing(entry: dict[str, Any]) -> tuple[float, float] | None:
    """Return ``(start_ms, end_ms)`` or None when the request never got a response."""
    response = entry.get("response")
    if not isinstance(response, dict) or not response.get("status"):
        return None
    timings = entry.get("timings")
    started = entry.get("startedDateTime")
    if not isinstance(timings, dict) or not isinstance(started, str):
        return None
    try:
        start_ms = datetime.fromisoformat(started).timestamp() * 1000
    except ValueError:
        return None

    elapsed = 0.0
    for phase in _HEADER_PHASES:
        value = timings.get(phase, -1)
        if isinstance(value, int | float) and value > 0:
            elapsed += float(value)
    return start_ms, start_ms + elapsed


def parse_har_entry(entry: dict[str, Any]) -> NetworkTimingRecord | None:
    """Convert one HAR entry into a :class:`NetworkTimingRecord`."""
    request = entry.get("request")
    if not isinstance(request, dict) or not request.get("url"):
        return None

    timing = _timing(entry)
    response = entry.get("response") if isinstance(entry.get("response"), dict) else {}
    return NetworkTimingRecord(
        url=str(request["url"]),
        resource_type=_infer_resource_type(entry),
        start_time_ms=timing[0] if timing else None,
        end_time_ms=timing[1] if timing else None,
        size_bytes=_content_length(response) if timing else 0,
    )


def parse_har(data: Any, *, include_all: bool = True) -> list[NetworkTimingRecord]:
    """Parse a HAR document into timing records, in archive order.

    With ``include_all=False`` only entries belonging to the last recorded
    page (the current navigation) are returned.
    """
    log = data.get("log") if isinstance(data, dict) else None
    if not isinstance(log, dict):
        raise ProviderError("HAR document has no 'log' object")

    entries = [e for e in log.get("entries") or [] if isinstance(e, dict)]
    if not include_all:
        pages = [p for p in log.get("pages") or [] if isinstance(p, dict)]
        if pages:
            current = pages[-1].get("id")
            entries = [e for e in entries if e.get("pageref") == current]

    records: list[NetworkTimingRecord] = []
    for entry in entries:
        record = parse_har_entry(entry)
        if record is not None:
            records.append(record)
    return records


class HarNetworkProvider(NetworkProvider):
    """Serves requests recorded in a HAR file."""

    def __init__(self, har_path: Path) -> None:
        self._har_path = har_path

    @property
    def name(self) -> str:
        return "har"

    async def current_requests(self, *, include_all: bool = True) -> list[NetworkTimingRecord]:
        try:
            data = json.loads(self._har_path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise ProviderError(f"Cannot read HAR file {self._har_path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise ProviderError(f"Invalid JSON in HAR file {self._har_path}: {exc}") from exc

        records = parse_har(data, include_all=include_all)
        logger.info("Loaded %d requests from %s", len(records), self._har_path)
        return records

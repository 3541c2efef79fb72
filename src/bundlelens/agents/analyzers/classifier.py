"""Coverage classifier — byte metrics and first/third-party origin for one resource.

Origin is decided by comparing scheme, host and effective port with the page
URL; ``file:`` URLs without a host all share one origin.  Same-origin files
still count as third-party when their path follows a vendor-bundle naming
convention.  That is a heuristic: unconventionally named vendor bundles are
missed, and first-party files under e.g. ``/lib/`` are flagged.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from urllib.parse import urlsplit

from bundlelens.models.coverage import CoverageEntry

if TYPE_CHECKING:
    from collections.abc import Sequence

    from bundlelens.models.coverage import CoverageRecord

DEFAULT_VENDOR_PATTERNS: tuple[str, ...] = (
    "/vendor",
    "/vendors",
    "/node_modules",
    "/npm",
    "/lib/",
    "/libraries",
    "/deps",
    "/dependencies",
    "vendor.",
    "vendors.",
    "vendor-",
    "vendors-",
    ".vendor.",
    ".vendors.",
    "chunk.vendors",
    "chunk.libs",
)

_INLINE_SCHEMES = ("data:", "blob:")
_DEFAULT_PORTS = {"http": 80, "https": 443, "ws": 80, "wss": 443}
# Local files share one opaque origin, so vendor patterns still apply to them.
_HOSTLESS_SCHEMES = ("file",)


def parse_origin(url: str) -> tuple[str, str, int | None] | None:
    """Return ``(scheme, host, port)`` for *url*, or None if it does not parse."""
    try:
        parts = urlsplit(url)
        port = parts.port
    except ValueError:
        return None
    scheme = parts.scheme.lower()
    if scheme in _HOSTLESS_SCHEMES and not parts.hostname:
        return scheme, "", None
    if not scheme or not parts.hostname:
        return None
    return scheme, parts.hostname.lower(), port if port is not None else _DEFAULT_PORTS.get(scheme)


def is_third_party(
    url: str,
    page_url: str,
    vendor_patterns: Sequence[str] = DEFAULT_VENDOR_PATTERNS,
) -> bool:
    """Return True when *url* is served from another origin or looks like a vendor bundle.

    Never raises: inline (``data:``/``blob:``) and unparseable URLs are internal.
    """
    if url.startswith(_INLINE_SCHEMES):
        return False

    origin = parse_origin(url)
    page_origin = parse_origin(page_url)
    if origin is None or page_origin is None:
        return False

    if origin != page_origin:
        return True

    path = urlsplit(url).path.lower()
    return any(pattern in path for pattern in vendor_patterns)


def classify(
    record: CoverageRecord,
    page_url: str,
    *,
    vendor_patterns: Sequence[str] = DEFAULT_VENDOR_PATTERNS,
) -> CoverageEntry:
    """Compute usage statistics for one coverage record."""
    total_bytes = record.source_length
    used_bytes = sum(rng.end - rng.start for rng in record.ranges)
    usage_percent = (used_bytes / total_bytes) * 100 if total_bytes > 0 else 0.0

    return CoverageEntry(
        url=record.url,
        total_bytes=total_bytes,
        used_bytes=used_bytes,
        unused_bytes=total_bytes - used_bytes,
        usage_percent=usage_percent,
        is_external=is_third_party(record.url, page_url, vendor_patterns),
    )

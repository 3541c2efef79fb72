"""Network timing and bundle-chain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

SCRIPT_RESOURCE_TYPE = "script"


@dataclass(frozen=True)
class NetworkTimingRecord:
    """One network request as seen by the network provider.

    Timing is absent for requests that never produced a response; such records
    are valid input and are skipped by chain detection.
    """

    url: str
    resource_type: str
    start_time_ms: float | None = None
    end_time_ms: float | None = None
    size_bytes: int = 0

    @property
    def has_timing(self) -> bool:
        return self.start_time_ms is not None and self.end_time_ms is not None

    @property
    def is_script(self) -> bool:
        return self.resource_type == SCRIPT_RESOURCE_TYPE


@dataclass
class BundleChainNode:
    """A script inside a loading chain. Chains are linear: at most one child."""

    url: str
    size_bytes: int
    start_time_ms: float
    end_time_ms: float
    children: list[BundleChainNode] = field(default_factory=list)

    @property
    def load_time_ms(self) -> float:
        return self.end_time_ms - self.start_time_ms


@dataclass
class BundleChain:
    """A sequence of scripts where each starts right after the previous ends."""

    depth: int
    total_time_ms: float
    urls: list[str]
    root: BundleChainNode

    def nodes(self) -> Iterator[BundleChainNode]:
        """Iterate the chain from head to tail."""
        node: BundleChainNode | None = self.root
        while node is not None:
            yield node
            node = node.children[0] if node.children else None

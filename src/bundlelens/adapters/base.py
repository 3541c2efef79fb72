"""Collaborator contracts for the instrumentation sources.

The analysis engine never talks to a browser.  It consumes finished data from
a coverage provider (per-resource executed ranges) and a network provider
(per-request timing).  Concrete providers translate their native formats into
the models in :mod:`bundlelens.models`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from bundlelens.models.coverage import CoverageCollection
    from bundlelens.models.network import NetworkTimingRecord


class ProviderError(Exception):
    """Raised when a provider cannot start, stop, or read its data source."""


class CoverageProvider(ABC):
    """Starts and stops byte-range usage tracking for JS and CSS."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider identifier (e.g. 'coverage-json')."""

    @property
    @abstractmethod
    def page_url(self) -> str:
        """URL of the page being tracked; used for origin classification."""

    @abstractmethod
    async def begin(
        self,
        *,
        reset_on_navigation: bool,
        include_js: bool,
        include_css: bool,
    ) -> None:
        """Start tracking the requested resource types.

        Raises:
            ProviderError: If tracking could not be started.
        """

    @abstractmethod
    async def end(self) -> CoverageCollection:
        """Stop tracking and return records for every type that was started.

        Raises:
            ProviderError: If tracking could not be stopped or read.
        """


class NetworkProvider(ABC):
    """Returns the network requests observed for the current page."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider identifier (e.g. 'har')."""

    @abstractmethod
    async def current_requests(self, *, include_all: bool = True) -> list[NetworkTimingRecord]:
        """Return requests in observation order.

        Args:
            include_all: Also return requests from earlier navigations.

        Raises:
            ProviderError: If the request log could not be read.
        """

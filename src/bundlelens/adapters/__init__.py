"""Coverage and network providers."""

from bundlelens.adapters.base import CoverageProvider, NetworkProvider, ProviderError
from bundlelens.adapters.coverage_json import CoverageJsonProvider
from bundlelens.adapters.har import HarNetworkProvider

__all__ = [
    "CoverageJsonProvider",
    "CoverageProvider",
    "HarNetworkProvider",
    "NetworkProvider",
    "ProviderError",
]

"""Abstract base class for business discovery providers."""

from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional

from prospector.services.prospecting.models import DiscoveredBusiness, SearchParams

# Receives the provider's own completion percentage (0-100)
ProgressCallback = Callable[[int], Awaitable[None]]


class DiscoveryProvider(ABC):
    """Base class for business discovery providers.

    Implementations: AnthropicDiscoveryProvider, SerperMapsProvider.
    """

    name: str = "unknown"

    @abstractmethod
    async def discover(
        self,
        params: SearchParams,
        on_progress: Optional[ProgressCallback] = None,
    ) -> list[DiscoveredBusiness]:
        """Find businesses matching the search parameters.

        May return an empty list. Raises ``ProviderError`` when the lookup
        fails or its response cannot be parsed.
        """
        ...

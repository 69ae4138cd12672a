"""Provider capability used by the sync controller."""

from abc import ABC, abstractmethod
from typing import Callable, Optional

from ledgersync.domain.entities import Linkage, ProviderBalance, ProviderPage


class SyncProvider(ABC):
    """One linkage's view of an aggregation provider.

    Implementations raise ProviderError for any failure talking to the
    provider, including timeouts.
    """

    @abstractmethod
    def fetch_page(self, cursor: Optional[str]) -> ProviderPage:
        """Fetch the page of changes after ``cursor`` (None for the first sync)."""
        pass

    def fetch_balances(self) -> list[ProviderBalance]:
        """Current balances for the linkage's accounts, when the provider reports them."""
        return []


ProviderFactory = Callable[[Linkage], SyncProvider]

"""Aggregation provider adapters."""

from ledgersync.providers.base import ProviderFactory, SyncProvider

__all__ = ["ProviderFactory", "SyncProvider"]

"""Test fixtures for in-memory implementations."""

from .fake_nodes import FakeChainClient, FakeClock, FakeLightningClient, LinkingWallet
from .in_memory_repositories import InMemoryRepositories
from .in_memory_storage import InMemoryKeyValueStore

__all__ = [
    "FakeChainClient",
    "FakeClock",
    "FakeLightningClient",
    "InMemoryKeyValueStore",
    "InMemoryRepositories",
    "LinkingWallet",
]

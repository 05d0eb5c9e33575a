from .base import BaseClient
from .ledger import LedgerClient
from .resources import ResourceClient, SnapshotClient

__all__ = [
    "BaseClient",
    "LedgerClient",
    "ResourceClient",
    "SnapshotClient",
]

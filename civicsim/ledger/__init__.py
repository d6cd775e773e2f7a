"""Ledger access: backends, the queued-write adapter and store schemas."""

from civicsim.ledger.adapter import LedgerAdapter
from civicsim.ledger.backends import InMemoryBackend, JsonDirectoryBackend, LedgerBackend

__all__ = [
    "InMemoryBackend",
    "JsonDirectoryBackend",
    "LedgerAdapter",
    "LedgerBackend",
]

"""
Persistence for htlc-bridge: JSON-file document collections.
"""

from .documents import DocumentCollection
from .records import TransactionStore, NetworkRegistry

__all__ = ["DocumentCollection", "TransactionStore", "NetworkRegistry"]

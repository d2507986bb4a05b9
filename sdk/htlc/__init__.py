"""
HTLC (Hash Time-Locked Contract) operations.

HTLCs enable trustless swaps by ensuring:
1. Funds can only be withdrawn with knowledge of a secret (preimage)
2. Funds can be refunded after a timeout if not withdrawn

Both supported chains (Polygon Amoy, BNB testnet) run the same
HashedTimelock Solidity contract.
"""

from .evm import create_lock, withdraw, refund, query_lock_events, lock_events, get_lock
from .sequencer import SenderSequencer

__all__ = [
    "create_lock",
    "withdraw",
    "refund",
    "query_lock_events",
    "lock_events",
    "get_lock",
    "SenderSequencer",
]

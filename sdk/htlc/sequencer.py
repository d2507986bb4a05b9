"""
Per-sender submission ordering.

A nonce is read from the node and then used in a signed transaction. Two
submissions from the same account that interleave between those steps read
the same nonce and one of them is dropped by the node. The sequencer holds a
lock per (chain id, sender) from the nonce read until the node has accepted
the raw transaction, so submissions from one account in this process are
strictly ordered. Submissions from other processes are not covered.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Dict, Tuple

log = logging.getLogger(__name__)


class SenderSequencer:
    """Serializes nonce use per (chain_id, sender)."""

    def __init__(self):
        self._locks: Dict[Tuple[str, str], asyncio.Lock] = {}
        # Holders plus waiters per key; the lock is dropped at zero
        self._users: Dict[Tuple[str, str], int] = {}

    @property
    def tracked(self) -> int:
        """Number of (chain, sender) keys with a holder or waiter."""
        return len(self._locks)

    def is_busy(self, chain_id: str, sender: str) -> bool:
        lock = self._locks.get((str(chain_id), sender.lower()))
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def slot(self, chain_id: str, sender: str):
        key = (str(chain_id), sender.lower())
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._users[key] = self._users.get(key, 0) + 1
        try:
            if lock.locked():
                log.info(f"Waiting for pending submission from {sender[:10]}... on chain {chain_id}")
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]


_default_sequencer = SenderSequencer()


def get_sequencer() -> SenderSequencer:
    return _default_sequencer

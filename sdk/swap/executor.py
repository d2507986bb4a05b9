"""
Lock lifecycle orchestration for htlc-bridge.

A cross-chain swap runs two locks under one hashlock:
1. Party A locks coins on chain X for B (create_lock, secret known to A)
2. B looks up A's lock event and locks coins on chain Y for A, same hashlock
3. A withdraws on chain Y, revealing the secret on-chain
4. B withdraws on chain X with the revealed secret
Either side refunds after its timelock if the other never acts.

The executor sequences each step's chain calls and records submitted locks.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from ..core import NO_EVENT, LockRequest
from ..htlc import evm as htlc
from ..htlc.sequencer import SenderSequencer, get_sequencer
from ..store import TransactionStore

log = logging.getLogger(__name__)


class LockExecutor:
    """Runs HTLC steps and keeps the transaction history."""

    def __init__(self, transactions: TransactionStore, sequencer: Optional[SenderSequencer] = None):
        self.transactions = transactions
        self.sequencer = sequencer or get_sequencer()

    async def open_lock(self, request: LockRequest, owner_email: str) -> Dict[str, Any]:
        """
        Create a lock, record it, and return its LogHTLCNew event.

        The event is the one emitted by this transaction; other locks created
        in the same block are ignored. NO_EVENT if none matches.
        """
        receipt = await htlc.create_lock(
            request.sender, request.receiver, request.passphrase, request.timeout,
            request.private_key, request.chain_id, request.amount,
            sequencer=self.sequencer,
        )
        # File write off the event loop
        await asyncio.get_running_loop().run_in_executor(
            None, self.transactions.save_transaction, owner_email, request.chain_id, receipt,
        )

        block = receipt["blockNumber"]
        tx_hash = str(receipt["transactionHash"]).lower()
        for event in await htlc.lock_events(request.chain_id, block, block):
            if str(event["transactionHash"]).lower() == tx_hash:
                return event
        log.warning(f"No LogHTLCNew from {tx_hash} in block {block} on chain {request.chain_id}")
        return dict(NO_EVENT)

    async def withdraw(self, contract_id: str, secret: str, sender: str,
                       private_key: str, chain_id: str) -> Dict[str, Any]:
        return await htlc.withdraw(contract_id, secret, sender, private_key, chain_id,
                                   sequencer=self.sequencer)

    async def refund(self, contract_id: str, sender: str, private_key: str,
                     chain_id: str) -> Dict[str, Any]:
        """Refund a lock and return the chain's latest lock event."""
        await htlc.refund(contract_id, sender, private_key, chain_id, sequencer=self.sequencer)
        return await htlc.query_lock_events(chain_id)

    async def lock_event_at(self, chain_id: str, block) -> Dict[str, Any]:
        return await htlc.query_lock_events(chain_id, block, block)

    async def lock_state(self, chain_id: str, contract_id: str, sender: Optional[str] = None) -> Dict[str, Any]:
        return await htlc.get_lock(chain_id, contract_id, sender)

    def history(self, email: str):
        return self.transactions.find_transactions(email)

#!/usr/bin/env python3
"""
Lock lifecycle tests: event correlation and transaction recording.
"""

import os
import sys
import tempfile
import threading
import unittest
from unittest.mock import patch

sys.path.insert(0, os.path.dirname(__file__))

from chain_fakes import FakeEth, make_context, make_log, SENDER, SENDER_KEY, RECEIVER, LOCK_ID  # noqa: E402

from sdk.config import Settings, reset_settings  # noqa: E402
from sdk.core import LockRequest  # noqa: E402
from sdk.htlc.sequencer import SenderSequencer  # noqa: E402
from sdk.store import DocumentCollection, TransactionStore  # noqa: E402
from sdk.swap.executor import LockExecutor  # noqa: E402

BLOCK = 500
OTHER_LOCK_ID = "0x" + "cd" * 32
OTHER_TX = b"\x99" * 32


class TestOpenLock(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        reset_settings(Settings(rpc_timeout=2.0, receipt_timeout=2.0))
        self.addCleanup(reset_settings, None)
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)

        self.eth = FakeEth(block_number=BLOCK)
        self.ctx = make_context("80002", eth=self.eth)
        resolve_patch = patch("sdk.htlc.evm.resolve", return_value=self.ctx)
        resolve_patch.start()
        self.addCleanup(resolve_patch.stop)

        self.logs = self.ctx.contract.events.LogHTLCNew.logs
        self.store = TransactionStore(DocumentCollection(os.path.join(self.tmp.name, "tx.json")))
        self.executor = LockExecutor(self.store, sequencer=SenderSequencer())
        self.request = LockRequest(
            sender=SENDER, receiver=RECEIVER, passphrase="secret1", timeout=1_900_000_000,
            private_key=SENDER_KEY, chain_id="80002", amount="0.5",
        )

    def emit_on_send(self, log_index):
        self.eth.on_send = lambda tx_hash: self.logs.append(make_log(BLOCK, log_index, tx_hash=tx_hash))

    async def test_returns_event_of_its_own_transaction(self):
        self.emit_on_send(0)
        self.logs.append(make_log(BLOCK, 5, contract_id=OTHER_LOCK_ID, tx_hash=OTHER_TX))

        event = await self.executor.open_lock(self.request, "alice@example.com")

        self.assertEqual(event["logIndex"], 0)
        self.assertEqual(event["args"]["contractId"], LOCK_ID)
        receipt = self.store.find_transactions("alice@example.com")[0]["transaction"]
        self.assertEqual(event["transactionHash"], receipt["transactionHash"])

    async def test_later_position_in_block(self):
        self.logs.append(make_log(BLOCK, 0, contract_id=OTHER_LOCK_ID, tx_hash=OTHER_TX))
        self.emit_on_send(7)

        event = await self.executor.open_lock(self.request, "alice@example.com")

        self.assertEqual(event["logIndex"], 7)

    async def test_no_matching_event(self):
        self.logs.append(make_log(BLOCK, 0, contract_id=OTHER_LOCK_ID, tx_hash=OTHER_TX))
        event = await self.executor.open_lock(self.request, "alice@example.com")
        self.assertEqual(event, {"msg": "no log found"})

    async def test_record_written_off_event_loop(self):
        threads = []
        save = self.store.save_transaction

        def recording_save(*args):
            threads.append(threading.get_ident())
            return save(*args)

        self.store.save_transaction = recording_save
        await self.executor.open_lock(self.request, "alice@example.com")

        self.assertEqual(len(threads), 1)
        self.assertNotEqual(threads[0], threading.get_ident())
        self.assertEqual(len(self.store.find_transactions("alice@example.com")), 1)


if __name__ == "__main__":
    unittest.main()

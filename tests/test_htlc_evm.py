#!/usr/bin/env python3
"""
HTLC operation tests against an in-memory chain.

Covers the submission envelope (gas limits, value, nonce source), revert
handling, and lock-event queries.
"""

import random
import unittest
from unittest.mock import patch

from chain_fakes import (
    FakeEth, make_context, make_log,
    SENDER, SENDER_KEY, RECEIVER, RECEIVER_KEY, LOCK_ID, GAS_PRICE,
)
from web3.exceptions import ContractLogicError

from sdk.config import Settings, reset_settings
from sdk.core import NO_EVENT, hash_passphrase
from sdk.errors import ChainRevertError, InvalidParameterError, UnsupportedChainError
from sdk.htlc import evm
from sdk.htlc.sequencer import SenderSequencer


class HTLCTestCase(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        reset_settings(Settings(rpc_timeout=2.0, receipt_timeout=2.0))
        self.eth = FakeEth()
        self.ctx = make_context("80002", eth=self.eth)
        resolve_patch = patch("sdk.htlc.evm.resolve", return_value=self.ctx)
        self.resolve = resolve_patch.start()
        self.addCleanup(resolve_patch.stop)
        sign_patch = patch("sdk.htlc.evm.sign_transaction", wraps=evm.sign_transaction)
        self.sign = sign_patch.start()
        self.addCleanup(sign_patch.stop)

    def tearDown(self):
        reset_settings(None)

    def envelope(self):
        self.assertEqual(self.sign.call_count, 1)
        return self.sign.call_args[0][0]


class TestCreateLock(HTLCTestCase):

    async def test_one_coin_is_converted_to_base_units(self):
        await evm.create_lock(SENDER, RECEIVER, "secret1", 1_900_000_000, SENDER_KEY, "80002", "1")
        self.assertEqual(self.envelope()["value"], 10**18)

    async def test_half_coin(self):
        await evm.create_lock(SENDER, RECEIVER, "secret1", 1_900_000_000, SENDER_KEY, "80002", "0.5")
        self.assertEqual(self.envelope()["value"], 5 * 10**17)

    async def test_envelope_fields(self):
        await evm.create_lock(SENDER, RECEIVER, "secret1", 1_900_000_000, SENDER_KEY, "80002", "1")
        tx = self.envelope()
        self.assertEqual(tx["gas"], 1_000_000)
        self.assertEqual(tx["gasPrice"], GAS_PRICE)
        self.assertEqual(tx["nonce"], 7)
        self.assertEqual(tx["from"], SENDER)
        self.assertEqual(tx["to"], self.ctx.contract_address)
        self.assertEqual(tx["chainId"], 80002)
        self.assertEqual(self.eth.nonce_requests, [(SENDER, "pending")])

    async def test_hashlock_is_encoded_not_plaintext(self):
        await evm.create_lock(SENDER, RECEIVER, "secret1", 1_900_000_000, SENDER_KEY, "80002", "1")
        data = self.envelope()["data"].lower()
        self.assertIn(hash_passphrase("secret1").hex(), data)
        self.assertNotIn(b"secret1".hex(), data)

    async def test_returns_receipt(self):
        receipt = await evm.create_lock(SENDER, RECEIVER, "secret1", 1_900_000_000, SENDER_KEY, "80002", "1")
        self.assertEqual(receipt["blockNumber"], 4242)
        self.assertEqual(receipt["status"], 1)
        self.assertTrue(receipt["transactionHash"].startswith("0x"))
        self.assertEqual(len(self.eth.sent), 1)

    async def test_invalid_amount_rejected_before_send(self):
        for amount in ("0", "-1", "abc"):
            with self.assertRaises(InvalidParameterError):
                await evm.create_lock(SENDER, RECEIVER, "secret1", 1_900_000_000, SENDER_KEY, "80002", amount)
        self.assertEqual(self.eth.sent, [])

    async def test_key_must_match_sender(self):
        with self.assertRaises(InvalidParameterError):
            await evm.create_lock(SENDER, RECEIVER, "secret1", 1_900_000_000, RECEIVER_KEY, "80002", "1")
        self.assertEqual(self.eth.nonce_requests, [])

    async def test_unsupported_chain(self):
        self.resolve.side_effect = UnsupportedChainError("1")
        with self.assertRaises(UnsupportedChainError):
            await evm.create_lock(SENDER, RECEIVER, "secret1", 1_900_000_000, SENDER_KEY, "1", "1")


class TestGasLimits(HTLCTestCase):

    async def test_withdraw_gas(self):
        await evm.withdraw(LOCK_ID, "secret1", SENDER, SENDER_KEY, "80002")
        tx = self.envelope()
        self.assertEqual(tx["gas"], 150_000)
        self.assertNotIn("value", tx)

    async def test_refund_gas(self):
        await evm.refund(LOCK_ID, SENDER, SENDER_KEY, "80002")
        tx = self.envelope()
        self.assertEqual(tx["gas"], 1_000_000)
        self.assertNotIn("value", tx)

    async def test_get_lock_gas(self):
        self.ctx.contract.lock_result = (
            SENDER, RECEIVER, 10**18, b"\x11" * 32, 1_900_000_000, False, False, b"",
        )
        record = await evm.get_lock("80002", LOCK_ID, SENDER)
        (args, opts), = self.ctx.contract.calls
        self.assertEqual(opts["gas"], 1_000_000)
        self.assertEqual(opts["from"], SENDER)
        self.assertEqual(args[0], bytes.fromhex(LOCK_ID[2:]))
        self.assertEqual(record["status"], "active")
        self.assertEqual(record["amount"], 10**18)

    async def test_withdraw_rejects_bad_contract_id(self):
        with self.assertRaises(InvalidParameterError):
            await evm.withdraw("0x1234", "secret1", SENDER, SENDER_KEY, "80002")
        self.assertEqual(self.eth.sent, [])


class TestReverts(HTLCTestCase):

    async def test_failed_receipt_raises_revert(self):
        self.eth.status = 0
        with self.assertRaises(ChainRevertError) as ctx:
            await evm.refund(LOCK_ID, SENDER, SENDER_KEY, "80002")
        self.assertIn("transactionHash", ctx.exception.details)

    async def test_contract_logic_error_is_revert(self):
        self.eth.send_error = ContractLogicError("execution reverted: refundable: timelock not yet passed")
        with self.assertRaises(ChainRevertError):
            await evm.refund(LOCK_ID, SENDER, SENDER_KEY, "80002")

    async def test_other_errors_propagate(self):
        self.eth.send_error = KeyError("boom")
        with self.assertRaises(KeyError):
            await evm.refund(LOCK_ID, SENDER, SENDER_KEY, "80002")


class TestQueryLockEvents(HTLCTestCase):

    async def test_empty_range_returns_marker(self):
        result = await evm.query_lock_events("80002", 100, 200)
        self.assertEqual(result, NO_EVENT)

    async def test_marker_is_a_copy(self):
        result = await evm.query_lock_events("80002", 100, 200)
        result["msg"] = "changed"
        self.assertEqual(NO_EVENT, {"msg": "no log found"})

    async def test_inverted_range_skips_rpc(self):
        result = await evm.query_lock_events("80002", 10, 5)
        self.assertEqual(result, NO_EVENT)
        self.assertEqual(self.ctx.contract.events.LogHTLCNew.queries, [])

    async def test_returns_last_in_block_order(self):
        logs = [make_log(b, i) for b in (10, 11, 12) for i in (0, 1)]
        random.Random(3).shuffle(logs)
        self.ctx.contract.events.LogHTLCNew.logs = logs
        result = await evm.query_lock_events("80002")
        self.assertEqual(result["blockNumber"], 12)
        self.assertEqual(result["logIndex"], 1)
        self.assertEqual(result["args"]["contractId"], LOCK_ID)

    async def test_range_is_passed_through(self):
        await evm.query_lock_events("80002", "15", "latest")
        self.assertEqual(self.ctx.contract.events.LogHTLCNew.queries, [(15, "latest")])

    async def test_bad_block_rejected(self):
        with self.assertRaises(InvalidParameterError):
            await evm.query_lock_events("80002", "yesterday", "latest")

    async def test_hex_block_numbers(self):
        self.ctx.contract.events.LogHTLCNew.logs = [make_log(500, 0), make_log(501, 0)]
        result = await evm.query_lock_events("80002", "0x1f4", "0x1F4")
        self.assertEqual(result["blockNumber"], 500)
        self.assertEqual(self.ctx.contract.events.LogHTLCNew.queries, [(500, 500)])

    async def test_malformed_hex_rejected(self):
        for block in ("0x", "0xzz", "-0x1", -1):
            with self.assertRaises(InvalidParameterError, msg=block):
                await evm.query_lock_events("80002", block, "latest")

    async def test_lock_events_lists_range_in_order(self):
        self.ctx.contract.events.LogHTLCNew.logs = [make_log(9, 2), make_log(8, 0), make_log(9, 1), make_log(20, 0)]
        events = await evm.lock_events("80002", 8, 9)
        self.assertEqual([(e["blockNumber"], e["logIndex"]) for e in events], [(8, 0), (9, 1), (9, 2)])
        self.assertEqual(await evm.lock_events("80002", 9, 8), [])


class TestEndToEnd(HTLCTestCase):

    async def test_lock_then_find_its_event(self):
        receipt = await evm.create_lock(SENDER, RECEIVER, "secret1", 1_900_000_000, SENDER_KEY, "80002", "0.5")
        tx_hash = bytes.fromhex(receipt["transactionHash"][2:])
        self.ctx.contract.events.LogHTLCNew.logs = [
            make_log(receipt["blockNumber"] - 1, 0),
            make_log(receipt["blockNumber"], 3, tx_hash=tx_hash),
        ]

        event = await evm.query_lock_events("80002", receipt["blockNumber"], receipt["blockNumber"])

        self.assertEqual(event["transactionHash"], receipt["transactionHash"])
        self.assertEqual(event["blockNumber"], receipt["blockNumber"])


class TestSequencedSubmissions(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        reset_settings(Settings(rpc_timeout=2.0, receipt_timeout=2.0))

    def tearDown(self):
        reset_settings(None)

    async def test_same_sender_gets_distinct_nonces(self):
        import asyncio

        eth = FakeEth(delay=0.01)
        ctx = make_context("80002", eth=eth)
        sequencer = SenderSequencer()
        with patch("sdk.htlc.evm.resolve", return_value=ctx), \
                patch("sdk.htlc.evm.sign_transaction", wraps=evm.sign_transaction) as sign:
            await asyncio.gather(
                evm.refund(LOCK_ID, SENDER, SENDER_KEY, "80002", sequencer=sequencer),
                evm.refund(LOCK_ID, SENDER, SENDER_KEY, "80002", sequencer=sequencer),
            )
        nonces = sorted(call[0][0]["nonce"] for call in sign.call_args_list)
        self.assertEqual(nonces, [7, 8])


if __name__ == "__main__":
    unittest.main()

"""
EVM HTLC operations for htlc-bridge.

Interacts with the native-coin HashedTimelock contract deployed on each
supported chain (see contracts/HashedTimelock.sol).

Every state-changing call follows the same path: resolve the chain, read
nonce and gas price, encode the method call, sign the envelope locally and
wait for the receipt.
"""

import logging
from typing import Any, Dict, List, Optional, Union

from eth_account import Account

from ..config import get_settings
from ..core import (
    GAS_LIMIT_CREATE, GAS_LIMIT_WITHDRAW, GAS_LIMIT_REFUND, GAS_LIMIT_GET,
    LOCK_EVENT_NAME, NO_EVENT, LockRecord,
    hash_passphrase, passphrase_bytes, to_address, to_base_units, to_bytes32, to_jsonable,
)
from ..chains.evm import ChainContext, resolve, rpc
from ..errors import ChainRevertError, InvalidParameterError
from .sequencer import SenderSequencer, get_sequencer

log = logging.getLogger(__name__)

BlockId = Union[int, str]
BLOCK_TAGS = ("latest", "earliest", "pending", "safe", "finalized")


def _normalize_key(private_key: str) -> str:
    if not private_key:
        raise InvalidParameterError("Private key is required")
    if not private_key.startswith("0x"):
        private_key = "0x" + private_key
    return private_key


def sign_transaction(tx: Dict[str, Any], private_key: str):
    """Sign an envelope locally."""
    return Account.sign_transaction(tx, private_key)


def build_envelope(
    ctx: ChainContext,
    sender: str,
    data: str,
    gas: int,
    gas_price: int,
    nonce: int,
    value: Optional[int] = None,
) -> Dict[str, Any]:
    """Legacy transaction envelope addressed to the HTLC contract."""
    tx = {
        "from": sender,
        "to": ctx.contract_address,
        "gas": gas,
        "gasPrice": gas_price,
        "data": data,
        "nonce": nonce,
        "chainId": int(ctx.chain_id),
    }
    if value is not None:
        tx["value"] = value
    return tx


async def _submit(
    ctx: ChainContext,
    sender: str,
    private_key: str,
    method: str,
    args: List[Any],
    gas: int,
    value: Optional[int] = None,
    sequencer: Optional[SenderSequencer] = None,
) -> Dict[str, Any]:
    """Encode, sign and send a contract call, then wait for its receipt."""
    settings = get_settings()
    sequencer = sequencer or get_sequencer()

    private_key = _normalize_key(private_key)
    try:
        account = Account.from_key(private_key)
    except (ValueError, TypeError) as e:
        raise InvalidParameterError(f"Invalid private key: {type(e).__name__}")
    if account.address != sender:
        raise InvalidParameterError("Private key does not belong to sender")

    data = ctx.contract.encode_abi(method, args=args)

    async with sequencer.slot(ctx.chain_id, sender):
        nonce = await rpc(ctx.w3.eth.get_transaction_count(sender, "pending"), "get_transaction_count")
        gas_price = await rpc(ctx.w3.eth.gas_price, "gas_price")

        tx = build_envelope(ctx, sender, data, gas, gas_price, nonce, value)
        signed = sign_transaction(tx, private_key)

        tx_hash = await rpc(
            ctx.w3.eth.send_raw_transaction(signed.raw_transaction),
            f"{method} send_raw_transaction",
        )

    tx_hash_hex = "0x" + bytes(tx_hash).hex()
    log.info(f"{method} TX on chain {ctx.chain_id}: {tx_hash_hex} (nonce={nonce})")

    receipt = await rpc(
        ctx.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=settings.receipt_timeout),
        f"{method} receipt",
        timeout=settings.receipt_timeout + settings.rpc_timeout,
    )
    receipt = to_jsonable(receipt)

    if receipt.get("status") == 0:
        log.error(f"{method} reverted: {tx_hash_hex}")
        raise ChainRevertError(
            "Transaction has been reverted by the EVM",
            {"operation": method, "transactionHash": tx_hash_hex, "receipt": receipt},
        )
    return receipt


async def create_lock(
    sender: str,
    receiver: str,
    passphrase: str,
    timeout: int,
    private_key: str,
    chain_id: str,
    amount: Union[str, int, float],
    sequencer: Optional[SenderSequencer] = None,
) -> Dict[str, Any]:
    """
    Lock native coins for a receiver under keccak256(passphrase).

    Args:
        sender: Address that funds the lock (must match private_key)
        receiver: Address that can withdraw with the passphrase
        passphrase: Secret, only its hash goes on-chain
        timeout: Unix timestamp after which the sender can refund
        private_key: Sender's decrypted private key
        chain_id: "80002" or "97"
        amount: Whole coins, converted to base units

    Returns:
        Transaction receipt (JSON)
    """
    ctx = resolve(chain_id)

    sender = to_address(sender, "sender")
    receiver = to_address(receiver, "receiver")
    hashlock = hash_passphrase(passphrase)
    value = to_base_units(amount)
    try:
        timelock = int(timeout)
    except (TypeError, ValueError):
        raise InvalidParameterError(f"Invalid timeout: {timeout!r}")

    log.info(f"Creating lock on chain {ctx.chain_id}: {amount} coins, receiver={receiver[:10]}...")

    return await _submit(
        ctx, sender, private_key, "newContract",
        [receiver, hashlock, timelock],
        GAS_LIMIT_CREATE, value=value, sequencer=sequencer,
    )


async def withdraw(
    contract_id: str,
    secret: str,
    sender: str,
    private_key: str,
    chain_id: str,
    sequencer: Optional[SenderSequencer] = None,
) -> Dict[str, Any]:
    """Withdraw a lock by revealing its secret."""
    ctx = resolve(chain_id)

    sender = to_address(sender, "sender")
    lock_id = to_bytes32(contract_id, "contract_id")
    preimage = passphrase_bytes(secret)

    return await _submit(
        ctx, sender, private_key, "withdraw",
        [lock_id, preimage],
        GAS_LIMIT_WITHDRAW, sequencer=sequencer,
    )


async def refund(
    contract_id: str,
    sender: str,
    private_key: str,
    chain_id: str,
    sequencer: Optional[SenderSequencer] = None,
) -> Dict[str, Any]:
    """Refund an expired lock to its sender."""
    ctx = resolve(chain_id)

    sender = to_address(sender, "sender")
    lock_id = to_bytes32(contract_id, "contract_id")

    return await _submit(
        ctx, sender, private_key, "refund",
        [lock_id],
        GAS_LIMIT_REFUND, sequencer=sequencer,
    )


def _block_id(value: BlockId, name: str) -> BlockId:
    """Block number (decimal or 0x-hex) or a named block tag."""
    if isinstance(value, str) and value in BLOCK_TAGS:
        return value
    try:
        if isinstance(value, str) and value[:2].lower() == "0x":
            number = int(value, 16)
        else:
            number = int(value)
    except (TypeError, ValueError):
        raise InvalidParameterError(f"Invalid {name}: {value!r}")
    if number < 0:
        raise InvalidParameterError(f"Invalid {name}: {value!r}")
    return number


async def lock_events(
    chain_id: str,
    from_block: BlockId = 0,
    to_block: BlockId = "latest",
) -> List[Dict[str, Any]]:
    """All LogHTLCNew events in [from_block, to_block], in block order (JSON)."""
    ctx = resolve(chain_id)
    from_block = _block_id(from_block, "from_block")
    to_block = _block_id(to_block, "to_block")

    if isinstance(from_block, int) and isinstance(to_block, int) and from_block > to_block:
        return []

    event = getattr(ctx.contract.events, LOCK_EVENT_NAME)
    logs = await rpc(event.get_logs(from_block=from_block, to_block=to_block), "get_logs")

    ordered = sorted(logs, key=lambda e: (e["blockNumber"], e["logIndex"]))
    return [to_jsonable(e) for e in ordered]


async def query_lock_events(
    chain_id: str,
    from_block: BlockId = 0,
    to_block: BlockId = "latest",
) -> Dict[str, Any]:
    """
    Most recent LogHTLCNew event in [from_block, to_block].

    Returns NO_EVENT when the range holds none. Events are not filtered by
    contract id.
    """
    events = await lock_events(chain_id, from_block, to_block)
    if not events:
        return dict(NO_EVENT)
    return events[-1]


async def get_lock(chain_id: str, contract_id: str, sender: Optional[str] = None) -> Dict[str, Any]:
    """Read a lock's on-chain state."""
    ctx = resolve(chain_id)
    lock_id = to_bytes32(contract_id, "contract_id")

    call_opts: Dict[str, Any] = {"gas": GAS_LIMIT_GET}
    if sender:
        call_opts["from"] = to_address(sender, "sender")

    result = await rpc(ctx.contract.functions.getContract(lock_id).call(call_opts), "getContract")
    return LockRecord.from_call("0x" + lock_id.hex(), result).to_dict()

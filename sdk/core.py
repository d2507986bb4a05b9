"""
Core types and helpers for the htlc-bridge SDK.
"""

import re
import secrets
from collections.abc import Mapping
from dataclasses import dataclass, asdict
from decimal import Decimal, InvalidOperation
from typing import Optional, Dict, Any, Union

from web3 import Web3

from .errors import InvalidParameterError


# =============================================================================
# Constants
# =============================================================================

# Supported chains
CHAIN_POLYGON_AMOY = "80002"
CHAIN_BNB_TESTNET = "97"

# Fixed gas limits per contract method
GAS_LIMIT_CREATE = 1_000_000
GAS_LIMIT_WITHDRAW = 150_000
GAS_LIMIT_REFUND = 1_000_000
GAS_LIMIT_GET = 1_000_000

# Event emitted by HashedTimelock.newContract
LOCK_EVENT_NAME = "LogHTLCNew"

# Returned by event queries over an empty range
NO_EVENT = {"msg": "no log found"}

_HEX_RE = re.compile(r"^0x[0-9a-fA-F]*$")


# =============================================================================
# Types
# =============================================================================

@dataclass
class LockRequest:
    """Parameters for a new native-coin lock."""
    sender: str
    receiver: str
    passphrase: str         # Plaintext, hashed before it goes on-chain
    timeout: int            # Unix timestamp after which refund is allowed
    private_key: str        # Already decrypted
    chain_id: str
    amount: str             # Whole coins, e.g. "0.5"

    def __repr__(self) -> str:
        return (f"LockRequest(sender={self.sender!r}, receiver={self.receiver!r}, "
                f"timeout={self.timeout}, chain_id={self.chain_id!r}, amount={self.amount!r})")


@dataclass
class LockRecord:
    """On-chain HTLC state as returned by getContract."""
    contract_id: str
    sender: str
    receiver: str
    amount: int             # Base units (wei)
    hashlock: str
    timelock: int
    withdrawn: bool
    refunded: bool
    preimage: Optional[str] = None

    @classmethod
    def from_call(cls, contract_id: str, result) -> "LockRecord":
        sender, receiver, amount, hashlock, timelock, withdrawn, refunded, preimage = result
        preimage_hex = _hex(preimage) if preimage else None
        return cls(
            contract_id=contract_id,
            sender=sender,
            receiver=receiver,
            amount=int(amount),
            hashlock=_hex(hashlock),
            timelock=int(timelock),
            withdrawn=bool(withdrawn),
            refunded=bool(refunded),
            preimage=preimage_hex,
        )

    @property
    def exists(self) -> bool:
        return int(self.sender, 16) != 0

    @property
    def status(self) -> str:
        if not self.exists:
            return "not_found"
        if self.withdrawn:
            return "withdrawn"
        if self.refunded:
            return "refunded"
        return "active"

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status
        return data


# =============================================================================
# HTLC Utilities
# =============================================================================

def is_hex(value: str) -> bool:
    return isinstance(value, str) and bool(_HEX_RE.match(value)) and len(value) % 2 == 0


def passphrase_bytes(passphrase: str) -> bytes:
    """
    Bytes a passphrase stands for.

    0x-prefixed hex is taken as raw bytes, anything else as UTF-8 text.
    """
    if not passphrase:
        raise InvalidParameterError("Passphrase must not be empty")
    if is_hex(passphrase) and len(passphrase) > 2:
        return bytes.fromhex(passphrase[2:])
    return passphrase.encode("utf-8")


def hash_passphrase(passphrase: str) -> bytes:
    """Keccak-256 hashlock for a passphrase."""
    return bytes(Web3.keccak(passphrase_bytes(passphrase)))


def generate_secret() -> tuple[str, str]:
    """
    Generate a random secret and its keccak hashlock.

    Returns:
        (secret_hex, hashlock_hex), both 0x-prefixed
    """
    secret = "0x" + secrets.token_bytes(32).hex()
    return secret, "0x" + hash_passphrase(secret).hex()


def verify_preimage(preimage: str, hashlock_hex: str) -> bool:
    """Check keccak(preimage) == hashlock."""
    try:
        expected = bytes.fromhex(hashlock_hex.replace("0x", ""))
        return hash_passphrase(preimage) == expected
    except (ValueError, TypeError, InvalidParameterError):
        return False


def to_base_units(amount: Union[str, int, float, Decimal]) -> int:
    """Convert whole coins to base units (1 coin = 10**18)."""
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        raise InvalidParameterError(f"Invalid coin amount: {amount!r}")
    if not value.is_finite() or value <= 0:
        raise InvalidParameterError(f"Coin amount must be positive: {amount!r}")
    _, digits, exponent = value.as_tuple()
    excess = -exponent - 18
    if excess > 0 and any(digits[-excess:]):
        raise InvalidParameterError(f"Coin amount has more than 18 decimals: {amount!r}")
    try:
        return int(Web3.to_wei(value, "ether"))
    except ValueError:
        raise InvalidParameterError(f"Coin amount out of range: {amount!r}")


def to_bytes32(value: str, name: str = "value") -> bytes:
    """Parse a 0x-prefixed 32-byte hex id."""
    if not isinstance(value, str):
        raise InvalidParameterError(f"{name} must be a hex string")
    if not value.startswith("0x"):
        value = "0x" + value
    if not is_hex(value) or len(value) != 66:
        raise InvalidParameterError(f"{name} must be 32 bytes of hex, got {value!r}")
    return bytes.fromhex(value[2:])


def to_address(value: str, name: str = "address") -> str:
    """Checksum an address, rejecting malformed input."""
    if not isinstance(value, str) or not Web3.is_address(value):
        raise InvalidParameterError(f"Invalid {name}: {value!r}")
    return Web3.to_checksum_address(value)


def _hex(value) -> str:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    return str(value)


def to_jsonable(value: Any) -> Any:
    """Convert web3 receipts/logs (AttributeDict, HexBytes) to plain JSON types."""
    if isinstance(value, Mapping):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (bytes, bytearray)):
        return _hex(value)
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value

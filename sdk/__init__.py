"""
htlc-bridge SDK - Cross-chain HTLC swaps between EVM testnets.

Two parties swap native coins between Polygon Amoy and BNB testnet by
locking them in HashedTimelock contracts under the same hashlock.

Usage:
    from sdk import create_lock, query_lock_events, generate_secret

    secret, hashlock = generate_secret()
    receipt = await create_lock(sender, receiver, secret, timeout,
                                private_key, "80002", "0.5")
    event = await query_lock_events("80002", receipt["blockNumber"],
                                    receipt["blockNumber"])
"""

from .core import (
    LockRequest,
    LockRecord,
    NO_EVENT,
    GAS_LIMIT_CREATE,
    GAS_LIMIT_WITHDRAW,
    GAS_LIMIT_REFUND,
    GAS_LIMIT_GET,
    generate_secret,
    verify_preimage,
    hash_passphrase,
    to_base_units,
)
from .errors import (
    HTLCError,
    UnsupportedChainError,
    ChainRevertError,
    RpcUnavailableError,
    DuplicateNetworkError,
    InvalidParameterError,
    KeyDecryptionError,
    GenericOperationError,
)
from .chains.evm import ChainConfig, ChainContext, resolve
from .htlc.evm import create_lock, withdraw, refund, query_lock_events, lock_events, get_lock
from .htlc.sequencer import SenderSequencer
from .store import DocumentCollection, TransactionStore, NetworkRegistry
from .swap.executor import LockExecutor

__version__ = "0.1.0"
__all__ = [
    # Core types
    "LockRequest",
    "LockRecord",
    "NO_EVENT",
    "GAS_LIMIT_CREATE",
    "GAS_LIMIT_WITHDRAW",
    "GAS_LIMIT_REFUND",
    "GAS_LIMIT_GET",
    # Utilities
    "generate_secret",
    "verify_preimage",
    "hash_passphrase",
    "to_base_units",
    # Errors
    "HTLCError",
    "UnsupportedChainError",
    "ChainRevertError",
    "RpcUnavailableError",
    "DuplicateNetworkError",
    "InvalidParameterError",
    "KeyDecryptionError",
    "GenericOperationError",
    # Chains
    "ChainConfig",
    "ChainContext",
    "resolve",
    # HTLC
    "create_lock",
    "withdraw",
    "refund",
    "query_lock_events",
    "lock_events",
    "get_lock",
    "SenderSequencer",
    # Storage / orchestration
    "DocumentCollection",
    "TransactionStore",
    "NetworkRegistry",
    "LockExecutor",
]

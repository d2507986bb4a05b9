"""
Typed errors for htlc-bridge.

Chain errors are split into revert (the contract refused the call) and
infra (RPC transport, timeouts) so the HTTP layer can tell them apart.
"""

from typing import Optional


class HTLCError(Exception):
    """Base exception for htlc-bridge."""

    code = "htlc_error"

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        data = {"error": self.code, "message": self.message}
        if self.details:
            data["details"] = self.details
        return data


class UnsupportedChainError(HTLCError):
    """Chain id has no known configuration."""

    code = "unsupported_chain"

    def __init__(self, chain_id: str):
        super().__init__(f"Unsupported chain id: {chain_id}", {"chain_id": chain_id})
        self.chain_id = chain_id


class ChainRevertError(HTLCError):
    """On-chain execution reverted."""

    code = "chain_revert"


class RpcUnavailableError(HTLCError):
    """RPC endpoint unreachable or timed out."""

    code = "rpc_unavailable"


class DuplicateNetworkError(HTLCError):
    """A network with the same name (case-insensitive) already exists."""

    code = "duplicate_network"

    def __init__(self, name: str):
        super().__init__("network already exist", {"name": name})
        self.name = name


class InvalidParameterError(HTLCError):
    """Request parameter rejected before anything was sent."""

    code = "invalid_parameter"


class KeyDecryptionError(HTLCError):
    """Encrypted private key could not be decrypted."""

    code = "key_decryption_failed"


class GenericOperationError(HTLCError):
    """Catch-all for failures with no better category."""

    code = "operation_failed"

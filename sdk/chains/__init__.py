"""
Chain client adapter for htlc-bridge.

Resolves a chain id to a fresh AsyncWeb3 client and HashedTimelock
contract handle for each operation.
"""

from .evm import ChainConfig, ChainContext, resolve, get_chain_configs

__all__ = ["ChainConfig", "ChainContext", "resolve", "get_chain_configs"]

"""
EVM chain client adapter for htlc-bridge.

Maps a chain id to its RPC endpoint and deployed HashedTimelock contract,
and builds a fresh AsyncWeb3 client per call.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Dict, List, Optional

from web3 import AsyncWeb3, Web3
from web3.exceptions import ContractLogicError, TimeExhausted, Web3Exception

from ..config import get_settings
from ..core import CHAIN_POLYGON_AMOY, CHAIN_BNB_TESTNET
from ..errors import ChainRevertError, RpcUnavailableError, UnsupportedChainError, HTLCError

log = logging.getLogger(__name__)

ARTIFACT_NAME = "HashedTimelock.json"

# RPC endpoints (fixed per chain)
RPC_ENDPOINTS = {
    CHAIN_POLYGON_AMOY: "https://rpc-amoy.polygon.technology/",
    CHAIN_BNB_TESTNET: "https://data-seed-prebsc-2-s1.binance.org:8545/",
}

CHAIN_NAMES = {
    CHAIN_POLYGON_AMOY: "Polygon Amoy",
    CHAIN_BNB_TESTNET: "BNB Testnet",
}

REVERT_MARKER = "revert"


@dataclass
class ChainConfig:
    """Static configuration for one supported chain."""
    chain_id: str
    name: str
    rpc_url: str
    contract_address: str
    contract_abi: List[Dict[str, Any]] = field(repr=False)


@dataclass
class ChainContext:
    """Client and contract handle resolved for a single operation."""
    config: ChainConfig
    w3: Any
    contract: Any

    @property
    def chain_id(self) -> str:
        return self.config.chain_id

    @property
    def contract_address(self) -> str:
        return self.config.contract_address


def load_artifact(artifacts_dir: Optional[str] = None) -> Dict[str, Any]:
    """Read the HashedTimelock build artifact (abi + networks)."""
    directory = Path(artifacts_dir or get_settings().artifacts_dir)
    with open(directory / ARTIFACT_NAME) as f:
        return json.load(f)


def record_deployment(
    chain_id: str,
    address: str,
    abi: Optional[List[Dict[str, Any]]] = None,
    artifacts_dir: Optional[str] = None,
) -> Path:
    """Store a deployed contract address (and optionally a fresh ABI) in the artifact."""
    directory = Path(artifacts_dir or get_settings().artifacts_dir)
    path = directory / ARTIFACT_NAME
    if path.exists():
        artifact = load_artifact(str(directory))
    else:
        artifact = {"contractName": "HashedTimelock", "abi": [], "networks": {}}
    if abi is not None:
        artifact["abi"] = abi
    artifact.setdefault("networks", {})[str(chain_id)] = {"address": Web3.to_checksum_address(address)}

    directory.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(artifact, f, indent=2)
    log.info(f"Recorded HashedTimelock deployment on chain {chain_id}: {address}")
    return path


def load_chain_configs(artifacts_dir: Optional[str] = None) -> Dict[str, ChainConfig]:
    """Build a ChainConfig for every supported chain with a deployment."""
    artifact = load_artifact(artifacts_dir)
    networks = artifact.get("networks", {})
    configs = {}
    for chain_id, rpc_url in RPC_ENDPOINTS.items():
        deployment = networks.get(chain_id)
        if not deployment or not deployment.get("address"):
            log.warning(f"No HashedTimelock deployment recorded for chain {chain_id}")
            continue
        configs[chain_id] = ChainConfig(
            chain_id=chain_id,
            name=CHAIN_NAMES[chain_id],
            rpc_url=rpc_url,
            contract_address=Web3.to_checksum_address(deployment["address"]),
            contract_abi=artifact["abi"],
        )
    return configs


_chain_configs: Optional[Dict[str, ChainConfig]] = None


def get_chain_configs() -> Dict[str, ChainConfig]:
    """Chain configs, loaded from the artifact on first use."""
    global _chain_configs
    if _chain_configs is None:
        _chain_configs = load_chain_configs()
    return _chain_configs


def reset_chain_configs(configs: Optional[Dict[str, ChainConfig]] = None):
    global _chain_configs
    _chain_configs = configs


def get_chain_config(chain_id: str) -> ChainConfig:
    config = get_chain_configs().get(str(chain_id))
    if config is None:
        raise UnsupportedChainError(str(chain_id))
    return config


def resolve(chain_id: str) -> ChainContext:
    """
    Resolve a chain id to a fresh client and contract handle.

    Raises:
        UnsupportedChainError: chain id is not configured (no client is built)
    """
    config = get_chain_config(chain_id)
    w3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(config.rpc_url))
    contract = w3.eth.contract(address=config.contract_address, abi=config.contract_abi)
    return ChainContext(config=config, w3=w3, contract=contract)


def is_revert_message(message: str) -> bool:
    return REVERT_MARKER in (message or "").lower()


def classify_error(exc: BaseException, what: str) -> BaseException:
    """Map a client-library failure to the service error taxonomy."""
    if isinstance(exc, HTLCError):
        return exc
    if isinstance(exc, ContractLogicError):
        return ChainRevertError(str(exc) or f"{what} reverted", {"operation": what})
    if isinstance(exc, (asyncio.TimeoutError, TimeExhausted)):
        return RpcUnavailableError(f"RPC timeout: {what}", {"operation": what})
    if isinstance(exc, OSError):
        return RpcUnavailableError(f"RPC unavailable: {exc}", {"operation": what})
    # Some nodes report reverts as plain JSON-RPC errors
    if isinstance(exc, Web3Exception) and is_revert_message(str(exc)):
        return ChainRevertError(str(exc), {"operation": what})
    return exc


async def rpc(awaitable: Awaitable, what: str, timeout: Optional[float] = None):
    """Await an RPC call with a timeout, translating failures."""
    if timeout is None:
        timeout = get_settings().rpc_timeout
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except Exception as e:
        mapped = classify_error(e, what)
        if mapped is e:
            raise
        log.error(f"{what} failed: {mapped}")
        raise mapped from e

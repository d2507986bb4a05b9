#!/usr/bin/env python3
"""
Compile HashedTimelock.sol and deploy it to the supported testnets.

    python contracts/deploy_htlc.py --chain 80002 --chain 97
    python contracts/deploy_htlc.py --compile-only

The deployer key comes from --private-key or DEPLOYER_PRIVATE_KEY. Each
deployed address is written to build/HashedTimelock.json under
networks[<chain id>]; the server reads it from there on startup.
"""

import argparse
import json
import os
import sys

from web3 import Web3

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from sdk.chains.evm import (  # noqa: E402
    ARTIFACT_NAME, CHAIN_NAMES, RPC_ENDPOINTS, load_artifact, record_deployment,
)

SOLC_VERSION = "0.8.19"
SOURCE_PATH = os.path.join(os.path.dirname(__file__), "HashedTimelock.sol")
BUILD_DIR = os.path.join(os.path.dirname(__file__), "build")
DEPLOY_GAS = 1_500_000


def build():
    """Return (abi, bytecode) for HashedTimelock."""
    from solcx import compile_standard, install_solc

    install_solc(SOLC_VERSION)
    with open(SOURCE_PATH) as f:
        source = f.read()

    output = compile_standard({
        "language": "Solidity",
        "sources": {"HashedTimelock.sol": {"content": source}},
        "settings": {
            "optimizer": {"enabled": True, "runs": 200},
            "outputSelection": {"*": {"HashedTimelock": ["abi", "evm.bytecode.object"]}},
        },
    }, solc_version=SOLC_VERSION)

    unit = output["contracts"]["HashedTimelock.sol"]["HashedTimelock"]
    return unit["abi"], unit["evm"]["bytecode"]["object"]


def write_abi(abi):
    """Refresh the ABI in the artifact, keeping recorded deployments."""
    path = os.path.join(BUILD_DIR, ARTIFACT_NAME)
    artifact = load_artifact(BUILD_DIR) if os.path.exists(path) else {"contractName": "HashedTimelock", "networks": {}}
    artifact["abi"] = abi
    os.makedirs(BUILD_DIR, exist_ok=True)
    with open(path, "w") as f:
        json.dump(artifact, f, indent=2)
    print(f"ABI written to {path}")


def deploy(chain_id: str, private_key: str, abi, bytecode, rpc_url: str = None) -> str:
    rpc_url = rpc_url or RPC_ENDPOINTS[chain_id]
    name = CHAIN_NAMES[chain_id]
    w3 = Web3(Web3.HTTPProvider(rpc_url))
    if not w3.is_connected():
        raise SystemExit(f"{name}: RPC unreachable at {rpc_url}")

    deployer = w3.eth.account.from_key(private_key)
    funds = w3.eth.get_balance(deployer.address)
    print(f"{name} ({chain_id}): deployer {deployer.address}, balance {w3.from_wei(funds, 'ether')}")
    if funds == 0:
        raise SystemExit(f"{name}: deployer has no funds for gas")

    factory = w3.eth.contract(abi=abi, bytecode=bytecode)
    tx = factory.constructor().build_transaction({
        "from": deployer.address,
        "nonce": w3.eth.get_transaction_count(deployer.address, "pending"),
        "gas": DEPLOY_GAS,
        "gasPrice": w3.eth.gas_price,
        "chainId": int(chain_id),
    })
    signed = deployer.sign_transaction(tx)
    tx_hash = w3.eth.send_raw_transaction(signed.raw_transaction)
    print(f"{name}: sent 0x{bytes(tx_hash).hex()}, waiting for receipt")

    receipt = w3.eth.wait_for_transaction_receipt(tx_hash, timeout=180)
    if receipt["status"] != 1:
        raise SystemExit(f"{name}: deployment reverted in block {receipt['blockNumber']}")

    address = receipt["contractAddress"]
    record_deployment(chain_id, address, abi=abi, artifacts_dir=BUILD_DIR)
    print(f"{name}: HashedTimelock at {address} (block {receipt['blockNumber']}, gas {receipt['gasUsed']})")
    return address


def main():
    parser = argparse.ArgumentParser(description="Compile and deploy HashedTimelock")
    parser.add_argument("--chain", "-c", action="append", choices=sorted(RPC_ENDPOINTS),
                        help="Target chain id (repeatable)")
    parser.add_argument("--private-key", "-k", help="Deployer key (default: DEPLOYER_PRIVATE_KEY)")
    parser.add_argument("--rpc-url", "-r", help="RPC override, only with a single --chain")
    parser.add_argument("--compile-only", action="store_true", help="Only refresh the ABI in the artifact")
    args = parser.parse_args()

    abi, bytecode = build()
    if args.compile_only:
        write_abi(abi)
        return

    if not args.chain:
        parser.error("--chain is required unless --compile-only is given")
    if args.rpc_url and len(args.chain) > 1:
        parser.error("--rpc-url applies to a single --chain")

    key = args.private_key or os.environ.get("DEPLOYER_PRIVATE_KEY")
    if not key:
        parser.error("deployer key required (--private-key or DEPLOYER_PRIVATE_KEY)")
    if not key.startswith("0x"):
        key = "0x" + key

    for chain_id in args.chain:
        deploy(chain_id, key, abi, bytecode, args.rpc_url)


if __name__ == "__main__":
    main()

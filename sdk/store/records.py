"""
Transaction history and network registry.
"""

import logging
import threading
from typing import Any, Dict, List, Optional

from ..errors import DuplicateNetworkError, InvalidParameterError
from .documents import DocumentCollection

log = logging.getLogger(__name__)


class TransactionStore:
    """One record per submitted lock: owner email, chain id, raw receipt."""

    def __init__(self, collection: DocumentCollection):
        self.collection = collection

    def save_transaction(self, email: str, chain_id: str, transaction: Dict[str, Any]) -> Dict[str, Any]:
        record = self.collection.save({
            "email": email,
            "chain_id": str(chain_id),
            "transaction": transaction,
        })
        log.info(f"Saved transaction record {record['_id']} for chain {chain_id}")
        return record

    def find_transactions(self, email: str) -> List[Dict[str, Any]]:
        return self.collection.find({"email": email})


class NetworkRegistry:
    """Known chain configurations, unique by name (case-insensitive)."""

    def __init__(self, collection: DocumentCollection):
        self.collection = collection
        # Makes the duplicate check and the insert one step within this process
        self._register_lock = threading.Lock()

    def find_by_name(self, name: str) -> List[Dict[str, Any]]:
        return self.collection.find({"name": name}, ignore_case=("name",))

    def register(self, entry: Dict[str, Any]) -> Dict[str, Any]:
        """
        Add a network.

        Raises:
            DuplicateNetworkError: a network with the same name exists (nothing is written)
        """
        name = (entry.get("name") or "").strip()
        if not name:
            raise InvalidParameterError("Network name is required")
        entry = dict(entry, name=name)

        with self._register_lock:
            if self.find_by_name(name):
                log.warning(f"Rejected duplicate network: {name}")
                raise DuplicateNetworkError(name)
            network = self.collection.save(entry)
        log.info(f"Registered network {name}")
        return network

    def list(self) -> List[Dict[str, Any]]:
        return self.collection.find()

    def update(self, name: str, patch: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        matches = self.find_by_name(name)
        if not matches:
            return None
        patch = {k: v for k, v in patch.items() if k != "name"}
        return self.collection.find_one_and_update({"_id": matches[0]["_id"]}, patch)

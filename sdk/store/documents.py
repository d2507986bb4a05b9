"""
JSON-file document collections.

Each collection is a list of dict documents persisted to one JSON file.
Writes go to a temp file first and are swapped in with os.replace.
"""

import json
import logging
import os
import threading
import time
import uuid
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

log = logging.getLogger(__name__)


def _matches(doc: Dict[str, Any], filter: Dict[str, Any], ignore_case: Iterable[str]) -> bool:
    for key, expected in filter.items():
        actual = doc.get(key)
        if key in ignore_case and isinstance(actual, str) and isinstance(expected, str):
            if actual.casefold() != expected.casefold():
                return False
        elif actual != expected:
            return False
    return True


class DocumentCollection:
    """A named collection of documents backed by a JSON file."""

    def __init__(self, path: os.PathLike):
        self.path = Path(os.path.expanduser(str(path)))
        self._lock = threading.Lock()
        self._docs: List[Dict[str, Any]] = self._load()

    def _load(self) -> List[Dict[str, Any]]:
        if not self.path.exists():
            return []
        with open(self.path, "r") as f:
            docs = json.load(f)
        log.info(f"Loaded {len(docs)} documents from {self.path}")
        return docs

    def _flush(self):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp, "w") as f:
            json.dump(self._docs, f, indent=2)
        os.replace(tmp, self.path)

    def save(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a document, assigning _id and timestamps."""
        now = int(time.time())
        stored = dict(doc)
        stored.setdefault("_id", uuid.uuid4().hex)
        stored.setdefault("created_at", now)
        stored["updated_at"] = now
        with self._lock:
            self._docs.append(stored)
            try:
                self._flush()
            except Exception:
                self._docs.pop()
                raise
        return dict(stored)

    def find(self, filter: Optional[Dict[str, Any]] = None, ignore_case: Iterable[str] = ()) -> List[Dict[str, Any]]:
        """
        Documents whose fields equal every value in filter.

        Fields named in ignore_case are compared case-insensitively.
        """
        filter = filter or {}
        ignore_case = set(ignore_case)
        with self._lock:
            return [dict(d) for d in self._docs if _matches(d, filter, ignore_case)]

    def find_one_and_update(self, key: Dict[str, Any], patch: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Apply patch to the first document matching key; returns the updated document."""
        patch = {k: v for k, v in patch.items() if k not in ("_id", "created_at")}
        with self._lock:
            for i, doc in enumerate(self._docs):
                if _matches(doc, key, ()):
                    previous = dict(doc)
                    doc.update(patch)
                    doc["updated_at"] = int(time.time())
                    try:
                        self._flush()
                    except Exception:
                        self._docs[i] = previous
                        raise
                    return dict(doc)
        return None

    def count(self) -> int:
        with self._lock:
            return len(self._docs)

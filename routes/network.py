"""
Network registry endpoints.
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ConfigDict

from sdk.config import get_settings
from sdk.errors import DuplicateNetworkError
from sdk.store import DocumentCollection, NetworkRegistry

from .common import fail

log = logging.getLogger(__name__)

router = APIRouter()

_registry: Optional[NetworkRegistry] = None


def configure(registry: NetworkRegistry):
    global _registry
    _registry = registry


def get_registry() -> NetworkRegistry:
    global _registry
    if _registry is None:
        _registry = NetworkRegistry(DocumentCollection(get_settings().data_path / "networks.json"))
    return _registry


class AddNetwork(BaseModel):
    """A network entry; fields beyond name are stored as metadata."""
    model_config = ConfigDict(extra="allow")

    name: str


@router.post("/network")
def add_network(body: AddNetwork):
    try:
        get_registry().register(body.model_dump())
    except DuplicateNetworkError as e:
        log.warning(f"Rejected duplicate network: {e.name}")
        raise HTTPException(401, e.to_dict())
    except Exception as e:
        raise fail(e, "network")
    return {"data": "network add successfully"}


@router.get("/network")
def list_networks():
    try:
        networks = get_registry().list()
    except Exception as e:
        raise fail(e, "network list")
    return {"message": "fetch successfully", "data": networks}

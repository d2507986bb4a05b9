"""
HTLC endpoints: create, withdraw, refund, lookups and transaction history.
"""

import logging
from typing import Any, Dict, Optional, Union

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field, field_validator

from sdk.config import get_settings
from sdk.core import LockRequest
from sdk.security import decrypt_private_key
from sdk.store import DocumentCollection, TransactionStore
from sdk.swap.executor import LockExecutor

from .common import fail, require_user

log = logging.getLogger(__name__)

router = APIRouter()

# ---------------------------------------------------------------------------
# Services (set by server.py, or built from settings on first use)
# ---------------------------------------------------------------------------

_executor: Optional[LockExecutor] = None


def configure(executor: LockExecutor):
    global _executor
    _executor = executor


def get_executor() -> LockExecutor:
    global _executor
    if _executor is None:
        path = get_settings().data_path / "transactions.json"
        _executor = LockExecutor(TransactionStore(DocumentCollection(path)))
    return _executor


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

def _as_str(value):
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    @field_validator("chain_id", mode="before", check_fields=False)
    @classmethod
    def _chain_id_str(cls, v):
        return _as_str(v)


class NewContractRequest(_Body):
    sender: str = Field(..., alias="from")
    to: str
    passphrase: str = Field(..., alias="pass")
    time: int
    pk: str
    rpc: Optional[str] = None
    chain_id: str = Field(..., alias="chainID")
    coins: str
    email: str

    @field_validator("coins", mode="before")
    @classmethod
    def _coins_str(cls, v):
        return _as_str(v)


class WithdrawRequest(_Body):
    contract_id: str = Field(..., alias="contractID")
    secret: str
    sender: str = Field(..., alias="from")
    pk: str
    chain_id: str = Field(..., alias="chainID")
    rpc: Optional[str] = None


class RefundRequest(_Body):
    contract_id: str = Field(..., alias="contractID")
    sender: str = Field(..., alias="from")
    pk: str
    chain_id: str = Field(..., alias="chainID")


class EventByBlockRequest(_Body):
    bn: Union[int, str]
    chain_id: str = Field(..., alias="chainID")
    rpc: Optional[str] = None


class GetContractRequest(_Body):
    chain_id: str = Field(..., alias="chainID")
    contract_address: str
    sender: Optional[str] = Field(None, alias="from")


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@router.post("/new-contract")
async def new_contract(body: NewContractRequest):
    """Lock coins and return the resulting LogHTLCNew event."""
    try:
        request = LockRequest(
            sender=body.sender,
            receiver=body.to,
            passphrase=body.passphrase,
            timeout=body.time,
            private_key=decrypt_private_key(body.pk),
            chain_id=body.chain_id,
            amount=body.coins,
        )
        return await get_executor().open_lock(request, body.email)
    except Exception as e:
        raise fail(e, "new-contract")


@router.post("/withdraw")
async def withdraw(body: WithdrawRequest, user: Dict[str, Any] = Depends(require_user)):
    """Reveal the secret and withdraw a lock."""
    try:
        private_key = decrypt_private_key(body.pk)
        return await get_executor().withdraw(
            body.contract_id, body.secret, body.sender, private_key, body.chain_id
        )
    except Exception as e:
        raise fail(e, "withdraw")


@router.post("/refund")
async def refund(body: RefundRequest):
    """Refund an expired lock; returns the latest lock event on the chain."""
    try:
        private_key = decrypt_private_key(body.pk)
        return await get_executor().refund(body.contract_id, body.sender, private_key, body.chain_id)
    except Exception as e:
        raise fail(e, "refund")


@router.post("/get-event-by-Block")
async def get_event_by_block(body: EventByBlockRequest):
    try:
        return await get_executor().lock_event_at(body.chain_id, body.bn)
    except Exception as e:
        raise fail(e, "get-event-by-Block")


@router.post("/get-contract")
async def get_contract(body: GetContractRequest):
    """On-chain state of a lock (contract_address carries the lock id)."""
    try:
        return await get_executor().lock_state(body.chain_id, body.contract_address, body.sender)
    except Exception as e:
        raise fail(e, "get-contract")


@router.get("/transaction")
def get_transactions(user: Dict[str, Any] = Depends(require_user)):
    """Locks created by the authenticated caller."""
    try:
        transactions = get_executor().history(user["email"])
    except Exception as e:
        raise fail(e, "transaction")
    return {"message": "fetch successfully", "data": transactions}

"""
Shared route helpers: error mapping and caller authentication.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from sdk.errors import GenericOperationError, HTLCError
from sdk.security import AuthError, decode_token

log = logging.getLogger(__name__)

GENERIC_ERROR = "Oops, something went wrong"

_bearer = HTTPBearer(auto_error=False)


def fail(exc: Exception, what: str) -> HTTPException:
    """Map an operation failure to a 400 response."""
    if isinstance(exc, HTLCError):
        log.error(f"{what} failed: [{exc.code}] {exc.message}")
        return HTTPException(400, exc.to_dict())
    log.exception(f"{what} failed unexpectedly")
    return HTTPException(400, GenericOperationError(GENERIC_ERROR).to_dict())


async def require_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
) -> Dict[str, Any]:
    """Claims of the authenticated caller."""
    if credentials is None:
        raise HTTPException(401, "Not authenticated")
    try:
        return decode_token(credentials.credentials)
    except AuthError as e:
        log.warning(f"Rejected access token: {e}")
        raise HTTPException(401, str(e))

#!/usr/bin/env python3
"""
htlc-bridge Server
Cross-chain HTLC swaps between EVM testnets.

Chains: Polygon Amoy (80002) <-> BNB Testnet (97)

Endpoints:
  GET  /api/status           - Health check, supported chains
  POST /new-contract         - Lock coins (returns LogHTLCNew event)
  POST /withdraw             - Withdraw with secret (auth)
  POST /refund               - Refund expired lock
  POST /get-event-by-Block   - Lock event in a block
  POST /get-contract         - On-chain lock state
  POST /network              - Register network
  GET  /network              - List networks
  GET  /transaction          - Caller's lock history (auth)
"""

import os
import time
import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sdk import __version__
from sdk.config import get_settings
from sdk.chains.evm import get_chain_configs
from routes import htlc as htlc_routes
from routes import network as network_routes

# =============================================================================
# LOGGING
# =============================================================================

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format='%(asctime)s [%(levelname)s] %(message)s'
)
log = logging.getLogger(__name__)

# =============================================================================
# APP SETUP
# =============================================================================

app = FastAPI(
    title="htlc-bridge",
    description="Cross-chain HTLC swap API (Polygon Amoy <-> BNB Testnet)",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(htlc_routes.router)
app.include_router(network_routes.router)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies are reported as 400."""
    log.warning(f"Invalid request to {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=400, content={"detail": {"error": "invalid_request", "message": str(exc.errors())}})


# =============================================================================
# ENDPOINTS
# =============================================================================

@app.get("/api/status")
async def get_status():
    """Health check."""
    try:
        chains = {
            chain_id: {"name": c.name, "rpc_url": c.rpc_url, "contract_address": c.contract_address}
            for chain_id, c in get_chain_configs().items()
        }
    except (OSError, ValueError, KeyError) as e:
        log.error(f"Chain configuration unavailable: {e}")
        raise HTTPException(503, "Chain configuration unavailable")

    return {
        "status": "ok",
        "version": __version__,
        "timestamp": int(time.time()),
        "chains": chains,
    }


# =============================================================================
# FASTAPI STARTUP/SHUTDOWN EVENTS
# =============================================================================

@app.on_event("startup")
async def startup_event():
    """Load chain deployments and storage on startup."""
    configs = get_chain_configs()
    for chain_id, c in configs.items():
        log.info(f"Chain {chain_id} ({c.name}): HTLC {c.contract_address} via {c.rpc_url}")
    if not configs:
        log.warning("No HashedTimelock deployments found - all HTLC operations will fail")

    htlc_routes.get_executor()
    network_routes.get_registry()

    if not settings.pk_encryption_key:
        log.warning("HTLC_PK_ENCRYPTION_KEY not set - signing endpoints will reject requests")
    if not settings.jwt_secret_key:
        log.warning("JWT_SECRET_KEY not set - authenticated endpoints will reject requests")


# =============================================================================
# MAIN
# =============================================================================

if __name__ == "__main__":
    import uvicorn
    port = int(os.environ.get("PORT", 8080))
    log.info(f"Starting htlc-bridge on port {port}")
    log.info(f"Docs: http://0.0.0.0:{port}/docs")
    uvicorn.run(app, host="0.0.0.0", port=port)

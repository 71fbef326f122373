"""Sync HTTP handlers: FastAPI routes for the /sync endpoint.

POST /sync:
1. Reads raw body and raw query string (needed for HMAC verification)
2. Verifies the signature with the deployment's verifier
3. Parses the JSON payload
4. Echoes the payload back

Security contract:
- Return 401 only for signature failures, with the scheme's fixed message
- Never return secret, signature or digest values to the caller
- Log every verification outcome for audit trail
"""

from __future__ import annotations

import json
import logging
import math
import time
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from prestige_sync.webhooks.verification import SignedRequest, Verifier

logger = logging.getLogger(__name__)

SERVICE_MESSAGE = "Match Prestige sync service is running"


def _log_sync(scheme: str, status: str, body_size: int) -> None:
    """Audit log for sync requests."""
    logger.info(
        "SYNC_AUDIT scheme=%s status=%s bytes=%d",
        scheme,
        status,
        body_size,
    )


def _reject_constant(name: str) -> float:
    raise ValueError(f"Non-standard JSON constant: {name}")


def _parse_finite_float(text: str) -> float:
    value = float(text)
    if not math.isfinite(value):
        raise ValueError(f"JSON number out of range: {text}")
    return value


def _parse_json(body: bytes):
    """Strict JSON: NaN/Infinity and overflowing floats are rejected."""
    return json.loads(body, parse_constant=_reject_constant, parse_float=_parse_finite_float)


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"status": "error", "message": message}, status_code=status_code)


async def _handle_sync(request: Request, verifier: Verifier) -> JSONResponse:
    """Verify and echo a sync request.

    Returns 200 on success, 401 on signature failure, 400 on a verified but
    unparseable body.
    """
    start = time.time()

    # Raw bytes before any JSON parsing; raw query before any decoding
    body = await request.body()
    signed = SignedRequest(
        body=body,
        query=request.url.query,
        headers=dict(request.headers),
    )

    if not verifier.verify(signed):
        _log_sync(verifier.scheme, "signature_failed", len(body))
        return _error(verifier.failure_message, 401)

    if body.strip():
        try:
            payload = _parse_json(body)
        except (ValueError, RecursionError):
            _log_sync(verifier.scheme, "invalid_json", len(body))
            return _error("Invalid JSON body", 400)
    else:
        payload = {}

    _log_sync(verifier.scheme, "accepted", len(body))
    elapsed_ms = (time.time() - start) * 1000
    logger.debug("Sync request processed in %.1fms (%s)", elapsed_ms, verifier.scheme)

    return JSONResponse({"status": "success", "received": payload})


def register_sync_routes(app: FastAPI, verifier: Verifier) -> None:
    """Register the /sync routes on the FastAPI app."""

    @app.get("/sync")
    async def sync_status():
        """Liveness check (unauthenticated)."""
        return {
            "status": "ok",
            "message": SERVICE_MESSAGE,
            "timestamp": datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        }

    @app.post("/sync")
    async def sync(request: Request):
        """Receive a signed sync callback."""
        return await _handle_sync(request, verifier)

    logger.info("Sync routes registered: /sync (scheme=%s)", verifier.scheme)

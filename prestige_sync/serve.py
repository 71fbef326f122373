"""Sync service application.

Usage:
    python -m prestige_sync.serve
    uvicorn prestige_sync.serve:create_app --factory --port 3000
"""

from __future__ import annotations

import logging

import uvicorn
from fastapi import FastAPI

from prestige_sync.config import SyncSettings, configure_logging
from prestige_sync.webhooks.handlers import register_sync_routes
from prestige_sync.webhooks.verification import build_verifier

logger = logging.getLogger(__name__)


def create_app(settings: SyncSettings | None = None) -> FastAPI:
    """Build the FastAPI app with the deployment's verifier wired in."""
    if settings is None:
        settings = SyncSettings.from_env()

    if not settings.has_secret:
        logger.warning("SHOPIFY_API_SECRET not set, every /sync POST will be rejected")

    verifier = build_verifier(settings)
    app = FastAPI(title="Match Prestige sync service")
    app.state.settings = settings
    register_sync_routes(app, verifier)
    return app


def main(settings: SyncSettings | None = None) -> None:
    if settings is None:
        settings = SyncSettings.from_env()
    configure_logging(settings.log_level)
    app = create_app(settings)
    logger.info(
        "Match Prestige sync service listening at http://localhost:%d (scheme=%s)",
        settings.port,
        settings.auth_scheme,
    )
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()

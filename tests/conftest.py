"""Shared fixtures for the sync service test suite."""

from __future__ import annotations

import base64
import hashlib
import hmac
from contextlib import ExitStack

import pytest
from fastapi.testclient import TestClient

from prestige_sync.config import SyncSettings
from prestige_sync.serve import create_app

TEST_SECRET = b"test-secret"


@pytest.fixture
def make_client():
    """Factory for TestClients bound to an app with the given settings."""
    with ExitStack() as stack:

        def _make(**overrides) -> TestClient:
            overrides.setdefault("shopify_api_secret", TEST_SECRET.decode())
            app = create_app(SyncSettings(**overrides))
            return stack.enter_context(TestClient(app, raise_server_exceptions=False))

        yield _make


@pytest.fixture
def webhook_client(make_client):
    """Client for a deployment using the body HMAC scheme."""
    return make_client(sync_auth_scheme="webhook")


@pytest.fixture
def proxy_client(make_client):
    """Client for a deployment using the app proxy scheme."""
    return make_client(sync_auth_scheme="app_proxy")


@pytest.fixture
def sign_body():
    """Reference body signer (independent of the code under test)."""

    def _sign(body: bytes, secret: bytes = TEST_SECRET) -> str:
        return base64.b64encode(hmac.new(secret, body, hashlib.sha256).digest()).decode()

    return _sign


@pytest.fixture
def sign_message():
    """Reference app proxy signer over an already-canonical message."""

    def _sign(message: str, secret: bytes = TEST_SECRET) -> str:
        return hmac.new(secret, message.encode(), hashlib.sha256).hexdigest()

    return _sign

"""Shopify request signature verification: constant-time HMAC for both schemes.

Security contract:
- All comparisons use hmac.compare_digest() (constant-time, no timing attacks)
- Missing secret -> verification always fails (fail-closed)
- Missing/malformed signature -> False, never an exception
- Body scheme signs the exact raw bytes (base64 digest)
- App proxy scheme signs the canonical query string (hex digest)
"""

from __future__ import annotations

import base64
import hashlib
import hmac
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar, Union
from urllib.parse import parse_qsl

if TYPE_CHECKING:
    from prestige_sync.config import SyncSettings

QueryValue = Union[str, Sequence[str], None]

# Header carrying the body signature (lookups are case-insensitive)
SHOPIFY_HMAC_HEADER = "x-shopify-hmac-sha256"

# Query parameter carrying the app proxy signature
SIGNATURE_PARAM = "signature"

SCHEME_WEBHOOK = "webhook"
SCHEME_APP_PROXY = "app_proxy"


def _constant_time_equals(computed: str, presented: str) -> bool:
    """Compare two signature strings without leaking the mismatch position.

    Both sides are compared as UTF-8 bytes so a non-ASCII presented value is
    simply unequal. compare_digest handles unequal lengths itself.
    """
    try:
        return hmac.compare_digest(computed.encode("utf-8"), presented.encode("utf-8"))
    except (TypeError, ValueError, AttributeError):
        return False


# ── Body HMAC (webhooks) ──────────────────────────────────────────────────


def sign_body(body: bytes, secret: bytes) -> str:
    """Compute the base64 HMAC-SHA256 of a raw request body."""
    digest = hmac.new(secret, body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_body(body: bytes, signature: str | None, secret: bytes | None) -> bool:
    """Verify a Shopify webhook HMAC-SHA256 signature.

    Shopify sends: X-Shopify-Hmac-Sha256 header (base64-encoded HMAC-SHA256
    over the raw body, before any JSON parsing).

    Args:
        body: Raw request body bytes
        signature: Value of the X-Shopify-Hmac-Sha256 header
        secret: Shared app secret

    Returns:
        True if signature is valid
    """
    if not secret or not signature:
        return False
    try:
        computed = sign_body(body, secret)
    except (TypeError, ValueError):
        return False
    return _constant_time_equals(computed, signature)


# ── Query HMAC (app proxy) ────────────────────────────────────────────────


def parse_query(raw_query: str) -> dict[str, str | list[str]]:
    """Parse a raw query string the way the platform's signer does.

    Repeated names collect into a list in parse order; a name without
    ``=`` maps to an empty string; ``+`` decodes to a space.
    """
    params: dict[str, str | list[str]] = {}
    for key, value in parse_qsl(raw_query, keep_blank_values=True):
        existing = params.get(key)
        if existing is None:
            params[key] = value
        elif isinstance(existing, list):
            existing.append(value)
        else:
            params[key] = [existing, value]
    return params


def _render_value(value: QueryValue) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return ",".join("" if v is None else str(v) for v in value)


def canonicalize_query(params: Mapping[str, QueryValue]) -> str:
    """Build the app proxy canonical message.

    Each parameter renders as ``key=value`` (multi-values joined by commas),
    the rendered strings are sorted as whole strings, then concatenated with
    no separator.
    """
    components = [f"{key}={_render_value(value)}" for key, value in params.items()]
    return "".join(sorted(components))


def sign_query(params: Mapping[str, QueryValue], secret: bytes) -> str:
    """Compute the hex HMAC-SHA256 of the canonical query message.

    A ``signature`` entry in ``params`` is ignored.
    """
    unsigned = {k: v for k, v in params.items() if k != SIGNATURE_PARAM}
    message = canonicalize_query(unsigned).encode("utf-8")
    return hmac.new(secret, message, hashlib.sha256).hexdigest()


def verify_query(raw_query: str, secret: bytes | None) -> bool:
    """Verify a Shopify app proxy signature.

    Shopify app proxies append a ``signature`` query parameter: the hex
    HMAC-SHA256 of every other parameter, canonicalized by
    canonicalize_query().

    Args:
        raw_query: Query string exactly as received (after ``?``)
        secret: Shared app secret

    Returns:
        True if signature is valid
    """
    if not secret:
        return False
    try:
        params = parse_query(raw_query or "")
    except (TypeError, ValueError, UnicodeError):
        return False

    signature = params.pop(SIGNATURE_PARAM, None)
    if not signature or not isinstance(signature, str):
        return False

    try:
        computed = sign_query(params, secret)
    except (TypeError, ValueError, UnicodeError):
        return False
    return _constant_time_equals(computed, signature)


# ── Verifier strategies ───────────────────────────────────────────────────


@dataclass(frozen=True)
class SignedRequest:
    """The parts of an inbound request a verifier may sign over."""

    body: bytes = b""
    query: str = ""
    headers: Mapping[str, str] = field(default_factory=dict)

    def header(self, name: str) -> str | None:
        """Case-insensitive header lookup."""
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None


@dataclass(frozen=True, repr=False)
class BodyHmacVerifier:
    """Authenticates webhooks by signing the raw body."""

    secret: bytes | None

    scheme: ClassVar[str] = SCHEME_WEBHOOK
    failure_message: ClassVar[str] = "Invalid HMAC signature"

    def verify(self, request: SignedRequest) -> bool:
        return verify_body(request.body, request.header(SHOPIFY_HMAC_HEADER), self.secret)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(secret={'***' if self.secret else None})"


@dataclass(frozen=True, repr=False)
class QueryHmacVerifier:
    """Authenticates app proxy requests by signing the canonical query."""

    secret: bytes | None

    scheme: ClassVar[str] = SCHEME_APP_PROXY
    failure_message: ClassVar[str] = "Invalid App Proxy signature"

    def verify(self, request: SignedRequest) -> bool:
        return verify_query(request.query, self.secret)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(secret={'***' if self.secret else None})"


Verifier = Union[BodyHmacVerifier, QueryHmacVerifier]

# Scheme -> verifier class
VERIFIERS: dict[str, type[BodyHmacVerifier] | type[QueryHmacVerifier]] = {
    SCHEME_WEBHOOK: BodyHmacVerifier,
    SCHEME_APP_PROXY: QueryHmacVerifier,
}


def build_verifier(settings: SyncSettings) -> Verifier:
    """Construct the single verifier active for this deployment."""
    return VERIFIERS[settings.auth_scheme](settings.api_secret)

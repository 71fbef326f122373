"""CLI for signing test requests and running the sync service.

Usage:
    echo -n '{"x":1}' | python -m prestige_sync.cli sign-body
    python -m prestige_sync.cli sign-query 'shop=demo.myshopify.com&path_prefix=/apps/sync'
    python -m prestige_sync.cli sign-query --url 'shop=demo.myshopify.com'
    python -m prestige_sync.cli serve

The secret is taken from --secret or SHOPIFY_API_SECRET.
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

from prestige_sync.webhooks.verification import (
    SIGNATURE_PARAM,
    parse_query,
    sign_body,
    sign_query,
)


def _require_secret(args: argparse.Namespace) -> bytes:
    secret = args.secret or os.environ.get("SHOPIFY_API_SECRET", "")
    if not secret:
        print("ERROR: SHOPIFY_API_SECRET is not set (or pass --secret)", file=sys.stderr)
        sys.exit(1)
    return secret.encode("utf-8")


def cmd_sign_body(args: argparse.Namespace) -> None:
    """Print the X-Shopify-Hmac-Sha256 value for a body."""
    secret = _require_secret(args)
    if args.file:
        path = Path(args.file)
        if not path.exists():
            print(f"ERROR: body file not found: {path}", file=sys.stderr)
            sys.exit(1)
        body = path.read_bytes()
    else:
        body = sys.stdin.buffer.read()
    print(sign_body(body, secret), end="")


def cmd_sign_query(args: argparse.Namespace) -> None:
    """Print the app proxy signature for a query string."""
    secret = _require_secret(args)
    query = args.query.lstrip("?")
    signature = sign_query(parse_query(query), secret)
    if not args.url:
        print(signature, end="")
        return
    # Drop any stale signature before appending the fresh one
    kept = [p for p in query.split("&") if p and p.split("=", 1)[0] != SIGNATURE_PARAM]
    kept.append(f"{SIGNATURE_PARAM}={signature}")
    print("&".join(kept), end="")


def cmd_serve(args: argparse.Namespace) -> None:
    """Run the sync service."""
    from prestige_sync.serve import main as serve_main

    serve_main()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="prestige-sync",
        description="Match Prestige sync service tools",
    )
    sub = parser.add_subparsers(dest="command")

    p_body = sub.add_parser("sign-body", help="Sign a webhook body (stdin or --file)")
    p_body.add_argument("--file", "-f", help="Read the body from this file instead of stdin")
    p_body.add_argument("--secret", help="Shared secret (default: $SHOPIFY_API_SECRET)")

    p_query = sub.add_parser("sign-query", help="Sign an app proxy query string")
    p_query.add_argument("query", help="Raw query string, with or without leading '?'")
    p_query.add_argument("--url", action="store_true", help="Print the query with signature appended")
    p_query.add_argument("--secret", help="Shared secret (default: $SHOPIFY_API_SECRET)")

    sub.add_parser("serve", help="Run the HTTP service")

    args = parser.parse_args(argv)

    if args.command == "sign-body":
        cmd_sign_body(args)
    elif args.command == "sign-query":
        cmd_sign_query(args)
    elif args.command == "serve":
        cmd_serve(args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()

"""Inbound Shopify callbacks.

Receives webhook (body-signed) or app proxy (query-signed) requests on /sync.
Each request is signature-verified before the payload is touched.
"""

"""Match Prestige sync service: Shopify-signed callback endpoint."""

__version__ = "0.1.0"

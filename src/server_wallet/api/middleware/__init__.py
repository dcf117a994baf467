"""API middleware — CORS."""

from server_wallet.api.middleware.cors import setup_cors

__all__ = ["setup_cors"]

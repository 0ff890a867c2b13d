"""HTTP clients for other services."""

from __future__ import annotations

from .base_client import BaseHTTPClient
from .stock_client import StockClient

__all__ = ["BaseHTTPClient", "StockClient"]

"""Collaborators the Sales use cases depend on."""

from __future__ import annotations

from typing import Protocol


class StockGateway(Protocol):
    """Answers how many units of a product are available.

    Implementations raise ``StockLookupError`` when the answer is unknown.
    """

    async def get_available_stock(self, product_id: str) -> int: ...

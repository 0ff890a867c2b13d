"""Client for the Inventory product API used for stock checks."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from order_fulfillment.core.exceptions import StockLookupError
from order_fulfillment.utils.retry import RetryError

from .base_client import BaseHTTPClient

logger = logging.getLogger(__name__)

PRODUCT_BY_ID_PATH = "product-by-id"


class StockClient(BaseHTTPClient):
    """Answers "how many units of product X are available?".

    The Inventory API takes the product id in an ``id`` request header and
    returns the product as JSON with a ``stockQuantity`` field.

    Example:
        async with StockClient("http://inventory:5000/api/") as client:
            available = await client.get_available_stock("3fa85f64-5717-4562-b3fc-2c963f66afa6")
    """

    async def get_available_stock(self, product_id: str) -> int:
        """Return the current stock quantity of ``product_id``.

        Raises:
            StockLookupError: On transport errors, non-2xx responses, a body
                without an integer ``stockQuantity``, or any other failure of
                the lookup.
        """
        extra = {"product_id": product_id}
        try:
            body: Any = await self.get(PRODUCT_BY_ID_PATH, headers={"id": product_id})
        except httpx.HTTPStatusError as exc:
            raise StockLookupError(
                detail=f"Stock lookup for product {product_id} returned HTTP {exc.response.status_code}",
                extra={**extra, "status_code": exc.response.status_code},
            ) from exc
        except (httpx.HTTPError, RetryError) as exc:
            raise StockLookupError(
                detail=f"Stock lookup for product {product_id} failed: {exc}",
                extra=extra,
            ) from exc
        except ValueError as exc:
            raise StockLookupError(
                detail=f"Stock lookup for product {product_id} returned invalid JSON",
                extra=extra,
            ) from exc
        except Exception as exc:
            raise StockLookupError(
                detail=f"Stock lookup for product {product_id} failed unexpectedly: {type(exc).__name__}",
                extra={**extra, "error": str(exc)},
            ) from exc

        quantity = _read_stock_quantity(body)
        if quantity is None:
            raise StockLookupError(
                detail=f"Stock lookup for product {product_id} returned no stockQuantity",
                extra=extra,
            )
        return quantity


def _read_stock_quantity(body: Any) -> int | None:
    if not isinstance(body, dict):
        return None
    for key, value in body.items():
        if key.lower() == "stockquantity" and isinstance(value, int) and not isinstance(value, bool):
            return value
    return None

"""Service wiring and process entrypoint."""

from __future__ import annotations

from .runner import main, run_service
from .services import (
    InventoryService,
    SalesService,
    ServiceContainer,
    build_inventory_service,
    build_sales_service,
    build_service,
)

__all__ = [
    "InventoryService",
    "SalesService",
    "ServiceContainer",
    "build_inventory_service",
    "build_sales_service",
    "build_service",
    "main",
    "run_service",
]

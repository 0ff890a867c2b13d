"""Service identity and boundary settings."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .yaml_sources import create_app_yaml_source

Boundary = Literal["sales", "inventory"]
Environment = Literal["development", "staging", "production", "test"]


class AppSettings(BaseSettings):
    """Settings for one boundary process.

    Environment variables use APP_ prefix.
    Example: APP_BOUNDARY=inventory, APP_PRODUCT_URL=http://inventory:8080/api/
    """

    # Service identity
    service_name: str = Field(
        default="order-fulfillment",
        min_length=1,
        max_length=100,
        pattern=r"^[a-z0-9]+(-[a-z0-9]+)*$",
        description="Service name for logging/tracing (lowercase, hyphens allowed)",
    )
    environment: Environment = Field(
        default="development", description="Environment: development|staging|production|test",
    )
    boundary: Boundary = Field(
        default="sales",
        description="Which bounded context this process runs (sales|inventory)",
    )

    # Inventory HTTP API used by Sales for stock checks
    product_url: str = Field(
        default="http://localhost:5000/api/",
        min_length=1,
        description="Base URL of the Inventory product API (the product-by-id endpoint lives below it)",
    )
    stock_timeout: float = Field(
        default=5.0,
        gt=0,
        le=120.0,
        description="Timeout in seconds for a single stock lookup",
    )
    stock_max_retries: int = Field(
        default=2,
        ge=0,
        le=10,
        description="Retries for transient stock lookup failures (timeouts, network errors)",
    )

    # Stock confirmation compatibility
    legacy_running_stock_total: bool = Field(
        default=False,
        description=(
            "Report newStockQuantity as the total quantity ordered across all "
            "line items instead of the product's post-decrement stock"
        ),
    )

    @field_validator("product_url")
    @classmethod
    def _ensure_trailing_slash(cls, v: str) -> str:
        return v if v.endswith("/") else f"{v}/"

    @model_validator(mode="after")
    def validate_production_settings(self) -> AppSettings:
        """Refuse the running-total compatibility mode in production."""
        if self.environment == "production" and self.legacy_running_stock_total:
            msg = "legacy_running_stock_total is a migration aid and cannot be enabled in production"
            raise ValueError(msg)
        return self

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: Any,
        env_settings: Any,
        dotenv_settings: Any,
        file_secret_settings: Any,
    ) -> tuple[Any, ...]:
        """Customize settings source precedence: init > yaml > env > dotenv > secrets."""
        return (
            init_settings,
            create_app_yaml_source(settings_cls),
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )

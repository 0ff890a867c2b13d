"""Modular Pydantic Settings v2 configuration.

Import settings via cached loaders:
    from order_fulfillment.core.settings import get_rabbit_settings

Or use unified settings for convenient access to all domains:
    from order_fulfillment.core.settings import get_settings

Configuration precedence (highest to lowest):
    1. init kwargs (testing/overrides)
    2. YAML/conf.d files (optional, local/dev)
    3. Environment variables (production)
    4. .env file (development only)
    5. secrets_dir (Kubernetes/Docker secrets)
"""

from __future__ import annotations

from .app import AppSettings
from .loader import (
    clear_all_caches,
    get_app_settings,
    get_logging_settings,
    get_rabbit_settings,
)
from .logs import LoggingSettings
from .rabbit import QueueSettings, RabbitSettings
from .unified import Settings, get_settings

__all__ = [
    "AppSettings",
    "LoggingSettings",
    "QueueSettings",
    "RabbitSettings",
    "Settings",
    "clear_all_caches",
    "get_app_settings",
    "get_logging_settings",
    "get_rabbit_settings",
    "get_settings",
]

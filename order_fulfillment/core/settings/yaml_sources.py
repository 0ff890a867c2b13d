"""YAML config source with conf.d directory support.

Extends pydantic-settings' YamlConfigSettingsSource so each settings domain
can be configured from:
- a main YAML file (e.g., conf/rabbit.yaml)
- a conf.d directory merged alphabetically (e.g., conf/rabbit.d/*.yaml)

Environment variables and .env files still apply; YAML simply slots into the
source precedence chain declared by each settings class.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic_settings.sources.providers.yaml import YamlConfigSettingsSource

if TYPE_CHECKING:
    from pydantic_settings import BaseSettings


class ConfDYamlConfigSettingsSource(YamlConfigSettingsSource):
    """YAML settings source with conf.d directory support.

    Supports the standard Linux conf.d pattern:
    - conf/rabbit.yaml        (base configuration)
    - conf/rabbit.d/*.yaml    (override files, merged alphabetically)

    The base directory can be overridden per domain through an environment
    variable, e.g. ``RABBIT_CONFIG_DIR=/etc/order-fulfillment``.
    """

    def __init__(
        self,
        settings_cls: type[BaseSettings],
        yaml_file: str = "app.yaml",
        confd_dir: str | None = "app.d",
        config_dir_env: str = "CONFIG_DIR",
        base_dir: str = "conf",
        yaml_file_encoding: str | None = "utf-8",
    ) -> None:
        """Initialize the conf.d YAML source.

        Args:
            settings_cls: The settings class being configured.
            yaml_file: Main YAML file name (e.g., "rabbit.yaml").
            confd_dir: conf.d subdirectory name, or None to disable.
            config_dir_env: Environment variable overriding the base directory.
            base_dir: Default base directory for config files.
            yaml_file_encoding: File encoding for YAML files.
        """
        config_base = Path(os.getenv(config_dir_env, base_dir))

        yaml_files: list[Path] = []

        main_file = config_base / yaml_file
        if main_file.exists():
            yaml_files.append(main_file)

        # conf.d files are sorted so overrides apply deterministically
        if confd_dir:
            confd_path = config_base / confd_dir
            if confd_path.is_dir():
                yaml_files.extend(sorted(confd_path.glob("*.yaml")))
                yaml_files.extend(sorted(confd_path.glob("*.yml")))

        self._yaml_files = yaml_files

        super().__init__(
            settings_cls=settings_cls,
            yaml_file=yaml_files if yaml_files else None,
            yaml_file_encoding=yaml_file_encoding,
        )

    @property
    def yaml_files(self) -> list[Path]:
        """Files this source loads, in merge order."""
        return list(self._yaml_files)

    def __repr__(self) -> str:
        files_str = ", ".join(str(f) for f in self._yaml_files)
        return f"{self.__class__.__name__}(yaml_files=[{files_str}])"


# ============================================================================
# Factory functions for each settings domain
# ============================================================================


def create_app_yaml_source(settings_cls: type[BaseSettings]) -> ConfDYamlConfigSettingsSource:
    """Create YAML source for AppSettings (conf/app.yaml, conf/app.d/)."""
    return ConfDYamlConfigSettingsSource(
        settings_cls,
        yaml_file="app.yaml",
        confd_dir="app.d",
        config_dir_env="APP_CONFIG_DIR",
    )


def create_rabbit_yaml_source(settings_cls: type[BaseSettings]) -> ConfDYamlConfigSettingsSource:
    """Create YAML source for RabbitSettings (conf/rabbit.yaml, conf/rabbit.d/)."""
    return ConfDYamlConfigSettingsSource(
        settings_cls,
        yaml_file="rabbit.yaml",
        confd_dir="rabbit.d",
        config_dir_env="RABBIT_CONFIG_DIR",
    )


def create_logging_yaml_source(settings_cls: type[BaseSettings]) -> ConfDYamlConfigSettingsSource:
    """Create YAML source for LoggingSettings (conf/logging.yaml, conf/logging.d/)."""
    return ConfDYamlConfigSettingsSource(
        settings_cls,
        yaml_file="logging.yaml",
        confd_dir="logging.d",
        config_dir_env="LOG_CONFIG_DIR",
    )

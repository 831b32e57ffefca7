"""Configuration management for assetmin."""

from __future__ import annotations

import os
import textwrap
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

import yaml

from .exceptions import ConfigError
from .models import AssetminConfig, LoggingSettings
from .resolver import (
    assign_nested,
    extract_env_overrides,
    flatten_for_env,
    resolve_with_precedence,
)

DEFAULT_CONFIG_PATH = Path("~/.assetmin/config.yaml")
_CONFIG_HEADER = textwrap.dedent(
    """\
    # assetmin configuration file
    # Manage with `assetmin config set KEY --value VALUE` or `assetmin config edit`.
    # document_root is substituted for the leading "/" of "//" source paths.
    """
)


class ConfigManager:
    """Read and write the YAML configuration file and resolve effective settings."""

    def __init__(
        self,
        config_path: Path | None = None,
        *,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._config_path = (config_path or DEFAULT_CONFIG_PATH).expanduser()
        self._env = os.environ if env is None else env

    @property
    def config_path(self) -> Path:
        """Return the resolved configuration path."""
        return self._config_path

    def load(
        self,
        *,
        cli_overrides: Mapping[str, Any] | None = None,
        include_env: bool = True,
        ensure_file: bool = True,
        env_overrides: Mapping[str, str] | None = None,
    ) -> AssetminConfig:
        """Return the effective configuration.

        Args:
            cli_overrides: Dotted-key overrides supplied on the command line.
            include_env: Whether ``ASSETMIN__*`` variables are honored.
            ensure_file: Create a default file first when none exists.
            env_overrides: Environment mapping used instead of the manager's own.

        Raises:
            ConfigError: If the file cannot be parsed or values fail validation.
        """
        if ensure_file:
            self.ensure_exists()

        env_layer = None
        if include_env:
            env_source = self._env if env_overrides is None else env_overrides
            env_layer = extract_env_overrides(env_source) or None

        return resolve_with_precedence(
            defaults=AssetminConfig(),
            file_overrides=self.load_file_overrides(),
            env_overrides=env_layer,
            cli_overrides=cli_overrides,
        )

    def load_file_overrides(self) -> dict[str, Any]:
        """Return the raw mapping stored on disk (empty when the file is absent)."""
        if not self._config_path.exists():
            return {}

        try:
            raw = yaml.safe_load(self._config_path.read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            raise ConfigError(f"Failed to parse configuration file: {exc}") from exc

        if raw is None:
            return {}
        if not isinstance(raw, dict):
            raise ConfigError("Configuration file must contain a mapping at the top level.")
        return raw

    def save(self, config: AssetminConfig | Mapping[str, Any]) -> None:
        """Persist configuration data to disk with the standard header."""
        if isinstance(config, AssetminConfig):
            data = config.model_dump(mode="python")
        else:
            data = dict(config)

        self._config_path.parent.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        body = yaml.safe_dump(data, sort_keys=False)
        self._config_path.write_text(
            f"{_CONFIG_HEADER}# Last updated: {stamp}\n{body}", encoding="utf-8"
        )

    def ensure_exists(self) -> Path:
        """Write a default configuration file unless one is already present."""
        if not self._config_path.exists():
            self.save(AssetminConfig())
        return self._config_path

    def read_text(self) -> str:
        """Return the current configuration file contents."""
        if not self._config_path.exists():
            return ""
        return self._config_path.read_text(encoding="utf-8")


__all__ = [
    "AssetminConfig",
    "ConfigError",
    "ConfigManager",
    "DEFAULT_CONFIG_PATH",
    "LoggingSettings",
    "assign_nested",
    "extract_env_overrides",
    "flatten_for_env",
    "resolve_with_precedence",
]

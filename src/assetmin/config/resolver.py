"""Configuration resolution helpers."""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from copy import deepcopy
from typing import Any, Dict, Mapping

import yaml
from pydantic import ValidationError

from .exceptions import ConfigError
from .models import AssetminConfig

ENV_PREFIX = "ASSETMIN__"


def resolve_with_precedence(
    *,
    defaults: AssetminConfig,
    file_overrides: Mapping[str, Any] | None = None,
    env_overrides: Mapping[str, Any] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> AssetminConfig:
    """Layer overrides onto defaults; later layers win (file, environment, CLI)."""
    merged = defaults.model_dump(mode="python")
    layers = {"file": file_overrides, "environment": env_overrides, "cli": cli_overrides}
    for layer_name, layer in layers.items():
        if layer is not None:
            merged = _deep_merge(merged, _expand_dotted(layer, layer_name=layer_name))

    try:
        return AssetminConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration values: {exc}") from exc


def extract_env_overrides(env: Mapping[str, str], prefix: str = ENV_PREFIX) -> dict[str, Any]:
    """Collect ``ASSETMIN__SECTION__KEY`` variables into a nested override mapping.

    Values are parsed as YAML scalars so ``true`` or ``10`` keep their types; text
    that is not valid YAML is kept verbatim.
    """
    overrides: dict[str, Any] = {}
    for key, raw_value in env.items():
        if not key.startswith(prefix):
            continue
        segments = [segment.lower() for segment in key[len(prefix) :].split("__") if segment]
        if not segments:
            continue
        try:
            value = yaml.safe_load(raw_value)
        except yaml.YAMLError:
            value = raw_value
        assign_nested(overrides, segments, value)
    return overrides


def flatten_for_env(config: AssetminConfig) -> Dict[str, str]:
    """Render the config as the environment variables that would reproduce it."""
    flat: Dict[str, str] = {}

    def _walk(path: list[str], value: Any) -> None:
        if isinstance(value, dict):
            for child_key, child in value.items():
                _walk([*path, str(child_key)], child)
            return
        name = prefix_key(path)
        if isinstance(value, list):
            flat[name] = yaml.safe_dump(value, default_flow_style=True).strip()
        else:
            flat[name] = "null" if value is None else str(value)

    for key, value in config.model_dump(mode="python").items():
        _walk([str(key)], value)
    return flat


def prefix_key(path: list[str]) -> str:
    """Return the environment variable name for a nested config path."""
    return ENV_PREFIX + "__".join(part.upper() for part in path)


def assign_nested(target: dict[str, Any], path: list[str], value: Any) -> None:
    """Assign ``value`` at ``path`` inside ``target``, creating mappings on the way.

    Raises:
        ConfigError: If a non-mapping value sits on the path.
    """
    node = target
    for segment in path[:-1]:
        child = node.setdefault(segment, {})
        if child is None:
            child = node[segment] = {}
        if not isinstance(child, dict):
            raise ConfigError(f"Cannot assign {'.'.join(path)}: '{segment}' is not a mapping.")
        node = child
    node[path[-1]] = value


def _expand_dotted(layer: Mapping[str, Any], *, layer_name: str) -> dict[str, Any]:
    if not isinstance(layer, MappingABC):
        raise ConfigError(f"{layer_name.capitalize()} overrides must be a mapping.")

    expanded: dict[str, Any] = {}
    for key, value in layer.items():
        if not isinstance(key, str):
            raise ConfigError(f"{layer_name.capitalize()} override keys must be strings.")
        if isinstance(value, MappingABC):
            value = _expand_dotted(value, layer_name=layer_name)
        single: dict[str, Any] = {}
        assign_nested(single, key.split("."), value)
        expanded = _deep_merge(expanded, single)
    return expanded


def _deep_merge(base: Mapping[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    merged = {key: deepcopy(value) for key, value in base.items()}
    for key, value in overrides.items():
        current = merged.get(key)
        if isinstance(value, MappingABC) and isinstance(current, MappingABC):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = deepcopy(value)
    return merged


__all__ = [
    "ENV_PREFIX",
    "assign_nested",
    "extract_env_overrides",
    "flatten_for_env",
    "prefix_key",
    "resolve_with_precedence",
]

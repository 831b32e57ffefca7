"""Declarative source specifications and source-list file loading."""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from assetmin.config.exceptions import ConfigError


class SourceSpec(BaseModel):
    """Validated specification record used to construct a :class:`Source`.

    Keys follow the camelCase names used in source lists (``getContentFunc``,
    ``lastModified``, ``minifyOptions``); the snake_case field names are accepted
    as well.

    Attributes:
        filepath: Path to a file; a leading ``//`` is resolved against the document root.
        id: Logical name for inline or lazily produced content.
        content: Inline content returned verbatim.
        get_content_func: Producer called with the namespaced id on retrieval.
        last_modified: Explicit modification timestamp for id-based sources.
        minifier: Minifier override for this source only.
        minify_options: Options passed to this source's minifier.
    """

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )

    filepath: Optional[str] = None
    id: Optional[str] = None
    content: Optional[str] = None
    get_content_func: Optional[Callable[[str], str]] = Field(default=None, alias="getContentFunc")
    last_modified: Optional[int] = Field(default=None, alias="lastModified")
    minifier: Any = None
    minify_options: Optional[Dict[str, Any]] = Field(default=None, alias="minifyOptions")

    @field_validator("filepath", "id")
    @classmethod
    def _reject_empty(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value:
            raise ValueError("must not be empty")
        return value


def coerce_spec(spec: SourceSpec | Mapping[str, Any]) -> SourceSpec:
    """Return ``spec`` as a validated :class:`SourceSpec`.

    Raises:
        ConfigError: If the mapping has unknown keys or values of the wrong type.
    """
    if isinstance(spec, SourceSpec):
        return spec
    if not isinstance(spec, MappingABC):
        raise ConfigError(f"Source specification must be a mapping, got {type(spec).__name__}.")
    try:
        return SourceSpec.model_validate(dict(spec))
    except ValidationError as exc:
        raise ConfigError(f"Invalid source specification: {exc}") from exc


def load_source_specs(path: Path) -> List[dict[str, Any]]:
    """Read a YAML source list.

    The document is either a list of specification mappings or a mapping with a
    ``sources`` list. Entries are returned unvalidated, in file order.

    Raises:
        ConfigError: If the file is not UTF-8, or its YAML cannot be parsed or has
            the wrong shape.
        OSError: If the file cannot be read.
    """
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except UnicodeDecodeError as exc:
        raise ConfigError(f"Source list {path} is not valid UTF-8: {exc.reason}.") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse source list {path}: {exc}") from exc

    if isinstance(raw, dict):
        raw = raw.get("sources")
    if not isinstance(raw, list):
        raise ConfigError(f"Source list {path} must be a list or contain a 'sources' list.")

    for index, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise ConfigError(f"Source list {path} entry {index} must be a mapping.")
    return raw


__all__ = ["SourceSpec", "coerce_spec", "load_source_specs"]

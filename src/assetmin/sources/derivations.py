"""Set-level derivations over an ordered sequence of sources."""

from __future__ import annotations

import datetime
import enum
import functools
import hashlib
import json
import types
from collections.abc import Mapping as MappingABC
from decimal import Decimal
from pathlib import PurePath
from typing import Any, Iterable, Mapping, Sequence
from uuid import UUID

from pydantic import BaseModel

from assetmin.config.exceptions import ConfigError

from .source import Source

TYPE_CSS = "text/css"
TYPE_JS = "application/x-javascript"
TYPE_HTML = "text/html"
TYPE_PLAIN = "text/plain"

_TEXT_VALUE_TYPES = (PurePath, Decimal, UUID, datetime.date, datetime.time, datetime.timedelta)

CONTENT_TYPES: Mapping[str, str] = {
    "css": TYPE_CSS,
    "js": TYPE_JS,
    "html": TYPE_HTML,
}


def have_no_minify_prefs(sources: Iterable[Source]) -> bool:
    """Return True if no source carries its own minifier or minifier options.

    When True the pipeline can concatenate everything and minify in one pass.
    """
    return not any(source.has_minify_prefs for source in sources)


def get_digest(sources: Sequence[Source]) -> str:
    """Return a cache key identifying this ordered set of sources.

    The key covers each source's id, minifier and minifier options in order.
    Modification times are excluded; staleness is checked separately.

    Raises:
        ConfigError: If a minifier or option value has no stable representation.
    """
    triples = [
        [source.id, canonicalize(source.minifier), canonicalize(source.minify_options)]
        for source in sources
    ]
    payload = json.dumps(triples, separators=(",", ":"), ensure_ascii=False)
    return hashlib.md5(payload.encode("utf-8"), usedforsecurity=False).hexdigest()


def get_content_type(sources: Iterable[Source]) -> str:
    """Guess the content type from the first recognized file extension."""
    for source in sources:
        path = source.filepath
        if path is None:
            continue
        content_type = CONTENT_TYPES.get(path.rsplit(".", 1)[-1])
        if content_type is not None:
            return content_type
    return TYPE_PLAIN


def canonicalize(value: Any) -> Any:
    """Reduce ``value`` to JSON data that is identical for equal inputs in any process.

    Scalars pass through. Containers become tagged lists, with mapping pairs and
    set members sorted by their encoding, so key types may be mixed. Functions
    and classes are named by import path; ``functools.partial`` objects keep
    their arguments, and bound methods and other objects keep their attribute
    state.

    Raises:
        ConfigError: For lambdas, nested functions, self-referencing values and
            objects whose state cannot be inspected.
    """
    return _canonical(value, set())


def _encoded(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def _import_path(target: Any) -> str:
    module = getattr(target, "__module__", None)
    qualname = getattr(target, "__qualname__", None)
    if not module or not qualname or "<lambda>" in qualname or "<locals>" in qualname:
        raise ConfigError(f"Cannot digest {target!r}: it is not importable by name.")
    return f"{module}:{qualname}"


def _canonical(value: Any, active: set[int]) -> Any:
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if id(value) in active:
        raise ConfigError(f"Cannot digest a self-referencing {type(value).__qualname__}.")
    active.add(id(value))
    try:
        return _canonical_compound(value, active)
    finally:
        active.discard(id(value))


def _canonical_compound(value: Any, active: set[int]) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return ["bytes", bytes(value).hex()]
    if isinstance(value, MappingABC):
        pairs = [
            [_canonical(key, active), _canonical(item, active)] for key, item in value.items()
        ]
        return ["map", sorted(pairs, key=lambda pair: _encoded(pair[0]))]
    if isinstance(value, (list, tuple)):
        return ["seq", [_canonical(item, active) for item in value]]
    if isinstance(value, (set, frozenset)):
        return ["set", sorted((_canonical(item, active) for item in value), key=_encoded)]
    if isinstance(value, functools.partial):
        return [
            "partial",
            _canonical(value.func, active),
            _canonical(value.args, active),
            _canonical(value.keywords, active),
        ]
    if isinstance(value, types.MethodType):
        return ["method", _import_path(value.__func__), _canonical(value.__self__, active)]
    if isinstance(value, types.BuiltinFunctionType):
        owner = value.__self__
        if owner is None or isinstance(owner, types.ModuleType):
            return ["callable", _import_path(value)]
        path = f"{_import_path(type(owner))}.{value.__name__}"
        return ["method", path, _canonical(owner, active)]
    if isinstance(value, (types.FunctionType, type)):
        return ["callable", _import_path(value)]
    if isinstance(value, enum.Enum):
        return ["enum", _import_path(type(value)), _canonical(value.value, active)]
    if isinstance(value, _TEXT_VALUE_TYPES):
        return ["value", _import_path(type(value)), str(value)]
    if isinstance(value, BaseModel):
        return ["object", _import_path(type(value)), _canonical(value.model_dump(), active)]
    return ["object", _import_path(type(value)), _canonical(_object_state(value), active)]


def _object_state(value: Any) -> dict[str, Any]:
    state = dict(vars(value)) if hasattr(value, "__dict__") else None
    for klass in type(value).__mro__:
        slots = klass.__dict__.get("__slots__", ())
        for name in (slots,) if isinstance(slots, str) else slots:
            if name in ("__dict__", "__weakref__") or not hasattr(value, name):
                continue
            if state is None:
                state = {}
            state.setdefault(name, getattr(value, name))
    if state is None:
        raise ConfigError(
            f"Cannot digest a {type(value).__qualname__}: it has no inspectable attributes."
        )
    return state


__all__ = [
    "CONTENT_TYPES",
    "TYPE_CSS",
    "TYPE_HTML",
    "TYPE_JS",
    "TYPE_PLAIN",
    "canonicalize",
    "get_content_type",
    "get_digest",
    "have_no_minify_prefs",
]

"""Content sources and the derivations the minification pipeline keys on."""

from __future__ import annotations

from typing import Any, Iterable, List, Mapping

from .derivations import (
    CONTENT_TYPES,
    TYPE_CSS,
    TYPE_HTML,
    TYPE_JS,
    TYPE_PLAIN,
    canonicalize,
    get_content_type,
    get_digest,
    have_no_minify_prefs,
)
from .origins import ContentProducer, FilePath, InlineContent, LazyContent, Origin
from .source import ID_PREFIX, Source, resolve_document_path
from .spec import SourceSpec, coerce_spec, load_source_specs


def build_sources(
    specs: Iterable[SourceSpec | Mapping[str, Any]],
    *,
    document_root: str | None = None,
    encoding: str = "utf-8",
) -> List[Source]:
    """Construct sources from specifications, preserving their order."""
    return [Source(spec, document_root=document_root, encoding=encoding) for spec in specs]


__all__ = [
    "CONTENT_TYPES",
    "ContentProducer",
    "FilePath",
    "ID_PREFIX",
    "InlineContent",
    "LazyContent",
    "Origin",
    "Source",
    "SourceSpec",
    "TYPE_CSS",
    "TYPE_HTML",
    "TYPE_JS",
    "TYPE_PLAIN",
    "build_sources",
    "canonicalize",
    "coerce_spec",
    "get_content_type",
    "get_digest",
    "have_no_minify_prefs",
    "load_source_specs",
    "resolve_document_path",
]

"""The :class:`Source` content abstraction."""

from __future__ import annotations

import copy
import logging
import os
import time
from types import MappingProxyType
from typing import Any, Mapping, Optional

from assetmin.config.exceptions import ConfigError

from .origins import FilePath, InlineContent, LazyContent, Origin
from .spec import SourceSpec, coerce_spec

LOGGER = logging.getLogger(__name__)

ID_PREFIX = "id::"
DOCUMENT_ROOT_SHORTHAND = "//"


def resolve_document_path(filepath: str, document_root: str | None) -> str:
    """Replace the leading ``/`` of a ``//`` path with the document root.

    Other paths are returned unchanged. The result is not checked for existence.

    Raises:
        ConfigError: If the shorthand is used without a configured document root.
    """
    if not filepath.startswith(DOCUMENT_ROOT_SHORTHAND):
        return filepath
    if not document_root:
        raise ConfigError(f"Cannot resolve {filepath!r}: no document root is configured.")
    return document_root.rstrip("/") + filepath[1:]


def _frozen_options(options: Optional[Mapping[str, Any]]) -> Optional[Mapping[str, Any]]:
    if options is None:
        return None
    try:
        copied = copy.deepcopy(dict(options))
    except (TypeError, copy.Error) as exc:
        raise ConfigError(f"minifyOptions cannot be copied: {exc}") from exc
    return _freeze(copied, set())


def _freeze(value: Any, active: set[int]) -> Any:
    # Nested dicts become read-only views and lists become tuples.
    if not isinstance(value, (dict, list)):
        return value
    if id(value) in active:
        raise ConfigError("minifyOptions must not contain themselves.")
    active.add(id(value))
    try:
        if isinstance(value, dict):
            return MappingProxyType({key: _freeze(item, active) for key, item in value.items()})
        return tuple(_freeze(item, active) for item in value)
    finally:
        active.discard(id(value))


class Source:
    """A unit of content to be minified, plus the metadata the pipeline keys on.

    A source reads from a file, returns inline text, or calls a producer; which
    one is fixed by :attr:`origin` at construction. Apart from content retrieval
    the instance is read-only, so it can be shared between threads.
    """

    __slots__ = ("_origin", "_id", "_last_modified", "_minifier", "_minify_options", "_encoding")

    def __init__(
        self,
        spec: SourceSpec | Mapping[str, Any],
        *,
        document_root: str | None = None,
        encoding: str = "utf-8",
    ) -> None:
        """Build a source from a specification record.

        Args:
            spec: Specification mapping or validated :class:`SourceSpec`.
            document_root: Directory substituted for the ``//`` path shorthand.
            encoding: Text encoding used to read file-backed content.

        Raises:
            ConfigError: If neither ``filepath`` nor ``id`` is given, or an ``id``
                has neither ``content`` nor ``getContentFunc``, or ``minifyOptions``
                cannot be copied.
            OSError: If a file-backed source cannot be stat'ed.
        """
        record = coerce_spec(spec)
        self._encoding = encoding

        if record.filepath is not None:
            path = resolve_document_path(record.filepath, document_root)
            self._origin: Origin = FilePath(path)
            self._id = path
            self._last_modified = int(os.stat(path).st_mtime)
        elif record.id is not None:
            self._id = ID_PREFIX + record.id
            if record.content is not None:
                self._origin = InlineContent(record.content)
            elif record.get_content_func is not None:
                self._origin = LazyContent(record.get_content_func)
            else:
                raise ConfigError(
                    f"Source {record.id!r} needs either 'content' or 'getContentFunc'."
                )
            if record.last_modified is None:
                self._last_modified = int(time.time())
            else:
                self._last_modified = record.last_modified
        else:
            raise ConfigError("Source specification needs either 'filepath' or 'id'.")

        self._minifier = record.minifier
        self._minify_options = _frozen_options(record.minify_options)
        LOGGER.debug(
            "Constructed %s source %s (last modified %d).",
            self._origin.kind,
            self._id,
            self._last_modified,
        )

    @property
    def origin(self) -> Origin:
        """Return the origin variant backing this source."""
        return self._origin

    @property
    def id(self) -> str:
        """Return the identifier: the resolved path, or ``id::<name>``."""
        return self._id

    @property
    def last_modified(self) -> int:
        """Return the modification timestamp captured at construction."""
        return self._last_modified

    @property
    def minifier(self) -> Any:
        """Return the per-source minifier override, or ``None``."""
        return self._minifier

    @property
    def minify_options(self) -> Optional[Mapping[str, Any]]:
        """Return a read-only view of the per-source minifier options, or ``None``.

        The options are deep-copied and frozen (nested dicts become read-only views,
        lists become tuples) at construction, so changing the mapping that
        was passed in does not affect this source or its digest.
        """
        return self._minify_options

    @property
    def filepath(self) -> Optional[str]:
        """Return the file path for file-backed sources, otherwise ``None``."""
        if isinstance(self._origin, FilePath):
            return self._origin.path
        return None

    @property
    def has_minify_prefs(self) -> bool:
        """Return True when a minifier or minifier options were supplied."""
        return self._minifier is not None or self._minify_options is not None

    @property
    def encoding(self) -> str:
        """Return the text encoding used to read file-backed content."""
        return self._encoding

    def get_content(self) -> str:
        """Return the source content.

        Files are re-read on each call and producers are re-invoked on each call;
        nothing is cached.

        Raises:
            OSError: If a file-backed source cannot be read.
            UnicodeDecodeError: If a file does not decode with :attr:`encoding`.
        """
        origin = self._origin
        if isinstance(origin, FilePath):
            with open(origin.path, encoding=self._encoding, newline="") as handle:
                return handle.read()
        if isinstance(origin, InlineContent):
            return origin.text
        return origin.producer(self._id)

    def __repr__(self) -> str:
        return f"Source(kind={self._origin.kind!r}, id={self._id!r}, last_modified={self._last_modified})"


__all__ = ["DOCUMENT_ROOT_SHORTHAND", "ID_PREFIX", "Source", "resolve_document_path"]

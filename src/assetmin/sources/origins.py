"""Origin variants describing where a source's content comes from."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, ClassVar, Union

ContentProducer = Callable[[str], str]
"""Callback invoked with the source id that returns the source content."""


@dataclass(frozen=True)
class FilePath:
    """Content read from a file on disk."""

    kind: ClassVar[str] = "file"

    path: str


@dataclass(frozen=True)
class InlineContent:
    """Content held in memory and returned verbatim."""

    kind: ClassVar[str] = "inline"

    text: str = field(repr=False)


@dataclass(frozen=True)
class LazyContent:
    """Content computed on demand by a producer callback."""

    kind: ClassVar[str] = "lazy"

    producer: ContentProducer


Origin = Union[FilePath, InlineContent, LazyContent]


__all__ = ["ContentProducer", "FilePath", "InlineContent", "LazyContent", "Origin"]

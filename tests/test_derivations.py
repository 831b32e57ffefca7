"""Tests for the set-level derivations over sources."""

import functools
import os
import re
from pathlib import Path

import pytest

from assetmin.config import ConfigError
from assetmin.sources import (
    CONTENT_TYPES,
    TYPE_CSS,
    TYPE_HTML,
    TYPE_JS,
    TYPE_PLAIN,
    Source,
    canonicalize,
    get_content_type,
    get_digest,
    have_no_minify_prefs,
)


def _file(tmp_path: Path, name: str, text: str = "") -> Source:
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return Source({"filepath": str(path)})


def _inline(name: str, **extra: object) -> Source:
    return Source({"id": name, "content": name, **extra})


def css_minifier(text: str) -> str:
    return text


def js_minifier(text: str) -> str:
    return text


def level_minify(text: str, level: int = 0) -> str:
    return text


class LevelMinifier:
    def __init__(self, level: int) -> None:
        self.level = level

    def __call__(self, text: str) -> str:
        return text

    def run(self, text: str) -> str:
        return text


class Options:
    def __init__(self, mangle: bool) -> None:
        self.mangle = mangle


def test_content_type_table_is_fixed() -> None:
    assert dict(CONTENT_TYPES) == {"css": TYPE_CSS, "js": TYPE_JS, "html": TYPE_HTML}
    assert TYPE_PLAIN == "text/plain"


def test_content_type_uses_first_recognized_file(tmp_path: Path) -> None:
    sources = [_file(tmp_path, "a.css"), _file(tmp_path, "b.js")]

    assert get_content_type(sources) == "text/css"
    assert get_content_type(list(reversed(sources))) == TYPE_JS


def test_content_type_skips_non_file_sources(tmp_path: Path) -> None:
    sources = [_inline("x"), _file(tmp_path, "page.html")]

    assert get_content_type(sources) == "text/html"


def test_content_type_defaults_to_plain_without_files() -> None:
    assert get_content_type([_inline("x")]) == "text/plain"
    assert get_content_type([]) == "text/plain"


def test_content_type_unrecognized_extension_falls_through(tmp_path: Path) -> None:
    assert get_content_type([_file(tmp_path, "noext")]) == "text/plain"
    assert get_content_type([_file(tmp_path, "data.txt"), _file(tmp_path, "z.js")]) == TYPE_JS


def test_content_type_extension_is_case_sensitive(tmp_path: Path) -> None:
    assert get_content_type([_file(tmp_path, "LOUD.CSS")]) == "text/plain"


def test_no_minify_prefs_when_all_defaults(tmp_path: Path) -> None:
    assert have_no_minify_prefs([_inline("a"), _file(tmp_path, "b.css")]) is True
    assert have_no_minify_prefs([]) is True


@pytest.mark.parametrize(
    "extra",
    [
        {"minifier": css_minifier},
        {"minifyOptions": {"level": 2}},
        {"minifyOptions": {}},
        {"minifier": "jsmin"},
    ],
)
def test_any_preference_disables_single_pass(extra: dict) -> None:
    sources = [_inline("plain"), _inline("tuned", **extra)]

    assert have_no_minify_prefs(sources) is False


def test_no_minify_prefs_short_circuits() -> None:
    seen: list[str] = []

    class Recorder:
        def __init__(self, name: str, prefs: bool) -> None:
            self.name = name
            self.prefs = prefs

        @property
        def has_minify_prefs(self) -> bool:
            seen.append(self.name)
            return self.prefs

    recorders = [Recorder("a", False), Recorder("b", True), Recorder("c", False)]

    assert have_no_minify_prefs(recorders) is False  # type: ignore[arg-type]
    assert seen == ["a", "b"]


def test_digest_is_hex_and_deterministic() -> None:
    sources = [_inline("a"), _inline("b")]

    first = get_digest(sources)

    assert re.fullmatch(r"[0-9a-f]{32}", first)
    assert get_digest(sources) == first
    assert get_digest([_inline("a"), _inline("b")]) == first


def test_digest_is_order_sensitive() -> None:
    one, two = _inline("one"), _inline("two")

    assert get_digest([one, two]) != get_digest([two, one])


def test_digest_ignores_last_modified(tmp_path: Path) -> None:
    early = _inline("x", lastModified=1)
    late = _inline("x", lastModified=2)
    assert get_digest([early]) == get_digest([late])

    path = tmp_path / "site.css"
    path.write_text("a{}", encoding="utf-8")
    before = Source({"filepath": str(path)})
    os.utime(path, (2_000_000_000, 2_000_000_000))
    after = Source({"filepath": str(path)})
    assert before.last_modified != after.last_modified
    assert get_digest([before]) == get_digest([after])


def test_digest_ignores_content() -> None:
    assert get_digest([Source({"id": "x", "content": "old"})]) == get_digest(
        [Source({"id": "x", "content": "new"})]
    )


def test_digest_changes_with_minifier_preferences() -> None:
    base = get_digest([_inline("x")])

    with_css = get_digest([_inline("x", minifier=css_minifier)])
    with_js = get_digest([_inline("x", minifier=js_minifier)])
    with_options = get_digest([_inline("x", minifyOptions={"level": 1})])
    with_other_options = get_digest([_inline("x", minifyOptions={"level": 2})])

    assert len({base, with_css, with_js, with_options, with_other_options}) == 5


def test_digest_option_key_order_does_not_matter() -> None:
    left = _inline("x", minifyOptions={"a": 1, "b": 2})
    right = _inline("x", minifyOptions={"b": 2, "a": 1})

    assert get_digest([left]) == get_digest([right])


def test_digest_distinguishes_file_and_inline_ids(tmp_path: Path) -> None:
    path = tmp_path / "x"
    path.write_text("", encoding="utf-8")
    file_source = Source({"filepath": str(path)})
    inline_source = _inline(str(path))

    assert get_digest([file_source]) != get_digest([inline_source])


def test_digest_distinguishes_partial_minifier_arguments() -> None:
    gentle = get_digest([_inline("x", minifier=functools.partial(level_minify, level=1))])
    harsh = get_digest([_inline("x", minifier=functools.partial(level_minify, level=9))])
    again = get_digest([_inline("x", minifier=functools.partial(level_minify, level=1))])

    assert gentle != harsh
    assert gentle == again
    assert gentle != get_digest([_inline("x", minifier=level_minify)])


def test_digest_covers_callable_instance_state() -> None:
    gentle = get_digest([_inline("x", minifier=LevelMinifier(1))])
    harsh = get_digest([_inline("x", minifier=LevelMinifier(9))])

    assert gentle != harsh
    assert gentle == get_digest([_inline("x", minifier=LevelMinifier(1))])


def test_digest_covers_bound_method_owner() -> None:
    gentle = get_digest([_inline("x", minifier=LevelMinifier(1).run)])
    harsh = get_digest([_inline("x", minifier=LevelMinifier(9).run)])

    assert gentle != harsh
    assert gentle == get_digest([_inline("x", minifier=LevelMinifier(1).run)])
    assert gentle != get_digest([_inline("x", minifier=LevelMinifier(1))])


@pytest.mark.parametrize(
    "minifier",
    [lambda text: text, functools.partial(lambda text, level: text, level=1)],
)
def test_digest_rejects_anonymous_minifiers(minifier: object) -> None:
    with pytest.raises(ConfigError, match="not importable"):
        get_digest([_inline("x", minifier=minifier)])


def test_digest_rejects_nested_function_minifier() -> None:
    def local_minify(text: str) -> str:
        return text

    with pytest.raises(ConfigError):
        get_digest([_inline("x", minifier=local_minify)])


def test_digest_of_option_objects_uses_state_not_identity() -> None:
    first = get_digest([_inline("x", minifyOptions={"opts": Options(True)})])
    second = get_digest([_inline("x", minifyOptions={"opts": Options(True)})])
    other = get_digest([_inline("x", minifyOptions={"opts": Options(False)})])

    assert first == second
    assert first != other
    assert "0x" not in repr(canonicalize(Options(True)))


def test_digest_accepts_mixed_nested_key_types() -> None:
    left = _inline("x", minifyOptions={"map": {1: "a", "b": 2}})
    right = _inline("x", minifyOptions={"map": {"b": 2, 1: "a"}})

    assert get_digest([left]) == get_digest([right])
    stringly = _inline("x", minifyOptions={"map": {"1": "a", "b": 2}})
    assert get_digest([left]) != get_digest([stringly])


def test_digest_rejects_self_referencing_minifier() -> None:
    minifier = LevelMinifier(1)
    minifier.level = minifier  # type: ignore[assignment]

    with pytest.raises(ConfigError, match="self-referencing"):
        get_digest([_inline("x", minifier=minifier)])


def test_canonicalize_tags_containers_and_values() -> None:
    assert canonicalize(None) is None
    assert canonicalize([1, (2,)]) == ["seq", [1, ["seq", [2]]]]
    assert canonicalize({"b": 1, "a": 2}) == ["map", [["a", 2], ["b", 1]]]
    assert canonicalize(b"\x00\xff") == ["bytes", "00ff"]
    tagged = canonicalize(Path("a/b"))
    assert tagged[0] == "value"
    assert tagged[1].startswith("pathlib")
    assert tagged[2] == "a/b"

from __future__ import annotations

from pathlib import Path

import pytest

import hml_markup.include as include_module
from hml_markup.config import HmlConfig
from hml_markup.context import PipelineContext
from hml_markup.exceptions import IncludeError, MalformedMarkerError, MarkerNotFoundError
from hml_markup.include import IncludeHandler, select_lines
from hml_markup.models import BlockType

MARKED = "a\n//(\nb\n//)\nc\n"


def _handler(base_dir: Path, **config) -> IncludeHandler:
    context = PipelineContext.create(HmlConfig(builtin_macros=False, **config))
    context.base_dir = base_dir
    return IncludeHandler(context)


def _expand(handler: IncludeHandler, text: str) -> str:
    return handler.filter("", text, "", BlockType.TEXT)


def test_select_lines_keeps_marker_lines():
    assert select_lines(MARKED, r"//\(", r"//\)", remove_mark=False) == "//(\nb\n//)\n"


def test_select_lines_removes_markers():
    assert select_lines(MARKED, r"//\(", r"//\)", remove_mark=True) == "b\n"


def test_select_lines_from_only_runs_to_end():
    assert select_lines(MARKED, "b", None, remove_mark=False) == "b\n//)\nc\n"


def test_select_lines_to_searches_after_from():
    assert select_lines("x\nstart\nx\nend\n", "start", "x", remove_mark=False) == "start\nx\n"


def test_select_lines_missing_match():
    with pytest.raises(IncludeError, match='Can\'t find match for from="zzz"'):
        select_lines(MARKED, "zzz", None, remove_mark=False)
    with pytest.raises(IncludeError, match='Can\'t find match for to="zzz"'):
        select_lines(MARKED, None, "zzz", remove_mark=False)


def test_select_lines_malformed_pattern():
    with pytest.raises(IncludeError, match="Malformed from='\\(' argument"):
        select_lines(MARKED, "(", None, remove_mark=False)


def test_select_lines_errors_carry_the_argument():
    with pytest.raises(MarkerNotFoundError) as not_found:
        select_lines(MARKED, None, "zzz", remove_mark=False)
    with pytest.raises(MalformedMarkerError) as malformed:
        select_lines(MARKED, "(", None, remove_mark=False)

    assert (not_found.value.argument, not_found.value.pattern) == ("to", "zzz")
    assert (malformed.value.argument, malformed.value.pattern) == ("from", "(")
    assert isinstance(malformed.value, ValueError)


def test_include_wraps_file_in_listing(tmp_path: Path):
    (tmp_path / "A.java").write_text("class A {}", encoding="utf-8")

    result = _expand(_handler(tmp_path), 'See:\n<include src="A.java" label="a">\nafter')

    assert result == 'See:\n<listing label="a" file="A.java">\nclass A {}\n</listing>\nafter'


def test_include_without_numbers_uses_pre(tmp_path: Path):
    (tmp_path / "run.sh").write_text("ls\n", encoding="utf-8")

    result = _expand(_handler(tmp_path), '<include src="run.sh" numbers="false">')

    assert result == '<pre file="run.sh">\nls\n</pre>\n'


def test_include_applies_from_and_to(tmp_path: Path):
    (tmp_path / "code.c").write_text(MARKED, encoding="utf-8")

    result = _expand(
        _handler(tmp_path), '<include src="code.c" from="//\\(" to="//\\)" remove-mark="true">'
    )

    assert result == '<listing file="code.c">\nb\n</listing>\n'


def test_import_inserts_content_and_nests_relative_to_file(tmp_path: Path):
    part_dir = tmp_path / "parts"
    part_dir.mkdir()
    (part_dir / "outer.hml").write_text('outer <import src="inner.hml">', encoding="utf-8")
    (part_dir / "inner.hml").write_text("inner", encoding="utf-8")

    result = _expand(_handler(tmp_path), '[<import src="parts/outer.hml">]')

    assert result == "[outer inner]"


def test_missing_file_is_reported_and_removed(tmp_path: Path):
    handler = _handler(tmp_path)

    result = _expand(handler, 'a <include src="missing.java"> b')

    assert result == "a b"
    diagnostic = handler.context.diagnostics.diagnostics[0]
    assert diagnostic.message.startswith("Error in <include>: Error accessing")


def test_directive_without_source_is_reported(tmp_path: Path):
    handler = _handler(tmp_path)

    assert _expand(handler, '<include label="x">') == ""
    assert handler.context.diagnostics.diagnostics[0].message == (
        "Error in <include>: src= or href= argument required"
    )


def test_recursive_import_stops_at_depth_limit(tmp_path: Path):
    (tmp_path / "self.hml").write_text('x<import src="self.hml">', encoding="utf-8")
    handler = _handler(tmp_path, max_include_depth=3)

    result = _expand(handler, '<import src="self.hml">')

    assert result == "xxx"
    assert handler.context.diagnostics.diagnostics[0].message == (
        "Error in <import>: Includes nested more than 3 levels deep"
    )


def test_href_reads_url(monkeypatch, tmp_path: Path):
    requested = []

    def fake_read_url(url, max_size):
        requested.append(url)
        return "remote"

    monkeypatch.setattr(include_module, "read_url", fake_read_url)

    result = _expand(_handler(tmp_path), '<import href="http://example.invalid/part.hml">')

    assert result == "remote"
    assert requested == ["http://example.invalid/part.hml"]

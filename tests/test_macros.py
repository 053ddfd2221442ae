from __future__ import annotations

import re
from datetime import datetime
from pathlib import Path

import pytest

from hml_markup.context import PipelineContext
from hml_markup.diagnostics import DiagnosticSink
from hml_markup.exceptions import MacroDefinitionError
from hml_markup.macros import (
    CodeMacroHandler,
    MacroSet,
    RefMacroHandler,
    TextMacroHandler,
    compile_definition,
    expand_replacement,
    expand_variables,
    merge_continuation_lines,
    parse_definition,
)
from hml_markup.models import BlockType

NOW = datetime(2024, 3, 5, 14, 7, 9)


def test_continuation_lines_are_joined():
    merged = merge_continuation_lines("/x \\\n  /y \\\n z/MULTILINE\n/a/b/")

    assert merged == [(1, "/x/yz/MULTILINE"), (4, "/a/b/")]


def test_continued_definition_loads_with_flags():
    line_number, line = merge_continuation_lines("/x \\\n  /y \\\n z/MULTILINE")[0]

    assert parse_definition(line_number, line) == (BlockType.TEXT, "x", "yz", "MULTILINE")


@pytest.mark.parametrize(
    ("line", "expected"),
    [
        ("/a/b/", (BlockType.TEXT, "a", "b", None)),
        ("text: /a/b/", (BlockType.TEXT, "a", "b", None)),
        ("code: ~a~b~DOTALL", (BlockType.CODE, "a", "b", "DOTALL")),
        ("ref:|a|b|", (BlockType.REF, "a", "b", None)),
        ("/a/", (BlockType.TEXT, "a", "", None)),
        ("/a/b/ ## trailing comment", (BlockType.TEXT, "a", "b", None)),
        ("/\\#x/y/", (BlockType.TEXT, "#x", "y", None)),
    ],
)
def test_parse_definition(line: str, expected: tuple):
    assert parse_definition(1, line) == expected


@pytest.mark.parametrize("line", ["", "   ", "# whole line comment", "## another"])
def test_parse_definition_skips_blank_and_comment_lines(line: str):
    assert parse_definition(1, line) is None


def test_parse_definition_rejects_extra_fields():
    with pytest.raises(MacroDefinitionError) as excinfo:
        parse_definition(7, "/a/b/c/d")

    assert str(excinfo.value) == "Line 7: Macro def must have either two or three fields: /a/b/c/d"


def test_compile_definition_decodes_escapes():
    definition = compile_definition("x", "a\\tb\\n", None)

    assert definition.replacement == "a\tb\n"


def test_compile_definition_reports_illegal_modifier():
    sink = DiagnosticSink()

    definition = compile_definition("x", "y", "BOGUS|CASE_INSENSITIVE", sink)

    assert definition.pattern.flags & re.IGNORECASE
    assert sink.diagnostics[0].message.startswith("Ignoring illegal modifier (BOGUS)")


def test_compile_definition_literal_modifier_escapes_pattern():
    definition = compile_definition("a.b", "X", "LITERAL")

    assert definition.apply("a.b axb") == "X axb"


def test_compile_definition_rejects_missing_group():
    with pytest.raises(ValueError):
        compile_definition("(a)", "$2", None)


def test_expand_replacement_groups_and_escapes():
    match = re.search(r"(?P<first>a)(b)", "ab")

    assert expand_replacement("$2$1${first}\\$1$0", match) == "baa$1ab"


def test_expand_replacement_reads_multi_digit_groups_greedily():
    match = re.search("(a)" * 11, "a" * 11)

    assert expand_replacement("$11", match) == "a"
    assert expand_replacement("$12", re.search("(a)(b)", "ab")) == "a2"


def test_expand_variables():
    assert expand_variables("%(Month) %(day), %(year) %(hr):%(min):%(sec)", NOW) == "March 5, 2024 2:7:9"
    assert expand_variables("\\%(year)", NOW) == "\\%(year)"


def test_definition_apply_uses_date_variables():
    definition = compile_definition(r"\[year\]", "%(year)", None)

    assert definition.apply("(c) [year]", NOW) == "(c) 2024"


def test_macro_set_load_reports_and_continues():
    macros = MacroSet()
    sink = DiagnosticSink()

    loaded = macros.load("/(/x/\n/a/$3/\n/good/ok/\n", sink, "test.macros")

    assert loaded == 1
    assert macros.apply(BlockType.TEXT, "good") == "ok"
    assert sink.error_count == 2
    assert sink.diagnostics[0].message.startswith("test.macros: Line 1: ")


def test_macro_set_transfer_to_head_keeps_order():
    macros = MacroSet()
    macros.load("/a/1/\n", DiagnosticSink())
    user = MacroSet()
    user.load("/1/2/\n/2/3/\n", DiagnosticSink())

    macros.transfer_to_head(user)

    assert len(user) == 0
    assert [definition.replacement for definition in macros.definitions[BlockType.TEXT]] == ["2", "3", "1"]


def test_macro_set_load_file(tmp_path: Path):
    path = tmp_path / "book.macros"
    path.write_text("code: /int/long/\n", encoding="utf-8")
    macros = MacroSet()

    assert macros.load_file(path, DiagnosticSink()) == 1
    assert macros.apply(BlockType.CODE, "int x;") == "long x;"


def test_macro_set_load_missing_file_is_reported(tmp_path: Path):
    sink = DiagnosticSink()

    assert MacroSet().load_file(tmp_path / "missing.macros", sink) == 0
    assert sink.diagnostics[0].message.startswith("Couldn't read macro-definition file")


def test_builtin_macros_load_cleanly():
    sink = DiagnosticSink()
    macros = MacroSet()

    assert macros.load_builtin(sink) > 0
    assert sink.error_count == 0


def test_user_macros_run_before_builtin_macros():
    context = PipelineContext.create()
    handler = TextMacroHandler(context)

    result = handler.filter("", "<macro>\n/hello/{b hi}/\n</macro>\nhello", "", BlockType.TEXT)

    assert result == "\n<strong>hi</strong>"
    assert context.diagnostics.error_count == 0


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("{i word}", "<em>word</em>"),
        ("{c a b}", "<code>a b</code>"),
        ("pages 3--5", "pages 3&ndash;5"),
        ("this---that", "this&mdash;that"),
        ("a & b &amp; c", "a &amp; b &amp; c"),
        ("\\{b x\\}", "&#123;b x&#125;"),
        ("{link example.com here}", '<a target="_blank" href="http://example.com">here</a>'),
        ("[e']", "&eacute;"),
        ("---", '<hr class="hmlRule">'),
    ],
)
def test_builtin_text_macros(text: str, expected: str):
    context = PipelineContext.create()

    assert TextMacroHandler(context).filter("", text, "", BlockType.TEXT) == expected


def test_builtin_code_macros_escape_and_style_comments():
    context = PipelineContext.create()
    handler = CodeMacroHandler(context)

    result = handler.filter("<pre>", "\nif (a < b && !<b>!c!</b>!) // check\n", "</pre>", BlockType.CODE)

    assert result == (
        '<pre>\nif (a &lt; b &amp;&amp; &#60;b&#62;c&#60;/b&#62;) '
        '<span class="hmlComment">// check</span>\n</pre>'
    )


def test_code_macros_leave_urls_alone():
    context = PipelineContext.create()

    result = CodeMacroHandler(context).filter("", 'url = "http://x"\n', "", BlockType.CODE)

    assert result == 'url = "http://x"\n'


def test_ref_macros_apply_to_text_and_code():
    context = PipelineContext()
    context.macros.load("ref: /FOO/bar/\n", context.diagnostics)
    handler = RefMacroHandler(context)

    assert handler.filter("", "FOO", "", BlockType.TEXT) == "bar"
    assert handler.filter("<pre>", "FOO", "</pre>", BlockType.CODE) == "<pre>bar</pre>"

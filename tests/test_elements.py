from __future__ import annotations

import pytest

from hml_markup.diagnostics import DiagnosticSink
from hml_markup.elements import detab, format_arguments, parse_arguments, process_element


def _echo(tag: str, arguments: dict[str, str], body: str, text: str, start: int) -> str:
    return f"[{tag}{format_arguments(arguments)}|{body}]"


def test_process_element_replaces_each_element():
    sink = DiagnosticSink()

    result = process_element(sink, "a <b>1</b> and <b x='y'>2</b>", "b", None, _echo)

    assert result == 'a [b|1] and [b x="y"|2]'
    assert sink.error_count == 0


def test_process_element_adds_default_class():
    result = process_element(DiagnosticSink(), "<block>x</block>", "block(?!quote)", "hmlBlock", _echo)

    assert result == '[block class="hmlBlock"|x]'


def test_process_element_keeps_explicit_class():
    result = process_element(
        DiagnosticSink(), '<block class="mine">x</block>', "block(?!quote)", "hmlBlock", _echo
    )

    assert result == '[block class="mine"|x]'


def test_process_element_name_pattern_excludes_other_tags():
    text = "<blockquote>x</blockquote>"

    assert process_element(DiagnosticSink(), text, "block(?!quote)", None, _echo) == text


def test_process_element_body_spans_lines():
    assert process_element(DiagnosticSink(), "<b>one\ntwo</b>", "b", None, _echo) == "[b|one\ntwo]"


def test_process_element_reports_mismatched_tags():
    sink = DiagnosticSink()

    result = process_element(sink, "x\n<h1>Title</h2>", "h[0-9]", None, _echo)

    assert result == "x\n[h1|Title]"
    assert sink.diagnostics[0].message == "Mismatched start (<h1>) and end (</h2>) tag."
    assert sink.diagnostics[0].line_number == 2


def test_process_element_removes_leading_space():
    result = process_element(
        DiagnosticSink(), "word  \n<note>x</note>", "note", None, _echo, remove_leading_space=True
    )

    assert result == "word[note|x]"


def test_process_element_passes_position_to_handler():
    positions = []

    def handler(tag, arguments, body, text, start):
        positions.append(start)
        return ""

    process_element(DiagnosticSink(), "abc<b>x</b>", "b", None, handler)

    assert positions == [3]


def test_parse_arguments_accepts_both_quote_styles():
    arguments = parse_arguments("""file='A.java' label="main" first-line = "10" """)

    assert arguments == {"file": "A.java", "label": "main", "first-line": "10"}


def test_parse_arguments_appends_default_class_last():
    assert list(parse_arguments('id="x"', "hmlPre")) == ["id", "class"]


def test_format_arguments_skips_removed_names():
    assert format_arguments({"a": "1", "b": "2", "c": "3"}, "b") == ' a="1" c="3"'


@pytest.mark.parametrize(
    ("text", "width", "expected"),
    [
        ("\tx", 4, "    x"),
        ("ab\tc", 4, "ab  c"),
        ("abcd\te", 4, "abcd    e"),
        ("a\n\tb", 4, "a\n    b"),
        ("\tx", 8, "        x"),
        ("!<b>!\tx", 4, "!<b>!    x"),
        ("no tabs", 4, "no tabs"),
    ],
)
def test_detab(text: str, width: int, expected: str):
    assert detab(text, width) == expected

from __future__ import annotations

import pytest

from hml_markup.diagnostics import DiagnosticSink
from hml_markup.exceptions import HandlerConfigurationError
from hml_markup.models import BlockType, Document, HandlerCapability
from hml_markup.passes import DefaultHandler, Handler, Pass


class RecordingHandler(Handler):
    def __init__(self, *capabilities: HandlerCapability, tag: str = ""):
        self.capabilities = frozenset(capabilities)
        self.tag = tag
        self.calls: list[tuple[str, str, str, BlockType]] = []

    def filter(self, prefix: str, body: str, suffix: str, block_type: BlockType) -> str:
        self.calls.append((prefix, body, suffix, block_type))
        return prefix + body + self.tag + suffix


class FailingHandler(Handler):
    capabilities = frozenset({HandlerCapability.TEXT})

    def filter(self, prefix: str, body: str, suffix: str, block_type: BlockType) -> str:
        raise RuntimeError("kaput")


def _run(text: str, *handlers: Handler, name: str = "test") -> tuple[bool, Document, DiagnosticSink]:
    sink = DiagnosticSink()
    document = Document(text)
    succeeded = Pass(handlers, sink, name).process(document)
    return succeeded, document, sink


def test_handler_without_capabilities_is_rejected():
    with pytest.raises(HandlerConfigurationError):
        Pass([RecordingHandler()], DiagnosticSink())


def test_handler_without_filter_cannot_be_created():
    class Incomplete(Handler):
        capabilities = frozenset({HandlerCapability.TEXT})

    with pytest.raises(TypeError):
        Incomplete()


def test_missing_categories_get_default_handlers():
    stage = Pass([RecordingHandler(HandlerCapability.TEXT)], DiagnosticSink())

    assert isinstance(stage.handlers[HandlerCapability.CODE][0], DefaultHandler)
    assert isinstance(stage.handlers[HandlerCapability.SNIPPET][0], DefaultHandler)
    assert not isinstance(stage.handlers[HandlerCapability.TEXT][0], DefaultHandler)


def test_identity_pass_leaves_document_unchanged():
    text = "a `b` c\n<pre>\nx < y\n</pre>\n<listing>\nint i;\n</listing>\n"

    succeeded, document, sink = _run(text, DefaultHandler(HandlerCapability.TEXT))

    assert succeeded
    assert document.text == text
    assert sink.error_count == 0


def test_nested_comments_are_removed():
    succeeded, document, _ = _run("x<!= a <!= b =!> =!>y", DefaultHandler(HandlerCapability.TEXT))

    assert succeeded
    assert document.text == "xy"


def test_text_handlers_compose_in_registration_order():
    first = RecordingHandler(HandlerCapability.TEXT, tag="1")
    second = RecordingHandler(HandlerCapability.TEXT, tag="2")

    _, document, _ = _run("x", first, second)

    assert document.text == "x12"
    assert second.calls == [("", "x1", "", BlockType.TEXT)]


def test_snippet_handler_sees_text_between_backquotes():
    handler = RecordingHandler(HandlerCapability.SNIPPET)

    _run("call `f(x)` now", handler)

    assert handler.calls == [("`", "f(x)", "`", BlockType.SNIPPET)]


def test_code_handler_receives_block_delimiters():
    handler = RecordingHandler(HandlerCapability.CODE)

    _run('<listing file="A.java">\nclass A {}\n</listing>', handler)

    assert handler.calls == [('<listing file="A.java">', "\nclass A {}\n", "</listing>", BlockType.CODE)]


def test_nested_identical_code_blocks_form_one_region():
    handler = RecordingHandler(HandlerCapability.CODE)

    _run("<pre>.<pre>x</pre>.</pre>", handler)

    assert handler.calls == [("<pre>", ".<pre>x</pre>.", "</pre>", BlockType.CODE)]


def test_shorthand_lines_become_a_code_block():
    handler = RecordingHandler(HandlerCapability.CODE)

    succeeded, document, _ = _run("text\n, a\n,\tb\nmore", handler)

    assert succeeded
    assert handler.calls == [("<pre>", "\n a\nb\n", "</pre>", BlockType.CODE)]
    assert document.text == "text\n<pre>\n a\nb\n</pre>more"


def test_multiline_snippet_fails_the_pass():
    text = "a `b\nc` d"

    succeeded, document, sink = _run(text, RecordingHandler(HandlerCapability.SNIPPET))

    assert not succeeded
    assert document.text == text
    assert sink.error_count == 1
    assert sink.diagnostics[0].message.startswith("Code snippets (`code`) must be on a single line.")
    assert sink.diagnostics[0].line_number == 1


def test_unmatched_close_fails_the_pass():
    succeeded, document, sink = _run("x\n</pre>", DefaultHandler(HandlerCapability.TEXT))

    assert not succeeded
    assert document.text == "x\n</pre>"
    assert sink.render() == "Line 2: Found </pre> without matching start element\n\t</pre>"


def test_unclosed_listing_fails_the_pass():
    text = "intro\n<listing>\nint x;\n"

    succeeded, document, sink = _run(text, RecordingHandler(HandlerCapability.CODE))

    assert not succeeded
    assert document.text == text
    assert sink.diagnostics[0].message == "Could not find </listing> to match <listing...>"


def test_overlapping_delimiters_fail_the_pass():
    succeeded, _, sink = _run("<pre <!= x>", DefaultHandler(HandlerCapability.TEXT))

    assert not succeeded
    assert "overlaps" in sink.diagnostics[0].message


def test_unexpected_handler_error_is_reported_and_logged(caplog):
    succeeded, document, sink = _run("x", FailingHandler(), name="boom")

    assert not succeeded
    assert document.text == "x"
    assert sink.diagnostics[0].message == "Internal error in boom pass: kaput"
    assert "Internal error in Pass('boom')" in caplog.text

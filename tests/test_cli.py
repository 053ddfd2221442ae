from __future__ import annotations

import textwrap
from pathlib import Path

import hml_markup.cli as cli_module
from hml_markup.cli import cli


def _write(tmp_path: Path, filename: str, content: str) -> Path:
    path = tmp_path / filename
    path.write_text(textwrap.dedent(content).lstrip(), encoding="utf-8")
    return path


def _write_pyproject(base: Path, body: str) -> Path:
    path = base / "pyproject.toml"
    path.write_text(textwrap.dedent(body).lstrip(), encoding="utf-8")
    return path


def test_cli_prints_page_to_stdout(cli_runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    target = _write(tmp_path, "doc.hml", "Call `run()` now.\n")

    result = cli_runner.invoke(cli, [str(target)])

    assert result.exit_code == 0
    assert result.output.startswith("<!DOCTYPE html>")
    assert "Call <nobr><code>run()</code></nobr> now.\n" in result.output
    assert result.output.endswith("</html>\n")


def test_cli_fragment_omits_templates(cli_runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    target = _write(tmp_path, "doc.hml", "x<!= hidden =!>y")

    result = cli_runner.invoke(cli, ["--fragment", str(target)])

    assert result.exit_code == 0
    assert result.output == "xy"


def test_cli_writes_output_file(cli_runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    target = _write(tmp_path, "doc.hml", "{b bold}")
    out = tmp_path / "doc.html"

    result = cli_runner.invoke(cli, ["--fragment", "-o", str(out), str(target)])

    assert result.exit_code == 0
    assert result.output == ""
    assert out.read_text(encoding="utf-8") == "<strong>bold</strong>"


def test_cli_reads_standard_input(cli_runner, tmp_path, monkeypatch, recwarn):
    monkeypatch.chdir(tmp_path)

    result = cli_runner.invoke(cli, ["--fragment"], input="`x`")

    assert result.exit_code == 0
    assert result.output == "<nobr><code>x</code></nobr>"
    assert not [warning for warning in recwarn if issubclass(warning.category, DeprecationWarning)]


def test_cli_files_share_one_run(cli_runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    first = _write(tmp_path, "one.hml", '<listing file="A.java">\npublic class A {\n}\n</listing>\n')
    second = _write(tmp_path, "two.hml", "See line {#A}.")

    result = cli_runner.invoke(cli, ["--fragment", str(first), str(second)])

    assert result.exit_code == 0
    assert result.output.endswith('See line <a href="#A">1</a>.')


def test_cli_exit_status_counts_errors(cli_runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    target = _write(tmp_path, "broken.hml", "{#nowhere} and {#missing}")
    out = tmp_path / "broken.html"

    result = cli_runner.invoke(cli, ["--fragment", "-o", str(out), str(target)])

    assert result.exit_code == 2
    assert "2 errors" in result.output
    assert "Couldn't find a {= nowhere}" in result.output
    assert out.read_text(encoding="utf-8") == "???? and ????"


def test_cli_no_builtin_macros(cli_runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    target = _write(tmp_path, "doc.hml", "{b bold}")

    result = cli_runner.invoke(cli, ["--fragment", "--no-builtin-macros", str(target)])

    assert result.exit_code == 0
    assert result.output == "{b bold}"


def test_cli_loads_macro_files(cli_runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    macros = _write(tmp_path, "extra.macros", "/\\[hml\\]/HML/\n")
    target = _write(tmp_path, "doc.hml", "[hml] rocks")

    result = cli_runner.invoke(
        cli, ["--fragment", "--no-builtin-macros", "--macros", str(macros), str(target)]
    )

    assert result.exit_code == 0
    assert result.output == "HML rocks"


def test_cli_custom_templates(cli_runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    head = _write(tmp_path, "head.html", "<html><head></head><body>\n")
    tail = _write(tmp_path, "tail.html", "</body></html>\n")
    target = _write(tmp_path, "doc.hml", "<head><title>T</title></head>text")

    result = cli_runner.invoke(cli, ["--head", str(head), "--tail", str(tail), str(target)])

    assert result.exit_code == 0
    assert result.output == "<html><head><title>T</title></head><body>\ntext\n</body></html>\n"


def test_cli_reads_config_from_pyproject(cli_runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    _write_pyproject(
        tmp_path,
        """
        [tool.hml]
        fragment = true
        tab-width = 2
        """,
    )
    target = _write(tmp_path, "doc.hml", "<pre>\n\tx\n</pre>")

    result = cli_runner.invoke(cli, [str(target)])

    assert result.exit_code == 0
    assert result.output.startswith('<div class="hmlPreGroup">')
    assert "\n  x\n</pre>" in result.output


def test_cli_rejects_invalid_config(cli_runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    _write_pyproject(
        tmp_path,
        """
        [tool.hml]
        tab-width = 0
        """,
    )
    target = _write(tmp_path, "doc.hml", "text")

    result = cli_runner.invoke(cli, [str(target)])

    assert result.exit_code == 2
    assert "`tab_width` must be a positive integer" in result.output


def test_cli_reports_unwritable_output(cli_runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    target = _write(tmp_path, "doc.hml", "text")

    result = cli_runner.invoke(cli, ["-o", str(tmp_path / "missing" / "out.html"), str(target)])

    assert result.exit_code == 1
    assert "Error:" in result.output


def test_cli_public_api():
    assert cli_module.__all__ == ["cli"]

"""
Expands HML documents into HTML.
Files are expanded in order as one run, so later files can refer to symbols,
titles and notes declared in earlier ones. Output goes to stdout unless
--out is given.
"""

from __future__ import annotations

import logging
from pathlib import Path

import click
from .config import ConfigError, build_config
from .filesystem import read_document, write_output
from .models import Document
from .pipeline import Pipeline

__all__ = ["cli"]

MAX_EXIT_STATUS = 255


@click.command()
@click.version_option()
@click.option("-o", "--out", type=click.Path(dir_okay=False), help="Write the HTML to this file")
@click.option("--fragment", is_flag=True, help="Omit the head and tail templates")
@click.option("--head", type=click.Path(exists=True, dir_okay=False), help="Head template")
@click.option("--tail", type=click.Path(exists=True, dir_okay=False), help="Tail template")
@click.option(
    "--macros",
    "macro_files",
    multiple=True,
    type=click.Path(exists=True, dir_okay=False),
    help="Macro definition file (repeatable)",
)
@click.option("--no-builtin-macros", is_flag=True, help="Do not load the bundled macros")
@click.option("-v", "--verbose", is_flag=True, help="Log progress to stderr")
@click.argument("files", nargs=-1, type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def cli(
    ctx: click.Context,
    files: tuple[str, ...],
    out: str | None = None,
    fragment: bool = False,
    head: str | None = None,
    tail: str | None = None,
    macro_files: tuple[str, ...] = (),
    no_builtin_macros: bool = False,
    verbose: bool = False,
):
    """
    Entry point for expanding HML documents.

    Args:
        ctx: Click context, used to set the exit status.
        files: Documents to expand; standard input is read when empty.
        out: Output file, replaced atomically.
        fragment: Emit only the expanded body.
        head: Override for the head template.
        tail: Override for the tail template.
        macro_files: Macro files loaded ahead of the built-in macros.
        no_builtin_macros: Skip the bundled macro definitions.
        verbose: Log progress at INFO level.

    Returns:
        None. The exit status is the number of reported errors, capped at 255.

    Raises:
        click.BadParameter: If the project configuration is invalid.
        click.ClickException: If an input, template or output file cannot be
            read or written, or if a size limit is invalid.

    Examples:
        hml chapter1.hml chapter2.hml -o book.html
    """
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    search_path = Path(files[0]).parent if files else Path.cwd()
    try:
        config = build_config(
            search_path,
            head_template=head,
            tail_template=tail,
            macro_files=list(macro_files) or None,
            builtin_macros=False if no_builtin_macros else None,
            fragment=fragment or None,
        )
    except ConfigError as error:
        raise click.BadParameter(str(error)) from error

    try:
        pipeline = Pipeline(config)
    except ValueError as error:
        raise click.ClickException(str(error)) from error

    bodies = []
    try:
        if files:
            for name in files:
                path = Path(name)
                document = Document(read_document(path, pipeline.context.max_file_size), path)
                pipeline.expand(document)
                bodies.append(document.text)
        else:
            with click.open_file("-", encoding="UTF-8") as stream:
                document = Document(stream.read())
            pipeline.expand(document)
            bodies.append(document.text)

        body = "".join(bodies)
        html = body if config.fragment else pipeline.wrap(body)

        if out:
            write_output(Path(out), html)
        else:
            click.echo(html, nl=False)
    except IOError as error:
        raise click.ClickException(str(error)) from error

    error_count = pipeline.error_count
    if error_count:
        click.echo(pipeline.context.diagnostics.render(), err=True)
        click.echo(f"{error_count} errors", err=True)
    ctx.exit(min(error_count, MAX_EXIT_STATUS))


if __name__ == "__main__":
    cli()

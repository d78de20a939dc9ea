"""CLI interface for blockparse."""

import json
import logging
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.table import Table

from blockparse import __version__
from blockparse.builder.serializer import serialize
from blockparse.decision_logger import log_parser_configuration
from blockparse.errors import InvalidOptionError
from blockparse.html.normalize import describe_difference, is_equivalent_markup
from blockparse.library.core_blocks import build_core_registry
from blockparse.model.nodes import ResolvedBlock, walk
from blockparse.model.options import DEFAULT_MAX_DEPTH, ParserOptions
from blockparse.parser.tokenizer import tokenize
from blockparse.pipeline import parse

app = typer.Typer(
    name="blockparse",
    help="Parse, validate and re-serialize block-delimited HTML documents.",
    no_args_is_help=True,
)

SourceFile = Annotated[
    Path,
    typer.Argument(
        help="Path to a block-delimited HTML document",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
]


def setup_logging(verbose: bool = False) -> None:
    """Send log records to stderr; DEBUG when verbose, WARNING otherwise."""
    level = logging.DEBUG if verbose else logging.WARNING

    class CleanFormatter(logging.Formatter):
        def format(self, record: logging.LogRecord) -> str:
            if record.levelname == "ERROR":
                return f"❌ {record.getMessage()}"
            if record.levelname == "DEBUG":
                return f"🔍 {record.getMessage()}"
            return f"{record.levelname}: {record.getMessage()}"

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(CleanFormatter())
    logging.basicConfig(level=level, handlers=[console_handler], force=True)


def _block_records(blocks: list[ResolvedBlock]) -> list[dict[str, Any]]:
    records = []
    for depth, block in walk(blocks):
        records.append(
            {
                "depth": depth,
                "name": block.name,
                "is_valid": block.is_valid,
                "migrated_from": block.migrated_from,
                "attributes": block.attributes,
                "issues": [str(issue) for issue in block.issues],
            }
        )
    return records


@app.command("parse")
def parse_command(
    file: SourceFile,
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print blocks as JSON records instead of a table"),
    ] = False,
    workers: Annotated[
        int,
        typer.Option("--workers", help="Threads for independent top-level blocks (default: 1)"),
    ] = 1,
    max_depth: Annotated[
        int,
        typer.Option("--max-depth", help=f"Nesting bound (default: {DEFAULT_MAX_DEPTH})"),
    ] = DEFAULT_MAX_DEPTH,
    no_fixes: Annotated[
        bool,
        typer.Option("--no-fixes", help="Disable built-in className/anchor validation fixes"),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """Parse FILE with the core block library and list the resulting blocks."""
    setup_logging(verbose)
    try:
        options = ParserOptions.from_cli(
            max_depth=max_depth,
            fixes="off" if no_fixes else "on",
            workers=workers,
        )
    except InvalidOptionError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1) from exc
    log_parser_configuration(options)

    blocks = parse(file.read_text(encoding="utf-8"), build_core_registry(), options)
    records = _block_records(blocks)

    if as_json:
        typer.echo(json.dumps(records, indent=2, ensure_ascii=False))
        return

    table = Table(title=str(file))
    table.add_column("Depth", justify="right")
    table.add_column("Block")
    table.add_column("Valid")
    table.add_column("Migrated from", justify="right")
    table.add_column("Attributes")
    for record in records:
        table.add_row(
            str(record["depth"]),
            record["name"] or "(freeform)",
            "yes" if record["is_valid"] else "no",
            "" if record["migrated_from"] is None else str(record["migrated_from"]),
            ", ".join(record["attributes"]),
        )
    Console().print(table)

    invalid = sum(1 for record in records if not record["is_valid"])
    typer.echo(f"{len(records)} block(s), {invalid} invalid")


@app.command()
def roundtrip(file: SourceFile) -> None:
    """Check that FILE survives parse and serialize unchanged."""
    setup_logging()
    source = file.read_text(encoding="utf-8")
    output = serialize(parse(source, build_core_registry()))
    if output == source:
        typer.echo("✅ Identical")
        return
    if is_equivalent_markup(output, source):
        typer.echo("✅ Equivalent after normalization")
        return
    typer.echo(f"❌ Round trip differs: {describe_difference(output, source)}")
    raise typer.Exit(1)


@app.command()
def tokens(file: SourceFile) -> None:
    """List the delimiter token stream of FILE."""
    for token in tokenize(file.read_text(encoding="utf-8")):
        if not token.is_delimiter:
            typer.echo(f"{token.kind.value:<20} {token.start}-{token.end} {len(token.text)} chars")
            continue
        attrs = "" if token.attributes is None else json.dumps(token.attributes)
        if token.json_error:
            attrs = f"(malformed: {token.json_error})"
        typer.echo(f"{token.kind.value:<20} {token.start}-{token.end} {token.name} {attrs}".rstrip())


@app.command()
def version() -> None:
    """Show version information."""
    typer.echo(f"blockparse version {__version__}")


def version_callback(value: bool) -> None:
    """Version callback for --version flag."""
    if value:
        typer.echo(f"blockparse version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = None,
) -> None:
    """
    blockparse - Parse block-delimited HTML into validated blocks and back.

    Documents interleave HTML with comment delimiters such as
    <!-- wp:paragraph --> ... <!-- /wp:paragraph -->. blockparse builds the
    block tree, resolves attributes, validates each block against its type's
    save() output, migrates outdated blocks and serializes the tree again.

    For detailed usage, run: blockparse parse --help
    """
    pass


if __name__ == "__main__":  # pragma: no cover - executed only via `python -m`
    app()

"""
Command-line interface for quizparse.

This module decodes captured model output from a file or stdin, which is
handy for checking how the decoder treats real responses.
"""

import json
import sys
from pathlib import Path
from typing import Any, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from quizparse.config import get_settings
from quizparse.decoding import (
    DecodeOptions,
    StructuredOutputDecoder,
    infer_shape_hint,
    normalize as normalize_text,
    repair as repair_text,
)
from quizparse.models import SHAPE_MODELS, ShapeHint
from quizparse.utils.errors import QuizParseException
from quizparse.utils.logging import LogContext, setup_logging

app = typer.Typer(
    name="quizparse",
    help="Decode structured output from language-model responses",
    add_completion=False,
)
console = Console(stderr=True)


def _read_source(source: Optional[Path]) -> str:
    if source is None:
        return sys.stdin.read()
    if not source.exists():
        console.print(f"[red]Error:[/red] File not found: {source}")
        raise typer.Exit(1)
    return source.read_text(encoding="utf-8")


def _emit(value) -> None:
    typer.echo(json.dumps(value, indent=2, ensure_ascii=False))


def _validate_shape(value: Any, shape: ShapeHint) -> Any:
    """Validate against the shape model for ``shape`` and return its payload."""
    model = SHAPE_MODELS.get(shape)
    if model is None:
        console.print("[red]Error:[/red] No shape model to validate against, pass --hint")
        raise typer.Exit(1)
    try:
        return model.model_validate(value).to_payload()
    except ValidationError as e:
        console.print(f"[red]✗[/red] Decoded value does not match {model.__name__} ({e.error_count()} errors)")
        raise typer.Exit(1)


@app.command()
def decode(
    source: Optional[Path] = typer.Argument(None, help="File with model output (stdin if omitted)"),
    fallback: bool = typer.Option(False, "--fallback", help="Emit a marked placeholder instead of failing"),
    hint: Optional[ShapeHint] = typer.Option(None, "--hint", help="Expected shape for placeholders and --validate (inferred if omitted)"),
    topic: Optional[str] = typer.Option(None, "--topic", help="Topic used in placeholder content"),
    trace: bool = typer.Option(False, "--trace", help="Report which stage produced the value"),
    use_repair: bool = typer.Option(True, "--repair/--no-repair", help="Run the syntax-repair stage"),
    use_extract: bool = typer.Option(True, "--extract/--no-extract", help="Run the boundary-extraction stage"),
    use_flat: bool = typer.Option(True, "--flat/--no-flat", help="Run flat label:value reconstruction"),
    array_first: bool = typer.Option(False, "--array-first", help="Prefer array spans over object spans"),
    validate: bool = typer.Option(False, "--validate", help="Check the value against the hinted (or inferred) shape model"),
):
    """Decode model output and print it as JSON."""
    options = DecodeOptions.from_settings(get_settings()).with_changes(
        repair=use_repair,
        extract=use_extract,
        flat=use_flat,
        prefer_object=not array_first,
    )

    text = _read_source(source)
    decoder = StructuredOutputDecoder(options)

    with LogContext(source=str(source) if source else "<stdin>"):
        if fallback:
            result = decoder.decode_or_fallback(text, hint=hint, topic=topic)
        else:
            result = decoder.decode_with_trace(text)

    if trace:
        table = Table(title="Decode trace")
        table.add_column("Stage", style="cyan")
        table.add_column("Found", justify="center")
        table.add_column("Input chars", justify="right")
        table.add_row(result.stage.value, "✓" if result.found else "✗", str(len(text)))
        console.print(table)

    if not result.found:
        console.print("[red]✗[/red] No structured content could be decoded")
        raise typer.Exit(1)

    value = result.value
    if validate and not result.synthesized:
        value = _validate_shape(value, hint or infer_shape_hint(text))

    _emit(value)


@app.command()
def repair(
    source: Optional[Path] = typer.Argument(None, help="File with near-valid JSON (stdin if omitted)"),
):
    """Print the syntax-repaired text without parsing it."""
    typer.echo(repair_text(_read_source(source)))


@app.command()
def normalize(
    source: Optional[Path] = typer.Argument(None, help="File with model output (stdin if omitted)"),
):
    """Print the text with fences, labels and any inference envelope stripped."""
    typer.echo(normalize_text(_read_source(source)))


@app.command()
def hint(
    source: Optional[Path] = typer.Argument(None, help="File with model output (stdin if omitted)"),
):
    """Print the shape hint inferred from marker substrings."""
    typer.echo(infer_shape_hint(_read_source(source)).value)


@app.callback()
def main(
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
):
    """quizparse - resilient decoding of language-model structured output."""
    log_level = "DEBUG" if debug else None
    try:
        setup_logging(log_level=log_level)
    except QuizParseException as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(2)


if __name__ == "__main__":
    app()

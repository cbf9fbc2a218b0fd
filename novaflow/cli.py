"""CLI interface."""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Optional

import typer

from novaflow.renderers.router import BACKENDS
from novaflow.services.generation_service import GenerationError, generate_from_prompt
from novaflow.services.render_service import render_markup, write_outputs
from novaflow.tools.markup_sanitizer import sanitize
from novaflow.utils.config import settings
from novaflow.utils.file_utils import read_markup_file

app = typer.Typer(add_completion=False)


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging.")):
    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_markup(file: Optional[str], text: Optional[str]) -> str:
    if not file and text is None:
        raise typer.BadParameter("Provide --file or --text")
    if file:
        try:
            return read_markup_file(file)
        except FileNotFoundError as exc:
            raise typer.BadParameter(str(exc))
    return text or ""


@app.command("sanitize")
def sanitize_command(
    file: Optional[str] = typer.Option(None, "--file", "-f", help="Path to a Mermaid source file."),
    text: Optional[str] = typer.Option(None, "--text", "-t", help="Mermaid markup."),
):
    """Print repaired Mermaid markup."""
    typer.echo(sanitize(_load_markup(file, text)))


@app.command("render")
def render_command(
    file: Optional[str] = typer.Option(None, "--file", "-f", help="Path to a Mermaid source file."),
    text: Optional[str] = typer.Option(None, "--text", "-t", help="Mermaid markup."),
    output_name: str = typer.Option("chart", "--output-name"),
    backend: Optional[str] = typer.Option(None, "--backend", help="cli, docker, ink or preview."),
):
    """Sanitize, validate and render markup to an SVG file."""
    raw = _load_markup(file, text)
    if backend:
        if backend not in BACKENDS:
            raise typer.BadParameter(f"Unknown backend: {backend}")
        settings.renderer_backend = backend
    outcome = asyncio.run(render_markup(raw))
    payload = write_outputs(outcome, output_name)
    typer.echo(json.dumps(payload, indent=2))
    if payload["status"] == "error":
        raise typer.Exit(code=1)


@app.command("generate")
def generate_command(
    prompt: str = typer.Option(..., "--prompt", "-p", help="What the chart should show."),
    chart_type: Optional[str] = typer.Option(None, "--chart-type"),
    model: Optional[str] = typer.Option(None, "--model"),
):
    """Ask the LLM for Mermaid markup."""
    try:
        result = generate_from_prompt(prompt, chart_type=chart_type, model=model)
    except (ValueError, GenerationError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)
    if result.warning:
        typer.echo(f"Warning: {result.warning}", err=True)
    typer.echo(result.mermaid_code)


@app.command("serve")
def serve_command(
    host: str = typer.Option("127.0.0.1", "--host"),
    port: int = typer.Option(8000, "--port"),
):
    """Run the HTTP API."""
    import uvicorn

    uvicorn.run("novaflow.server:app", host=host, port=port)


if __name__ == "__main__":
    app()

#!/usr/bin/env python3
"""
Rank the terms of a job posting by weighted frequency.

Usage:
    python scripts/extract_terms.py data/jobs/backend_engineer.md
    python scripts/extract_terms.py --text "Senior Software Engineer needed..."
    python scripts/extract_terms.py data/jobs/backend_engineer.md --max-terms 10 --json
"""

import json
from pathlib import Path

import typer
from dotenv import load_dotenv

from resumeforge.contexts.intake.term_extractor import DEFAULT_MAX_TERMS, TermExtractor

load_dotenv()

app = typer.Typer(add_completion=False, help="Rank the terms of a job posting.")


def print_term_table(terms):
    """Print ranked terms as an aligned table."""
    if not terms:
        typer.echo("No terms found")
        return

    width = max(len(term.text) for term in terms)

    typer.echo(f"\n {'Term'.ljust(width)}  {'Score':>7}  Count")
    typer.echo(" " + "─" * (width + 16))
    for term in terms:
        marker = typer.style("*", fg=typer.colors.CYAN) if term.is_phrase else " "
        typer.echo(f"{marker}{term.text.ljust(width)}  {term.score:7.4f}  {term.occurrences:5d}")
    typer.echo("\n * multi-word phrase\n")


@app.command()
def main(
    input_file: Path | None = typer.Argument(None, help="Job posting file (plain text or markdown)"),
    text: str | None = typer.Option(None, "--text", "-t", help="Job posting text (instead of a file)"),
    max_terms: int = typer.Option(
        DEFAULT_MAX_TERMS, "--max-terms", "-n", min=1, help="Maximum number of terms"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print {keywords: [...]} JSON"),
):
    """Extract and rank terms from a job posting."""
    if text is None:
        if input_file is None:
            typer.echo("Error: Provide a job posting file or --text", err=True)
            raise typer.Exit(1)
        if not input_file.exists():
            typer.echo(f"Error: File not found: {input_file}", err=True)
            raise typer.Exit(1)
        text = input_file.read_text()

    terms = TermExtractor(max_terms=max_terms).extract(text)

    if as_json:
        typer.echo(json.dumps({"keywords": [term.to_dict() for term in terms]}, indent=2))
    else:
        print_term_table(terms)


if __name__ == "__main__":
    app()

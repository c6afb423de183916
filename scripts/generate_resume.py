#!/usr/bin/env python3
"""
Generate a resume for a job posting with the configured LLM backend.

Generated text is written to stdout as it streams; logs go to stderr and to
a per-run log file under LOGS_PATH.

Usage:
    python scripts/generate_resume.py data/jobs/backend_engineer.md
    python scripts/generate_resume.py data/jobs/backend_engineer.md --profile-id 1
    python scripts/generate_resume.py data/jobs/backend_engineer.md --profile-id 1 --db data/profiles.db
    python scripts/generate_resume.py data/jobs/backend_engineer.md --ndjson
    python scripts/generate_resume.py data/jobs/backend_engineer.md --no-stream -o outs/resume.md
"""

import os
import sys
from datetime import datetime
from pathlib import Path

import typer
from dotenv import load_dotenv

from resumeforge.contexts.generation.exceptions import GenerationError
from resumeforge.contexts.generation.logger import setup_generation_logger
from resumeforge.contexts.generation.pipeline import GenerationPipeline, load_profile
from resumeforge.contexts.generation.relay import NDJSONSink, TextSink
from resumeforge.contexts.profiles.profile_database import ProfileDatabase, ProfileNotFoundError
from resumeforge.utils.config import load_settings

load_dotenv()

PROFILE_DB_PATH = Path(os.getenv("PROFILE_DB_PATH", "data/profiles.db"))

app = typer.Typer(add_completion=False, help="Generate a resume for a job posting.")


@app.command()
def main(
    job_file: Path = typer.Argument(..., help="Job posting file (plain text or markdown)"),
    profile_id: int | None = typer.Option(
        None, "--profile-id", "-p", help="Profile id to ground the resume on"
    ),
    db: Path = typer.Option(PROFILE_DB_PATH, "--db", help="Profile database path"),
    ndjson: bool = typer.Option(False, "--ndjson", help="Write {chunk, done} NDJSON lines"),
    no_stream: bool = typer.Option(False, "--no-stream", help="Use a single non-streaming call"),
    output: Path | None = typer.Option(
        None, "-o", "--output", help="Also save the generated resume to this file"
    ),
    config: Path | None = typer.Option(None, "--config", help="Settings YAML file"),
):
    """Generate a resume for a job posting."""
    if not job_file.exists():
        typer.echo(f"Error: File not found: {job_file}", err=True)
        raise typer.Exit(1)

    settings = load_settings(config)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = setup_generation_logger(
        settings.log_dir / f"generate_{timestamp}",
        model=settings.backend.model,
        endpoint=settings.backend.generate_url,
    )

    profile = None
    if profile_id is not None:
        if not db.exists():
            typer.echo(f"Error: Profile database not found: {db}", err=True)
            raise typer.Exit(1)
        profiles = ProfileDatabase(db)
        try:
            profile = load_profile(profiles, profile_id)
        except (ProfileNotFoundError, GenerationError) as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(1)
        finally:
            profiles.close()

    job_text = job_file.read_text()
    pipeline = GenerationPipeline.from_settings(settings)

    try:
        if no_stream:
            resume = pipeline.generate_text(profile, job_text)
            typer.echo(resume)
        elif ndjson:
            sink = NDJSONSink(sys.stdout.write, sys.stdout.flush)
            pipeline.generate(profile, job_text, sink)
            resume = None
        else:
            sink = TextSink(sys.stdout.write, sys.stdout.flush)
            pipeline.generate(profile, job_text, sink)
            typer.echo()
            resume = sink.text
    except KeyboardInterrupt:
        typer.echo("\n\n✗ Generation aborted by user\n", err=True)
        raise typer.Exit(code=1)
    except GenerationError as e:
        typer.secho(f"\n✗ Generation failed: {e}", fg=typer.colors.RED, err=True)
        typer.echo(f"  Log: {log_file}", err=True)
        raise typer.Exit(code=1)
    finally:
        pipeline.backend.close()

    if output and resume is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(resume)
        typer.secho(f"✓ Saved: {output}", fg=typer.colors.GREEN, err=True)
    elif output:
        typer.echo("Note: --output is ignored with --ndjson", err=True)


if __name__ == "__main__":
    app()

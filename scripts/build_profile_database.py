#!/usr/bin/env python3
"""
Build the SQLite profile database from a JSON file of candidate profiles.

The input is a JSON list of profile objects:
    [{"full_name": ..., "email": ..., "work_history": [...], "education": [...]}]

Usage:
    python scripts/build_profile_database.py data/profiles.json
    python scripts/build_profile_database.py data/profiles.json -o data/profiles.db -v
"""

import json
import os
from pathlib import Path

import typer
from dotenv import load_dotenv

from resumeforge.contexts.profiles.profile_data_structure import ProfileSnapshot
from resumeforge.contexts.profiles.profile_database import ProfileDatabase

# Load environment
load_dotenv()
DB_PATH = Path(os.getenv("PROFILE_DB_PATH", "data/profiles.db"))

app = typer.Typer(add_completion=False)


@app.command()
def main(
    input_file: Path = typer.Argument(..., help="JSON file with a list of profiles"),
    output: Path = typer.Option(
        DB_PATH,
        "--output",
        "-o",
        help="Output database path"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show each stored profile"
    ),
):
    """Build database from a profile JSON file."""
    if not input_file.exists():
        typer.echo(f"Error: File not found: {input_file}", err=True)
        raise typer.Exit(1)

    typer.echo(f"Loading profiles from: {input_file}")
    try:
        profiles = [ProfileSnapshot.from_dict(item) for item in json.loads(input_file.read_text())]
    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        typer.echo(f"Error: Invalid profile file: {e}", err=True)
        raise typer.Exit(1)
    typer.echo(f"  Loaded {len(profiles)} profiles\n")

    typer.echo(f"Building database at: {output}")
    db = ProfileDatabase.from_profiles(profiles, output)
    typer.echo("  Database created\n")

    typer.echo("Database Statistics:")
    typer.echo(f"  Profiles: {db.count_profiles()}")
    typer.echo(f"  Work history entries: {db.query('SELECT COUNT(*) AS n FROM work_history')[0]['n']}")
    typer.echo(f"  Education entries: {db.query('SELECT COUNT(*) AS n FROM education')[0]['n']}")

    if verbose:
        typer.echo("\nProfiles:")
        for row in db.query("SELECT id, full_name, email FROM profiles ORDER BY id"):
            typer.echo(f"  {row['id']:>4}  {row['full_name']} <{row['email']}>")

    db.close()
    typer.secho(f"\n✓ Saved: {output}", fg=typer.colors.GREEN)


if __name__ == "__main__":
    app()

#!/usr/bin/env python3
"""
Run the HTTP surface (term extraction and resume generation).

Usage:
    python scripts/serve.py
    python scripts/serve.py --host 0.0.0.0 --port 8080
"""

from datetime import datetime
from pathlib import Path

import typer
import uvicorn
from dotenv import load_dotenv

from resumeforge.api import create_app
from resumeforge.contexts.generation.pipeline import GenerationPipeline
from resumeforge.utils.config import load_settings
from resumeforge.utils.logger import setup_logger

load_dotenv()

app = typer.Typer(add_completion=False, help="Run the resume generation HTTP server.")


@app.command()
def main(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(8080, "--port", help="Bind port"),
    config: Path | None = typer.Option(None, "--config", help="Settings YAML file"),
):
    """Serve the API with uvicorn."""
    settings = load_settings(config)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    setup_logger(
        context_name="serve",
        log_dir=settings.log_dir / f"serve_{timestamp}",
        extra_provenance={
            "Model": settings.backend.model,
            "Endpoint": settings.backend.generate_url,
            "Bind": f"{host}:{port}",
        },
    )

    pipeline = GenerationPipeline.from_settings(settings)
    try:
        uvicorn.run(create_app(pipeline=pipeline), host=host, port=port)
    finally:
        pipeline.backend.close()


if __name__ == "__main__":
    app()

"""
Loguru setup shared by the CLI scripts and the server.

Each run gets its own log directory holding one <context>.log file at DEBUG
level; INFO and above also go to stderr so stdout stays free for generated
text. Context-specific wrappers live in contexts/{context}/logger.py.
"""

import sys
from pathlib import Path

from loguru import logger

FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <7} | {message}"
CONSOLE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | <level>{level: <7}</level> | {message}"


def setup_logger(context_name: str, log_dir: Path, extra_provenance: dict = None) -> Path:
    """
    Route loguru output to a per-run log file and stderr.

    Args:
        context_name: Context identifier, used as the log file name ("generate", "serve")
        log_dir: Directory for this run, created if missing
        extra_provenance: Run settings written after the standard provenance lines

    Returns:
        Path to log file
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(exist_ok=True, parents=True)
    log_file = log_dir / f"{context_name}.log"

    logger.remove()
    logger.add(log_file, format=FILE_FORMAT, level="DEBUG")
    logger.add(sys.stderr, format=CONSOLE_FORMAT, level="INFO", colorize=True)

    for line in provenance_lines(extra_provenance):
        logger.info(line)

    return log_file


def provenance_lines(extra_provenance: dict = None) -> list[str]:
    """Header describing how this run was started, framed by rules."""
    rule = "=" * 80
    lines = [
        rule,
        f"Command: {' '.join(sys.argv)}",
        f"Working directory: {Path.cwd()}",
        f"Python: {sys.version.split()[0]}",
    ]
    lines.extend(f"{key}: {value}" for key, value in (extra_provenance or {}).items())
    lines.append(rule)
    return lines

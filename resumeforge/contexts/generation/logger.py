"""
Generation context logger.

Provides logging interface for generation context with automatic [generate] prefix.
All generation modules should import from this module, not from utils.logger directly.
"""

from pathlib import Path

from loguru import logger

from resumeforge.utils.logger import setup_logger as _setup_logger

CONTEXT_PREFIX = "[generate]"


def setup_generation_logger(log_dir: Path, model: str, endpoint: str) -> Path:
    """
    Setup logger for generation context.

    Args:
        log_dir: Directory for this generation session
        model: Model identifier sent to the backend
        endpoint: Backend /generate URL

    Returns:
        Path to log file
    """
    return _setup_logger(
        context_name="generate",
        log_dir=log_dir,
        extra_provenance={"Model": model, "Endpoint": endpoint},
    )


# Wrapper functions with automatic [generate] prefix


def _log_info(message: str) -> None:
    """Log info message with [generate] prefix."""
    logger.info(f"{CONTEXT_PREFIX} {message}")


def _log_success(message: str) -> None:
    """Log success message with [generate] prefix."""
    logger.success(f"{CONTEXT_PREFIX} {message}")


def _log_error(message: str) -> None:
    """Log error message with [generate] prefix."""
    logger.error(f"{CONTEXT_PREFIX} {message}")


def _log_warning(message: str) -> None:
    """Log warning message with [generate] prefix."""
    logger.warning(f"{CONTEXT_PREFIX} {message}")


def _log_debug(message: str) -> None:
    """Log debug message with [generate] prefix."""
    logger.debug(f"{CONTEXT_PREFIX} {message}")


# High-level generation-specific logging helpers


def log_generation_start(model: str, terms: list[str], has_profile: bool, streaming: bool) -> None:
    """Log start of a generation request with its inputs."""
    mode = "streaming" if streaming else "single-shot"
    source = "profile" if has_profile else "no profile"
    _log_info(f"Starting {mode} generation with {model} ({source}, {len(terms)} terms)")
    _log_debug(f"Terms: {', '.join(terms)}")


def log_generation_result(
    model: str,
    elapsed_time: float,
    events: int,
    error: Exception = None,
) -> None:
    """
    Log the outcome of a generation request.

    Args:
        model: Model identifier
        elapsed_time: Time taken in seconds
        events: Number of events delivered to the caller
        error: The failure, if the request did not complete
    """
    if error is None:
        _log_success(f"{model}: generation completed ({events} events, {elapsed_time:.2f}s)")
    else:
        _log_error(
            f"{model}: generation failed after {events} events ({elapsed_time:.2f}s): "
            f"{type(error).__name__}"
        )
        _log_error(f"  Error: {error}")

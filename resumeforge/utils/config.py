"""
Settings for the generation pipeline and its backend.

Settings are layered (later overrides earlier):
1. DEFAULT_SETTINGS below
2. Optional YAML file (explicit path, or RESUMEFORGE_SETTINGS_PATH)
3. Environment variables (LLM_BASE_URL, LLM_MODEL, LLM_TIMEOUT, LOGS_PATH)

Examples:
    >>> settings = load_settings()
    >>> settings.backend.model
    'deepseek-r1'

    >>> settings = load_settings(Path("configs/settings.yaml"))
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from omegaconf import OmegaConf

load_dotenv()

DEFAULT_SETTINGS: Dict[str, Any] = {
    "backend": {
        "base_url": "http://localhost:11434/api",
        "model": "deepseek-r1",
        "timeout_s": 120.0,
    },
    "extraction": {
        "max_terms": 50,
        "prompt_terms": 10,
    },
    "logging": {
        "log_dir": "outs/logs",
    },
}

# Environment variable -> dotted settings key
ENV_OVERRIDES = {
    "LLM_BASE_URL": "backend.base_url",
    "LLM_MODEL": "backend.model",
    "LLM_TIMEOUT": "backend.timeout_s",
    "LOGS_PATH": "logging.log_dir",
}


@dataclass(frozen=True)
class BackendSettings:
    base_url: str
    model: str
    timeout_s: float

    @property
    def generate_url(self) -> str:
        return self.base_url.rstrip("/") + "/generate"


@dataclass(frozen=True)
class ExtractionSettings:
    max_terms: int
    prompt_terms: int


@dataclass(frozen=True)
class Settings:
    backend: BackendSettings
    extraction: ExtractionSettings
    log_dir: Path


def load_settings(config_path: Optional[Path] = None) -> Settings:
    """
    Load layered settings.

    Args:
        config_path: Optional YAML file (defaults to RESUMEFORGE_SETTINGS_PATH if set)

    Returns:
        Frozen Settings

    Raises:
        FileNotFoundError: If an explicit config_path does not exist
        ValueError: If a numeric setting is not positive
    """
    conf = OmegaConf.create(DEFAULT_SETTINGS)

    if config_path is None and os.getenv("RESUMEFORGE_SETTINGS_PATH"):
        config_path = Path(os.getenv("RESUMEFORGE_SETTINGS_PATH"))

    if config_path is not None:
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Settings file not found: {config_path}")
        conf = OmegaConf.merge(conf, OmegaConf.load(config_path))

    for env_var, key in ENV_OVERRIDES.items():
        value = os.getenv(env_var)
        if value:
            OmegaConf.update(conf, key, value)

    data = OmegaConf.to_container(conf, resolve=True)
    backend = data["backend"]
    extraction = data["extraction"]

    settings = Settings(
        backend=BackendSettings(
            base_url=str(backend["base_url"]),
            model=str(backend["model"]),
            timeout_s=float(backend["timeout_s"]),
        ),
        extraction=ExtractionSettings(
            max_terms=int(extraction["max_terms"]),
            prompt_terms=int(extraction["prompt_terms"]),
        ),
        log_dir=Path(data["logging"]["log_dir"]),
    )

    if settings.backend.timeout_s <= 0:
        raise ValueError(f"backend.timeout_s must be positive, got: {settings.backend.timeout_s}")
    if settings.extraction.max_terms < 1 or settings.extraction.prompt_terms < 1:
        raise ValueError(
            f"extraction.max_terms and extraction.prompt_terms must be positive, got: "
            f"{settings.extraction.max_terms}, {settings.extraction.prompt_terms}"
        )

    return settings

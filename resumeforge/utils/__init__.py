"""
Shared utilities for RESUMEFORGE.

Common functionality used across contexts:
- Logger configuration
- Settings loading
"""

from resumeforge.utils.config import Settings, load_settings
from resumeforge.utils.logger import setup_logger

__all__ = ["Settings", "load_settings", "setup_logger"]

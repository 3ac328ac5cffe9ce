"""Core modules for skill-disclosure."""

from skill_disclosure.core.config import Config, load_environment

__all__ = [
    "Config",
    "load_environment",
]

"""Configuration and environment handling."""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


def _optional_float(name: str) -> float | None:
    """Read an optional float from the environment.

    Empty or unset values mean "no limit".
    """
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return float(value)


@dataclass
class Config:
    """Configuration for skill-disclosure.

    Attributes:
        skills_dir: Directory containing SKILL.md skill folders
        budget: Default per-session capacity in size units
        min_relevance: Minimum matcher relevance for a skill to qualify
        fetch_timeout: Seconds allowed for a single body/reference fetch
        registry_load_timeout: Seconds allowed for a full registry load
        max_metadata_size: Largest metadata accepted by the registry
        max_body_size: Largest body accepted by the registry
        load_references: Whether sessions run the reference tier
        log_level: Logging level for CLI and server
    """

    skills_dir: str = "skills"
    budget: int = 8000
    min_relevance: float = 1.0
    fetch_timeout: float | None = None
    registry_load_timeout: float | None = None
    max_metadata_size: int = 100
    max_body_size: int = 5000
    load_references: bool = True
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Config":
        """Create Config from environment variables.

        Returns:
            Config instance with values from environment or defaults
        """
        return cls(
            skills_dir=os.getenv("SKILLS_DIR", "skills"),
            budget=int(os.getenv("DISCLOSURE_BUDGET", "8000")),
            min_relevance=float(os.getenv("MIN_RELEVANCE", "1.0")),
            fetch_timeout=_optional_float("FETCH_TIMEOUT_SECONDS"),
            registry_load_timeout=_optional_float("REGISTRY_LOAD_TIMEOUT_SECONDS"),
            max_metadata_size=int(os.getenv("MAX_METADATA_SIZE", "100")),
            max_body_size=int(os.getenv("MAX_BODY_SIZE", "5000")),
            load_references=os.getenv("LOAD_REFERENCES", "true").lower() == "true",
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )

    @property
    def skills_path(self) -> Path:
        """Skills directory as a Path."""
        return Path(self.skills_dir).expanduser()


def load_environment(override: bool = True) -> None:
    """Load environment variables from .env file.

    Looks for .env file in current directory and parent directories.
    Silently succeeds if .env file is not found.

    Args:
        override: Whether .env values replace variables already set
    """
    env_path = Path(".env")

    if env_path.exists():
        load_dotenv(env_path, override=override)
    else:
        # Try to find .env in parent directories
        load_dotenv(override=override)

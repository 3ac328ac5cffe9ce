"""Dependency injection for FastAPI."""

import logging
from functools import lru_cache

from fastapi import Depends

from skill_disclosure.core.config import Config
from skill_disclosure.skills.disclosure.registry import RegistryHandle, SkillRegistry
from skill_disclosure.skills.disclosure.sources import DirectorySkillSource

logger = logging.getLogger(__name__)


@lru_cache
def get_config() -> Config:
    """Get singleton configuration.

    Returns:
        Config read from the environment
    """
    return Config.from_env()


def load_skills(handle: RegistryHandle, config: Config) -> SkillRegistry:
    """Load the configured skills directory into a registry handle.

    Args:
        handle: Handle to swap the new snapshot into
        config: Configuration with directory and limits

    Returns:
        The snapshot this call swapped in

    Raises:
        LoadTimeout: If loading exceeded the configured timeout
    """
    return handle.reload(
        DirectorySkillSource(config.skills_path),
        timeout=config.registry_load_timeout,
        max_metadata_size=config.max_metadata_size,
        max_body_size=config.max_body_size,
    )


@lru_cache
def get_registry_handle() -> RegistryHandle:
    """Get singleton registry handle, loaded from the configured directory.

    Returns:
        RegistryHandle instance
    """
    config = get_config()
    handle = RegistryHandle()
    load_skills(handle, config)
    return handle


def get_registry(handle: RegistryHandle = Depends(get_registry_handle)):
    """Get the current registry snapshot.

    Args:
        handle: Registry handle (injected)

    Returns:
        SkillRegistry snapshot for this request
    """
    return handle.snapshot

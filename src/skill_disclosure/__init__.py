"""Skill Disclosure - Progressive Skill-Disclosure Engine

Selects the skills relevant to a task, loads their metadata, bodies and
reference documents under a bounded context budget, and hands the resulting
bundle to a host agent loop.
"""

__version__ = "0.1.0"

from skill_disclosure.core.config import Config, load_environment
from skill_disclosure.skills.disclosure import (
    ContextBudgetAllocator,
    DirectorySkillSource,
    DisclosureBundle,
    DisclosureSession,
    InlineSkillSource,
    ReferenceResolver,
    RegistryHandle,
    SkillRegistry,
    TriggerMatcher,
)

__all__ = [
    "__version__",
    "Config",
    "load_environment",
    "ContextBudgetAllocator",
    "DirectorySkillSource",
    "DisclosureBundle",
    "DisclosureSession",
    "InlineSkillSource",
    "ReferenceResolver",
    "RegistryHandle",
    "SkillRegistry",
    "TriggerMatcher",
]

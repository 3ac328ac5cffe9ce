"""Utility modules for skill-disclosure."""

from skill_disclosure.utils.errors import (
    BudgetExceeded,
    CancelledError,
    ContentSizeMismatch,
    LoadTimeout,
    ReferenceNotFoundError,
    RegistryError,
    SessionStateError,
    SkillDisclosureError,
    SkillNotFoundError,
)

__all__ = [
    "SkillDisclosureError",
    "RegistryError",
    "LoadTimeout",
    "BudgetExceeded",
    "ContentSizeMismatch",
    "CancelledError",
    "SkillNotFoundError",
    "ReferenceNotFoundError",
    "SessionStateError",
]

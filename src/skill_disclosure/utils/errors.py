"""Custom exception classes for the skill-disclosure engine."""

from typing import Any


class SkillDisclosureError(Exception):
    """Base exception for skill-disclosure."""

    pass


class RegistryError(SkillDisclosureError):
    """Raised when a single skill record is malformed or duplicated.

    Fatal to that record only. The registry collects these on the snapshot
    and keeps loading the remaining records.
    """

    def __init__(self, reason: str, skill_id: str | None = None, source: str | None = None):
        self.reason = reason
        self.skill_id = skill_id
        self.source = source
        label = skill_id or "<unknown>"
        message = f"Invalid skill record '{label}': {reason}"
        if source:
            message += f" (source: {source})"
        super().__init__(message)


class LoadTimeout(SkillDisclosureError):
    """Raised when a registry load or content fetch exceeds its timeout.

    Inside a session this is non-fatal: the session keeps everything it had
    already committed and exposes it as a partial bundle.
    """

    def __init__(self, operation: str, timeout: float, bundle: Any = None):
        self.operation = operation
        self.timeout = timeout
        self.bundle = bundle
        message = f"Timed out after {timeout:g}s while loading {operation}"
        super().__init__(message)


class BudgetExceeded(SkillDisclosureError):
    """Raised when content does not fit in the remaining budget."""

    def __init__(
        self,
        requested: int,
        available: int,
        skill_id: str | None = None,
        reference_id: str | None = None,
    ):
        self.requested = requested
        self.available = available
        self.skill_id = skill_id
        self.reference_id = reference_id
        target = skill_id or "content"
        if reference_id:
            target = f"{skill_id}/{reference_id}"
        message = (
            f"Budget exceeded for {target}: "
            f"requested {requested}, available {available}"
        )
        super().__init__(message)


class ContentSizeMismatch(SkillDisclosureError):
    """Raised when fetched content is larger than the size it was charged at.

    Happens when a lazily read reference changed on disk after the registry
    snapshot was built. The content is never admitted.
    """

    def __init__(
        self,
        declared: int,
        actual: int,
        skill_id: str,
        reference_id: str | None = None,
    ):
        self.declared = declared
        self.actual = actual
        self.skill_id = skill_id
        self.reference_id = reference_id
        target = f"{skill_id}/{reference_id}" if reference_id else skill_id
        super().__init__(
            f"Content of {target} is {actual} units, larger than its declared size {declared}"
        )


class CancelledError(SkillDisclosureError):
    """Raised when a session is cancelled by its caller."""

    def __init__(self, state: str):
        self.state = state
        super().__init__(f"Disclosure session cancelled during {state}")


class SkillNotFoundError(SkillDisclosureError):
    """Raised when a skill id is not in the registry snapshot."""

    def __init__(self, skill_id: str):
        self.skill_id = skill_id
        super().__init__(f"Skill '{skill_id}' not found")


class ReferenceNotFoundError(SkillDisclosureError):
    """Raised when a skill does not declare the requested reference."""

    def __init__(self, skill_id: str, reference_id: str, available: list[str] | None = None):
        self.skill_id = skill_id
        self.reference_id = reference_id
        self.available = available or []
        message = f"Reference '{reference_id}' not found for skill '{skill_id}'"
        if self.available:
            message += f". Available: {', '.join(self.available)}"
        super().__init__(message)


class SessionStateError(SkillDisclosureError):
    """Raised when a session operation is invalid in its current state."""

    def __init__(self, operation: str, state: str):
        self.operation = operation
        self.state = state
        super().__init__(f"Cannot {operation} while session is {state}")

"""Data model for progressive skill disclosure.

Progressive disclosure tiers:
- Metadata: id, description, trigger keywords - small and always resident
- Body: main skill content - loaded when the skill is selected for a task
- Reference: additional documents named by a body - loaded only on demand

All records are frozen dataclasses. A registry snapshot hands out the same
record instances to every session, so nothing here may be mutated after load.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePosixPath
from typing import Any, Callable, Iterator, Optional

# Content is either inline text or a zero-arg callable that fetches it lazily
ContentLoader = str | Callable[[], str]


def measure(text: str) -> int:
    """Size of a piece of content in size units (UTF-8 bytes)."""
    return len(text.encode("utf-8"))


def _load(content: ContentLoader) -> str:
    if callable(content):
        return content()
    return content


class Tier(str, Enum):
    """Disclosure tier of a bundle entry."""

    METADATA = "metadata"
    BODY = "body"
    REFERENCE = "reference"


@dataclass(frozen=True)
class SkillMetadata:
    """Tier 1: what the matcher sees and what is always affordable.

    Attributes:
        id: Unique skill identifier within a snapshot
        name: Human-readable name
        description: Short description used for triggering
        keywords: Declared trigger keywords, in declaration order
        size: Cost of admitting this metadata into a bundle
    """

    id: str
    name: str
    description: str
    keywords: tuple[str, ...] = ()
    size: int = 0

    def render(self) -> str:
        """Text form of the metadata as it appears in a bundle."""
        lines = [f"{self.name}: {self.description}"]
        if self.keywords:
            lines.append(f"Triggers: {', '.join(self.keywords)}")
        return "\n".join(lines)


@dataclass(frozen=True)
class ReferenceRecord:
    """Tier 3: a document owned by a skill and fetched lazily.

    The id is the reference's path relative to its skill (e.g.
    ``references/forms.md``) or any opaque name for inline sources.
    """

    id: str
    skill_id: str
    content: ContentLoader = field(repr=False, compare=False)
    size: int = 0

    @property
    def file_name(self) -> str:
        """Final path component of the reference id."""
        return PurePosixPath(self.id).name

    def load(self) -> str:
        """Fetch the reference content."""
        return _load(self.content)


@dataclass(frozen=True)
class SkillRecord:
    """A skill as held by a registry snapshot.

    Attributes:
        metadata: Tier 1 metadata
        body: Tier 2 body content or a loader for it
        body_size: Cost of admitting the body
        references: Ordered tier 3 reference pointers
        source: Where the record came from (path or source label)
    """

    metadata: SkillMetadata
    body: ContentLoader = field(repr=False, compare=False)
    body_size: int = 0
    references: tuple[ReferenceRecord, ...] = ()
    source: Optional[str] = None

    @property
    def id(self) -> str:
        return self.metadata.id

    def load_body(self) -> str:
        """Fetch the body content."""
        return _load(self.body)

    def get_reference(self, reference_id: str) -> Optional[ReferenceRecord]:
        for reference in self.references:
            if reference.id == reference_id:
                return reference
        return None


@dataclass(frozen=True)
class MatchScore:
    """Relevance of one skill to one query. Derived per query, never stored."""

    skill_id: str
    relevance: float
    matched_terms: tuple[str, ...] = ()
    position: int = 0


@dataclass(frozen=True)
class DisclosureEntry:
    """One tier-tagged chunk of content in a bundle."""

    tier: Tier
    skill_id: str
    content: str
    size: int
    reference_id: Optional[str] = None

    @property
    def label(self) -> str:
        if self.reference_id:
            return f"[{self.tier.value}] {self.skill_id}/{self.reference_id}"
        return f"[{self.tier.value}] {self.skill_id}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "tier": self.tier.value,
            "skill_id": self.skill_id,
            "reference_id": self.reference_id,
            "size": self.size,
            "content": self.content,
        }


@dataclass(frozen=True)
class DisclosureBundle:
    """Ordered, immutable output of one disclosure session.

    Attributes:
        query: The task description the bundle was built for
        entries: Admitted content in disclosure order
        skipped: Skill ids whose metadata or body was dropped for capacity
        timed_out: True when a fetch timed out and the bundle is partial
    """

    query: str
    entries: tuple[DisclosureEntry, ...] = ()
    skipped: tuple[str, ...] = ()
    timed_out: bool = False

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[DisclosureEntry]:
        return iter(self.entries)

    @property
    def total_size(self) -> int:
        return sum(entry.size for entry in self.entries)

    def entries_for(self, tier: Tier) -> list[DisclosureEntry]:
        return [entry for entry in self.entries if entry.tier == tier]

    def skill_ids(self) -> list[str]:
        """Skill ids in order of first appearance."""
        seen: dict[str, None] = {}
        for entry in self.entries:
            seen.setdefault(entry.skill_id, None)
        return list(seen)

    def render(self) -> str:
        """Render the bundle as text for injection into a model context.

        Returns:
            Deterministic text rendering; empty string for an empty bundle
        """
        blocks = [f"## {entry.label}\n\n{entry.content}" for entry in self.entries]
        return "\n\n".join(blocks)

    def to_dict(self) -> dict[str, Any]:
        return {
            "query": self.query,
            "entries": [entry.to_dict() for entry in self.entries],
            "skipped": list(self.skipped),
            "timed_out": self.timed_out,
            "total_size": self.total_size,
        }

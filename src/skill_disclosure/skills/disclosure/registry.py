"""Skill registry snapshots for progressive disclosure.

A SkillRegistry is an immutable, point-in-time view of a skill catalog. It is
built once from a source and never edited afterwards; reloading produces a new
snapshot which RegistryHandle swaps in atomically. Sessions hold on to the
snapshot they started with, so a reload never changes a session mid-flight.
"""

import logging
import threading
from types import MappingProxyType
from typing import Any, Iterable, Iterator, Optional

from skill_disclosure.skills.disclosure.models import (
    ReferenceRecord,
    SkillMetadata,
    SkillRecord,
    measure,
)
from skill_disclosure.skills.disclosure.sources import RawRecord, SkillSource
from skill_disclosure.skills.disclosure.timeouts import call_with_timeout
from skill_disclosure.utils.errors import (
    ReferenceNotFoundError,
    RegistryError,
    SkillNotFoundError,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_METADATA_SIZE = 100
DEFAULT_MAX_BODY_SIZE = 5000


def _require_text(value: Any, field_name: str, skill_id: Optional[str], source: Optional[str]) -> str:
    if not isinstance(value, str) or not value.strip():
        raise RegistryError(f"missing or empty '{field_name}'", skill_id=skill_id, source=source)
    return value.strip()


def _parse_size(value: Any, field_name: str, skill_id: str, source: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise RegistryError(
            f"'{field_name}' must be a non-negative integer, got {value!r}",
            skill_id=skill_id,
            source=source,
        )
    return value


def _parse_keywords(value: Any, skill_id: str, source: Optional[str]) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = value
    else:
        raise RegistryError(
            f"'keywords' must be a list or comma-separated string, got {type(value).__name__}",
            skill_id=skill_id,
            source=source,
        )

    keywords = []
    for item in items:
        if not isinstance(item, str):
            raise RegistryError(f"keyword {item!r} is not a string", skill_id=skill_id, source=source)
        if item.strip():
            keywords.append(item.strip())
    return tuple(keywords)


def _content_size(
    content: Any,
    declared: Optional[int],
    field_name: str,
    skill_id: str,
    source: Optional[str],
) -> int:
    if isinstance(content, str):
        return measure(content) if declared is None else declared
    if callable(content):
        if declared is None:
            raise RegistryError(
                f"lazy '{field_name}' needs a declared size",
                skill_id=skill_id,
                source=source,
            )
        return declared
    raise RegistryError(
        f"'{field_name}' must be text or a loader callable, got {type(content).__name__}",
        skill_id=skill_id,
        source=source,
    )


def _build_references(raw: Any, skill_id: str, source: Optional[str]) -> tuple[ReferenceRecord, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, (list, tuple)):
        raise RegistryError("'references' must be a list", skill_id=skill_id, source=source)

    references = []
    seen: set[str] = set()
    for item in raw:
        if not isinstance(item, dict):
            raise RegistryError("reference entries must be mappings", skill_id=skill_id, source=source)
        ref_id = _require_text(item.get("id"), "reference id", skill_id, source)
        if ref_id in seen:
            raise RegistryError(f"duplicate reference id '{ref_id}'", skill_id=skill_id, source=source)
        seen.add(ref_id)

        content = item.get("content")
        declared = _parse_size(item.get("size"), f"size of {ref_id}", skill_id, source)
        size = _content_size(content, declared, f"content of {ref_id}", skill_id, source)
        references.append(ReferenceRecord(id=ref_id, skill_id=skill_id, content=content, size=size))
    return tuple(references)


def build_record(
    raw: RawRecord,
    max_metadata_size: int = DEFAULT_MAX_METADATA_SIZE,
    max_body_size: int = DEFAULT_MAX_BODY_SIZE,
) -> SkillRecord:
    """Validate a raw record and turn it into a SkillRecord.

    Args:
        raw: Mapping yielded by a skill source
        max_metadata_size: Largest allowed metadata size
        max_body_size: Largest allowed body size

    Returns:
        Immutable SkillRecord

    Raises:
        RegistryError: If any field is missing, malformed or over its limit
    """
    source = raw.get("source")
    raw_id = raw.get("id")
    skill_id = _require_text(raw_id, "id", raw_id if isinstance(raw_id, str) else None, source)
    description = _require_text(raw.get("description"), "description", skill_id, source)

    name = raw.get("name")
    if name is None:
        name = skill_id.replace("_", " ").replace("-", " ").title()
    elif not isinstance(name, str):
        raise RegistryError("'name' must be a string", skill_id=skill_id, source=source)

    keywords = _parse_keywords(raw.get("keywords"), skill_id, source)

    metadata_size = _parse_size(raw.get("size"), "size", skill_id, source)
    if metadata_size is None:
        metadata_size = measure(description) + sum(measure(k) for k in keywords)
    if metadata_size > max_metadata_size:
        raise RegistryError(
            f"metadata size {metadata_size} exceeds limit {max_metadata_size}",
            skill_id=skill_id,
            source=source,
        )

    body = raw.get("body")
    if body is None:
        raise RegistryError("missing 'body'", skill_id=skill_id, source=source)
    declared_body = _parse_size(raw.get("body_size"), "body_size", skill_id, source)
    body_size = _content_size(body, declared_body, "body", skill_id, source)
    if body_size > max_body_size:
        raise RegistryError(
            f"body size {body_size} exceeds limit {max_body_size}",
            skill_id=skill_id,
            source=source,
        )

    return SkillRecord(
        metadata=SkillMetadata(
            id=skill_id,
            name=name,
            description=description,
            keywords=keywords,
            size=metadata_size,
        ),
        body=body,
        body_size=body_size,
        references=_build_references(raw.get("references"), skill_id, source),
        source=source,
    )


class SkillRegistry:
    """Immutable snapshot of skill records.

    The registry provides:
    1. Metadata listing in insertion order (always cheap)
    2. Lazy access to bodies and references by skill id
    3. The per-record load errors that were isolated during load()

    Example:
        registry = SkillRegistry.load(DirectorySkillSource("skills"))
        for meta in registry.list_metadata():
            print(meta.id, meta.description)

        body = registry.get_body("python_async")  # fetched only now
        if registry.errors:
            print(f"{len(registry.errors)} skills rejected")
    """

    def __init__(
        self,
        records: Iterable[SkillRecord] = (),
        errors: Iterable[RegistryError] = (),
    ):
        """Build a snapshot from already-validated records.

        Args:
            records: Records in insertion order; ids must be unique
            errors: Load errors to report alongside the snapshot

        Raises:
            RegistryError: If two records share an id
        """
        skills: dict[str, SkillRecord] = {}
        for record in records:
            if record.id in skills:
                raise RegistryError("duplicate id", skill_id=record.id, source=record.source)
            skills[record.id] = record

        self._skills = MappingProxyType(skills)
        self._positions = MappingProxyType({skill_id: i for i, skill_id in enumerate(skills)})
        self._errors = tuple(errors)

    @classmethod
    def load(
        cls,
        source: SkillSource,
        *,
        timeout: Optional[float] = None,
        max_metadata_size: int = DEFAULT_MAX_METADATA_SIZE,
        max_body_size: int = DEFAULT_MAX_BODY_SIZE,
    ) -> "SkillRegistry":
        """Load a snapshot from a skill source.

        Bad records are excluded and reported in ``errors``; their siblings
        still load. A duplicate id keeps the first record and rejects the rest.

        Args:
            source: Skill source yielding raw records
            timeout: Seconds allowed for reading the source, None for no bound
            max_metadata_size: Largest allowed metadata size
            max_body_size: Largest allowed body size

        Returns:
            New SkillRegistry snapshot

        Raises:
            LoadTimeout: If reading the source exceeded the timeout
        """
        items = call_with_timeout(
            lambda: list(source.iter_records()),
            timeout,
            f"registry from {source!r}",
        )

        records: dict[str, SkillRecord] = {}
        errors: list[RegistryError] = []
        for item in items:
            try:
                if isinstance(item, RegistryError):
                    raise item
                record = build_record(item, max_metadata_size, max_body_size)
                if record.id in records:
                    raise RegistryError("duplicate id", skill_id=record.id, source=record.source)
            except RegistryError as e:
                logger.warning(f"Rejected skill record: {e}")
                errors.append(e)
                continue

            records[record.id] = record
            logger.debug(f"Registered skill: {record.id} ({record.metadata.name})")

        logger.info(f"Loaded {len(records)} skills ({len(errors)} rejected) from {source!r}")
        return cls(records.values(), errors)

    def __len__(self) -> int:
        return len(self._skills)

    def __contains__(self, skill_id: object) -> bool:
        return skill_id in self._skills

    def __iter__(self) -> Iterator[SkillRecord]:
        return iter(self._skills.values())

    @property
    def errors(self) -> tuple[RegistryError, ...]:
        """Per-record errors collected while loading."""
        return self._errors

    def ids(self) -> list[str]:
        return list(self._skills)

    def position(self, skill_id: str) -> int:
        """Insertion index of a skill, used for deterministic tie-breaks."""
        if skill_id not in self._positions:
            raise SkillNotFoundError(skill_id)
        return self._positions[skill_id]

    def get(self, skill_id: str) -> SkillRecord:
        """Get a skill record by id.

        Raises:
            SkillNotFoundError: If the id is not in this snapshot
        """
        record = self._skills.get(skill_id)
        if record is None:
            raise SkillNotFoundError(skill_id)
        return record

    def list_metadata(self) -> list[SkillMetadata]:
        """Metadata for every skill, in insertion order."""
        return [record.metadata for record in self._skills.values()]

    def get_body(self, skill_id: str) -> str:
        """Fetch a skill's body content."""
        return self.get(skill_id).load_body()

    def get_references(self, skill_id: str) -> tuple[ReferenceRecord, ...]:
        """Reference pointers declared by a skill (content not fetched)."""
        return self.get(skill_id).references

    def get_reference(self, skill_id: str, reference_id: str) -> ReferenceRecord:
        record = self.get(skill_id)
        reference = record.get_reference(reference_id)
        if reference is None:
            raise ReferenceNotFoundError(
                skill_id, reference_id, [ref.id for ref in record.references]
            )
        return reference

    def get_descriptions(self) -> str:
        """Formatted one-line-per-skill listing of the snapshot."""
        if not self._skills:
            return "No skills available."
        return "\n".join(
            f"- {meta.id}: {meta.name} - {meta.description}" for meta in self.list_metadata()
        )


class RegistryHandle:
    """Holder of the current registry snapshot with copy-on-write reload.

    Readers take ``handle.snapshot`` once and keep using it; ``reload`` builds
    a new snapshot off to the side and swaps it in under a lock. A reload that
    fails leaves the previous snapshot in place.
    """

    def __init__(self, registry: Optional[SkillRegistry] = None):
        self._snapshot = registry if registry is not None else SkillRegistry()
        self._lock = threading.Lock()
        self._generation = 0

    @property
    def snapshot(self) -> SkillRegistry:
        return self._snapshot

    @property
    def generation(self) -> int:
        """Number of successful swaps since creation."""
        return self._generation

    def swap(self, registry: SkillRegistry) -> SkillRegistry:
        """Replace the current snapshot, returning the previous one."""
        with self._lock:
            previous = self._snapshot
            self._snapshot = registry
            self._generation += 1
            generation = self._generation
        logger.info(f"Registry snapshot swapped (generation {generation}, {len(registry)} skills)")
        return previous

    def reload(self, source: SkillSource, **load_kwargs: Any) -> SkillRegistry:
        """Load a new snapshot from source and swap it in.

        Args:
            source: Skill source to load from
            **load_kwargs: Forwarded to SkillRegistry.load

        Returns:
            The newly active snapshot

        Raises:
            LoadTimeout: If the load timed out; the old snapshot stays active
        """
        registry = SkillRegistry.load(source, **load_kwargs)
        self.swap(registry)
        return registry

"""Skill sources that feed a SkillRegistry.

A source yields one raw record per skill: a mapping with the keys ``id``,
``name``, ``description``, ``keywords``, ``size``, ``body``, ``body_size``,
``references`` and ``source``. Validation belongs to the registry, so sources
pass values through mostly untouched. A source that cannot even parse a record
yields a RegistryError in its place, and the registry reports it alongside the
validation failures.
"""

import logging
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping, Protocol

import yaml

from skill_disclosure.utils.errors import RegistryError

logger = logging.getLogger(__name__)

SKILL_FILE = "SKILL.md"
REFERENCES_DIR = "references"

RawRecord = Mapping[str, Any]


class SkillSource(Protocol):
    """Anything that can yield raw skill records."""

    def iter_records(self) -> Iterator[RawRecord | RegistryError]:
        ...


def split_frontmatter(content: str) -> tuple[dict[str, Any], str]:
    """Split a SKILL.md document into YAML frontmatter and body.

    Args:
        content: Full file content

    Returns:
        Tuple of (frontmatter dict, body text). Documents without
        frontmatter return an empty dict and the stripped content.

    Raises:
        yaml.YAMLError: If the frontmatter is not valid YAML
        ValueError: If the frontmatter is not a mapping
    """
    if not content.startswith("---"):
        return {}, content.strip()

    lines = content.split("\n")
    end_idx = None
    for i, line in enumerate(lines[1:], 1):
        if line.strip() == "---":
            end_idx = i
            break

    if end_idx is None:
        return {}, content.strip()

    frontmatter = yaml.safe_load("\n".join(lines[1:end_idx])) or {}
    if not isinstance(frontmatter, dict):
        raise ValueError("frontmatter must be a mapping")
    body = "\n".join(lines[end_idx + 1:]).strip()
    return frontmatter, body


class DirectorySkillSource:
    """Load skills from SKILL.md folders.

    Expected structure:
        directory/
        ├── python_testing/
        │   ├── SKILL.md          # frontmatter + body
        │   ├── fixtures.md       # reference "fixtures.md"
        │   └── references/
        │       └── mocking.md    # reference "references/mocking.md"

    The body is kept as read at load time. Reference content is read lazily
    and charged at the file size taken at load time.
    """

    def __init__(self, directory: Path | str):
        self.directory = Path(directory)

    def __repr__(self) -> str:
        return f"DirectorySkillSource({str(self.directory)!r})"

    def iter_records(self) -> Iterator[RawRecord | RegistryError]:
        if not self.directory.exists():
            logger.warning(f"Skills directory does not exist: {self.directory}")
            return

        for skill_dir in sorted(self.directory.iterdir()):
            if not skill_dir.is_dir():
                continue

            skill_md = skill_dir / SKILL_FILE
            if not skill_md.exists():
                continue

            try:
                yield self._parse_skill_dir(skill_md, skill_dir)
            except (OSError, UnicodeDecodeError, ValueError, yaml.YAMLError) as e:
                yield RegistryError(
                    f"unreadable {SKILL_FILE}: {e}",
                    skill_id=skill_dir.name,
                    source=str(skill_md),
                )

    def _parse_skill_dir(self, skill_md: Path, skill_dir: Path) -> RawRecord:
        frontmatter, body = split_frontmatter(skill_md.read_text(encoding="utf-8"))

        return {
            "id": frontmatter.get("id", skill_dir.name),
            "name": frontmatter.get("name"),
            "description": frontmatter.get("description"),
            "keywords": frontmatter.get("keywords", frontmatter.get("triggers")),
            "size": frontmatter.get("size"),
            "body": body,
            "references": self._collect_references(skill_dir),
            "source": str(skill_md),
        }

    @staticmethod
    def _collect_references(skill_dir: Path) -> list[dict[str, Any]]:
        files = [f for f in skill_dir.glob("*.md") if f.name != SKILL_FILE]
        ref_root = skill_dir / REFERENCES_DIR
        if ref_root.is_dir():
            files.extend(f for f in ref_root.rglob("*") if f.is_file())

        references = []
        for path in sorted(files, key=lambda p: p.relative_to(skill_dir).as_posix()):
            references.append(
                {
                    "id": path.relative_to(skill_dir).as_posix(),
                    # Lazy loading
                    "content": lambda f=path: f.read_text(encoding="utf-8"),
                    "size": path.stat().st_size,
                }
            )
        return references


class InlineSkillSource:
    """Skills supplied directly as mappings.

    Example:
        source = InlineSkillSource([
            {
                "id": "python_async",
                "description": "python async",
                "keywords": ["asyncio", "await"],
                "body": "Prefer asyncio.gather for fan-out...",
                "references": [{"id": "patterns.md", "content": "..."}],
            },
        ])
    """

    def __init__(self, records: Iterable[RawRecord], label: str = "inline"):
        self._records = list(records)
        self.label = label

    def __repr__(self) -> str:
        return f"InlineSkillSource({len(self._records)} records)"

    def iter_records(self) -> Iterator[RawRecord | RegistryError]:
        for index, record in enumerate(self._records):
            if not isinstance(record, Mapping):
                yield RegistryError(
                    f"record must be a mapping, got {type(record).__name__}",
                    source=f"{self.label}[{index}]",
                )
                continue
            data = dict(record)
            data.setdefault("source", f"{self.label}[{index}]")
            yield data

"""Shared fixtures for skill-disclosure tests."""

from pathlib import Path

import pytest

from skill_disclosure.skills.disclosure import (
    InlineSkillSource,
    SkillRegistry,
    TriggerMatcher,
)


# Three skills with explicit sizes: metadata sums to 100, bodies 4000/3000/2000
SCENARIO_RECORDS = [
    {
        "id": "python_testing",
        "description": "python testing",
        "keywords": ["pytest"],
        "size": 34,
        "body": "Use pytest fixtures for setup.",
        "body_size": 4000,
    },
    {
        "id": "bash_scripting",
        "description": "bash scripting",
        "keywords": ["shell"],
        "size": 33,
        "body": "Start scripts with set -euo pipefail.",
        "body_size": 3000,
    },
    {
        "id": "python_async",
        "description": "python async",
        "keywords": ["asyncio"],
        "size": 33,
        "body": "Prefer asyncio.gather for fan-out.",
        "body_size": 2000,
    },
]

SCENARIO_QUERY = "python async patterns"


@pytest.fixture
def scenario_registry() -> SkillRegistry:
    """Registry with python_testing, bash_scripting, python_async (in that order)."""
    return SkillRegistry.load(InlineSkillSource(SCENARIO_RECORDS))


@pytest.fixture
def permissive_matcher() -> TriggerMatcher:
    """Matcher that admits every candidate, zero-relevance ones included."""
    return TriggerMatcher(min_relevance=0.0)


def write_skill(root: Path, name: str, skill_md: str, extra_files: dict[str, str] | None = None) -> Path:
    """Create a skill folder with SKILL.md and optional extra files."""
    skill_dir = root / name
    skill_dir.mkdir(parents=True)
    (skill_dir / "SKILL.md").write_text(skill_md, encoding="utf-8")
    for rel_path, content in (extra_files or {}).items():
        path = skill_dir / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return skill_dir


@pytest.fixture
def skills_dir(tmp_path) -> Path:
    """A skills directory with two valid skills, one malformed, and noise."""
    root = tmp_path / "skills"
    root.mkdir()

    write_skill(
        root,
        "python_async",
        "---\n"
        "name: Python Async\n"
        "description: python async\n"
        "keywords: [asyncio, event loop]\n"
        "---\n"
        "# Async\n\nSee patterns.md and references/cancellation.md for details.\n",
        {
            "patterns.md": "gather, TaskGroup, semaphores",
            "references/cancellation.md": "Always re-raise CancelledError.",
        },
    )
    write_skill(
        root,
        "bash_scripting",
        "---\n"
        "id: bash\n"
        "description: bash scripting\n"
        "triggers: shell, sh\n"
        "---\n"
        "Quote every variable expansion.\n",
    )
    write_skill(
        root,
        "broken",
        "---\ndescription: [unclosed\n---\nbody\n",
    )
    (root / "not_a_skill").mkdir()
    (root / "README.md").write_text("stray file", encoding="utf-8")
    return root

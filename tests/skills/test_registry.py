"""Tests for skill sources and registry snapshots.

This module tests:
- InlineSkillSource and DirectorySkillSource record extraction
- SkillRegistry validation, per-record isolation and error aggregation
- Lazy body/reference access
- RegistryHandle copy-on-write reload
"""

import dataclasses
import time

import pytest

from skill_disclosure.skills.disclosure import (
    DirectorySkillSource,
    InlineSkillSource,
    RegistryHandle,
    SkillRegistry,
    split_frontmatter,
)
from skill_disclosure.utils.errors import (
    LoadTimeout,
    ReferenceNotFoundError,
    RegistryError,
    SkillNotFoundError,
)


# =============================================================================
# Test Fixtures
# =============================================================================

@pytest.fixture
def valid_record():
    return {
        "id": "sql_tuning",
        "description": "sql query tuning",
        "keywords": ["index", "explain plan"],
        "body": "Read the plan before adding indexes.",
        "references": [
            {"id": "explain.md", "content": "EXPLAIN ANALYZE output guide"},
        ],
    }


class SlowSource:
    """Source that takes longer than any reasonable timeout to yield."""

    def __init__(self, delay: float):
        self.delay = delay

    def iter_records(self):
        time.sleep(self.delay)
        yield {"id": "late", "description": "late skill", "body": "late"}


# =============================================================================
# Frontmatter Tests
# =============================================================================

class TestSplitFrontmatter:
    """Tests for SKILL.md frontmatter parsing."""

    def test_with_frontmatter(self):
        meta, body = split_frontmatter("---\ndescription: x\n---\n\nBody text\n")
        assert meta == {"description": "x"}
        assert body == "Body text"

    def test_without_frontmatter(self):
        meta, body = split_frontmatter("  Just a body  ")
        assert meta == {}
        assert body == "Just a body"

    def test_unterminated_frontmatter_is_body(self):
        meta, body = split_frontmatter("---\ndescription: x\nno end")
        assert meta == {}
        assert body.startswith("---")

    def test_non_mapping_frontmatter_rejected(self):
        with pytest.raises(ValueError):
            split_frontmatter("---\n- a\n- b\n---\nbody")


# =============================================================================
# SkillRegistry Load Tests
# =============================================================================

class TestRegistryLoad:
    """Tests for SkillRegistry.load with inline sources."""

    def test_load_valid_record(self, valid_record):
        registry = SkillRegistry.load(InlineSkillSource([valid_record]))

        assert len(registry) == 1
        assert "sql_tuning" in registry
        assert registry.errors == ()

        record = registry.get("sql_tuning")
        assert record.metadata.name == "Sql Tuning"
        assert record.metadata.keywords == ("index", "explain plan")
        assert record.body_size == len("Read the plan before adding indexes.")
        assert [r.id for r in record.references] == ["explain.md"]

    def test_metadata_size_computed_from_description_and_keywords(self, valid_record):
        registry = SkillRegistry.load(InlineSkillSource([valid_record]))
        meta = registry.get("sql_tuning").metadata
        assert meta.size == len("sql query tuning") + len("index") + len("explain plan")

    def test_size_counts_utf8_bytes(self):
        registry = SkillRegistry.load(
            InlineSkillSource([{"id": "u", "description": "café", "body": "é"}])
        )
        record = registry.get("u")
        assert record.metadata.size == 5
        assert record.body_size == 2

    def test_comma_separated_keywords(self):
        registry = SkillRegistry.load(
            InlineSkillSource([{"id": "k", "description": "d", "keywords": "a, b ,,c", "body": "x"}])
        )
        assert registry.get("k").metadata.keywords == ("a", "b", "c")

    def test_bad_records_isolated(self, valid_record):
        records = [
            {"id": "no_description", "body": "x"},
            valid_record,
            {"id": "sql_tuning", "description": "duplicate", "body": "x"},
            {"id": "huge_meta", "description": "d", "size": 101, "body": "x"},
            {"id": "huge_body", "description": "d", "body": "x", "body_size": 5001},
            {"id": "lazy_no_size", "description": "d", "body": lambda: "x"},
            {"id": "bad_keywords", "description": "d", "keywords": 5, "body": "x"},
            {"id": "no_body", "description": "d"},
            "not a mapping",
            {"id": "last_good", "description": "still loads", "body": "ok"},
        ]
        registry = SkillRegistry.load(InlineSkillSource(records))

        assert registry.ids() == ["sql_tuning", "last_good"]
        assert len(registry.errors) == 8
        assert all(isinstance(e, RegistryError) for e in registry.errors)
        assert [e.skill_id for e in registry.errors[:3]] == [
            "no_description",
            "sql_tuning",
            "huge_meta",
        ]

    def test_duplicate_keeps_first(self):
        records = [
            {"id": "dup", "description": "first", "body": "1"},
            {"id": "dup", "description": "second", "body": "2"},
        ]
        registry = SkillRegistry.load(InlineSkillSource(records))
        assert registry.get("dup").metadata.description == "first"
        assert "duplicate id" in str(registry.errors[0])

    def test_limits_are_configurable(self):
        record = {"id": "big", "description": "d", "body": "x", "body_size": 9000}
        registry = SkillRegistry.load(InlineSkillSource([record]), max_body_size=10000)
        assert "big" in registry

    def test_malformed_reference_rejects_record(self):
        record = {
            "id": "refs",
            "description": "d",
            "body": "x",
            "references": [{"id": "a.md", "content": "a"}, {"id": "a.md", "content": "b"}],
        }
        registry = SkillRegistry.load(InlineSkillSource([record]))
        assert len(registry) == 0
        assert "duplicate reference id" in registry.errors[0].reason

    def test_load_timeout(self):
        with pytest.raises(LoadTimeout):
            SkillRegistry.load(SlowSource(0.5), timeout=0.05)

    def test_duplicate_ids_rejected_by_constructor(self, valid_record):
        record = SkillRegistry.load(InlineSkillSource([valid_record])).get("sql_tuning")
        with pytest.raises(RegistryError):
            SkillRegistry([record, record])


# =============================================================================
# SkillRegistry Lookup Tests
# =============================================================================

class TestRegistryLookups:
    """Tests for metadata listing and lazy content access."""

    def test_list_metadata_in_insertion_order(self, scenario_registry):
        ids = [m.id for m in scenario_registry.list_metadata()]
        assert ids == ["python_testing", "bash_scripting", "python_async"]

    def test_position(self, scenario_registry):
        assert scenario_registry.position("python_async") == 2
        with pytest.raises(SkillNotFoundError):
            scenario_registry.position("missing")

    def test_body_loaded_only_on_request(self):
        calls = {"body": 0}

        def load_body():
            calls["body"] += 1
            return "lazy body"

        registry = SkillRegistry.load(
            InlineSkillSource([{"id": "lazy", "description": "d", "body": load_body, "body_size": 9}])
        )
        registry.list_metadata()
        assert calls["body"] == 0

        assert registry.get_body("lazy") == "lazy body"
        assert calls["body"] == 1

    def test_get_unknown_skill(self, scenario_registry):
        with pytest.raises(SkillNotFoundError):
            scenario_registry.get_body("missing")

    def test_get_unknown_reference(self, valid_record):
        registry = SkillRegistry.load(InlineSkillSource([valid_record]))
        with pytest.raises(ReferenceNotFoundError) as exc_info:
            registry.get_reference("sql_tuning", "missing.md")
        assert exc_info.value.available == ["explain.md"]

    def test_records_are_immutable(self, scenario_registry):
        record = scenario_registry.get("python_async")
        with pytest.raises(dataclasses.FrozenInstanceError):
            record.body_size = 1  # type: ignore[misc]

    def test_get_descriptions(self, scenario_registry):
        text = scenario_registry.get_descriptions()
        assert "- python_async: Python Async - python async" in text
        assert SkillRegistry().get_descriptions() == "No skills available."


# =============================================================================
# DirectorySkillSource Tests
# =============================================================================

class TestDirectorySource:
    """Tests for loading SKILL.md folders."""

    def test_loads_valid_skills_and_reports_broken(self, skills_dir):
        registry = SkillRegistry.load(DirectorySkillSource(skills_dir))

        # Folders are read in sorted order: bash_scripting, broken, python_async
        assert registry.ids() == ["bash", "python_async"]
        assert len(registry.errors) == 1
        assert registry.errors[0].skill_id == "broken"

    def test_frontmatter_fields(self, skills_dir):
        registry = SkillRegistry.load(DirectorySkillSource(skills_dir))

        async_meta = registry.get("python_async").metadata
        assert async_meta.name == "Python Async"
        assert async_meta.keywords == ("asyncio", "event loop")

        bash_meta = registry.get("bash").metadata
        assert bash_meta.name == "Bash"
        assert bash_meta.keywords == ("shell", "sh")

    def test_references_sorted_with_file_sizes(self, skills_dir):
        registry = SkillRegistry.load(DirectorySkillSource(skills_dir))
        references = registry.get_references("python_async")

        assert [r.id for r in references] == ["patterns.md", "references/cancellation.md"]
        assert references[0].size == len("gather, TaskGroup, semaphores")
        assert references[1].load() == "Always re-raise CancelledError."

    def test_body_excludes_frontmatter(self, skills_dir):
        registry = SkillRegistry.load(DirectorySkillSource(skills_dir))
        body = registry.get_body("python_async")

        assert body.startswith("# Async")
        assert "keywords" not in body
        assert registry.get("python_async").body_size == len(body.encode("utf-8"))

    def test_missing_directory_yields_empty_registry(self, tmp_path):
        registry = SkillRegistry.load(DirectorySkillSource(tmp_path / "nope"))
        assert len(registry) == 0
        assert registry.errors == ()


# =============================================================================
# RegistryHandle Tests
# =============================================================================

class TestRegistryHandle:
    """Tests for copy-on-write reload."""

    def test_reload_swaps_snapshot(self, scenario_registry, valid_record):
        handle = RegistryHandle(scenario_registry)
        old = handle.snapshot

        new = handle.reload(InlineSkillSource([valid_record]))

        assert handle.snapshot is new
        assert handle.generation == 1
        # Old snapshot is untouched
        assert old.ids() == ["python_testing", "bash_scripting", "python_async"]
        assert new.ids() == ["sql_tuning"]

    def test_failed_reload_keeps_old_snapshot(self, scenario_registry):
        handle = RegistryHandle(scenario_registry)

        with pytest.raises(LoadTimeout):
            handle.reload(SlowSource(0.5), timeout=0.05)

        assert handle.snapshot is scenario_registry
        assert handle.generation == 0

    def test_swap_returns_previous(self, scenario_registry):
        handle = RegistryHandle()
        previous = handle.swap(scenario_registry)
        assert len(previous) == 0
        assert handle.snapshot is scenario_registry

    def test_source_repr(self, skills_dir):
        assert "DirectorySkillSource" in repr(DirectorySkillSource(skills_dir))
        assert repr(InlineSkillSource([{}])) == "InlineSkillSource(1 records)"

    def test_error_message_includes_source(self):
        registry = SkillRegistry.load(InlineSkillSource([{"id": "x"}], label="catalog"))
        assert "catalog[0]" in str(registry.errors[0])

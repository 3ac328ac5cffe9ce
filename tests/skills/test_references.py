"""Tests for ReferenceResolver and reference-pointer scanning."""

import time

import pytest

from skill_disclosure.skills.disclosure import (
    ContextBudgetAllocator,
    InlineSkillSource,
    ReferenceResolver,
    SkillRegistry,
    find_pointers,
)
from skill_disclosure.utils.errors import (
    BudgetExceeded,
    ContentSizeMismatch,
    LoadTimeout,
    ReferenceNotFoundError,
)


@pytest.fixture
def fetch_counts():
    return {"forms.md": 0, "references/data.md": 0}


@pytest.fixture
def registry(fetch_counts):
    def loader(name, text):
        def load():
            fetch_counts[name] += 1
            return text
        return load

    return SkillRegistry.load(
        InlineSkillSource(
            [
                {
                    "id": "pdf",
                    "description": "pdf forms",
                    "body": "Fill forms; see forms.md.",
                    "references": [
                        {"id": "forms.md", "content": loader("forms.md", "FORMS"), "size": 40},
                        {"id": "references/data.md", "content": loader("references/data.md", "DATA"), "size": 60},
                        {"id": "slow.md", "content": lambda: time.sleep(0.5) or "SLOW", "size": 10},
                        {"id": "grown.md", "content": lambda: "G" * 200, "size": 20},
                    ],
                }
            ]
        )
    )


class TestResolve:
    """Tests for charging and caching."""

    def test_first_fetch_charges_budget(self, registry):
        budget = ContextBudgetAllocator(100)
        resolver = ReferenceResolver(registry)

        assert resolver.resolve("pdf", "forms.md", budget) == "FORMS"
        assert budget.remaining == 60
        assert resolver.is_cached("pdf", "forms.md")

    def test_repeated_fetch_is_free_and_identical(self, registry, fetch_counts):
        budget = ContextBudgetAllocator(100)
        resolver = ReferenceResolver(registry)

        first = resolver.resolve("pdf", "forms.md", budget)
        second = resolver.resolve("pdf", "forms.md", budget)
        third = resolver.resolve("pdf", "forms.md", budget)

        assert first == second == third
        assert budget.remaining == 60
        assert fetch_counts["forms.md"] == 1

    def test_budget_exceeded_leaves_budget_untouched(self, registry, fetch_counts):
        budget = ContextBudgetAllocator(50)
        resolver = ReferenceResolver(registry)

        with pytest.raises(BudgetExceeded) as exc_info:
            resolver.resolve("pdf", "references/data.md", budget)

        assert exc_info.value.requested == 60
        assert exc_info.value.available == 50
        assert budget.remaining == 50
        assert budget.reserved == 0
        assert fetch_counts["references/data.md"] == 0
        assert not resolver.is_cached("pdf", "references/data.md")

    def test_unknown_reference(self, registry):
        with pytest.raises(ReferenceNotFoundError):
            ReferenceResolver(registry).resolve("pdf", "nope.md", ContextBudgetAllocator(100))

    def test_timeout_releases_reservation(self, registry):
        budget = ContextBudgetAllocator(100)
        resolver = ReferenceResolver(registry, timeout=0.05)

        with pytest.raises(LoadTimeout):
            resolver.resolve("pdf", "slow.md", budget)

        assert budget.remaining == 100
        assert budget.reserved == 0
        assert resolver.cached("pdf", "slow.md") is None

    def test_content_larger_than_declared_size_is_refused(self, registry):
        budget = ContextBudgetAllocator(100)
        resolver = ReferenceResolver(registry)

        with pytest.raises(ContentSizeMismatch) as exc_info:
            resolver.resolve("pdf", "grown.md", budget)

        assert (exc_info.value.declared, exc_info.value.actual) == (20, 200)
        assert budget.remaining == 100
        assert budget.reserved == 0
        assert not resolver.is_cached("pdf", "grown.md")

    def test_caches_are_per_resolver(self, registry, fetch_counts):
        for _ in range(2):
            ReferenceResolver(registry).resolve("pdf", "forms.md", ContextBudgetAllocator(100))
        assert fetch_counts["forms.md"] == 2


class TestFindPointers:
    """Tests for discovering references named by a body."""

    def test_mentions_by_id_and_file_name(self, registry):
        record = registry.get("pdf")
        body = "Start with data.md, then check forms.md."
        found = find_pointers(record, body)
        # Declared order, not mention order
        assert [r.id for r in found] == ["forms.md", "references/data.md"]

    def test_full_path_mention(self, registry):
        record = registry.get("pdf")
        found = find_pointers(record, "See [data](references/data.md)")
        assert [r.id for r in found] == ["references/data.md"]

    def test_no_partial_name_matches(self, registry):
        record = registry.get("pdf")
        assert find_pointers(record, "uses myforms.md and forms.mdx and slow.md-old") == []

    def test_no_mentions(self, registry):
        assert find_pointers(registry.get("pdf"), "nothing to see") == []

"""Tests for trigger matching."""

import pytest

from skill_disclosure.skills.disclosure import (
    InlineSkillSource,
    KeywordOverlapScorer,
    SkillMetadata,
    SkillRegistry,
    TriggerMatcher,
    stem,
    tokenize,
)


def _registry(*records):
    return SkillRegistry.load(
        InlineSkillSource([{"body": "body", **record} for record in records])
    )


class TestTokenizer:
    def test_tokenize_lowercases_and_splits(self):
        assert tokenize("Python-Async, PATTERNS!") == ["python", "async", "patterns"]

    @pytest.mark.parametrize(
        "token,expected",
        [
            ("patterns", "pattern"),
            ("testing", "test"),
            ("scripted", "script"),
            ("libraries", "librar"),
            ("class", "class"),
            ("bus", "bus"),
            ("async", "async"),
        ],
    )
    def test_stem(self, token, expected):
        assert stem(token) == expected


class TestKeywordOverlapScorer:
    """Tests for the default scorer's weighting."""

    def test_phrase_beats_keyword_beats_loose(self):
        scorer = KeywordOverlapScorer()
        phrase = SkillMetadata(id="p", name="P", description="event loop")
        keyword = SkillMetadata(id="k", name="K", description="concurrency", keywords=("loop",))
        loose = SkillMetadata(id="l", name="L", description="loops")

        query = "debug the event loop"
        assert scorer(query, phrase)[0] > scorer(query, keyword)[0] > scorer(query, loose)[0] > 0

    def test_matched_terms_reported_in_discovery_order(self):
        scorer = KeywordOverlapScorer()
        meta = SkillMetadata(
            id="s", name="S", description="python async", keywords=("asyncio", "event loop")
        )
        score, terms = scorer("python async with asyncio event loop", meta)

        assert terms == ["python async", "event loop", "asyncio"]
        assert score == 3.0 + 3.0 + 2.0

    def test_covered_tokens_not_double_counted(self):
        scorer = KeywordOverlapScorer()
        meta = SkillMetadata(id="s", name="S", description="python async")
        score, terms = scorer("python async", meta)
        assert score == 3.0
        assert terms == ["python async"]

    def test_stopwords_ignored_for_loose_overlap(self):
        scorer = KeywordOverlapScorer()
        meta = SkillMetadata(id="s", name="S", description="the art of testing")
        score, _ = scorer("what is the plan", meta)
        assert score == 0.0

    def test_stem_overlap(self):
        scorer = KeywordOverlapScorer()
        meta = SkillMetadata(id="s", name="S", description="design pattern")
        score, terms = scorer("python async patterns", meta)
        assert score == 1.0
        assert terms == ["pattern"]

    def test_empty_query(self):
        meta = SkillMetadata(id="s", name="S", description="anything")
        assert KeywordOverlapScorer()("   ", meta) == (0.0, [])


class TestTriggerMatcher:
    """Tests for ranking, tie-breaking and exclusion."""

    def test_scenario_ranking(self, scenario_registry, permissive_matcher):
        scores = permissive_matcher.match("python async patterns", scenario_registry)
        assert [s.skill_id for s in scores] == ["python_async", "python_testing", "bash_scripting"]
        assert scores[0].relevance > scores[1].relevance > scores[2].relevance == 0.0

    def test_default_threshold_excludes_non_matching(self, scenario_registry):
        scores = TriggerMatcher().match("python async patterns", scenario_registry)
        assert [s.skill_id for s in scores] == ["python_async", "python_testing"]

    def test_no_match_is_empty_not_error(self, scenario_registry):
        assert TriggerMatcher().match("kubernetes helm charts", scenario_registry) == []

    def test_blank_query_is_empty_even_with_zero_threshold(self, scenario_registry, permissive_matcher):
        assert permissive_matcher.match("", scenario_registry) == []

    def test_ties_broken_by_registry_order(self):
        registry = _registry(
            {"id": "second_alpha", "description": "docker compose"},
            {"id": "first_alpha", "description": "docker compose"},
            {"id": "other", "description": "docker images"},
        )
        scores = TriggerMatcher().match("docker compose", registry)

        assert [s.skill_id for s in scores] == ["second_alpha", "first_alpha", "other"]
        assert [s.position for s in scores] == [0, 1, 2]

    def test_custom_scorer(self, scenario_registry):
        def by_length(query, metadata):
            return float(len(metadata.id)), [metadata.id]

        scores = TriggerMatcher(scorer=by_length, min_relevance=13).match("x", scenario_registry)
        assert [s.skill_id for s in scores] == ["python_testing", "bash_scripting"]
        assert scores[0].matched_terms == ("python_testing",)

    def test_accepts_metadata_iterable(self, scenario_registry):
        metadata = scenario_registry.list_metadata()
        from_list = TriggerMatcher().match("bash shell", metadata)
        from_registry = TriggerMatcher().match("bash shell", scenario_registry)
        assert from_list == from_registry

    def test_repeated_matching_is_deterministic(self, scenario_registry, permissive_matcher):
        first = permissive_matcher.match("python async patterns", scenario_registry)
        for _ in range(5):
            assert permissive_matcher.match("python async patterns", scenario_registry) == first

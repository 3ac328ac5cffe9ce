"""Progressive skill-disclosure engine.

Given a catalog of skills split into metadata, body and reference tiers, this
package selects the skills relevant to a task, loads their content under a
bounded budget and resolves reference documents on demand.

Architecture:
    SkillSource -> SkillRegistry (snapshot) <- RegistryHandle (reload)
                        |
    task text -> TriggerMatcher -> ranked MatchScores
                        |
               ContextBudgetAllocator  (metadata, then bodies)
                        |
               ReferenceResolver       (references named by bodies)
                        |
               DisclosureSession -> DisclosureBundle

Usage:
    from skill_disclosure.skills.disclosure import (
        DirectorySkillSource,
        DisclosureSession,
        SkillRegistry,
    )

    registry = SkillRegistry.load(DirectorySkillSource("skills"))
    bundle = DisclosureSession(registry, budget=8000).run("python async patterns")
    print(bundle.render())
"""

from skill_disclosure.skills.disclosure.budget import (
    Admission,
    ContextBudgetAllocator,
    Reservation,
)
from skill_disclosure.skills.disclosure.matcher import (
    KeywordOverlapScorer,
    TriggerMatcher,
    stem,
    tokenize,
)
from skill_disclosure.skills.disclosure.models import (
    DisclosureBundle,
    DisclosureEntry,
    MatchScore,
    ReferenceRecord,
    SkillMetadata,
    SkillRecord,
    Tier,
    measure,
)
from skill_disclosure.skills.disclosure.references import ReferenceResolver, find_pointers
from skill_disclosure.skills.disclosure.registry import (
    RegistryHandle,
    SkillRegistry,
    build_record,
)
from skill_disclosure.skills.disclosure.session import DisclosureSession, SessionState
from skill_disclosure.skills.disclosure.sources import (
    DirectorySkillSource,
    InlineSkillSource,
    split_frontmatter,
)

__all__ = [
    # Data model
    "Tier",
    "SkillMetadata",
    "SkillRecord",
    "ReferenceRecord",
    "MatchScore",
    "DisclosureEntry",
    "DisclosureBundle",
    "measure",
    # Sources and registry
    "DirectorySkillSource",
    "InlineSkillSource",
    "split_frontmatter",
    "SkillRegistry",
    "RegistryHandle",
    "build_record",
    # Matching
    "TriggerMatcher",
    "KeywordOverlapScorer",
    "tokenize",
    "stem",
    # Budget
    "ContextBudgetAllocator",
    "Admission",
    "Reservation",
    # References
    "ReferenceResolver",
    "find_pointers",
    # Session
    "DisclosureSession",
    "SessionState",
]

"""On-demand loading of tier 3 reference documents.

References are fetched through an explicit cache keyed by (skill_id,
reference_id). The first fetch is charged to the session budget; later
lookups return the cached text for free, so repeated access never changes the
budget.
"""

import logging
import re
from typing import Optional

from skill_disclosure.skills.disclosure.budget import ContextBudgetAllocator
from skill_disclosure.skills.disclosure.models import ReferenceRecord, SkillRecord, measure
from skill_disclosure.skills.disclosure.registry import SkillRegistry
from skill_disclosure.skills.disclosure.timeouts import call_with_timeout
from skill_disclosure.utils.errors import BudgetExceeded, ContentSizeMismatch

logger = logging.getLogger(__name__)


def _mention_pattern(name: str) -> re.Pattern[str]:
    return re.compile(r"(?<![\w.-])" + re.escape(name) + r"(?![\w-])")


def find_pointers(record: SkillRecord, body: str) -> list[ReferenceRecord]:
    """Find the references a loaded body points to.

    A body points to a reference when it mentions the reference id
    (``references/forms.md``) or its file name (``forms.md``).

    Args:
        record: Skill whose references are candidates
        body: Loaded body content of that skill

    Returns:
        Mentioned references in the skill's declared order
    """
    found = []
    for reference in record.references:
        names = dict.fromkeys([reference.id, reference.file_name])
        if any(_mention_pattern(name).search(body) for name in names):
            found.append(reference)
    return found


class ReferenceResolver:
    """Session-scoped, caching fetcher for skill references.

    Example:
        resolver = ReferenceResolver(registry, timeout=2.0)
        text = resolver.resolve("xlsx", "formatting.md", budget)   # charged
        again = resolver.resolve("xlsx", "formatting.md", budget)  # cached, free
    """

    def __init__(self, registry: SkillRegistry, *, timeout: Optional[float] = None):
        """Initialize the resolver.

        Args:
            registry: Snapshot the references belong to
            timeout: Seconds allowed per fetch, None for no bound
        """
        self.registry = registry
        self.timeout = timeout
        self._cache: dict[tuple[str, str], str] = {}

    def is_cached(self, skill_id: str, reference_id: str) -> bool:
        return (skill_id, reference_id) in self._cache

    def cached(self, skill_id: str, reference_id: str) -> Optional[str]:
        return self._cache.get((skill_id, reference_id))

    def resolve(self, skill_id: str, reference_id: str, budget: ContextBudgetAllocator) -> str:
        """Fetch a reference, charging the budget on first fetch only.

        Args:
            skill_id: Owning skill id
            reference_id: Reference id within that skill
            budget: Session budget to charge

        Returns:
            Reference content

        Raises:
            SkillNotFoundError: If the skill is not in the snapshot
            ReferenceNotFoundError: If the skill does not declare the reference
            BudgetExceeded: If the reference does not fit in the budget
            LoadTimeout: If the fetch exceeded the timeout (nothing is charged)
            ContentSizeMismatch: If the fetched content is larger than the
                reference's declared size (nothing is charged)
        """
        key = (skill_id, reference_id)
        if key in self._cache:
            logger.debug(f"Reference cache hit: {skill_id}/{reference_id}")
            return self._cache[key]

        reference = self.registry.get_reference(skill_id, reference_id)
        reservation = budget.reserve(reference.size, label=f"{skill_id}/{reference_id}")
        if reservation is None:
            raise BudgetExceeded(
                reference.size,
                budget.available,
                skill_id=skill_id,
                reference_id=reference_id,
            )

        try:
            content = call_with_timeout(
                reference.load,
                self.timeout,
                f"reference {skill_id}/{reference_id}",
            )
        except Exception:
            budget.release(reservation)
            raise

        actual = measure(content)
        if actual > reference.size:
            budget.release(reservation)
            raise ContentSizeMismatch(reference.size, actual, skill_id, reference_id)

        budget.commit(reservation)
        self._cache[key] = content
        logger.debug(f"Loaded reference {skill_id}/{reference_id} ({reference.size} units)")
        return content

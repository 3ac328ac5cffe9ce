"""Disclosure session: one task in, one bundle out.

A session runs its tiers strictly in sequence:

    INIT -> MATCHING -> BODY_LOADING -> REFERENCE_LOADING -> DONE

Metadata for every matched skill is admitted at the end of MATCHING. Bodies
are admitted one at a time in rank order; a body that does not fit is skipped
and the next candidate is tried. References named by loaded bodies are
resolved last. Cancellation is cooperative and only observed at the tier
boundaries above; a fetch already in flight is never interrupted. An
unexpected error moves the session to FAILED and propagates.
"""

import logging
import threading
from enum import Enum
from typing import Optional

from skill_disclosure.skills.disclosure.budget import ContextBudgetAllocator
from skill_disclosure.skills.disclosure.matcher import TriggerMatcher
from skill_disclosure.skills.disclosure.models import (
    DisclosureBundle,
    DisclosureEntry,
    MatchScore,
    SkillRecord,
    Tier,
    measure,
)
from skill_disclosure.skills.disclosure.references import ReferenceResolver, find_pointers
from skill_disclosure.skills.disclosure.registry import SkillRegistry
from skill_disclosure.skills.disclosure.timeouts import call_with_timeout
from skill_disclosure.utils.errors import (
    BudgetExceeded,
    CancelledError,
    ContentSizeMismatch,
    LoadTimeout,
    SessionStateError,
    SkillDisclosureError,
)

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """Lifecycle states of a DisclosureSession."""

    INIT = "init"
    MATCHING = "matching"
    BODY_LOADING = "body_loading"
    REFERENCE_LOADING = "reference_loading"
    DONE = "done"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.DONE, SessionState.CANCELLED, SessionState.FAILED)


class DisclosureSession:
    """Orchestrates matching, budgeting and loading for a single query.

    Each session owns its budget and reference cache and holds the registry
    snapshot it was created with, so any number of sessions can run
    concurrently against the same snapshot.

    Attributes:
        registry: Snapshot this session reads from
        budget: Session budget (fresh per session)
        matcher: Trigger matcher used for ranking
        resolver: Reference resolver with the session cache
        state: Current SessionState
        matches: Ranked matcher output, available after MATCHING
        errors: Non-fatal BudgetExceeded / LoadTimeout notices
        bundle: Final bundle once DONE

    Example:
        session = DisclosureSession(registry, budget=6100, timeout=2.0)
        bundle = session.run("python async patterns")
        for entry in bundle:
            print(entry.label, entry.size)
    """

    def __init__(
        self,
        registry: SkillRegistry,
        budget: int | ContextBudgetAllocator,
        *,
        matcher: Optional[TriggerMatcher] = None,
        timeout: Optional[float] = None,
        load_references: bool = True,
    ):
        """Initialize the session.

        Args:
            registry: Registry snapshot to disclose from
            budget: Capacity in size units, or a fresh allocator
            matcher: Trigger matcher; defaults to TriggerMatcher()
            timeout: Seconds allowed per body/reference fetch, None for no bound
            load_references: Whether to run the reference tier
        """
        self.registry = registry
        if isinstance(budget, ContextBudgetAllocator):
            self.budget = budget
        else:
            self.budget = ContextBudgetAllocator(budget)
        self.matcher = matcher or TriggerMatcher()
        self.timeout = timeout
        self.load_references = load_references
        self.resolver = ReferenceResolver(registry, timeout=timeout)

        self.state = SessionState.INIT
        self.matches: list[MatchScore] = []
        self.errors: list[SkillDisclosureError] = []
        self.bundle: Optional[DisclosureBundle] = None

        self._cancel_requested = threading.Event()
        self._entries: list[DisclosureEntry] = []
        self._skipped: list[str] = []

    def __repr__(self) -> str:
        return f"DisclosureSession(state={self.state.value}, budget={self.budget!r})"

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_requested.is_set()

    def cancel(self) -> bool:
        """Request cancellation; takes effect at the next tier boundary.

        Returns:
            False if the session already finished, True otherwise
        """
        if self.state.is_terminal:
            return False
        self._cancel_requested.set()
        logger.info(f"Cancellation requested during {self.state.value}")
        return True

    def run(self, query: str) -> DisclosureBundle:
        """Build the disclosure bundle for a task description.

        Args:
            query: Free-text task description

        Returns:
            The bundle. After a fetch timeout this is the partial bundle of
            everything committed so far, flagged ``timed_out``.

        Raises:
            CancelledError: If cancel() was called; no bundle is produced
            SessionStateError: If the session has already run
            Exception: Any other error from a loader; the session ends in FAILED
        """
        if self.state != SessionState.INIT:
            raise SessionStateError("run", self.state.value)

        try:
            self._advance(SessionState.MATCHING)
            self.matches = self.matcher.match(query, self.registry)
            self._admit_metadata()

            self._advance(SessionState.BODY_LOADING)
            loaded = self._load_bodies()

            if self.load_references:
                self._advance(SessionState.REFERENCE_LOADING)
                self._load_references(loaded)

            self._check_cancelled()
        except LoadTimeout as e:
            self.errors.append(e)
            e.bundle = self._finish(query, timed_out=True)
            return e.bundle
        except CancelledError:
            raise
        except Exception as e:
            failed_in = self.state.value
            self.budget.release_all()
            self._entries.clear()
            self.state = SessionState.FAILED
            logger.error(f"Session failed during {failed_in}: {e}")
            raise

        return self._finish(query)

    def resolve_reference(self, skill_id: str, reference_id: str) -> str:
        """Resolve a reference on demand after the session has finished.

        Uses the session's budget and cache, so a reference already in the
        bundle is returned at no extra charge.

        Raises:
            SessionStateError: If the session is not DONE
            BudgetExceeded: If the reference does not fit the remaining budget
            LoadTimeout: If the fetch exceeded the timeout
        """
        if self.state != SessionState.DONE:
            raise SessionStateError("resolve references", self.state.value)
        return self.resolver.resolve(skill_id, reference_id, self.budget)

    def _check_cancelled(self) -> None:
        if not self._cancel_requested.is_set():
            return
        interrupted = self.state.value
        released = self.budget.release_all()
        self._entries.clear()
        self._skipped.clear()
        self.state = SessionState.CANCELLED
        logger.info(f"Session cancelled during {interrupted} (released {released} reserved units)")
        raise CancelledError(interrupted)

    def _advance(self, state: SessionState) -> None:
        self._check_cancelled()
        logger.debug(f"Session {self.state.value} -> {state.value}")
        self.state = state

    def _skip(self, error: BudgetExceeded) -> None:
        if error.skill_id and error.skill_id not in self._skipped:
            self._skipped.append(error.skill_id)
        self.errors.append(error)
        logger.warning(str(error))

    def _admit_metadata(self) -> None:
        for score in self.matches:
            metadata = self.registry.get(score.skill_id).metadata
            admission = self.budget.admit(metadata.size)
            if not admission.granted:
                self._skip(BudgetExceeded(metadata.size, self.budget.available, skill_id=metadata.id))
                continue
            self._entries.append(
                DisclosureEntry(
                    tier=Tier.METADATA,
                    skill_id=metadata.id,
                    content=metadata.render(),
                    size=metadata.size,
                )
            )

    def _load_bodies(self) -> list[tuple[SkillRecord, str]]:
        loaded = []
        for score in self.matches:
            if score.skill_id in self._skipped:
                continue
            record = self.registry.get(score.skill_id)

            reservation = self.budget.reserve(record.body_size, label=record.id)
            if reservation is None:
                self._skip(BudgetExceeded(record.body_size, self.budget.available, skill_id=record.id))
                continue

            try:
                body = call_with_timeout(record.load_body, self.timeout, f"body of {record.id}")
            except Exception:
                self.budget.release(reservation)
                raise

            actual = measure(body)
            if actual > record.body_size:
                self.budget.release(reservation)
                error = ContentSizeMismatch(record.body_size, actual, record.id)
                self.errors.append(error)
                logger.warning(str(error))
                continue

            self.budget.commit(reservation)
            self._entries.append(
                DisclosureEntry(tier=Tier.BODY, skill_id=record.id, content=body, size=record.body_size)
            )
            loaded.append((record, body))
            logger.debug(f"Admitted body {record.id} ({record.body_size}), remaining {self.budget.remaining}")
        return loaded

    def _load_references(self, loaded: list[tuple[SkillRecord, str]]) -> None:
        for record, body in loaded:
            for reference in find_pointers(record, body):
                if self.resolver.is_cached(record.id, reference.id):
                    continue
                try:
                    content = self.resolver.resolve(record.id, reference.id, self.budget)
                except (BudgetExceeded, ContentSizeMismatch) as e:
                    self.errors.append(e)
                    logger.warning(str(e))
                    continue
                self._entries.append(
                    DisclosureEntry(
                        tier=Tier.REFERENCE,
                        skill_id=record.id,
                        content=content,
                        size=reference.size,
                        reference_id=reference.id,
                    )
                )

    def _finish(self, query: str, timed_out: bool = False) -> DisclosureBundle:
        self.budget.release_all()
        self.bundle = DisclosureBundle(
            query=query,
            entries=tuple(self._entries),
            skipped=tuple(self._skipped),
            timed_out=timed_out,
        )
        self.state = SessionState.DONE
        logger.info(
            f"Disclosure done: {len(self.matches)} matched, {len(self.bundle)} entries, "
            f"{self.bundle.total_size}/{self.budget.capacity} units"
            + (" (partial: timed out)" if timed_out else "")
        )
        return self.bundle

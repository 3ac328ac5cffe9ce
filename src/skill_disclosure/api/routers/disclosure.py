"""Disclosure API router: build a bundle for a task."""

import logging

from fastapi import APIRouter, Depends

from skill_disclosure.api.dependencies import get_config, get_registry
from skill_disclosure.api.schemas.skills import DisclosureRequest, DisclosureResponse
from skill_disclosure.core.config import Config
from skill_disclosure.skills.disclosure.matcher import TriggerMatcher
from skill_disclosure.skills.disclosure.registry import SkillRegistry
from skill_disclosure.skills.disclosure.session import DisclosureSession

logger = logging.getLogger(__name__)

router = APIRouter(tags=["disclosure"])


@router.post("/disclose", response_model=DisclosureResponse)
def disclose(
    request: DisclosureRequest,
    registry: SkillRegistry = Depends(get_registry),
    config: Config = Depends(get_config),
) -> DisclosureResponse:
    """Run a disclosure session for a task description.

    A fetch timeout still returns 200 with the partial bundle and
    ``timed_out`` set; capacity drops are listed in ``skipped``/``errors``.
    """
    budget = request.budget if request.budget is not None else config.budget
    session = DisclosureSession(
        registry,
        budget,
        matcher=TriggerMatcher(min_relevance=config.min_relevance),
        timeout=config.fetch_timeout,
        load_references=request.load_references and config.load_references,
    )
    bundle = session.run(request.query)
    return DisclosureResponse.from_bundle(
        bundle,
        budget=budget,
        remaining=session.budget.remaining,
        state=session.state.value,
        errors=[str(e) for e in session.errors],
    )

"""Skills API router: catalog listing, matching and reload."""

import logging

from fastapi import APIRouter, Depends

from skill_disclosure.api.dependencies import (
    get_config,
    get_registry,
    get_registry_handle,
    load_skills,
)
from skill_disclosure.api.schemas.skills import (
    MatchRequest,
    MatchResponse,
    MatchScoreSchema,
    RegistryErrorSchema,
    ReloadResponse,
    SkillInfo,
    SkillListResponse,
    SkillMetadataSchema,
)
from skill_disclosure.core.config import Config
from skill_disclosure.skills.disclosure.matcher import TriggerMatcher
from skill_disclosure.skills.disclosure.registry import RegistryHandle, SkillRegistry
from skill_disclosure.utils.errors import RegistryError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/skills", tags=["skills"])


def _errors_to_schema(errors: tuple[RegistryError, ...]) -> list[RegistryErrorSchema]:
    return [
        RegistryErrorSchema(skill_id=e.skill_id, source=e.source, reason=e.reason)
        for e in errors
    ]


@router.get("", response_model=SkillListResponse)
def list_skills(
    registry: SkillRegistry = Depends(get_registry),
) -> SkillListResponse:
    """List all available skills (metadata only).

    This is the tier that is always affordable, so it is returned in full.
    """
    metadata = [SkillMetadataSchema.from_metadata(m) for m in registry.list_metadata()]
    return SkillListResponse(
        skills=metadata,
        total=len(metadata),
        errors=_errors_to_schema(registry.errors),
    )


@router.post("/match", response_model=MatchResponse)
def match_skills(
    request: MatchRequest,
    registry: SkillRegistry = Depends(get_registry),
    config: Config = Depends(get_config),
) -> MatchResponse:
    """Rank skills against a task description without loading any content."""
    min_relevance = request.min_relevance if request.min_relevance is not None else config.min_relevance
    matcher = TriggerMatcher(min_relevance=min_relevance)
    scores = matcher.match(request.query, registry)
    return MatchResponse(
        query=request.query,
        matches=[MatchScoreSchema.from_score(s) for s in scores],
    )


@router.post("/reload", response_model=ReloadResponse)
def reload_skills(
    handle: RegistryHandle = Depends(get_registry_handle),
    config: Config = Depends(get_config),
) -> ReloadResponse:
    """Reload the skills directory and swap in the new snapshot.

    Requests already in flight keep the snapshot they started with.
    """
    registry = load_skills(handle, config)
    return ReloadResponse(
        loaded=len(registry),
        rejected=len(registry.errors),
        generation=handle.generation,
        errors=_errors_to_schema(registry.errors),
    )


@router.get("/{skill_id}", response_model=SkillInfo)
def get_skill(
    skill_id: str,
    registry: SkillRegistry = Depends(get_registry),
) -> SkillInfo:
    """Get skill metadata and tier sizes. Content is never loaded here."""
    return SkillInfo.from_record(registry.get(skill_id))

"""Schemas for skill and disclosure API endpoints.

Progressive disclosure tiers:
- Metadata: always listed
- Body: returned only inside a disclosure bundle
- Reference: returned in a bundle when a body names it
"""

from typing import Optional

from pydantic import BaseModel, Field

from skill_disclosure.skills.disclosure.models import (
    DisclosureBundle,
    MatchScore,
    SkillMetadata,
    SkillRecord,
)


class SkillMetadataSchema(BaseModel):
    """Tier 1: skill metadata."""

    id: str = Field(..., description="Unique skill identifier")
    name: str = Field(..., description="Human-readable skill name")
    description: str = Field(..., description="What the skill does")
    keywords: list[str] = Field(default_factory=list, description="Declared trigger keywords")
    size: int = Field(..., description="Metadata size in size units")

    @classmethod
    def from_metadata(cls, metadata: SkillMetadata) -> "SkillMetadataSchema":
        return cls(
            id=metadata.id,
            name=metadata.name,
            description=metadata.description,
            keywords=list(metadata.keywords),
            size=metadata.size,
        )


class RegistryErrorSchema(BaseModel):
    """A skill record rejected during load."""

    skill_id: Optional[str] = Field(None, description="Id of the rejected record, if known")
    source: Optional[str] = Field(None, description="Where the record came from")
    reason: str = Field(..., description="Why the record was rejected")


class SkillListResponse(BaseModel):
    """Response listing all skills (metadata only)."""

    skills: list[SkillMetadataSchema] = Field(..., description="List of skill metadata")
    total: int = Field(..., description="Total number of skills")
    errors: list[RegistryErrorSchema] = Field(
        default_factory=list,
        description="Records rejected when the registry was loaded",
    )


class SkillInfo(BaseModel):
    """Skill metadata plus tier sizes, without body or reference content."""

    metadata: SkillMetadataSchema
    body_size: int = Field(..., description="Body size in size units")
    references: list[str] = Field(default_factory=list, description="Reference ids in declared order")
    reference_sizes: dict[str, int] = Field(default_factory=dict, description="Size per reference id")
    source: Optional[str] = Field(None, description="Where the skill was loaded from")

    @classmethod
    def from_record(cls, record: SkillRecord) -> "SkillInfo":
        return cls(
            metadata=SkillMetadataSchema.from_metadata(record.metadata),
            body_size=record.body_size,
            references=[ref.id for ref in record.references],
            reference_sizes={ref.id: ref.size for ref in record.references},
            source=record.source,
        )


class MatchRequest(BaseModel):
    """Request to rank skills for a task."""

    query: str = Field(..., min_length=1, description="Task description")
    min_relevance: Optional[float] = Field(None, ge=0.0, description="Override the relevance threshold")


class MatchScoreSchema(BaseModel):
    """Relevance of a skill for a query."""

    skill_id: str
    relevance: float
    matched_terms: list[str] = Field(default_factory=list)

    @classmethod
    def from_score(cls, score: MatchScore) -> "MatchScoreSchema":
        return cls(
            skill_id=score.skill_id,
            relevance=score.relevance,
            matched_terms=list(score.matched_terms),
        )


class MatchResponse(BaseModel):
    """Ranked match results."""

    query: str
    matches: list[MatchScoreSchema]


class DisclosureRequest(BaseModel):
    """Request to build a disclosure bundle."""

    query: str = Field(..., description="Task description")
    budget: Optional[int] = Field(None, ge=0, description="Session capacity (uses server default if omitted)")
    load_references: bool = Field(True, description="Run the reference tier")


class DisclosureEntrySchema(BaseModel):
    """One tier-tagged chunk of bundle content."""

    tier: str
    skill_id: str
    reference_id: Optional[str] = None
    size: int
    content: str


class DisclosureResponse(BaseModel):
    """Bundle produced by a disclosure session."""

    query: str
    entries: list[DisclosureEntrySchema]
    skipped: list[str] = Field(default_factory=list, description="Skills dropped for capacity")
    timed_out: bool = Field(False, description="True if the bundle is partial after a fetch timeout")
    total_size: int
    budget: int
    remaining: int
    state: str
    errors: list[str] = Field(default_factory=list, description="Non-fatal notices")

    @classmethod
    def from_bundle(
        cls,
        bundle: DisclosureBundle,
        budget: int,
        remaining: int,
        state: str,
        errors: list[str],
    ) -> "DisclosureResponse":
        data = bundle.to_dict()
        return cls(
            query=data["query"],
            entries=[DisclosureEntrySchema(**entry) for entry in data["entries"]],
            skipped=data["skipped"],
            timed_out=data["timed_out"],
            total_size=data["total_size"],
            budget=budget,
            remaining=remaining,
            state=state,
            errors=errors,
        )


class ReloadResponse(BaseModel):
    """Result of a registry reload."""

    loaded: int = Field(..., description="Skills in the new snapshot")
    rejected: int = Field(..., description="Records rejected during load")
    generation: int = Field(..., description="Snapshot generation after the swap")
    errors: list[RegistryErrorSchema] = Field(default_factory=list)

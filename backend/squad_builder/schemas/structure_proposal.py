"""Schemas for AI structure proposal endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from squad_builder.schemas.suggestion import SuggestionRead


class StructureProposalCreateRequest(BaseModel):
    """Generate a proposal for one squad, optionally decomposing it right away."""

    squad_id: int = Field(..., ge=1)
    breakdown: bool = False


class StructureProposalConfirmRequest(BaseModel):
    """Optional human-edited proposal replacing the generated one."""

    edited_proposal: dict[str, Any] | None = None


class StructureProposalRead(BaseModel):
    """Serialized structure proposal."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    squad_id: int
    workspace_id: int
    problem_id: int | None
    status: str
    source_context: str
    proposal_payload: dict[str, Any]
    uncertainties: list[Any]
    model_name: str | None
    prompt_version_id: int | None
    created_by_user_id: str | None
    confirmed_at: datetime | None
    discarded_at: datetime | None
    created_at: datetime


class StructureProposalCreated(BaseModel):
    """Generation result; ``suggestions`` is empty unless breakdown was requested."""

    proposal: StructureProposalRead
    suggestions: list[SuggestionRead] = Field(default_factory=list)


class LatestStructureProposal(BaseModel):
    """Latest draft proposal for a squad, if one exists."""

    proposal: StructureProposalRead | None

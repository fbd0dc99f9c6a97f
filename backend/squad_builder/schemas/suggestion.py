"""Schemas for suggestion approval endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SuggestionRead(BaseModel):
    """Serialized suggestion."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    proposal_id: int
    squad_id: int
    suggestion_type: str
    suggestion_payload: Any
    display_order: int
    status: str
    edited_payload: Any = None
    rejection_reason: str | None = None
    decided_at: datetime | None = None
    decided_by_user_id: str | None = None
    created_at: datetime


class BreakdownRequest(BaseModel):
    """Decompose one stored proposal into suggestions."""

    proposal_id: int = Field(..., ge=1)


class BreakdownResult(BaseModel):
    """Suggestions created by a breakdown."""

    proposal_id: int
    count: int
    suggestions: list[SuggestionRead]


class ApproveSuggestionRequest(BaseModel):
    """Approval body; any ``edited_payload`` replaces the stored payload."""

    edited_payload: Any = None
    reason: str | None = None


class RejectSuggestionRequest(BaseModel):
    """Rejection body."""

    reason: str | None = None


class SuggestionDecisionResult(BaseModel):
    """Outcome of an approve or reject action."""

    suggestion: SuggestionRead
    was_edited: bool = False

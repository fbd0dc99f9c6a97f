"""Suggestion review models."""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from squad_builder.models.base import Base, CreatedAtMixin, IdMixin, UpdatedAtMixin

SUGGESTION_STATUS_PENDING = "pending"
SUGGESTION_STATUS_APPROVED = "approved"
SUGGESTION_STATUS_APPROVED_WITH_EDITS = "approved_with_edits"
SUGGESTION_STATUS_REJECTED = "rejected"


class SuggestionProposal(Base, IdMixin, CreatedAtMixin, UpdatedAtMixin):
    """One independently reviewable unit decomposed from a structure proposal."""

    __tablename__ = "suggestion_proposals"
    __table_args__ = (
        UniqueConstraint("proposal_id", "display_order", name="uq_suggestion_proposals_proposal_order"),
    )

    proposal_id: Mapped[int] = mapped_column(
        ForeignKey("ai_structure_proposals.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    squad_id: Mapped[int] = mapped_column(
        ForeignKey("squads.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    workspace_id: Mapped[int] = mapped_column(
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
    )
    suggestion_type: Mapped[str] = mapped_column(String(64), nullable=False)
    suggestion_payload: Mapped[Any] = mapped_column(JSON, nullable=True)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(32), default=SUGGESTION_STATUS_PENDING, index=True, nullable=False)
    edited_payload: Mapped[Any] = mapped_column(JSON, nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    decided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    decided_by_user_id: Mapped[str | None] = mapped_column(String(255), nullable=True)


class SuggestionDecision(Base, IdMixin, CreatedAtMixin):
    """Append-only audit entry for one approve/reject action."""

    __tablename__ = "suggestion_decisions"

    suggestion_proposal_id: Mapped[int] = mapped_column(
        ForeignKey("suggestion_proposals.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    action: Mapped[str] = mapped_column(String(32), nullable=False)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    changes_summary: Mapped[dict[str, object] | None] = mapped_column(JSON, nullable=True)

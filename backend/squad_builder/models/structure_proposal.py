"""AI structure proposal model."""

from datetime import datetime

from sqlalchemy import JSON, DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from squad_builder.models.base import Base, CreatedAtMixin, IdMixin, UpdatedAtMixin

PROPOSAL_STATUS_DRAFT = "DRAFT"
PROPOSAL_STATUS_CONFIRMED = "CONFIRMED"
PROPOSAL_STATUS_DISCARDED = "DISCARDED"


class AIStructureProposal(Base, IdMixin, CreatedAtMixin, UpdatedAtMixin):
    """Model-generated structure recommendation awaiting human review."""

    __tablename__ = "ai_structure_proposals"

    squad_id: Mapped[int] = mapped_column(
        ForeignKey("squads.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    problem_id: Mapped[int | None] = mapped_column(
        ForeignKey("decisions.id", ondelete="SET NULL"),
        nullable=True,
    )
    workspace_id: Mapped[int] = mapped_column(
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    source_context: Mapped[str] = mapped_column(String(16), nullable=False)
    input_snapshot: Mapped[dict[str, object]] = mapped_column(JSON, default=dict, nullable=False)
    proposal_payload: Mapped[dict[str, object]] = mapped_column(JSON, default=dict, nullable=False)
    uncertainties: Mapped[list[object]] = mapped_column(JSON, default=list, nullable=False)
    status: Mapped[str] = mapped_column(String(16), default=PROPOSAL_STATUS_DRAFT, nullable=False)
    model_name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    prompt_version_id: Mapped[int | None] = mapped_column(
        ForeignKey("ai_prompt_versions.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_by_user_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    discarded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

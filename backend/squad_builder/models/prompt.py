"""Prompt registry and prompt execution audit models."""

from sqlalchemy import JSON, Boolean, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from squad_builder.models.base import Base, CreatedAtMixin, IdMixin


class AIPrompt(Base, IdMixin, CreatedAtMixin):
    """Named prompt with one or more versions."""

    __tablename__ = "ai_prompts"

    name: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    category: Mapped[str | None] = mapped_column(String(64), nullable=True)


class AIPromptVersion(Base, IdMixin, CreatedAtMixin):
    """Concrete prompt text and model parameters; at most one active per prompt."""

    __tablename__ = "ai_prompt_versions"
    __table_args__ = (
        UniqueConstraint("prompt_id", "version", name="uq_ai_prompt_versions_prompt_version"),
    )

    prompt_id: Mapped[int] = mapped_column(
        ForeignKey("ai_prompts.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    version: Mapped[str] = mapped_column(String(32), nullable=False)
    prompt_text: Mapped[str] = mapped_column(Text, nullable=False)
    system_instructions: Mapped[str] = mapped_column(Text, default="", nullable=False)
    model_name: Mapped[str] = mapped_column(String(128), nullable=False)
    temperature: Mapped[float] = mapped_column(Float, default=0.7, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class AIPromptExecution(Base, IdMixin, CreatedAtMixin):
    """Audit row for one model call.

    Deployed databases may predate some of these columns, so rows are written
    through the column-aware logger instead of this mapped class.
    """

    __tablename__ = "ai_prompt_executions"

    prompt_version_id: Mapped[int] = mapped_column(
        ForeignKey("ai_prompt_versions.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    proposal_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    workspace_id: Mapped[int | None] = mapped_column(Integer, index=True, nullable=True)
    related_entity_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    related_entity_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    input_snapshot: Mapped[dict[str, object] | None] = mapped_column(JSON, nullable=True)
    output_snapshot: Mapped[dict[str, object] | None] = mapped_column(JSON, nullable=True)
    input_tokens: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    output_tokens: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_tokens: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    execution_time_ms: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    success: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    executed_by_user_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

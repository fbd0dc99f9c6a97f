"""Persona and squad-persona link models."""

from sqlalchemy import Boolean, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from squad_builder.models.base import Base, CreatedAtMixin, IdMixin

DEFAULT_PERSONA_TYPE = "customer"


class Persona(Base, IdMixin, CreatedAtMixin):
    """Workspace-scoped persona identified by its trimmed, case-folded name."""

    __tablename__ = "personas"

    workspace_id: Mapped[int] = mapped_column(
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(64), default=DEFAULT_PERSONA_TYPE, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    goals: Mapped[str | None] = mapped_column(Text, nullable=True)
    pain_points: Mapped[str | None] = mapped_column(Text, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class SquadPersona(Base, IdMixin, CreatedAtMixin):
    """Activates a persona inside a squad."""

    __tablename__ = "squad_personas"
    __table_args__ = (
        UniqueConstraint("squad_id", "persona_id", name="uq_squad_personas_squad_persona"),
    )

    squad_id: Mapped[int] = mapped_column(
        ForeignKey("squads.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    persona_id: Mapped[int] = mapped_column(
        ForeignKey("personas.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )

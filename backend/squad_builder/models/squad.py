"""Squad and backlog issue models."""

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from squad_builder.models.base import Base, CreatedAtMixin, IdMixin, UpdatedAtMixin

SQUAD_STATUS_DRAFT = "draft"
SQUAD_STATUS_ACTIVE = "active"


class Squad(Base, IdMixin, CreatedAtMixin, UpdatedAtMixin):
    """Owning unit for suggestions, decisions, phases and role/persona links."""

    __tablename__ = "squads"

    workspace_id: Mapped[int] = mapped_column(
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(32), default=SQUAD_STATUS_DRAFT, nullable=False)


class Issue(Base, IdMixin, CreatedAtMixin):
    """Backlog item fed to the proposal context."""

    __tablename__ = "issues"

    squad_id: Mapped[int] = mapped_column(
        ForeignKey("squads.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(32), default="open", nullable=False)

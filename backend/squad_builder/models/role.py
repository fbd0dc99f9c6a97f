"""Global, workspace and squad role models."""

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from squad_builder.models.base import Base, CreatedAtMixin, IdMixin


class Role(Base, IdMixin, CreatedAtMixin):
    """Global role catalog entry shared by every workspace."""

    __tablename__ = "roles"

    code: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    label: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    responsibilities: Mapped[str | None] = mapped_column(Text, nullable=True)


class WorkspaceRole(Base, IdMixin, CreatedAtMixin):
    """Workspace-specific role."""

    __tablename__ = "workspace_roles"
    __table_args__ = (
        UniqueConstraint("workspace_id", "code", name="uq_workspace_roles_workspace_code"),
    )

    workspace_id: Mapped[int] = mapped_column(
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    code: Mapped[str] = mapped_column(String(128), nullable=False)
    label: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    responsibilities: Mapped[str | None] = mapped_column(Text, nullable=True)


class SquadRole(Base, IdMixin, CreatedAtMixin):
    """Activates either a global role or a workspace role inside a squad."""

    __tablename__ = "squad_roles"
    __table_args__ = (
        CheckConstraint(
            "(role_id IS NULL) <> (workspace_role_id IS NULL)",
            name="ck_squad_roles_exactly_one_role",
        ),
    )

    squad_id: Mapped[int] = mapped_column(
        ForeignKey("squads.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    role_id: Mapped[int | None] = mapped_column(
        ForeignKey("roles.id", ondelete="CASCADE"),
        index=True,
        nullable=True,
    )
    workspace_role_id: Mapped[int | None] = mapped_column(
        ForeignKey("workspace_roles.id", ondelete="CASCADE"),
        index=True,
        nullable=True,
    )
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

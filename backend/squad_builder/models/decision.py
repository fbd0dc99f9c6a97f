"""Decision log model."""

from sqlalchemy import JSON, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from squad_builder.models.base import Base, CreatedAtMixin, IdMixin

PROBLEM_STATEMENT_TITLE = "Problem Statement"


class Decision(Base, IdMixin, CreatedAtMixin):
    """Append-only decision record; the JSON body shape depends on the title."""

    __tablename__ = "decisions"

    squad_id: Mapped[int] = mapped_column(
        ForeignKey("squads.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    decision_json: Mapped[dict[str, object]] = mapped_column(JSON, default=dict, nullable=False)
    created_by_user_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_by_role: Mapped[str] = mapped_column(String(64), default="Human", nullable=False)

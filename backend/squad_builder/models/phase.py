"""Squad phase model."""

from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from squad_builder.models.base import Base, CreatedAtMixin, IdMixin


class Phase(Base, IdMixin, CreatedAtMixin):
    """Ordered step of a squad's working flow."""

    __tablename__ = "phases"

    squad_id: Mapped[int] = mapped_column(
        ForeignKey("squads.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False)

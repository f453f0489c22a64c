"""Academy catalog models."""

import uuid
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from academy_admin.models.base import BaseModel
from academy_admin.utils.money import to_cents


class Academy(BaseModel):
    """A course offered in a semester, priced per student."""

    __tablename__ = "academies"
    __table_args__ = (
        UniqueConstraint("semester_id", "name", name="uq_academies_semester_name"),
    )

    semester_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("semesters.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    schedule: Mapped[str | None] = mapped_column(String(150), nullable=True)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Relationships
    semester = relationship("Semester", lazy="selectin")
    levels = relationship(
        "Level",
        back_populates="academy",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="Level.display_order",
    )

    @property
    def price_cents(self) -> int:
        return to_cents(self.price)

    @property
    def has_levels(self) -> bool:
        return bool(self.levels)


class Level(BaseModel):
    """A sub-track of an academy (e.g. Korean Language / Alphabet)."""

    __tablename__ = "levels"
    __table_args__ = (
        UniqueConstraint("academy_id", "name", name="uq_levels_academy_name"),
    )

    academy_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("academies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    schedule: Mapped[str | None] = mapped_column(String(150), nullable=True)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    academy = relationship("Academy", back_populates="levels")

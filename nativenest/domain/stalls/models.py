from nativenest.core.database import Base
from decimal import Decimal
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Identity, ForeignKey, CheckConstraint, UniqueConstraint, Index, Text, Integer, Numeric, \
    TIMESTAMP, func, text


class StallType(Base):
    __tablename__ = "stall_types"

    id: Mapped[int] = mapped_column(Identity(always=True), primary_key=True)
    event_id: Mapped[int] = mapped_column(ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    no_of_stalls: Mapped[int] = mapped_column(Integer, nullable=False)
    stall_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint("no_of_stalls > 0", name="chk_stall_type_qty_gt0"),
        CheckConstraint("stall_price >= 0", name="chk_stall_type_price_nonneg"),
    )


class Stall(Base):
    """One numbered physical stall. ``builder_id`` moves from NULL to a builder once and stays."""
    __tablename__ = "stalls"

    id: Mapped[int] = mapped_column(Identity(always=True), primary_key=True)
    event_id: Mapped[int] = mapped_column(ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    stall_type_id: Mapped[int] = mapped_column(
        ForeignKey("stall_types.id", ondelete="NO ACTION"),
        nullable=False,
        index=True
    )
    stall_number: Mapped[int] = mapped_column(Integer, nullable=False)
    builder_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=True,
        index=True
    )
    booked_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("event_id", "stall_number", name="uq_event_stall_number"),
        CheckConstraint("stall_number > 0", name="chk_stall_number_gt0"),
        CheckConstraint(
            "(builder_id IS NULL AND booked_at IS NULL) OR (builder_id IS NOT NULL AND booked_at IS NOT NULL)",
            name="chk_stall_booking_consistent"
        ),
        Index(
            "ix_stalls_free_by_type",
            "event_id",
            "stall_type_id",
            "stall_number",
            postgresql_where=text("builder_id IS NULL")
        ),
    )

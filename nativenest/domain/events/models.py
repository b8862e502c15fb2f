from sqlalchemy.orm import mapped_column, Mapped
from sqlalchemy import Identity, Text, Integer, ForeignKey, CheckConstraint, TIMESTAMP, Date, func
from nativenest.core.database import Base
from datetime import datetime, date


class Event(Base):
    """A property exhibition; ``stall_count`` caps the stalls its stall types may declare."""
    __tablename__ = "events"

    id: Mapped[int] = mapped_column(Identity(always=True), primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    event_type: Mapped[str | None] = mapped_column(Text, nullable=True)
    location: Mapped[str] = mapped_column(Text, nullable=False)
    city: Mapped[str] = mapped_column(Text, nullable=False)
    state: Mapped[str] = mapped_column(Text, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    stall_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    # high-water mark of handed-out stall numbers; only grows, so numbers are never reused
    last_stall_number: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    created_by: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    __table_args__ = (
        CheckConstraint("end_date >= start_date", name="chk_event_date_range"),
        CheckConstraint("stall_count >= 0", name="chk_event_stall_count_nonneg"),
        CheckConstraint("last_stall_number >= 0", name="chk_event_last_stall_number_nonneg"),
    )

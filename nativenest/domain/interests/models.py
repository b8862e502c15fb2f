from nativenest.core.database import Base
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Identity, ForeignKey, UniqueConstraint, Boolean, TIMESTAMP, func, text


class BuyerStallInterest(Base):
    __tablename__ = "buyer_stall_interests"

    id: Mapped[int] = mapped_column(Identity(always=True), primary_key=True)
    buyer_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    event_id: Mapped[int] = mapped_column(ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    stall_type_id: Mapped[int] = mapped_column(
        ForeignKey("stall_types.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    # bound at check-in, never at registration
    stall_id: Mapped[int | None] = mapped_column(ForeignKey("stalls.id", ondelete="SET NULL"), nullable=True)
    is_attended: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("false"), default=False)
    attended_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("buyer_id", "event_id", "stall_type_id", name="uq_buyer_event_stall_type"),
    )

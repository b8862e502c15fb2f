from sqlalchemy import select, func, exists
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession
from nativenest.core.pagination import paginate
from nativenest.domain.events.models import Event
from nativenest.domain.stalls.models import Stall, StallType
from nativenest.domain.users.models import User
from .models import BuyerStallInterest


async def insert_interest_if_absent(db: AsyncSession, buyer_id: int, event_id: int, stall_type_id: int) -> int | None:
    """Returns the new row id, or None when the buyer already registered this interest."""
    stmt = (
        insert(BuyerStallInterest)
        .values(buyer_id=buyer_id, event_id=event_id, stall_type_id=stall_type_id)
        .on_conflict_do_nothing(constraint="uq_buyer_event_stall_type")
        .returning(BuyerStallInterest.id)
    )
    return await db.scalar(stmt)


async def get_interest(
        db: AsyncSession,
        buyer_id: int,
        event_id: int,
        stall_type_id: int
) -> BuyerStallInterest | None:
    stmt = select(BuyerStallInterest).where(
        BuyerStallInterest.buyer_id == buyer_id,
        BuyerStallInterest.event_id == event_id,
        BuyerStallInterest.stall_type_id == stall_type_id,
    )
    result = await db.execute(stmt)
    return result.scalars().first()


async def list_booked_builders(db: AsyncSession, event_id: int, buyer_id: int) -> list:
    stmt = (
        select(
            User.id.label("builder_id"),
            User.name,
            User.phone_number.label("mobile_number"),
            func.count(func.distinct(Stall.id)).label("stall_count"),
            func.min(Stall.stall_type_id).label("sample_stall_type_id"),
            (func.count(BuyerStallInterest.id) > 0).label("interest_registered"),
        )
        .join(Stall, Stall.builder_id == User.id)
        .outerjoin(
            BuyerStallInterest,
            (BuyerStallInterest.buyer_id == buyer_id)
            & (BuyerStallInterest.event_id == event_id)
            & (BuyerStallInterest.stall_type_id == Stall.stall_type_id),
        )
        .where(Stall.event_id == event_id)
        .group_by(User.id)
        .order_by(User.name, User.id)
    )
    result = await db.execute(stmt)
    return list(result.mappings().all())


async def list_builder_interests(
        db: AsyncSession,
        builder_id: int,
        page: int,
        page_size: int,
        *,
        event_id: int | None = None,
) -> tuple[list, int]:
    buyer = User.__table__.alias("buyer")
    builder_holds_type = exists().where(
        Stall.stall_type_id == BuyerStallInterest.stall_type_id,
        Stall.event_id == BuyerStallInterest.event_id,
        Stall.builder_id == builder_id,
    )
    stmt = (
        select(
            BuyerStallInterest.id,
            BuyerStallInterest.created_at.label("interest_date"),
            BuyerStallInterest.is_attended,
            BuyerStallInterest.stall_id,
            Event.id.label("event_id"),
            Event.name.label("event_name"),
            Event.city,
            Event.state,
            StallType.name.label("stall_type_name"),
            StallType.stall_price,
            buyer.c.name.label("buyer_name"),
            buyer.c.phone_number.label("buyer_mobile"),
            buyer.c.email.label("buyer_email"),
        )
        .join(StallType, StallType.id == BuyerStallInterest.stall_type_id)
        .join(Event, Event.id == BuyerStallInterest.event_id)
        .join(buyer, buyer.c.id == BuyerStallInterest.buyer_id)
    )
    where = [builder_holds_type]
    if event_id is not None:
        where.append(BuyerStallInterest.event_id == event_id)

    return await paginate(
        db,
        base_stmt=stmt,
        page=page,
        page_size=page_size,
        where=where,
        order_by=[BuyerStallInterest.created_at.desc(), BuyerStallInterest.id.desc()],
        scalars=False,
    )

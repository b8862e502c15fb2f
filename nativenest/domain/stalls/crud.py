from sqlalchemy import select, func, delete
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession
from nativenest.domain.events.models import Event
from nativenest.domain.users.models import User
from .models import StallType, Stall


async def sum_declared_stalls(db: AsyncSession, event_id: int, *, exclude_stall_type_id: int | None = None) -> int:
    stmt = select(func.coalesce(func.sum(StallType.no_of_stalls), 0)).where(StallType.event_id == event_id)
    if exclude_stall_type_id is not None:
        stmt = stmt.where(StallType.id != exclude_stall_type_id)
    return int(await db.scalar(stmt) or 0)


async def get_stall_type(db: AsyncSession, event_id: int, stall_type_id: int) -> StallType | None:
    stmt = select(StallType).where(StallType.id == stall_type_id, StallType.event_id == event_id)
    result = await db.execute(stmt)
    return result.scalars().first()


async def list_stall_types(db: AsyncSession, event_id: int) -> list[StallType]:
    stmt = select(StallType).where(StallType.event_id == event_id).order_by(StallType.name, StallType.id)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def create_stall_type(db: AsyncSession, data: dict) -> StallType:
    stall_type = StallType(**data)
    db.add(stall_type)
    return stall_type


async def update_stall_type(stall_type: StallType, data: dict) -> StallType:
    for key, value in data.items():
        setattr(stall_type, key, value)
    return stall_type


async def delete_stall_type(db: AsyncSession, stall_type: StallType) -> None:
    await db.delete(stall_type)


def stall_rows(event_id: int, stall_type_id: int, after_number: int, quantity: int) -> list[dict]:
    return [
        {"event_id": event_id, "stall_type_id": stall_type_id, "stall_number": after_number + i, "builder_id": None}
        for i in range(1, quantity + 1)
    ]


async def seed_stalls(db: AsyncSession, event_id: int, stall_type_id: int, after_number: int, quantity: int) -> None:
    rows = stall_rows(event_id, stall_type_id, after_number, quantity)
    if rows:
        await db.execute(insert(Stall).values(rows))


async def lock_type_stalls(db: AsyncSession, stall_type_id: int) -> list:
    """Row-locks every stall of a type; a booking in flight on one of them is waited for."""
    stmt = (
        select(Stall.id, Stall.builder_id)
        .where(Stall.stall_type_id == stall_type_id)
        .order_by(Stall.stall_number)
        .with_for_update()
    )
    result = await db.execute(stmt)
    return list(result.all())


async def delete_free_stalls(db: AsyncSession, stall_type_id: int, limit: int | None = None) -> int:
    """Removes unbooked stalls of a type, highest numbers first; ``limit=None`` removes all of them."""
    victims = (
        select(Stall.id)
        .where(Stall.stall_type_id == stall_type_id, Stall.builder_id.is_(None))
        .order_by(Stall.stall_number.desc())
        .with_for_update()
    )
    if limit is not None:
        victims = victims.limit(limit)
    ids = list((await db.scalars(victims)).all())
    if not ids:
        return 0
    await db.execute(delete(Stall).where(Stall.id.in_(ids)))
    return len(ids)


async def claim_free_stall(db: AsyncSession, event_id: int, stall_type_id: int) -> Stall | None:
    # SKIP LOCKED: concurrent claimers move on to the next free row instead of waking up to an empty LIMIT 1
    stmt = (
        select(Stall)
        .where(Stall.event_id == event_id, Stall.stall_type_id == stall_type_id, Stall.builder_id.is_(None))
        .order_by(Stall.stall_number)
        .limit(1)
        .with_for_update(skip_locked=True)
    )
    result = await db.execute(stmt)
    return result.scalars().first()


async def get_stall(db: AsyncSession, stall_id: int) -> Stall | None:
    stmt = select(Stall).where(Stall.id == stall_id)
    result = await db.execute(stmt)
    return result.scalars().first()


async def list_stall_types_with_availability(db: AsyncSession, event_id: int) -> list:
    booked = func.count(Stall.id)
    stmt = (
        select(
            StallType.id,
            StallType.name,
            StallType.stall_price,
            StallType.no_of_stalls.label("total_stalls"),
            booked.label("booked_count"),
            (StallType.no_of_stalls - booked).label("available_count"),
        )
        .outerjoin(Stall, (Stall.stall_type_id == StallType.id) & Stall.builder_id.is_not(None))
        .where(StallType.event_id == event_id)
        .group_by(StallType.id)
        .order_by(StallType.stall_price, StallType.id)
    )
    result = await db.execute(stmt)
    return list(result.mappings().all())


async def list_event_stalls(db: AsyncSession, event_id: int) -> list:
    stmt = (
        select(
            Stall.id,
            Stall.stall_number,
            Stall.stall_type_id,
            StallType.name.label("stall_type_name"),
            StallType.stall_price,
            Stall.builder_id.is_(None).label("is_available"),
        )
        .join(StallType, StallType.id == Stall.stall_type_id)
        .where(Stall.event_id == event_id)
        .order_by(Stall.stall_number)
    )
    result = await db.execute(stmt)
    return list(result.mappings().all())


async def list_event_bookings(db: AsyncSession, event_id: int) -> list:
    stmt = (
        select(
            Stall.id.label("stall_id"),
            Stall.stall_number,
            StallType.name.label("stall_type_name"),
            Stall.booked_at,
            User.id.label("builder_id"),
            User.name.label("builder_name"),
            User.phone_number.label("mobile_number"),
            User.email,
        )
        .join(StallType, StallType.id == Stall.stall_type_id)
        .join(User, User.id == Stall.builder_id)
        .where(Stall.event_id == event_id)
        .order_by(Stall.stall_number)
    )
    result = await db.execute(stmt)
    return list(result.mappings().all())


async def get_stall_details(db: AsyncSession, stall_id: int):
    stmt = (
        select(
            Stall.id.label("stall_id"),
            Stall.event_id,
            Stall.stall_number,
            StallType.name.label("stall_type_name"),
            Event.name.label("event_name"),
            User.name.label("builder_name"),
        )
        .join(StallType, StallType.id == Stall.stall_type_id)
        .join(Event, Event.id == Stall.event_id)
        .outerjoin(User, User.id == Stall.builder_id)
        .where(Stall.id == stall_id)
    )
    result = await db.execute(stmt)
    return result.mappings().first()


async def list_builder_bookings(db: AsyncSession, builder_id: int, *, event_id: int | None = None) -> list:
    stmt = (
        select(
            Stall.id.label("stall_id"),
            Stall.stall_number,
            Stall.event_id,
            Event.name.label("event_name"),
            StallType.name.label("stall_type_name"),
            StallType.stall_price,
            Stall.booked_at,
        )
        .join(StallType, StallType.id == Stall.stall_type_id)
        .join(Event, Event.id == Stall.event_id)
        .where(Stall.builder_id == builder_id)
        .order_by(Stall.booked_at.desc(), Stall.id)
    )
    if event_id is not None:
        stmt = stmt.where(Stall.event_id == event_id)
    result = await db.execute(stmt)
    return list(result.mappings().all())

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from nativenest.core.pagination import paginate
from nativenest.domain.stalls.models import Stall
from .models import Event


async def get_event_by_id(db: AsyncSession, event_id: int, *, for_update: bool = False) -> Event | None:
    stmt = select(Event).where(Event.id == event_id)
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    return result.scalars().first()


def _booked_count_subquery():
    return (
        select(func.count(Stall.id))
        .where(Stall.event_id == Event.id, Stall.builder_id.is_not(None))
        .correlate(Event)
        .scalar_subquery()
    )


async def list_events(
        db: AsyncSession,
        page: int,
        page_size: int,
        *,
        name: str | None = None,
        city: str | None = None,
) -> tuple[list, int]:
    stmt = select(Event, _booked_count_subquery().label("booked_stall_count"))
    where = []

    if name:
        where.append(Event.name.ilike(f"%{name}%"))
    if city:
        where.append(func.lower(Event.city) == func.lower(city))

    items, total = await paginate(
        db,
        base_stmt=stmt,
        page=page,
        page_size=page_size,
        where=where,
        order_by=[Event.start_date.desc(), Event.created_at.desc(), Event.id],
        scalars=False,
    )
    return items, total


async def create_event(db: AsyncSession, data: dict) -> Event:
    event = Event(**data)
    db.add(event)
    return event


async def update_event(event: Event, data: dict) -> Event:
    for k, v in data.items():
        setattr(event, k, v)
    return event

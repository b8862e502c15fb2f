from sqlalchemy.ext.asyncio import AsyncSession
from nativenest.domain.events.models import Event
from nativenest.domain.events.schemas import EventCreateDTO, EventUpdateDTO, EventListItemDTO, EventsQueryDTO
from nativenest.domain.users.models import User
from nativenest.domain.events import crud
from nativenest.domain.stalls import crud as stalls_crud
from nativenest.core.pagination import PageDTO
from nativenest.core.auditing import AuditSpan
from nativenest.domain.exceptions import NotFound, InvalidInput, CapacityExceeded


def _validate_dates_on_update(data: dict, ev: Event) -> None:
    start = data.get("start_date", ev.start_date)
    end = data.get("end_date", ev.end_date)
    if end < start:
        raise InvalidInput(
            "end_date must not be before start_date",
            ctx={"start_date": start.isoformat(), "end_date": end.isoformat()}
        )


async def get_event(db: AsyncSession, event_id: int) -> Event:
    event = await crud.get_event_by_id(db, event_id)
    if not event:
        raise NotFound("Event not found", ctx={"event_id": event_id})
    return event


async def list_events(db: AsyncSession, query: EventsQueryDTO) -> PageDTO[EventListItemDTO]:
    rows, total = await crud.list_events(
        db,
        page=query.page,
        page_size=query.page_size,
        name=query.name,
        city=query.city,
    )

    items = [
        EventListItemDTO.model_validate(event).model_copy(update={"booked_stall_count": booked or 0})
        for event, booked in rows
    ]

    return PageDTO(items=items, total=total, page=query.page, page_size=query.page_size)


async def create_event(db: AsyncSession, creator: User, schema: EventCreateDTO) -> Event:
    async with AuditSpan(
        scope="EVENTS",
        action="CREATE",
        object_type="event",
        meta={"stall_count": schema.stall_count}
    ) as span:
        data = schema.model_dump()
        data["created_by"] = creator.id

        event = await crud.create_event(db, data)
        await db.flush()
        await db.refresh(event)

        span.object_id = event.id
        span.event_id = event.id
        return event


async def update_event(db: AsyncSession, event_id: int, schema: EventUpdateDTO) -> Event:
    """
    Applies a partial update. Lowering stall_count is re-checked against the
    stall types already declared, under the same event lock stall-type writes take.
    """
    data = schema.model_dump(exclude_none=True)
    async with AuditSpan(
        scope="EVENTS",
        action="UPDATE",
        object_type="event",
        object_id=event_id,
        event_id=event_id,
        meta={"fields": sorted(data.keys())}
    ):
        event = await crud.get_event_by_id(db, event_id, for_update=True)
        if not event:
            raise NotFound("Event not found", ctx={"event_id": event_id})

        _validate_dates_on_update(data, event)

        new_count = data.get("stall_count")
        if new_count is not None and new_count < event.stall_count:
            allocated = await stalls_crud.sum_declared_stalls(db, event_id)
            if allocated > new_count:
                raise CapacityExceeded(
                    f"Cannot reduce stall_count to {new_count}, {allocated} stalls already declared",
                    stall_count=new_count,
                    allocated=allocated,
                    requested=0,
                )

        event = await crud.update_event(event, data)
        await db.flush()
        await db.refresh(event)
        return event

from sqlalchemy.ext.asyncio import AsyncSession
from nativenest.domain.events.models import Event
from nativenest.domain.events import crud as events_crud
from nativenest.domain.stalls.models import StallType
from nativenest.domain.stalls import crud
from nativenest.domain.stalls.schemas import StallTypeCreateDTO, StallTypeUpdateDTO
from nativenest.core.auditing import AuditSpan
from nativenest.domain.exceptions import NotFound, Conflict, CapacityExceeded


async def _lock_event(db: AsyncSession, event_id: int) -> Event:
    # every stall-type write for an event queues here, so capacity sums and the numbering high-water mark see committed state
    event = await events_crud.get_event_by_id(db, event_id, for_update=True)
    if not event:
        raise NotFound("Event not found", ctx={"event_id": event_id})
    return event


async def _require_stall_type(db: AsyncSession, event_id: int, stall_type_id: int) -> StallType:
    stall_type = await crud.get_stall_type(db, event_id, stall_type_id)
    if not stall_type:
        raise NotFound(
            "Stall type not found or not associated with event",
            ctx={"event_id": event_id, "stall_type_id": stall_type_id}
        )
    return stall_type


def _ensure_capacity(event: Event, allocated: int, requested: int) -> None:
    if allocated + requested > event.stall_count:
        raise CapacityExceeded(stall_count=event.stall_count, allocated=allocated, requested=requested)


async def _seed(db: AsyncSession, event: Event, stall_type_id: int, quantity: int) -> tuple[int, int]:
    # caller holds the event row lock; numbers freed by shrink/delete are not handed out again
    last = event.last_stall_number
    await crud.seed_stalls(db, event.id, stall_type_id, last, quantity)
    event.last_stall_number = last + quantity
    return last + 1, last + quantity


async def _lock_booked_count(db: AsyncSession, stall_type_id: int) -> tuple[int, int]:
    """Locks the type's pool and returns (pool size, booked); bookings in flight are waited for."""
    rows = await crud.lock_type_stalls(db, stall_type_id)
    return len(rows), sum(1 for row in rows if row.builder_id is not None)


async def list_stall_types(db: AsyncSession, event_id: int) -> tuple[list[StallType], Event]:
    event = await events_crud.get_event_by_id(db, event_id)
    if not event:
        raise NotFound("Event not found", ctx={"event_id": event_id})
    return await crud.list_stall_types(db, event_id), event


async def list_stall_types_with_availability(db: AsyncSession, event_id: int) -> tuple[list, Event]:
    event = await events_crud.get_event_by_id(db, event_id)
    if not event:
        raise NotFound("Event not found", ctx={"event_id": event_id})
    return await crud.list_stall_types_with_availability(db, event_id), event


async def create_stall_type(db: AsyncSession, event_id: int, schema: StallTypeCreateDTO) -> StallType:
    """
    Declares a stall type and seeds its stall pool in one transaction
    - Capacity: SUM(no_of_stalls) over the event's types stays <= event.stall_count
    - Numbering: new stalls continue after the highest number the event ever handed out
    """
    async with AuditSpan(
        scope="STALL_TYPES",
        action="CREATE",
        object_type="stall_type",
        event_id=event_id,
        meta={"name": schema.name, "no_of_stalls": schema.no_of_stalls}
    ) as span:
        event = await _lock_event(db, event_id)
        allocated = await crud.sum_declared_stalls(db, event_id)
        _ensure_capacity(event, allocated, schema.no_of_stalls)

        data = schema.model_dump()
        data["event_id"] = event_id
        stall_type = await crud.create_stall_type(db, data)
        await db.flush()

        first, last = await _seed(db, event, stall_type.id, schema.no_of_stalls)

        span.object_id = stall_type.id
        span.stall_type_id = stall_type.id
        span.meta["stall_numbers"] = [first, last]
        return stall_type


async def update_stall_type(
        db: AsyncSession,
        event_id: int,
        stall_type_id: int,
        schema: StallTypeUpdateDTO
) -> StallType:
    """
    Renames/reprices a stall type and resizes its pool to the new quantity
    - Growing seeds new stalls after the event's stall-number high-water mark
    - Shrinking drops free stalls, highest numbers first; booked stalls are never dropped
    """
    async with AuditSpan(
        scope="STALL_TYPES",
        action="UPDATE",
        object_type="stall_type",
        object_id=stall_type_id,
        event_id=event_id,
        stall_type_id=stall_type_id,
        meta={"fields": sorted(schema.model_dump().keys())}
    ) as span:
        event = await _lock_event(db, event_id)
        stall_type = await _require_stall_type(db, event_id, stall_type_id)

        others = await crud.sum_declared_stalls(db, event_id, exclude_stall_type_id=stall_type_id)
        _ensure_capacity(event, others, schema.no_of_stalls)

        delta = schema.no_of_stalls - stall_type.no_of_stalls
        if delta > 0:
            first, last = await _seed(db, event, stall_type_id, delta)
            span.meta["stall_numbers_added"] = [first, last]
        elif delta < 0:
            _, booked = await _lock_booked_count(db, stall_type_id)
            if schema.no_of_stalls < booked:
                raise Conflict(
                    f"Cannot reduce to {schema.no_of_stalls} stalls, {booked} already booked",
                    ctx={"stall_type_id": stall_type_id, "booked": booked, "requested": schema.no_of_stalls}
                )
            removed = await crud.delete_free_stalls(db, stall_type_id, -delta)
            if removed != -delta:
                raise Conflict(
                    "Stall pool changed while resizing, retry",
                    ctx={"stall_type_id": stall_type_id, "expected": -delta, "removed": removed}
                )
            span.meta["stalls_removed"] = removed

        stall_type = await crud.update_stall_type(stall_type, schema.model_dump())
        await db.flush()
        return stall_type


async def delete_stall_type(db: AsyncSession, event_id: int, stall_type_id: int) -> None:
    async with AuditSpan(
        scope="STALL_TYPES",
        action="DELETE",
        object_type="stall_type",
        object_id=stall_type_id,
        event_id=event_id,
        stall_type_id=stall_type_id,
    ) as span:
        await _lock_event(db, event_id)
        stall_type = await _require_stall_type(db, event_id, stall_type_id)

        pool, booked = await _lock_booked_count(db, stall_type_id)
        if booked:
            raise Conflict(
                "Stall type has booked stalls",
                ctx={"stall_type_id": stall_type_id, "booked": booked}
            )

        removed = await crud.delete_free_stalls(db, stall_type_id)
        if removed != pool:
            raise Conflict(
                "Stall type has booked stalls",
                ctx={"stall_type_id": stall_type_id, "booked": pool - removed}
            )
        span.meta["stalls_removed"] = removed
        await crud.delete_stall_type(db, stall_type)
        await db.flush()

import logging
from datetime import datetime, timezone
from sqlalchemy.ext.asyncio import AsyncSession
from nativenest.domain.events import crud as events_crud
from nativenest.domain.stalls import crud
from nativenest.domain.stalls.models import Stall
from nativenest.domain.users.models import User
from nativenest.core.auditing import AuditSpan
from nativenest.domain.exceptions import NotFound, NoAvailableStall

logger = logging.getLogger("nativenest.booking")


async def _require_stall_type_in_event(db: AsyncSession, event_id: int, stall_type_id: int) -> None:
    event = await events_crud.get_event_by_id(db, event_id)
    if not event:
        raise NotFound("Event not found", ctx={"event_id": event_id})
    stall_type = await crud.get_stall_type(db, event_id, stall_type_id)
    if not stall_type:
        raise NotFound("Stall type not found", ctx={"event_id": event_id, "stall_type_id": stall_type_id})


async def book_stall(db: AsyncSession, builder: User, event_id: int, stall_type_id: int) -> Stall:
    """
    Binds one free stall of the requested type to the builder
    - The candidate row is locked FOR UPDATE SKIP LOCKED, so concurrent bookers never share a stall
    - Which free stall is chosen is not part of the contract (currently the lowest stall_number)
    - Booked is terminal, there is no un-book
    """
    async with AuditSpan(
        scope="BOOKING",
        action="BOOK_STALL",
        object_type="stall",
        event_id=event_id,
        stall_type_id=stall_type_id,
        meta={"builder_id": builder.id}
    ) as span:
        await _require_stall_type_in_event(db, event_id, stall_type_id)

        stall = await crud.claim_free_stall(db, event_id, stall_type_id)
        if not stall:
            raise NoAvailableStall(
                "No available stalls for this type",
                ctx={"event_id": event_id, "stall_type_id": stall_type_id}
            )

        stall.builder_id = builder.id
        stall.booked_at = datetime.now(timezone.utc)
        await db.flush()

        logger.info(
            "Stall booked event_id=%s stall_type_id=%s stall_id=%s stall_number=%s builder_id=%s",
            event_id, stall_type_id, stall.id, stall.stall_number, builder.id,
        )
        span.object_id = stall.id
        span.stall_id = stall.id
        span.meta["stall_number"] = stall.stall_number
        return stall


async def list_event_stalls(db: AsyncSession, event_id: int) -> list:
    event = await events_crud.get_event_by_id(db, event_id)
    if not event:
        raise NotFound("Event not found", ctx={"event_id": event_id})
    return await crud.list_event_stalls(db, event_id)


async def list_event_bookings(db: AsyncSession, event_id: int) -> list:
    event = await events_crud.get_event_by_id(db, event_id)
    if not event:
        raise NotFound("Event not found", ctx={"event_id": event_id})
    return await crud.list_event_bookings(db, event_id)


async def get_stall_details(db: AsyncSession, stall_id: int):
    details = await crud.get_stall_details(db, stall_id)
    if not details:
        raise NotFound("Stall not found", ctx={"stall_id": stall_id})
    return details


async def list_builder_bookings(db: AsyncSession, builder: User, event_id: int | None = None) -> list:
    if event_id is not None:
        event = await events_crud.get_event_by_id(db, event_id)
        if not event:
            raise NotFound("Event not found", ctx={"event_id": event_id})
    return await crud.list_builder_bookings(db, builder.id, event_id=event_id)

import logging
from datetime import datetime, timezone
from sqlalchemy.ext.asyncio import AsyncSession
from nativenest.domain.events.models import Event
from nativenest.domain.events import crud as events_crud
from nativenest.domain.stalls import crud as stalls_crud
from nativenest.domain.users import crud as users_crud
from nativenest.domain.users.models import User, RoleName
from nativenest.domain.interests import crud
from nativenest.domain.interests.models import BuyerStallInterest
from nativenest.domain.interests.schemas import StallCheckInDTO, BuilderInterestsQueryDTO, BuilderInterestItemDTO
from nativenest.core.pagination import PageDTO
from nativenest.core.auditing import AuditSpan
from nativenest.domain.exceptions import NotFound, Conflict

logger = logging.getLogger("nativenest.interests")


async def _require_event(db: AsyncSession, event_id: int) -> Event:
    event = await events_crud.get_event_by_id(db, event_id)
    if not event:
        raise NotFound("Event not found", ctx={"event_id": event_id})
    return event


async def register_interest(db: AsyncSession, buyer: User, event_id: int, stall_type_id: int) -> bool:
    """
    Records that a buyer wants to visit stalls of a type. Repeating the call is a no-op;
    returns True only when a new registration was written.
    """
    async with AuditSpan(
        scope="INTERESTS",
        action="REGISTER",
        object_type="interest",
        event_id=event_id,
        stall_type_id=stall_type_id,
        meta={"buyer_id": buyer.id}
    ) as span:
        await _require_event(db, event_id)
        stall_type = await stalls_crud.get_stall_type(db, event_id, stall_type_id)
        if not stall_type:
            raise NotFound(
                "Stall type not found or not associated with event",
                ctx={"event_id": event_id, "stall_type_id": stall_type_id}
            )

        interest_id = await crud.insert_interest_if_absent(db, buyer.id, event_id, stall_type_id)
        span.object_id = interest_id
        span.meta["created"] = interest_id is not None
        return interest_id is not None


async def check_in(db: AsyncSession, event_id: int, schema: StallCheckInDTO) -> BuyerStallInterest:
    """
    Marks a buyer's registration attended at a concrete stall.

    The buyer is identified by mobile number; the stall decides which stall type
    registration is looked up. Only a booked stall can take check-ins, so an
    attended registration always points at a stall that shrink/delete never drops.
    Repeating a check-in at the same stall is a no-op, checking in at another
    stall after attending is a conflict.
    """
    async with AuditSpan(
        scope="INTERESTS",
        action="CHECK_IN",
        object_type="interest",
        event_id=event_id,
        stall_id=schema.stall_id,
    ) as span:
        buyer = await users_crud.get_user_with_role_by_phone(schema.mobile_number, RoleName.BUYER, db)
        if not buyer:
            raise NotFound("Buyer not found", ctx={"mobile_number": schema.mobile_number})

        stall = await stalls_crud.get_stall(db, schema.stall_id)
        if not stall or stall.event_id != event_id:
            raise NotFound("Stall not found", ctx={"event_id": event_id, "stall_id": schema.stall_id})
        if stall.builder_id is None:
            raise Conflict("Stall is not booked", ctx={"stall_id": stall.id})
        span.stall_type_id = stall.stall_type_id

        interest = await crud.get_interest(db, buyer.id, event_id, stall.stall_type_id)
        if not interest:
            raise NotFound(
                "Registration not found for this stall type",
                ctx={"event_id": event_id, "stall_type_id": stall.stall_type_id, "buyer_id": buyer.id}
            )
        span.object_id = interest.id

        if interest.is_attended:
            if interest.stall_id == stall.id:
                span.meta["already_attended"] = True
                return interest
            raise Conflict(
                "Buyer already checked in at another stall",
                ctx={"interest_id": interest.id, "stall_id": interest.stall_id}
            )

        interest.is_attended = True
        interest.stall_id = stall.id
        interest.attended_at = datetime.now(timezone.utc)
        await db.flush()

        logger.info("Buyer checked in interest_id=%s stall_id=%s", interest.id, stall.id)
        return interest


async def list_booked_builders(db: AsyncSession, buyer: User, event_id: int) -> tuple[list, Event]:
    event = await _require_event(db, event_id)
    return await crud.list_booked_builders(db, event_id, buyer.id), event


async def list_builder_interests(
        db: AsyncSession,
        builder: User,
        query: BuilderInterestsQueryDTO
) -> PageDTO[BuilderInterestItemDTO]:
    rows, total = await crud.list_builder_interests(
        db,
        builder.id,
        page=query.page,
        page_size=query.page_size,
        event_id=query.event_id,
    )

    items = [BuilderInterestItemDTO.model_validate(row) for row in rows]

    return PageDTO(items=items, total=total, page=query.page, page_size=query.page_size)

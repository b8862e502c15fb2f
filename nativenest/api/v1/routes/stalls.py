from fastapi import APIRouter, status, Depends, Response
from typing import Annotated
from sqlalchemy.ext.asyncio import AsyncSession
from nativenest.core.database import get_db
from nativenest.core.dependencies.auth import get_current_user_with_roles
from nativenest.domain.stalls.schemas import StallReadDTO, StallBookingRequestDTO, StallBookingReadDTO, \
    StallBookingItemDTO, StallDetailsDTO, BuilderStallsQueryDTO, BuilderStallDTO, BuilderStallsDTO
from nativenest.domain.interests.schemas import StallCheckInDTO, StallCheckInReadDTO
from nativenest.domain.users.models import User, RoleName
from nativenest.services import booking_service, interest_service


router = APIRouter(tags=["stalls"])
db_dependency = Annotated[AsyncSession, Depends(get_db)]


@router.get(
    "/events/{event_id}/stalls",
    status_code=status.HTTP_200_OK,
    response_model=list[StallReadDTO]
)
async def list_event_stalls(event_id: int, db: db_dependency):
    rows = await booking_service.list_event_stalls(db, event_id)
    return [StallReadDTO.model_validate(dict(row)) for row in rows]


@router.get(
    "/events/{event_id}/stalls/bookings",
    status_code=status.HTTP_200_OK,
    response_model=list[StallBookingItemDTO],
    dependencies=[Depends(get_current_user_with_roles(RoleName.ADMIN))]
)
async def list_event_bookings(event_id: int, db: db_dependency):
    rows = await booking_service.list_event_bookings(db, event_id)
    return [StallBookingItemDTO.model_validate(dict(row)) for row in rows]


@router.post(
    "/events/{event_id}/stalls/book",
    status_code=status.HTTP_201_CREATED,
    response_model=StallBookingReadDTO
)
async def book_stall(
        event_id: int,
        schema: StallBookingRequestDTO,
        db: db_dependency,
        user: Annotated[User, Depends(get_current_user_with_roles(RoleName.BUILDER))],
        response: Response
):
    stall = await booking_service.book_stall(db, user, event_id, schema.stall_type_id)
    response.headers["Location"] = f"/stalls/{stall.id}"
    return StallBookingReadDTO.model_validate(stall)


@router.get(
    "/builders/me/stalls",
    status_code=status.HTTP_200_OK,
    response_model=BuilderStallsDTO
)
async def list_builder_stalls(
        db: db_dependency,
        user: Annotated[User, Depends(get_current_user_with_roles(RoleName.BUILDER))],
        query: Annotated[BuilderStallsQueryDTO, Depends()]
):
    rows = await booking_service.list_builder_bookings(db, user, query.event_id)
    stalls = [BuilderStallDTO.model_validate(dict(row)) for row in rows]
    return BuilderStallsDTO(booked_stalls=len(stalls), stalls=stalls)


@router.post(
    "/events/{event_id}/stalls/check-in",
    status_code=status.HTTP_200_OK,
    response_model=StallCheckInReadDTO
)
async def check_in(event_id: int, schema: StallCheckInDTO, db: db_dependency):
    interest = await interest_service.check_in(db, event_id, schema)
    return StallCheckInReadDTO.model_validate(interest)


@router.get(
    "/stalls/{stall_id}",
    status_code=status.HTTP_200_OK,
    response_model=StallDetailsDTO
)
async def get_stall_details(stall_id: int, db: db_dependency):
    details = await booking_service.get_stall_details(db, stall_id)
    return StallDetailsDTO.model_validate(dict(details))

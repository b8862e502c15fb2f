from fastapi import APIRouter, status, Depends, Response
from typing import Annotated
from sqlalchemy.ext.asyncio import AsyncSession
from nativenest.core.database import get_db
from nativenest.core.dependencies.auth import get_current_user_with_roles
from nativenest.core.pagination import PageDTO
from nativenest.domain.interests.schemas import StallInterestCreateDTO, StallInterestReadDTO, BookedBuildersDTO, \
    BookedBuilderDTO, BuilderInterestsQueryDTO, BuilderInterestItemDTO
from nativenest.domain.users.models import User, RoleName
from nativenest.services import interest_service


router = APIRouter(tags=["interests"])
db_dependency = Annotated[AsyncSession, Depends(get_db)]


@router.post(
    "/events/{event_id}/interests",
    status_code=status.HTTP_201_CREATED,
    response_model=StallInterestReadDTO
)
async def register_interest(
        event_id: int,
        schema: StallInterestCreateDTO,
        db: db_dependency,
        user: Annotated[User, Depends(get_current_user_with_roles(RoleName.BUYER))],
        response: Response
):
    created = await interest_service.register_interest(db, user, event_id, schema.stall_type_id)
    if not created:
        response.status_code = status.HTTP_200_OK
    return StallInterestReadDTO(event_id=event_id, stall_type_id=schema.stall_type_id, created=created)


@router.get(
    "/events/{event_id}/booked-builders",
    status_code=status.HTTP_200_OK,
    response_model=BookedBuildersDTO
)
async def list_booked_builders(
        event_id: int,
        db: db_dependency,
        user: Annotated[User, Depends(get_current_user_with_roles(RoleName.BUYER))]
):
    rows, event = await interest_service.list_booked_builders(db, user, event_id)
    return BookedBuildersDTO(
        event_id=event.id,
        event_name=event.name,
        builders=[BookedBuilderDTO.model_validate(dict(row)) for row in rows],
    )


@router.get(
    "/builders/me/interests",
    status_code=status.HTTP_200_OK,
    response_model=PageDTO[BuilderInterestItemDTO]
)
async def list_builder_interests(
        db: db_dependency,
        user: Annotated[User, Depends(get_current_user_with_roles(RoleName.BUILDER))],
        query: Annotated[BuilderInterestsQueryDTO, Depends()]
):
    return await interest_service.list_builder_interests(db, user, query)

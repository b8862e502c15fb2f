from fastapi import APIRouter, status, Depends, Response
from typing import Annotated
from sqlalchemy.ext.asyncio import AsyncSession
from nativenest.core.database import get_db
from nativenest.core.dependencies.auth import get_current_user_with_roles
from nativenest.core.pagination import PageDTO
from nativenest.domain.events.schemas import EventCreateDTO, EventReadDTO, EventUpdateDTO, EventListItemDTO, \
    EventsQueryDTO
from nativenest.domain.users.models import User, RoleName
from nativenest.services import event_service


router = APIRouter(tags=["events"])
db_dependency = Annotated[AsyncSession, Depends(get_db)]


@router.get(
    "/events",
    status_code=status.HTTP_200_OK,
    response_model=PageDTO[EventListItemDTO]
)
async def list_events(db: db_dependency, query: Annotated[EventsQueryDTO, Depends()]):
    return await event_service.list_events(db, query)


@router.get(
    "/events/{event_id}",
    status_code=status.HTTP_200_OK,
    response_model=EventReadDTO
)
async def get_event(event_id: int, db: db_dependency):
    return await event_service.get_event(db, event_id)


@router.post(
    "/events",
    status_code=status.HTTP_201_CREATED,
    response_model=EventReadDTO
)
async def create_event(
        schema: EventCreateDTO,
        db: db_dependency,
        user: Annotated[User, Depends(get_current_user_with_roles(RoleName.ADMIN))],
        response: Response
):
    event = await event_service.create_event(db, user, schema)
    response.headers["Location"] = f"/events/{event.id}"
    return event


@router.patch(
    "/events/{event_id}",
    status_code=status.HTTP_200_OK,
    response_model=EventReadDTO,
    dependencies=[Depends(get_current_user_with_roles(RoleName.ADMIN))]
)
async def update_event(event_id: int, schema: EventUpdateDTO, db: db_dependency):
    return await event_service.update_event(db, event_id, schema)

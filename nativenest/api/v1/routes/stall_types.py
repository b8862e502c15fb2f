from fastapi import APIRouter, status, Depends, Response
from typing import Annotated
from sqlalchemy.ext.asyncio import AsyncSession
from nativenest.core.database import get_db
from nativenest.core.dependencies.auth import get_current_user_with_roles
from nativenest.domain.stalls.schemas import StallTypeCreateDTO, StallTypeUpdateDTO, StallTypeReadDTO, \
    StallTypeListDTO, StallTypesAvailabilityDTO, StallTypeAvailabilityDTO
from nativenest.domain.users.models import RoleName
from nativenest.services import stall_type_service


router = APIRouter(prefix="/events/{event_id}/stall-types", tags=["stall-types"])
db_dependency = Annotated[AsyncSession, Depends(get_db)]
admin_only = [Depends(get_current_user_with_roles(RoleName.ADMIN))]


@router.get(
    "",
    status_code=status.HTTP_200_OK,
    response_model=StallTypeListDTO,
    dependencies=admin_only
)
async def list_stall_types(event_id: int, db: db_dependency):
    stall_types, event = await stall_type_service.list_stall_types(db, event_id)
    return StallTypeListDTO(
        stall_types=[StallTypeReadDTO.model_validate(st) for st in stall_types],
        event_total_stalls=event.stall_count,
        allocated_stalls=sum(st.no_of_stalls for st in stall_types),
    )


@router.get(
    "/availability",
    status_code=status.HTTP_200_OK,
    response_model=StallTypesAvailabilityDTO
)
async def list_stall_type_availability(event_id: int, db: db_dependency):
    rows, event = await stall_type_service.list_stall_types_with_availability(db, event_id)
    return StallTypesAvailabilityDTO(
        event_id=event.id,
        event_name=event.name,
        stall_types=[StallTypeAvailabilityDTO.model_validate(dict(row)) for row in rows],
    )


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=StallTypeReadDTO,
    dependencies=admin_only
)
async def create_stall_type(event_id: int, schema: StallTypeCreateDTO, db: db_dependency, response: Response):
    stall_type = await stall_type_service.create_stall_type(db, event_id, schema)
    response.headers["Location"] = f"/events/{event_id}/stall-types/{stall_type.id}"
    return stall_type


@router.put(
    "/{stall_type_id}",
    status_code=status.HTTP_200_OK,
    response_model=StallTypeReadDTO,
    dependencies=admin_only
)
async def update_stall_type(event_id: int, stall_type_id: int, schema: StallTypeUpdateDTO, db: db_dependency):
    return await stall_type_service.update_stall_type(db, event_id, stall_type_id, schema)


@router.delete(
    "/{stall_type_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=admin_only
)
async def delete_stall_type(event_id: int, stall_type_id: int, db: db_dependency):
    await stall_type_service.delete_stall_type(db, event_id, stall_type_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

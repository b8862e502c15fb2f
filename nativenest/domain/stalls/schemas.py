from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from nativenest.core.utils.text_utils import strip_text


class StallTypeCreateDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    name: str = Field(min_length=1, max_length=100)
    no_of_stalls: int = Field(gt=0, description='Number of physical stalls of this type')
    stall_price: Decimal = Field(ge=0, max_digits=12, decimal_places=2)

    _strip_name = field_validator("name", mode="before")(strip_text)


class StallTypeUpdateDTO(StallTypeCreateDTO):
    pass


class StallTypeReadDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra='forbid')

    id: int
    event_id: int
    name: str
    no_of_stalls: int
    stall_price: Decimal


class StallTypeListDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    stall_types: list[StallTypeReadDTO]
    event_total_stalls: int
    allocated_stalls: int


class StallTypeAvailabilityDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra='forbid')

    id: int
    name: str
    stall_price: Decimal
    total_stalls: int
    booked_count: int
    available_count: int


class StallTypesAvailabilityDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    event_id: int
    event_name: str
    stall_types: list[StallTypeAvailabilityDTO]


class StallReadDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra='forbid')

    id: int
    stall_number: int
    stall_type_id: int
    stall_type_name: str
    stall_price: Decimal
    is_available: bool


class StallBookingRequestDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    stall_type_id: int = Field(gt=0)


class StallBookingReadDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra='forbid', populate_by_name=True)

    stall_id: int = Field(validation_alias='id')
    stall_number: int
    event_id: int
    stall_type_id: int
    booked_at: datetime | None


class StallBookingItemDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra='forbid')

    stall_id: int
    stall_number: int
    stall_type_name: str
    booked_at: datetime | None
    builder_id: int
    builder_name: str
    mobile_number: str | None
    email: EmailStr


class StallDetailsDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra='forbid')

    stall_id: int
    event_id: int
    stall_number: int
    stall_type_name: str
    event_name: str
    builder_name: str | None


class BuilderStallsQueryDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    event_id: int | None = Field(default=None, ge=1)


class BuilderStallDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra='forbid')

    stall_id: int
    stall_number: int
    event_id: int
    event_name: str
    stall_type_name: str
    stall_price: Decimal
    booked_at: datetime | None


class BuilderStallsDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    booked_stalls: int
    stalls: list[BuilderStallDTO]

from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from nativenest.core.utils.validators import normalize_phone


class StallInterestCreateDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    stall_type_id: int = Field(gt=0)


class StallInterestReadDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    event_id: int
    stall_type_id: int
    created: bool


class StallCheckInDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    stall_id: int = Field(gt=0)
    mobile_number: str = Field(min_length=5, max_length=32)

    @field_validator("mobile_number", mode="after")
    @classmethod
    def _normalize_mobile(cls, v: str) -> str:
        return normalize_phone(v.strip())


class StallCheckInReadDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra='forbid', populate_by_name=True)

    interest_id: int = Field(validation_alias='id')
    event_id: int
    stall_type_id: int
    stall_id: int | None
    is_attended: bool
    attended_at: datetime | None


class BookedBuilderDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra='forbid')

    builder_id: int
    name: str
    mobile_number: str | None
    stall_count: int
    sample_stall_type_id: int
    interest_registered: bool


class BookedBuildersDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    event_id: int
    event_name: str
    builders: list[BookedBuilderDTO]


class BuilderInterestsQueryDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    event_id: int | None = Field(default=None, ge=1)
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=200)


class BuilderInterestItemDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra='forbid')

    id: int
    interest_date: datetime
    is_attended: bool
    stall_id: int | None
    event_id: int
    event_name: str
    city: str
    state: str
    stall_type_name: str
    stall_price: Decimal
    buyer_name: str
    buyer_mobile: str | None
    buyer_email: EmailStr

from datetime import date, datetime
from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator
from nativenest.core.utils.text_utils import strip_text


class EventCreateDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    name: str = Field(min_length=3, max_length=150)
    event_type: str | None = Field(default=None, max_length=100)
    location: str = Field(min_length=2, max_length=300)
    city: str = Field(min_length=2, max_length=100)
    state: str = Field(min_length=2, max_length=100)
    start_date: date
    end_date: date
    stall_count: int = Field(default=0, ge=0)
    description: str | None = Field(default=None, max_length=2000)

    _strip_name = field_validator("name", mode="before")(strip_text)
    _strip_event_type = field_validator("event_type", mode="before")(strip_text)
    _strip_location = field_validator("location", mode="before")(strip_text)
    _strip_city = field_validator("city", mode="before")(strip_text)
    _strip_state = field_validator("state", mode="before")(strip_text)
    _strip_desc = field_validator("description", mode="before")(strip_text)

    @model_validator(mode="after")
    def _check_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class EventUpdateDTO(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=3, max_length=150)
    event_type: str | None = Field(default=None, max_length=100)
    location: str | None = Field(default=None, min_length=2, max_length=300)
    city: str | None = Field(default=None, min_length=2, max_length=100)
    state: str | None = Field(default=None, min_length=2, max_length=100)
    start_date: date | None = None
    end_date: date | None = None
    stall_count: int | None = Field(default=None, ge=0)
    description: str | None = Field(default=None, max_length=2000)

    _strip_name = field_validator("name", mode="before")(strip_text)
    _strip_location = field_validator("location", mode="before")(strip_text)
    _strip_city = field_validator("city", mode="before")(strip_text)
    _strip_state = field_validator("state", mode="before")(strip_text)
    _strip_desc = field_validator("description", mode="before")(strip_text)


class EventReadDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra='forbid')

    id: int
    name: str
    event_type: str | None
    location: str
    city: str
    state: str
    start_date: date
    end_date: date
    stall_count: int
    description: str | None
    created_at: datetime
    updated_at: datetime


class EventListItemDTO(EventReadDTO):
    booked_stall_count: int = 0


class EventsQueryDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    name: str | None = None
    city: str | None = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=200)

    _strip_name = field_validator("name", mode="before")(strip_text)
    _strip_city = field_validator("city", mode="before")(strip_text)

"""Category, event and event result data models."""

from datetime import date
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field, field_validator

from .team import _clean_name


class EventStatus(str, Enum):
    """Lifecycle of an event. Results submission moves PENDING to COMPLETED."""

    PENDING = "PENDING"
    COMPLETED = "COMPLETED"


class Category(BaseModel):
    """Grouping for events (e.g. Athletics, Swimming)."""

    id: int
    name: str


class CategoryCreate(BaseModel):
    """Payload for creating a category."""

    name: str = Field(..., max_length=120)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: Optional[str]) -> Optional[str]:
        return _clean_name(value)


class Event(BaseModel):
    """Represents a single competition event."""

    id: int
    name: str
    category_id: int = Field(..., alias="categoryId")
    event_date: Optional[date] = Field(default=None, alias="eventDate")
    status: EventStatus = EventStatus.PENDING

    class Config:
        """Pydantic configuration."""

        populate_by_name = True

    @property
    def is_completed(self) -> bool:
        return self.status == EventStatus.COMPLETED


class EventCreate(BaseModel):
    """Payload for creating an event. Status always starts as PENDING."""

    name: str = Field(..., max_length=200)
    category_id: int = Field(..., alias="categoryId", gt=0)
    event_date: Optional[date] = Field(default=None, alias="eventDate")

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: Optional[str]) -> Optional[str]:
        return _clean_name(value)

    class Config:
        """Pydantic configuration."""

        populate_by_name = True


class EventUpdate(BaseModel):
    """Partial update for an event, including status transitions."""

    name: Optional[str] = Field(default=None, max_length=200)
    category_id: Optional[int] = Field(default=None, alias="categoryId", gt=0)
    event_date: Optional[date] = Field(default=None, alias="eventDate")
    status: Optional[EventStatus] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: Optional[str]) -> Optional[str]:
        return _clean_name(value)

    class Config:
        """Pydantic configuration."""

        populate_by_name = True


class TeamRef(BaseModel):
    """Minimal team reference used in event results."""

    id: int
    name: str


class EventResult(BaseModel):
    """Per-event summary exposing the podium teams, if assigned."""

    id: int
    name: str
    category: Optional[str] = None
    category_id: int = Field(..., alias="categoryId")
    event_date: Optional[date] = Field(default=None, alias="eventDate")
    status: EventStatus
    gold_team: Optional[TeamRef] = Field(default=None, alias="goldTeam")
    silver_team: Optional[TeamRef] = Field(default=None, alias="silverTeam")
    bronze_team: Optional[TeamRef] = Field(default=None, alias="bronzeTeam")

    class Config:
        """Pydantic configuration."""

        populate_by_name = True

"""Team data models."""

from typing import Optional
from pydantic import BaseModel, Field, field_validator


def _clean_name(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    if not value:
        raise ValueError("name must not be blank")
    return value


class Team(BaseModel):
    """Represents a competing team."""

    id: int
    name: str
    icon: Optional[str] = None
    color: Optional[str] = None


class TeamCreate(BaseModel):
    """Payload for creating a team."""

    name: str = Field(..., max_length=120)
    icon: Optional[str] = Field(default=None, max_length=255)
    color: Optional[str] = Field(default=None, max_length=32)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: Optional[str]) -> Optional[str]:
        return _clean_name(value)


class TeamUpdate(BaseModel):
    """Partial update for a team (rename / recolor)."""

    name: Optional[str] = Field(default=None, max_length=120)
    icon: Optional[str] = Field(default=None, max_length=255)
    color: Optional[str] = Field(default=None, max_length=32)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: Optional[str]) -> Optional[str]:
        return _clean_name(value)

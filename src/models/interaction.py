"""Interaction models."""

from datetime import datetime
from typing import Any, Optional

from pydantic import Field, field_validator

from models.base import DomainModel, FilterModel, InputModel
from models.enums import InteractionType, Outcome
from utils.validators import optional_int


class Interaction(DomainModel):
    """A single touchpoint with a customer."""

    id: Optional[str] = None
    customer_id: str
    customer_name: str = "Unknown"
    customer_company: Optional[str] = None
    type: InteractionType
    channel: str
    subject: str
    notes: Optional[str] = None
    date: Optional[datetime] = None
    duration: Optional[int] = Field(default=None, ge=0)
    outcome: Optional[Outcome] = None
    next_action: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("duration", mode="before")
    @classmethod
    def coerce_duration(cls, value: Any) -> Optional[int]:
        return optional_int(value, "duration")


class InteractionCreate(InputModel):
    """Payload accepted by InteractionRepository.create."""

    customer_id: str
    type: InteractionType
    channel: str
    subject: str
    notes: Optional[str] = None
    date: Optional[datetime] = None
    duration: Optional[int] = Field(default=None, ge=0)
    outcome: Optional[Outcome] = None
    next_action: Optional[str] = None

    non_nullable = ("customer_id", "channel", "subject")

    @field_validator("duration", mode="before")
    @classmethod
    def coerce_duration(cls, value: Any) -> Optional[int]:
        return optional_int(value, "duration")

    @field_validator("outcome", mode="before")
    @classmethod
    def empty_outcome(cls, value: Any) -> Any:
        return None if value == "" else value


class InteractionUpdate(InputModel):
    """Partial update. The owning customer cannot be changed."""

    type: Optional[InteractionType] = None
    channel: Optional[str] = None
    subject: Optional[str] = None
    notes: Optional[str] = None
    date: Optional[datetime] = None
    duration: Optional[int] = Field(default=None, ge=0)
    outcome: Optional[Outcome] = None
    next_action: Optional[str] = None

    non_nullable = ("type", "channel", "subject", "date")

    @field_validator("duration", mode="before")
    @classmethod
    def coerce_duration(cls, value: Any) -> Optional[int]:
        return optional_int(value, "duration")

    @field_validator("outcome", mode="before")
    @classmethod
    def empty_outcome(cls, value: Any) -> Any:
        return None if value == "" else value


class InteractionFilters(FilterModel):
    """Exact-match filters accepted by interaction listings."""

    customer_id: Optional[str] = None
    type: Optional[InteractionType] = None
    outcome: Optional[Outcome] = None

"""Segment, rule and membership models."""

from datetime import datetime
from typing import List, Optional, Union

from pydantic import Field, field_validator

from models.base import DomainModel, FilterModel, InputModel
from models.customer import Customer
from models.enums import Operator
from utils.validators import ensure_present

RuleValue = Union[str, int, float, None]


class Rule(DomainModel):
    """One (field, operator, value) condition."""

    field: str
    operator: Operator
    value: RuleValue = None

    @field_validator("field")
    @classmethod
    def validate_field(cls, value: str) -> str:
        ensure_present(value, "field")
        return value.strip()


class Segment(DomainModel):
    """Named rule set. ``count`` is computed on read and never stored."""

    id: Optional[str] = None
    name: str
    description: Optional[str] = None
    rules: List[Rule] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    count: Optional[int] = None


class SegmentCreate(InputModel):
    """Payload accepted by SegmentService.create_segment."""

    name: str
    description: Optional[str] = None
    rules: List[Rule] = Field(default_factory=list)

    non_nullable = ("name",)

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        ensure_present(value, "name")
        return value


class SegmentUpdate(InputModel):
    """Partial segment update."""

    name: Optional[str] = None
    description: Optional[str] = None
    rules: Optional[List[Rule]] = None

    non_nullable = ("name", "rules")


class SegmentFilters(FilterModel):
    """Exact-match filters accepted by segment listings."""

    name: Optional[str] = None


class Membership(DomainModel):
    """Join row linking a customer to a segment."""

    id: Optional[str] = None
    customer_id: str
    segment_id: str
    created_at: Optional[datetime] = None


class MembershipSyncResult(DomainModel):
    """Outcome of writing a segment's current membership to storage."""

    segment_id: str
    customers_added: int
    customers_removed: int
    total_members: int


class SegmentPreview(DomainModel):
    """Size estimate and sample for a rule set that is not saved yet."""

    count: int
    sample: List[Customer] = Field(default_factory=list)

"""Customer models."""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from models.base import DomainModel, FilterModel, InputModel
from models.enums import CustomerStatus
from utils.validators import distinct_strings, ensure_present


class Address(DomainModel):
    """Structured postal address. Unknown keys are kept as-is."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None


def _check_email(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    ensure_present(value, "email")
    if "@" not in value:
        raise ValueError("email must contain '@'")
    return value


class Customer(DomainModel):
    """Root aggregate of the CRM."""

    id: Optional[str] = None
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    company: Optional[str] = None
    industry: Optional[str] = None
    status: CustomerStatus = CustomerStatus.PROSPECT
    value: float = Field(default=0, ge=0)
    tags: List[str] = Field(default_factory=list)
    address: Optional[Address] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    last_contact: Optional[datetime] = None

    @field_validator("value", mode="before")
    @classmethod
    def missing_value_is_zero(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, value: Any) -> List[str]:
        return distinct_strings(value)

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        return _check_email(value)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class CustomerCreate(InputModel):
    """Payload accepted by CustomerRepository.create."""

    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    company: Optional[str] = None
    industry: Optional[str] = None
    status: CustomerStatus = CustomerStatus.PROSPECT
    value: float = Field(default=0, ge=0)
    tags: List[str] = Field(default_factory=list)
    address: Optional[Address] = None
    last_contact: Optional[datetime] = None

    non_nullable = ("first_name", "last_name", "email")

    @field_validator("value", mode="before")
    @classmethod
    def empty_value_is_zero(cls, value: Any) -> Any:
        return 0 if value in (None, "") else value

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, value: Any) -> List[str]:
        return distinct_strings(value)

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        return _check_email(value)


class CustomerUpdate(InputModel):
    """Partial update; only provided fields are written."""

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    industry: Optional[str] = None
    status: Optional[CustomerStatus] = None
    value: Optional[float] = Field(default=None, ge=0)
    tags: Optional[List[str]] = None
    address: Optional[Address] = None
    last_contact: Optional[datetime] = None

    non_nullable = ("first_name", "last_name", "email", "status", "value")

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, value: Any) -> Optional[List[str]]:
        return None if value is None else distinct_strings(value)

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: Optional[str]) -> Optional[str]:
        return _check_email(value)


class CustomerFilters(FilterModel):
    """Exact-match filters accepted by customer listings."""

    status: Optional[CustomerStatus] = None
    industry: Optional[str] = None

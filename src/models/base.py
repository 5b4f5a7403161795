"""Shared pydantic configuration for domain and input models."""

from typing import ClassVar, Tuple

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel

from utils.validators import ensure_present


class DomainModel(BaseModel):
    """Domain object: snake_case attributes, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class InputModel(DomainModel):
    """Create/update payload. Unknown keys are rejected."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        str_strip_whitespace=True,
    )

    # Fields that may be omitted from a partial update but never set to null.
    non_nullable: ClassVar[Tuple[str, ...]] = ()

    @model_validator(mode="after")
    def reject_explicit_nulls(self):
        """A provided field listed in ``non_nullable`` must carry a value."""
        for name in self.non_nullable:
            if name not in self.model_fields_set:
                continue
            value = getattr(self, name)
            if value is None or isinstance(value, str):
                ensure_present(value, name)
        return self


class FilterModel(InputModel):
    """Per-entity exact-match filters. Empty values mean "no filter"."""

    @model_validator(mode="before")
    @classmethod
    def drop_empty_values(cls, data):
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v not in (None, "")}
        return data

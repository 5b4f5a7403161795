"""
Schema mapper: storage rows <-> domain models.

Each ``EntityMapper`` knows which domain fields are stored, under which
column, which fields are derived on read (joined customer display fields),
and which are never persisted (``responses``, ``count``).
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Generic, Iterable, Mapping, Optional, Type, TypeVar, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_snake

from models.customer import Customer, CustomerCreate, CustomerUpdate
from models.interaction import Interaction, InteractionCreate, InteractionUpdate
from models.segment import Membership, Segment, SegmentCreate, SegmentUpdate
from models.ticket import SupportTicket, TicketCreate, TicketResponse, TicketUpdate
from utils.error_handling import ValidationError, from_pydantic

ModelT = TypeVar("ModelT", bound=BaseModel)

UNKNOWN_CUSTOMER = "Unknown"


class EntityMapper(Generic[ModelT]):
    """Bidirectional translator for one entity type."""

    def __init__(
        self,
        model: Type[ModelT],
        renames: Optional[Mapping[str, str]] = None,
        derived: Iterable[str] = (),
        transient: Iterable[str] = (),
        customer_relation: Optional[str] = None,
        create_model: Optional[Type[BaseModel]] = None,
        update_model: Optional[Type[BaseModel]] = None,
    ):
        self.model = model
        self.create_model = create_model
        self.update_model = update_model
        self.entity = model.__name__
        self.customer_relation = customer_relation
        skip = set(derived) | set(transient)
        renames = dict(renames or {})
        # domain field -> storage column, for persisted fields only
        self.columns: Dict[str, str] = {
            name: renames.get(name, name) for name in model.model_fields if name not in skip
        }
        self._fields_by_column = {column: name for name, column in self.columns.items()}
        self._aliases = {
            info.alias: name for name, info in model.model_fields.items() if info.alias
        }

    def column_for(self, name: str) -> Optional[str]:
        return self.columns.get(self._field_name(name))

    def to_domain(self, row: Mapping[str, Any]) -> ModelT:
        """Build a domain object from a storage row; unknown columns are ignored."""
        fields = self.model.model_fields
        data: Dict[str, Any] = {}
        for column, value in row.items():
            name = self._fields_by_column.get(column)
            if name is None:
                continue
            # Nulls in optional columns fall back to the model default.
            if value is None and not fields[name].is_required():
                continue
            data[name] = value

        if self.customer_relation is not None:
            parent = row.get(self.customer_relation)
            if parent:
                first = parent.get("first_name") or ""
                last = parent.get("last_name") or ""
                data["customer_name"] = f"{first} {last}".strip() or UNKNOWN_CUSTOMER
                data["customer_company"] = parent.get("company")
            else:
                data["customer_name"] = UNKNOWN_CUSTOMER
                data["customer_company"] = None

        try:
            return self.model.model_validate(data)
        except PydanticValidationError as exc:
            raise from_pydantic(exc, f"{self.entity} row") from exc

    def to_storage(
        self, payload: Union[BaseModel, Mapping[str, Any]], partial: bool = True
    ) -> Dict[str, Any]:
        """
        Translate a domain object or payload into a storage row.

        Only keys present in the payload are emitted, so a partial payload
        never overwrites stored data with nulls. With ``partial=False`` a
        model payload also contributes its non-null defaults; nulls are left
        out so column defaults apply. Derived and transient fields are dropped.
        """
        if isinstance(payload, BaseModel):
            if partial:
                items = {name: getattr(payload, name) for name in payload.model_fields_set}
            else:
                items = {
                    name: getattr(payload, name)
                    for name in type(payload).model_fields
                    if getattr(payload, name) is not None
                }
        else:
            schema = self.update_model if partial else self.create_model
            if schema is not None:
                try:
                    validated = schema.model_validate(dict(payload))
                except PydanticValidationError as exc:
                    raise from_pydantic(exc, self.entity) from exc
                return self.to_storage(validated, partial=partial)
            items = {}
            for key, value in payload.items():
                name = self._field_name(key)
                if name not in self.model.model_fields:
                    raise ValidationError(f"Unknown {self.entity} field {key!r}")
                items[name] = value

        row: Dict[str, Any] = {}
        for name, value in items.items():
            column = self.columns.get(name)
            if column is not None:
                row[column] = _storage_value(value)
        return row

    def _field_name(self, key: str) -> str:
        if key in self.model.model_fields:
            return key
        return self._aliases.get(key, to_snake(key))


def _storage_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", exclude_none=True)
    if isinstance(value, (list, tuple)):
        return [_storage_value(item) for item in value]
    return value


customer_mapper: EntityMapper[Customer] = EntityMapper(
    Customer, create_model=CustomerCreate, update_model=CustomerUpdate
)

interaction_mapper: EntityMapper[Interaction] = EntityMapper(
    Interaction,
    derived=("customer_name", "customer_company"),
    customer_relation="customers",
    create_model=InteractionCreate,
    update_model=InteractionUpdate,
)

ticket_mapper: EntityMapper[SupportTicket] = EntityMapper(
    SupportTicket,
    derived=("customer_name", "customer_company"),
    transient=("responses",),
    customer_relation="customers",
    create_model=TicketCreate,
    update_model=TicketUpdate,
)

ticket_response_mapper: EntityMapper[TicketResponse] = EntityMapper(TicketResponse)

segment_mapper: EntityMapper[Segment] = EntityMapper(
    Segment,
    renames={"rules": "criteria"},
    transient=("count",),
    create_model=SegmentCreate,
    update_model=SegmentUpdate,
)

membership_mapper: EntityMapper[Membership] = EntityMapper(Membership)

"""Generic list/get/create/update/delete repository over the storage boundary."""

from __future__ import annotations

from typing import Any, Generic, Mapping, Optional, Type, TypeVar, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from config.settings import Settings
from models.base import FilterModel
from models.response import Page
from repositories.mapper import EntityMapper
from repositories.postgres_repo import PostgresRepository
from repositories.query_builder import CollectionSpec, QueryBuilder, SortInput, total_pages
from utils.error_handling import NotFoundError, ValidationError, from_pydantic
from utils.logging_config import get_logger

logger = get_logger(__name__)

EntityT = TypeVar("EntityT", bound=BaseModel)
Payload = Union[Mapping[str, Any], BaseModel]
Filters = Union[None, Mapping[str, Any], FilterModel]


def validate_payload(model: Type[BaseModel], payload: Payload, entity: str) -> BaseModel:
    """Run pydantic validation and convert failures into our ValidationError."""
    if isinstance(payload, model):
        return payload
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(exclude_unset=True)
    if not isinstance(payload, Mapping):
        raise ValidationError(f"Invalid {entity}: expected an object, got {type(payload).__name__}")
    try:
        return model.model_validate(dict(payload))
    except PydanticValidationError as exc:
        raise from_pydantic(exc, entity) from exc


class RecordRepository(Generic[EntityT]):
    """
    Per-entity facade: paginated listing plus single-record writes.

    Subclasses set ``collection``, ``mapper``, ``create_model`` and
    ``update_model``. Every write validates the payload before touching
    storage; nothing is partially applied.
    """

    collection: CollectionSpec
    mapper: EntityMapper
    create_model: Type[BaseModel]
    update_model: Type[BaseModel]
    entity_name: str = "record"

    def __init__(self, store: PostgresRepository, settings: Settings):
        self.store = store
        self.settings = settings
        self.queries = QueryBuilder(self.collection, settings)

    @property
    def relations(self):
        return self.collection.relations

    def list(
        self,
        page: int = 1,
        page_size: Optional[int] = None,
        search: Optional[str] = None,
        filters: Filters = None,
        sort: SortInput = None,
    ) -> Page:
        descriptor = self.queries.build(
            search=search, filters=filters, sort=sort, page=page, page_size=page_size
        )
        result = self.store.query(descriptor)
        return Page(
            items=[self.mapper.to_domain(row) for row in result.rows],
            total=result.exact_count,
            page=page,
            page_size=descriptor.limit,
            total_pages=total_pages(result.exact_count, descriptor.limit),
        )

    def get(self, record_id: str) -> EntityT:
        row = self.store.fetch_one(self.collection.name, record_id, self.relations)
        if row is None:
            raise NotFoundError(f"{self.entity_name} {record_id} not found")
        return self.mapper.to_domain(row)

    def create(self, payload: Payload) -> EntityT:
        validated = validate_payload(self.create_model, payload, self.entity_name)
        row = self.store.insert(
            self.collection.name, self.mapper.to_storage(validated, partial=False), self.relations
        )
        return self.mapper.to_domain(row)

    def update(self, record_id: str, payload: Payload) -> EntityT:
        validated = validate_payload(self.update_model, payload, self.entity_name)
        row = self.store.update(
            self.collection.name, record_id, self.mapper.to_storage(validated), self.relations
        )
        if row is None:
            raise NotFoundError(f"{self.entity_name} {record_id} not found")
        return self.mapper.to_domain(row)

    def delete(self, record_id: str) -> bool:
        if not self.store.delete(self.collection.name, record_id):
            raise NotFoundError(f"{self.entity_name} {record_id} not found")
        return True

    def count(self, filters: Filters = None) -> int:
        """Exact count without fetching rows."""
        return self.store.query(self.queries.count_only(filters)).exact_count

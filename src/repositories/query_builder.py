"""
Transport-agnostic query descriptors.

A ``QueryBuilder`` is bound to one ``CollectionSpec`` and turns a caller's
search term, typed filters, sort and page request into a frozen
``QueryDescriptor`` that the storage boundary executes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional, Tuple, Type, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_snake

from config.settings import Settings
from models.base import FilterModel
from utils.error_handling import InvalidPaginationError, ValidationError, from_pydantic


@dataclass(frozen=True)
class Relation:
    """Parent record selected inline with the primary collection."""

    name: str
    foreign_key: str
    fields: Tuple[str, ...]


CUSTOMER_DISPLAY = Relation("customers", "customer_id", ("first_name", "last_name", "company"))


@dataclass(frozen=True)
class SortSpec:
    column: str
    descending: bool = True


@dataclass(frozen=True)
class QueryDescriptor:
    """Everything the store needs to run one list or count request."""

    collection: str
    select: Tuple[str, ...] = ("*",)
    relations: Tuple[Relation, ...] = ()
    filters: Tuple[Tuple[str, Any], ...] = ()
    search_term: Optional[str] = None
    search_columns: Tuple[str, ...] = ()
    order: Optional[SortSpec] = None
    offset: Optional[int] = None
    limit: Optional[int] = None
    count: str = "exact"
    head: bool = False

    @property
    def range(self) -> Optional[Tuple[int, int]]:
        """Inclusive row range, or None when unpaginated."""
        if self.offset is None or self.limit is None:
            return None
        return (self.offset, self.offset + self.limit - 1)


@dataclass(frozen=True)
class CollectionSpec:
    """Static description of a listable collection."""

    name: str
    filter_model: Type[FilterModel]
    columns: Mapping[str, str]
    search_columns: Tuple[str, ...] = ()
    relations: Tuple[Relation, ...] = ()
    default_sort: SortSpec = field(default_factory=lambda: SortSpec("created_at"))


SortInput = Union[None, SortSpec, Tuple[str, str], str]


class QueryBuilder:
    """Build list and count descriptors for one collection."""

    def __init__(self, collection: CollectionSpec, settings: Settings):
        self.collection = collection
        self.settings = settings

    def build(
        self,
        search: Optional[str] = None,
        filters: Union[None, Mapping[str, Any], FilterModel] = None,
        sort: SortInput = None,
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> QueryDescriptor:
        page_size = self.settings.default_page_size if page_size is None else page_size
        offset = page_offset(page, page_size)
        term = (search or "").strip() or None
        return QueryDescriptor(
            collection=self.collection.name,
            relations=self.collection.relations,
            filters=self.resolve_filters(filters),
            search_term=term,
            search_columns=self.collection.search_columns if term else (),
            order=self.resolve_sort(sort),
            offset=offset,
            limit=page_size,
        )

    def count_only(
        self, filters: Union[None, Mapping[str, Any], FilterModel] = None
    ) -> QueryDescriptor:
        """Head request: exact count, no rows."""
        return QueryDescriptor(
            collection=self.collection.name,
            filters=self.resolve_filters(filters),
            head=True,
        )

    def resolve_filters(
        self, filters: Union[None, Mapping[str, Any], FilterModel]
    ) -> Tuple[Tuple[str, Any], ...]:
        model_cls = self.collection.filter_model
        if filters is None:
            return ()
        if isinstance(filters, BaseModel) and not isinstance(filters, model_cls):
            filters = filters.model_dump(exclude_unset=True)
        if not isinstance(filters, model_cls):
            try:
                filters = model_cls.model_validate(dict(filters))
            except PydanticValidationError as exc:
                raise from_pydantic(exc, f"{self.collection.name} filters") from exc

        resolved = []
        for name, value in filters.model_dump(exclude_none=True).items():
            if isinstance(value, Enum):
                value = value.value
            resolved.append((self.collection.columns.get(name, name), value))
        return tuple(resolved)

    def resolve_sort(self, sort: SortInput) -> SortSpec:
        if sort is None:
            return self.collection.default_sort
        if isinstance(sort, SortSpec):
            return sort

        if isinstance(sort, str):
            name, direction = (sort[1:], "desc") if sort.startswith("-") else (sort, "asc")
        else:
            name, direction = sort
        direction = (direction or "asc").lower()
        if direction not in ("asc", "desc"):
            raise ValidationError(f"Sort direction must be 'asc' or 'desc', got {direction!r}")

        column = self.collection.columns.get(to_snake(name))
        if column is None:
            raise ValidationError(f"Cannot sort {self.collection.name} by {name!r}")
        return SortSpec(column, descending=direction == "desc")


def page_offset(page: Any, page_size: Any) -> int:
    """Zero-based offset of ``page``; both arguments must be integers >= 1."""
    for value in (page, page_size):
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise InvalidPaginationError(
                f"page and page_size must be integers >= 1 (got page={page!r}, page_size={page_size!r})"
            )
    return (page - 1) * page_size


def total_pages(total: int, page_size: int) -> int:
    """ceil(total / page_size) without float rounding."""
    return -(-total // page_size)

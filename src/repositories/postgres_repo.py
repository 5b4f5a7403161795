"""
PostgreSQL storage boundary using SQLAlchemy Core.

Executes ``QueryDescriptor`` objects and single-record writes against the
tables in ``repositories.schema``. Constraint violations surface as
``ValidationError``; other backend failures as ``TransportError`` with the
driver message preserved. Nothing is retried.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy import and_, create_engine, delete, func, insert, or_, select, update
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.pool import QueuePool, StaticPool
from sqlalchemy.sql import Select

from config.settings import Settings
from repositories.query_builder import QueryDescriptor, Relation
from repositories.schema import metadata, new_id
from utils.error_handling import NotFoundError, TransportError, ValidationError
from utils.logging_config import get_logger

logger = get_logger(__name__)

_REL_SEP = "__"


@dataclass
class QueryResult:
    rows: List[Dict[str, Any]] = field(default_factory=list)
    exact_count: int = 0


def create_store_engine(settings: Settings) -> Engine:
    """Build an engine with connection pooling suited to warm containers."""
    db_url = settings.resolve_database_url()
    if not db_url:
        raise TransportError("No database URL configured")
    if db_url.startswith("sqlite"):
        return create_engine(
            db_url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    return create_engine(
        db_url,
        poolclass=QueuePool,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=True,
        pool_recycle=300,
    )


class PostgresRepository:
    """Thin wrapper to keep SQL organized and parameterized."""

    def __init__(self, engine: Engine):
        self.engine = engine

    # Reads

    def query(self, descriptor: QueryDescriptor) -> QueryResult:
        """Run a list/count request; rows and exact count share one connection."""
        table = self._table(descriptor.collection)
        conditions = self._conditions(table, descriptor.filters)
        if descriptor.search_term and descriptor.search_columns:
            conditions.append(
                or_(
                    *(
                        self._column(table, name).icontains(descriptor.search_term, autoescape=True)
                        for name in descriptor.search_columns
                    )
                )
            )
        where = and_(*conditions) if conditions else None

        count_stmt = select(func.count()).select_from(table)
        if where is not None:
            count_stmt = count_stmt.where(where)

        with self._guard(descriptor.collection, "query"), self.engine.connect() as conn:
            total = conn.execute(count_stmt).scalar() or 0
            if descriptor.head:
                return QueryResult(rows=[], exact_count=total)

            stmt = self._select(table, descriptor.relations)
            if where is not None:
                stmt = stmt.where(where)
            if descriptor.order is not None:
                column = self._column(table, descriptor.order.column)
                stmt = stmt.order_by(
                    column.desc() if descriptor.order.descending else column.asc(),
                    table.c.id.asc(),
                )
            if descriptor.offset is not None:
                stmt = stmt.offset(descriptor.offset)
            if descriptor.limit is not None:
                stmt = stmt.limit(descriptor.limit)
            rows = [self._nest(row, descriptor.relations) for row in conn.execute(stmt)]

        logger.debug(
            "Query executed",
            extra={"collection": descriptor.collection, "rows": len(rows), "total": total},
        )
        return QueryResult(rows=rows, exact_count=total)

    def fetch_one(
        self, collection: str, record_id: str, relations: Sequence[Relation] = ()
    ) -> Optional[Dict[str, Any]]:
        """Return one row by id, or None."""
        with self._guard(collection, "fetch_one"), self.engine.connect() as conn:
            return self._fetch_by_id(conn, collection, record_id, relations)

    def sum(
        self, collection: str, column: str, filters: Sequence[Tuple[str, Any]] = ()
    ) -> float:
        """Sum a numeric column; nulls count as zero."""
        table = self._table(collection)
        stmt = select(func.coalesce(func.sum(self._column(table, column)), 0)).select_from(table)
        conditions = self._conditions(table, filters)
        if conditions:
            stmt = stmt.where(and_(*conditions))
        with self._guard(collection, "sum"), self.engine.connect() as conn:
            return float(conn.execute(stmt).scalar() or 0)

    # Writes

    def insert(
        self, collection: str, row: Mapping[str, Any], relations: Sequence[Relation] = ()
    ) -> Dict[str, Any]:
        """Insert one row and return it as stored (generated id and timestamps included)."""
        table = self._table(collection)
        values = dict(row)
        if "id" in table.c:
            values.setdefault("id", new_id())
        with self._guard(collection, "insert"), self.engine.begin() as conn:
            conn.execute(insert(table).values(**values))
            stored = self._fetch_by_id(conn, collection, values["id"], relations)
        logger.info("Record inserted", extra={"collection": collection, "record_id": values["id"]})
        return stored

    def update(
        self,
        collection: str,
        record_id: str,
        row: Mapping[str, Any],
        relations: Sequence[Relation] = (),
    ) -> Optional[Dict[str, Any]]:
        """Apply a partial update; returns None when the id does not exist."""
        table = self._table(collection)
        with self._guard(collection, "update"), self.engine.begin() as conn:
            if row:
                result = conn.execute(
                    update(table).where(table.c.id == record_id).values(**dict(row))
                )
                if result.rowcount == 0:
                    return None
            stored = self._fetch_by_id(conn, collection, record_id, relations)
        if stored is not None:
            logger.info(
                "Record updated",
                extra={"collection": collection, "record_id": record_id, "fields": sorted(row)},
            )
        return stored

    def delete(self, collection: str, record_id: str) -> bool:
        """Delete one row by id; False when nothing matched."""
        table = self._table(collection)
        with self._guard(collection, "delete"), self.engine.begin() as conn:
            result = conn.execute(delete(table).where(table.c.id == record_id))
        deleted = result.rowcount > 0
        if deleted:
            logger.info("Record deleted", extra={"collection": collection, "record_id": record_id})
        return deleted

    def delete_where(self, collection: str, filters: Sequence[Tuple[str, Any]]) -> int:
        """Delete every row matching all equality filters."""
        if not filters:
            raise ValidationError("delete_where requires at least one filter")
        table = self._table(collection)
        with self._guard(collection, "delete_where"), self.engine.begin() as conn:
            result = conn.execute(delete(table).where(and_(*self._conditions(table, filters))))
        return result.rowcount

    def delete_with_children(
        self, collection: str, record_id: str, children: Sequence[Tuple[str, str]]
    ) -> int:
        """
        Delete owned child rows and then the parent in one transaction.

        ``children`` lists (collection, foreign key) pairs. Raises
        NotFoundError, rolling the child deletes back, when the parent id
        does not exist. Returns the number of child rows removed.
        """
        table = self._table(collection)
        removed = 0
        with self._guard(collection, "delete_with_children"), self.engine.begin() as conn:
            for child_name, foreign_key in children:
                child = self._table(child_name)
                result = conn.execute(
                    delete(child).where(self._column(child, foreign_key) == record_id)
                )
                removed += result.rowcount
            if conn.execute(delete(table).where(table.c.id == record_id)).rowcount == 0:
                raise NotFoundError(f"{collection} {record_id} not found")
        logger.info(
            "Record deleted",
            extra={"collection": collection, "record_id": record_id, "children_removed": removed},
        )
        return removed

    def upsert(self, collection: str, row: Mapping[str, Any], key: str) -> Dict[str, Any]:
        """Insert or update the row identified by ``key``."""
        table = self._table(collection)
        key_column = self._column(table, key)
        values = dict(row)
        with self._guard(collection, "upsert"), self.engine.begin() as conn:
            existing = conn.execute(
                select(key_column).where(key_column == values[key])
            ).first()
            if existing is None:
                conn.execute(insert(table).values(**values))
            else:
                changes = {k: v for k, v in values.items() if k != key}
                conn.execute(update(table).where(key_column == values[key]).values(**changes))
            stored = conn.execute(select(table).where(key_column == values[key])).one()
        return dict(stored._mapping)

    # Helpers

    @contextmanager
    def _guard(self, collection: str, operation: str) -> Iterator[None]:
        try:
            yield
        except IntegrityError as exc:
            message = str(exc.orig or exc)
            logger.warning(
                "Constraint violated",
                extra={"collection": collection, "operation": operation, "error": message},
            )
            raise ValidationError(f"{collection} constraint violated: {message}") from exc
        except SQLAlchemyError as exc:
            message = str(getattr(exc, "orig", None) or exc)
            logger.error(
                "Storage call failed",
                extra={"collection": collection, "operation": operation, "error": message},
            )
            raise TransportError(message) from exc

    def _table(self, collection: str):
        try:
            return metadata.tables[collection]
        except KeyError:
            raise ValidationError(f"Unknown collection {collection!r}") from None

    def _column(self, table, name: str):
        try:
            return table.c[name]
        except KeyError:
            raise ValidationError(f"Unknown column {table.name}.{name}") from None

    def _conditions(self, table, filters: Sequence[Tuple[str, Any]]) -> list:
        return [self._column(table, name) == value for name, value in filters]

    def _select(self, table, relations: Sequence[Relation]) -> Select:
        columns = list(table.c)
        from_clause = table
        for relation in relations:
            parent = self._table(relation.name)
            from_clause = from_clause.outerjoin(
                parent, self._column(table, relation.foreign_key) == parent.c.id
            )
            columns.append(parent.c.id.label(f"{relation.name}{_REL_SEP}id"))
            columns.extend(
                self._column(parent, name).label(f"{relation.name}{_REL_SEP}{name}")
                for name in relation.fields
            )
        return select(*columns).select_from(from_clause)

    def _fetch_by_id(
        self,
        conn: Connection,
        collection: str,
        record_id: str,
        relations: Sequence[Relation],
    ) -> Optional[Dict[str, Any]]:
        table = self._table(collection)
        stmt = self._select(table, relations).where(table.c.id == record_id)
        row = conn.execute(stmt).first()
        return self._nest(row, relations) if row else None

    @staticmethod
    def _nest(row, relations: Sequence[Relation]) -> Dict[str, Any]:
        """Fold ``customers__first_name`` style labels into a nested dict."""
        data = dict(row._mapping)
        for relation in relations:
            prefix = f"{relation.name}{_REL_SEP}"
            parent_id = data.pop(f"{prefix}id", None)
            nested = {name: data.pop(f"{prefix}{name}", None) for name in relation.fields}
            data[relation.name] = nested if parent_id is not None else None
        return data

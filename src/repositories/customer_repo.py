"""Customer repository."""

from __future__ import annotations

from typing import Iterator, Optional

from config.settings import Settings
from models.customer import Customer, CustomerCreate, CustomerFilters, CustomerUpdate
from repositories.base import Payload, RecordRepository, validate_payload
from repositories.mapper import customer_mapper
from repositories.postgres_repo import PostgresRepository
from repositories.query_builder import CollectionSpec, QueryDescriptor, SortSpec
from utils.cache_service import MembershipCache
from utils.error_handling import DependentRecordsError, ValidationError
from utils.logging_config import get_logger

logger = get_logger(__name__)

# Collections holding a customer_id reference back to customers.
DEPENDENT_COLLECTIONS = ("interactions", "support_tickets", "segment_memberships")


class CustomerRepository(RecordRepository[Customer]):
    """Customers plus the scans and aggregates segmentation and stats need."""

    collection = CollectionSpec(
        name="customers",
        filter_model=CustomerFilters,
        columns=customer_mapper.columns,
        search_columns=("first_name", "last_name", "email", "company"),
    )
    mapper = customer_mapper
    create_model = CustomerCreate
    update_model = CustomerUpdate
    entity_name = "Customer"

    def __init__(
        self,
        store: PostgresRepository,
        settings: Settings,
        membership_cache: Optional[MembershipCache] = None,
    ):
        super().__init__(store, settings)
        self.membership_cache = membership_cache

    def create(self, payload: Payload) -> Customer:
        validated = validate_payload(self.create_model, payload, self.entity_name)
        self._ensure_email_free(validated.email)
        customer = super().create(validated)
        self._changed()
        return customer

    def update(self, record_id: str, payload: Payload) -> Customer:
        validated = validate_payload(self.update_model, payload, self.entity_name)
        if "email" in validated.model_fields_set:
            self._ensure_email_free(validated.email, record_id)
        customer = super().update(record_id, validated)
        self._changed()
        return customer

    def delete(self, record_id: str) -> bool:
        """Delete a customer that nothing references any more."""
        blocking = {
            name: count for name, count in self.dependents(record_id).items() if count
        }
        if blocking:
            summary = ", ".join(f"{count} {name}" for name, count in blocking.items())
            raise DependentRecordsError(
                f"Customer {record_id} is still referenced by {summary}"
            )
        deleted = super().delete(record_id)
        self._changed()
        return deleted

    def dependents(self, record_id: str) -> dict:
        """Count referencing rows per dependent collection."""
        return {
            name: self.store.query(
                QueryDescriptor(collection=name, filters=(("customer_id", record_id),), head=True)
            ).exact_count
            for name in DEPENDENT_COLLECTIONS
        }

    def iter_all(self, batch_size: Optional[int] = None) -> Iterator[Customer]:
        """Yield every customer, oldest first, one page per storage call."""
        batch_size = batch_size or self.settings.customer_batch_size
        page = 1
        while True:
            result = self.list(
                page=page, page_size=batch_size, sort=SortSpec("created_at", descending=False)
            )
            yield from result.items
            if page >= result.total_pages:
                return
            page += 1

    def total_value(self) -> float:
        """Sum of customer value; missing values count as zero."""
        return self.store.sum(self.collection.name, "value")

    def _ensure_email_free(self, email: str, record_id: Optional[str] = None) -> None:
        """Reject an email already held by another customer."""
        result = self.store.query(
            QueryDescriptor(collection=self.collection.name, filters=(("email", email),))
        )
        if any(row["id"] != record_id for row in result.rows):
            raise ValidationError(f"Customer email {email!r} is already in use")

    def _changed(self) -> None:
        if self.membership_cache is not None:
            self.membership_cache.invalidate()
            logger.debug("Segment membership cache invalidated")

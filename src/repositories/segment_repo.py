"""Segment and segment membership repository."""

from __future__ import annotations

from typing import Iterable, List, Set, Tuple

from models.segment import Segment, SegmentCreate, SegmentFilters, SegmentUpdate
from repositories.base import RecordRepository
from repositories.mapper import membership_mapper, segment_mapper
from repositories.query_builder import CollectionSpec, QueryDescriptor
from utils.error_handling import NotFoundError
from utils.logging_config import get_logger

logger = get_logger(__name__)

MEMBERSHIPS = "segment_memberships"


class SegmentRepository(RecordRepository[Segment]):
    """Segment definitions and their stored membership rows."""

    collection = CollectionSpec(
        name="customer_segments",
        filter_model=SegmentFilters,
        columns=segment_mapper.columns,
        search_columns=("name", "description"),
    )
    mapper = segment_mapper
    create_model = SegmentCreate
    update_model = SegmentUpdate
    entity_name = "Segment"

    def delete(self, record_id: str) -> bool:
        try:
            self.store.delete_with_children(
                self.collection.name, record_id, ((MEMBERSHIPS, "segment_id"),)
            )
        except NotFoundError:
            raise NotFoundError(f"Segment {record_id} not found") from None
        return True

    def members(self, segment_id: str) -> Set[str]:
        """Customer ids currently stored as members of the segment."""
        result = self.store.query(
            QueryDescriptor(collection=MEMBERSHIPS, filters=(("segment_id", segment_id),))
        )
        return {membership_mapper.to_domain(row).customer_id for row in result.rows}

    def replace_members(self, segment_id: str, customer_ids: Iterable[str]) -> Tuple[int, int]:
        """Make the stored membership equal ``customer_ids``; returns (added, removed)."""
        target = set(customer_ids)
        current = self.members(segment_id)
        to_add: List[str] = sorted(target - current)
        to_remove: List[str] = sorted(current - target)

        for customer_id in to_remove:
            self.store.delete_where(
                MEMBERSHIPS, (("segment_id", segment_id), ("customer_id", customer_id))
            )
        for customer_id in to_add:
            self.store.insert(
                MEMBERSHIPS,
                membership_mapper.to_storage(
                    {"customer_id": customer_id, "segment_id": segment_id}
                ),
            )

        logger.info(
            "Segment membership replaced",
            extra={"segment_id": segment_id, "added": len(to_add), "removed": len(to_remove)},
        )
        return len(to_add), len(to_remove)

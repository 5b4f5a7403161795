"""Interaction repository."""

from typing import Optional

from models.interaction import (
    Interaction,
    InteractionCreate,
    InteractionFilters,
    InteractionUpdate,
)
from models.response import Page
from repositories.base import RecordRepository
from repositories.mapper import interaction_mapper
from repositories.query_builder import CUSTOMER_DISPLAY, CollectionSpec, SortSpec


class InteractionRepository(RecordRepository[Interaction]):
    """Interactions, listed newest first with the customer's display fields joined."""

    collection = CollectionSpec(
        name="interactions",
        filter_model=InteractionFilters,
        columns=interaction_mapper.columns,
        search_columns=("subject", "notes", "channel"),
        relations=(CUSTOMER_DISPLAY,),
        default_sort=SortSpec("date"),
    )
    mapper = interaction_mapper
    create_model = InteractionCreate
    update_model = InteractionUpdate
    entity_name = "Interaction"

    def list_for_customer(
        self, customer_id: str, page: int = 1, page_size: Optional[int] = None
    ) -> Page:
        return self.list(page=page, page_size=page_size, filters={"customer_id": customer_id})

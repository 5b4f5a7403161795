"""Support ticket and ticket response repository."""

from __future__ import annotations

from typing import List

from models.ticket import (
    SupportTicket,
    TicketCreate,
    TicketFilters,
    TicketResponse,
    TicketResponseCreate,
    TicketUpdate,
)
from repositories.base import Payload, RecordRepository, validate_payload
from repositories.mapper import ticket_mapper, ticket_response_mapper
from repositories.query_builder import CUSTOMER_DISPLAY, CollectionSpec, QueryDescriptor, SortSpec
from utils.error_handling import NotFoundError
from utils.logging_config import get_logger

logger = get_logger(__name__)

RESPONSES = "ticket_responses"


class TicketRepository(RecordRepository[SupportTicket]):
    """Tickets own their responses; a ticket read includes them oldest first."""

    collection = CollectionSpec(
        name="support_tickets",
        filter_model=TicketFilters,
        columns=ticket_mapper.columns,
        search_columns=("title", "description", "category"),
        relations=(CUSTOMER_DISPLAY,),
    )
    mapper = ticket_mapper
    create_model = TicketCreate
    update_model = TicketUpdate
    entity_name = "Ticket"

    def get(self, record_id: str) -> SupportTicket:
        ticket = super().get(record_id)
        ticket.responses = self._responses(record_id)
        return ticket

    def delete(self, record_id: str) -> bool:
        """Delete the ticket and its responses together, or neither."""
        try:
            removed = self.store.delete_with_children(
                self.collection.name, record_id, ((RESPONSES, "ticket_id"),)
            )
        except NotFoundError:
            raise NotFoundError(f"Ticket {record_id} not found") from None
        logger.info(
            "Ticket deleted",
            extra={"ticket_id": record_id, "responses_removed": removed},
        )
        return True

    def list_responses(self, ticket_id: str) -> List[TicketResponse]:
        self._require(ticket_id)
        return self._responses(ticket_id)

    def add_response(self, ticket_id: str, payload: Payload) -> TicketResponse:
        validated = validate_payload(TicketResponseCreate, payload, "TicketResponse")
        self._require(ticket_id)
        row = ticket_response_mapper.to_storage(validated, partial=False)
        row["ticket_id"] = ticket_id
        return ticket_response_mapper.to_domain(self.store.insert(RESPONSES, row))

    def _responses(self, ticket_id: str) -> List[TicketResponse]:
        result = self.store.query(
            QueryDescriptor(
                collection=RESPONSES,
                filters=(("ticket_id", ticket_id),),
                order=SortSpec("created_at", descending=False),
            )
        )
        return [ticket_response_mapper.to_domain(row) for row in result.rows]

    def _require(self, ticket_id: str) -> None:
        if self.store.fetch_one(self.collection.name, ticket_id) is None:
            raise NotFoundError(f"Ticket {ticket_id} not found")

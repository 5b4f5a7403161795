"""Support ticket models."""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from models.base import DomainModel, FilterModel, InputModel
from models.enums import Priority, TicketStatus


class TicketResponse(DomainModel):
    """A reply posted on a ticket."""

    id: Optional[str] = None
    ticket_id: str
    author: str
    message: str
    created_at: Optional[datetime] = None


class SupportTicket(DomainModel):
    """Support request raised by a customer."""

    id: Optional[str] = None
    customer_id: str
    customer_name: str = "Unknown"
    customer_company: Optional[str] = None
    title: str
    description: Optional[str] = None
    priority: Priority = Priority.MEDIUM
    status: TicketStatus = TicketStatus.OPEN
    category: str
    assigned_to: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    responses: List[TicketResponse] = Field(default_factory=list)


class TicketCreate(InputModel):
    """Payload accepted by TicketRepository.create."""

    customer_id: str
    title: str
    description: Optional[str] = None
    priority: Priority = Priority.MEDIUM
    status: TicketStatus = TicketStatus.OPEN
    category: str
    assigned_to: Optional[str] = None

    non_nullable = ("customer_id", "title", "category")


class TicketUpdate(InputModel):
    """Partial ticket update."""

    title: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[Priority] = None
    status: Optional[TicketStatus] = None
    category: Optional[str] = None
    assigned_to: Optional[str] = None

    non_nullable = ("title", "priority", "status", "category")


class TicketResponseCreate(InputModel):
    """Payload for posting a reply on a ticket."""

    author: str
    message: str

    non_nullable = ("author", "message")


class TicketFilters(FilterModel):
    """Exact-match filters accepted by ticket listings."""

    status: Optional[TicketStatus] = None
    priority: Optional[Priority] = None
    customer_id: Optional[str] = None
    category: Optional[str] = None

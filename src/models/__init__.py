"""Pydantic domain models, input payloads and response wrappers."""

from models.customer import (  # noqa: F401
    Address,
    Customer,
    CustomerCreate,
    CustomerFilters,
    CustomerUpdate,
)
from models.enums import (  # noqa: F401
    CustomerStatus,
    InteractionType,
    Operator,
    Outcome,
    Priority,
    TicketStatus,
)
from models.interaction import (  # noqa: F401
    Interaction,
    InteractionCreate,
    InteractionFilters,
    InteractionUpdate,
)
from models.response import DashboardStats, Page  # noqa: F401
from models.segment import (  # noqa: F401
    Membership,
    MembershipSyncResult,
    Rule,
    Segment,
    SegmentCreate,
    SegmentFilters,
    SegmentPreview,
    SegmentUpdate,
)
from models.ticket import (  # noqa: F401
    SupportTicket,
    TicketCreate,
    TicketFilters,
    TicketResponse,
    TicketResponseCreate,
    TicketUpdate,
)

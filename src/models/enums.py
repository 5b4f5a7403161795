"""Closed enumerations shared by mapping, validation and segmentation."""

from enum import Enum


class CustomerStatus(str, Enum):
    """Lifecycle stage of a customer."""

    ACTIVE = "Active"
    INACTIVE = "Inactive"
    PROSPECT = "Prospect"
    QUALIFIED = "Qualified"


class InteractionType(str, Enum):
    """How an interaction took place."""

    EMAIL = "Email"
    PHONE = "Phone"
    MEETING = "Meeting"
    CHAT = "Chat"
    SOCIAL = "Social"


class Outcome(str, Enum):
    """Result of an interaction."""

    POSITIVE = "Positive"
    NEUTRAL = "Neutral"
    NEGATIVE = "Negative"


class Priority(str, Enum):
    """Support ticket priority."""

    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class TicketStatus(str, Enum):
    """Support ticket workflow state."""

    OPEN = "Open"
    IN_PROGRESS = "In Progress"
    RESOLVED = "Resolved"
    CLOSED = "Closed"


class Operator(str, Enum):
    """Comparison operators available to segment rules."""

    EQ = "eq"
    NE = "ne"
    GT = "gt"
    LT = "lt"
    CONTAINS = "contains"

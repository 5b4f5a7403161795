"""Dashboard statistics built from repository count and sum queries."""

from dataclasses import dataclass

from models.enums import CustomerStatus, TicketStatus
from models.response import DashboardStats
from repositories.customer_repo import CustomerRepository
from repositories.interaction_repo import InteractionRepository
from repositories.ticket_repo import TicketRepository
from utils.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class StatsService:
    """Summary numbers for the dashboard; no full-table fetches."""

    customers: CustomerRepository
    interactions: InteractionRepository
    tickets: TicketRepository

    def get_stats(self) -> DashboardStats:
        total_customers = self.customers.count()
        total_revenue = self.customers.total_value()
        stats = DashboardStats(
            total_customers=total_customers,
            active_customers=self.customers.count({"status": CustomerStatus.ACTIVE}),
            total_interactions=self.interactions.count(),
            open_tickets=self.tickets.count({"status": TicketStatus.OPEN}),
            total_revenue=total_revenue,
            avg_customer_value=total_revenue / total_customers if total_customers > 0 else 0,
        )
        logger.info("Stats computed", extra=stats.model_dump())
        return stats

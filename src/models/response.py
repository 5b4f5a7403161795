"""Response wrappers returned to the presentation layer."""

from typing import Any, List

from pydantic import ConfigDict, Field

from models.base import DomainModel


class Page(DomainModel):
    """One page of a listing; serialises as ``{data, total, page, pageSize, totalPages}``."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=None)

    items: List[Any] = Field(default_factory=list, alias="data")
    total: int
    page: int
    page_size: int = Field(alias="pageSize")
    total_pages: int = Field(alias="totalPages")


class DashboardStats(DomainModel):
    """Flat numeric summary for the dashboard."""

    total_customers: int = 0
    active_customers: int = 0
    total_interactions: int = 0
    open_tickets: int = 0
    total_revenue: float = 0
    avg_customer_value: float = 0

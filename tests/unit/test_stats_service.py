"""Dashboard statistics."""

from unittest.mock import MagicMock

import pytest

from models.enums import CustomerStatus, TicketStatus
from services.stats_service import StatsService


def test_empty_store_returns_zeros(services):
    stats = services.stats_service.get_stats()

    assert stats.total_customers == 0
    assert stats.active_customers == 0
    assert stats.total_interactions == 0
    assert stats.open_tickets == 0
    assert stats.total_revenue == 0
    assert stats.avg_customer_value == 0


def test_populated_store(services, seeded):
    ann, bob = seeded[0], seeded[1]
    services.interactions.create(
        {"customerId": ann.id, "type": "Meeting", "channel": "zoom", "subject": "QBR"}
    )
    services.tickets.create({"customerId": bob.id, "title": "Login", "category": "Access"})
    services.tickets.create(
        {"customerId": bob.id, "title": "Invoice", "category": "Billing", "status": "Resolved"}
    )

    stats = services.stats_service.get_stats()

    assert stats.total_customers == 5
    assert stats.active_customers == 2
    assert stats.total_interactions == 1
    assert stats.open_tickets == 1
    assert stats.total_revenue == pytest.approx(151000)
    assert stats.avg_customer_value == pytest.approx(30200)


def test_serialises_camel_case(services, seeded):
    payload = services.stats_service.get_stats().model_dump(by_alias=True)
    assert set(payload) == {
        "totalCustomers",
        "activeCustomers",
        "totalInteractions",
        "openTickets",
        "totalRevenue",
        "avgCustomerValue",
    }


def test_uses_count_queries_only():
    customers = MagicMock()
    customers.count.side_effect = lambda filters=None: 4 if filters is None else 1
    customers.total_value.return_value = 1000.0
    interactions = MagicMock()
    interactions.count.return_value = 7
    tickets = MagicMock()
    tickets.count.return_value = 3

    stats = StatsService(customers, interactions, tickets).get_stats()

    customers.count.assert_any_call({"status": CustomerStatus.ACTIVE})
    tickets.count.assert_called_once_with({"status": TicketStatus.OPEN})
    customers.list.assert_not_called()
    assert stats.avg_customer_value == 250.0

"""Wire the store, repositories and services from one Settings object."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.engine import Engine

from config.settings import Settings
from repositories.admin_settings_repo import AdminSettingsRepository
from repositories.customer_repo import CustomerRepository
from repositories.interaction_repo import InteractionRepository
from repositories.postgres_repo import PostgresRepository, create_store_engine
from repositories.segment_repo import SegmentRepository
from repositories.ticket_repo import TicketRepository
from services.segmentation_service import SegmentService
from services.stats_service import StatsService
from utils.cache_service import MembershipCache


@dataclass
class ServiceContainer:
    """Everything a request handler needs, sharing one engine and one cache."""

    settings: Settings
    store: PostgresRepository
    customers: CustomerRepository
    interactions: InteractionRepository
    tickets: TicketRepository
    segments: SegmentRepository
    admin_settings: AdminSettingsRepository
    segment_service: SegmentService
    stats_service: StatsService

    @classmethod
    def from_settings(cls, settings: Settings, engine: Optional[Engine] = None) -> "ServiceContainer":
        store = PostgresRepository(engine or create_store_engine(settings))
        cache = MembershipCache(
            max_size=settings.cache_max_size, ttl_seconds=settings.cache_ttl_seconds
        )
        customers = CustomerRepository(store, settings, membership_cache=cache)
        interactions = InteractionRepository(store, settings)
        tickets = TicketRepository(store, settings)
        segments = SegmentRepository(store, settings)
        return cls(
            settings=settings,
            store=store,
            customers=customers,
            interactions=interactions,
            tickets=tickets,
            segments=segments,
            admin_settings=AdminSettingsRepository(store),
            segment_service=SegmentService(customers, segments, cache=cache),
            stats_service=StatsService(customers, interactions, tickets),
        )

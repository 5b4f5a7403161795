"""
Pytest configuration and shared fixtures.

src/ is put on sys.path so imports like ``from repositories.mapper import ...``
work exactly as they do in the deployed Lambda, where src/ is the package
root. Repository tests run against an in-memory SQLite database built from
the same SQLAlchemy metadata used in production.
"""

import os
import sys
from pathlib import Path

import pytest


def _ensure_paths_on_sys_path() -> None:
    """Add src/ to sys.path if missing."""
    src_root = Path(__file__).resolve().parents[1] / "src"
    src_str = str(src_root)
    if src_str not in sys.path:
        sys.path.insert(0, src_str)


_ensure_paths_on_sys_path()

# Offline-friendly defaults so nothing reaches AWS or a real database.
os.environ.setdefault("AWS_REGION", "eu-west-2")
os.environ.setdefault("AWS_DEFAULT_REGION", "eu-west-2")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "test")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "test")
os.environ.setdefault("ENVIRONMENT", "dev")
os.environ.setdefault("DATABASE_URL", "sqlite://")


@pytest.fixture
def settings():
    from config.settings import Settings

    return Settings(database_url="sqlite://", default_page_size=10, customer_batch_size=3)


@pytest.fixture
def engine():
    from sqlalchemy import create_engine
    from sqlalchemy.pool import StaticPool

    from repositories.schema import metadata

    eng = create_engine(
        "sqlite://", poolclass=StaticPool, connect_args={"check_same_thread": False}
    )
    metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def services(settings, engine):
    from services.container import ServiceContainer

    return ServiceContainer.from_settings(settings, engine=engine)


@pytest.fixture
def customer_payload():
    return {
        "firstName": "Ann",
        "lastName": "Lee",
        "email": "a@x.com",
        "status": "Prospect",
        "value": 0,
    }


@pytest.fixture
def seeded(services):
    """A handful of customers spanning statuses, values and industries."""
    rows = [
        dict(firstName="Ann", lastName="Lee", email="ann@bigtech.io", company="BigTech Inc",
             industry="Technology", status="Active", value=75000, tags=["vip", "renewal"]),
        dict(firstName="Bob", lastName="Stone", email="bob@finance.co", company="Finance Co",
             industry="Finance", status="Active", value=20000),
        dict(firstName="Cara", lastName="Ng", email="cara@techstart.dev", company="TechStart",
             industry="Technology", status="Prospect", value=5000),
        dict(firstName="Dan", lastName="Ortiz", email="dan@retail.shop", company="Retail Shop",
             industry="Retail", status="Inactive", value=0),
        dict(firstName="Eve", lastName="Park", email="eve@health.org", company=None,
             industry="Healthcare", status="Qualified", value=51000),
    ]
    return [services.customers.create(row) for row in rows]

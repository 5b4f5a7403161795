"""Settings loading and database URL resolution."""

import json
from unittest.mock import MagicMock, patch

from config.settings import Settings


def test_from_environment_reads_overrides(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "staging")
    monkeypatch.setenv("DATABASE_URL", "postgresql+psycopg2://u:p@db:5432/crm")
    monkeypatch.setenv("DEFAULT_PAGE_SIZE", "25")
    monkeypatch.setenv("CUSTOMER_BATCH_SIZE", "50")

    settings = Settings.from_environment()

    assert settings.environment == "staging"
    assert settings.database_url == "postgresql+psycopg2://u:p@db:5432/crm"
    assert settings.default_page_size == 25
    assert settings.customer_batch_size == 50
    assert settings.db_pool_size == 1


def test_prod_uses_larger_pool(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "prod")
    settings = Settings.from_environment()
    assert (settings.db_pool_size, settings.db_max_overflow) == (5, 10)


def test_database_url_wins_over_secret():
    settings = Settings(database_url="sqlite://", db_secret_arn="arn:secret")
    with patch("config.settings.boto3") as mock_boto3:
        assert settings.resolve_database_url() == "sqlite://"
    mock_boto3.client.assert_not_called()


def test_secret_fallback_builds_postgres_url():
    secret = {"host": "db.internal", "port": 5433, "username": "crm", "password": "pw", "dbname": "crm"}
    client = MagicMock()
    client.get_secret_value.return_value = {"SecretString": json.dumps(secret)}

    with patch("config.settings.boto3") as mock_boto3:
        mock_boto3.client.return_value = client
        url = Settings(db_secret_arn="arn:secret", aws_region="eu-west-1").resolve_database_url()

    mock_boto3.client.assert_called_once_with("secretsmanager", region_name="eu-west-1")
    assert url == "postgresql+psycopg2://crm:pw@db.internal:5433/crm"


def test_incomplete_secret_returns_none():
    client = MagicMock()
    client.get_secret_value.return_value = {"SecretString": json.dumps({"host": "db"})}

    with patch("config.settings.boto3") as mock_boto3:
        mock_boto3.client.return_value = client
        assert Settings(db_secret_arn="arn:secret").resolve_database_url() is None


def test_nothing_configured_returns_none():
    assert Settings().resolve_database_url() is None

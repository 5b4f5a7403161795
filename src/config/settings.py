"""
Environment-specific configuration settings.

A ``Settings`` instance is built once by the entrypoint and passed explicitly
into the store, repositories and services.
"""

from dataclasses import dataclass
import json
import os
from typing import Optional

import boto3

from utils.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class Settings:
    """Application settings with development-friendly defaults."""

    # Environment
    environment: str = "dev"
    aws_region: str = "eu-west-2"

    # Database Configuration
    database_url: Optional[str] = None
    db_secret_arn: Optional[str] = None
    db_pool_size: int = 1
    db_max_overflow: int = 2

    # Listing
    default_page_size: int = 10
    customer_batch_size: int = 200  # page size used when scanning customers for segments

    # Cache Configuration
    cache_ttl_seconds: int = 300
    cache_max_size: int = 128

    @classmethod
    def from_environment(cls) -> "Settings":
        """Load settings from environment variables."""
        env = os.environ.get("ENVIRONMENT", "dev")
        common = dict(
            environment=env,
            aws_region=os.environ.get("AWS_REGION", "eu-west-2"),
            database_url=os.environ.get("DATABASE_URL"),
            db_secret_arn=os.environ.get("DB_SECRET_ARN"),
            default_page_size=int(os.environ.get("DEFAULT_PAGE_SIZE", "10")),
            customer_batch_size=int(os.environ.get("CUSTOMER_BATCH_SIZE", "200")),
            cache_ttl_seconds=int(os.environ.get("CACHE_TTL_SECONDS", "300")),
            cache_max_size=int(os.environ.get("CACHE_MAX_SIZE", "128")),
        )

        # Production overrides
        if env == "prod":
            return cls(db_pool_size=5, db_max_overflow=10, **common)

        return cls(**common)

    def resolve_database_url(self) -> Optional[str]:
        """Return the configured URL, falling back to an RDS secret."""
        if self.database_url:
            return self.database_url
        if self.db_secret_arn:
            return _secret_to_db_url(self.db_secret_arn, self.aws_region)
        logger.warning("DATABASE_URL not set and no DB secret configured")
        return None


def _secret_to_db_url(secret_arn: str, region: str) -> Optional[str]:
    """Build a SQLAlchemy URL from an RDS secret."""
    sm = boto3.client("secretsmanager", region_name=region)
    secret = json.loads(sm.get_secret_value(SecretId=secret_arn)["SecretString"])
    host = secret.get("host")
    port = secret.get("port", 5432)
    username = secret.get("username")
    password = secret.get("password")
    dbname = secret.get("dbname", "postgres")
    if not (host and username and password):
        logger.warning("DB secret is missing host or credentials", extra={"secret_arn": secret_arn})
        return None
    return f"postgresql+psycopg2://{username}:{password}@{host}:{port}/{dbname}"

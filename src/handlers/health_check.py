"""Health check handler; ``?deep=true`` also round-trips to the database."""

import os
import json
from datetime import datetime, timezone

from utils.error_handling import TransportError
from utils.logging_config import get_logger

from . import records

logger = get_logger(__name__)


def lambda_handler(event, context):
    """Return 200 when alive, 503 when a deep check cannot reach storage."""
    params = (event or {}).get("queryStringParameters") or {}
    body = {
        "status": "ok",
        "environment": os.environ.get("ENVIRONMENT", "dev"),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    status = 200

    if str(params.get("deep", "")).lower() == "true":
        try:
            body["customers"] = records._get_services().customers.count()
            body["database"] = "ok"
        except TransportError as exc:
            logger.error("Deep health check failed", extra={"error": exc.message})
            body["status"] = "degraded"
            body["database"] = exc.message
            status = 503

    return {
        "statusCode": status,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body),
    }

"""
Single entrypoint Lambda that routes HTTP API requests to thin handler modules.

Path parameters captured by the route patterns are merged into
``event["pathParameters"]`` before delegating.
"""

from typing import Callable, Dict, Optional, Tuple
import json
import re

from . import health_check, records


def _response(status: int, body: Dict) -> Dict:
    """Format a JSON API Gateway HTTP API response."""
    return {
        "statusCode": status,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body),
    }


def lambda_handler(event, context):
    """
    Entry point invoked by API Gateway HTTP API.

    Routes are matched in order; the first pattern whose method and path
    match wins.
    """
    method = event.get("requestContext", {}).get("http", {}).get("method", "").upper()
    path = event.get("requestContext", {}).get("http", {}).get("path", "").rstrip("/") or "/"

    # Built per call so handler functions can be swapped in tests.
    route_table: Tuple[Tuple[Optional[str], str, Callable], ...] = (
        ("GET", r"/health", health_check.lambda_handler),
        ("GET", r"/stats", records.stats_handler),
        ("POST", r"/segments/preview", records.segment_preview_handler),
        ("GET", r"/segments/(?P<id>[^/]+)/members", records.segment_members_handler),
        ("POST", r"/segments/(?P<id>[^/]+)/sync", records.segment_sync_handler),
        ("GET", r"/tickets/(?P<id>[^/]+)/responses", records.ticket_responses_handler),
        ("POST", r"/tickets/(?P<id>[^/]+)/responses", records.ticket_responses_handler),
        (
            None,
            r"/(?P<collection>customers|interactions|tickets|segments)(?:/(?P<id>[^/]+))?",
            records.lambda_handler,
        ),
    )

    for route_method, pattern, handler in route_table:
        if route_method not in (None, method):
            continue
        match = re.fullmatch(pattern, path)
        if match:
            params = dict(event.get("pathParameters") or {})
            params.update({k: v for k, v in match.groupdict().items() if v is not None})
            return handler({**event, "pathParameters": params}, context)

    return _response(404, {"message": "Route not found", "route": f"{method} {path}"})

"""Handlers for the record collections, segments and dashboard stats."""

from __future__ import annotations

import json
from functools import wraps
from typing import Any, Dict, Optional

from utils.error_handling import AppError, InvalidPaginationError, ValidationError, to_response
from utils.logging_config import get_logger

logger = get_logger(__name__)

# Lazy-loaded container to avoid import-time DB connections
_services: Optional["ServiceContainer"] = None

_PAGE_KEYS = ("page", "pageSize", "page_size", "search", "sort")


def _get_services():
    """Lazy-load the ServiceContainer from environment settings."""
    global _services
    if _services is None:
        from config.settings import Settings
        from services.container import ServiceContainer
        _services = ServiceContainer.from_settings(Settings.from_environment())
    return _services


def _dump(value: Any) -> Any:
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, (list, tuple)):
        return [_dump(item) for item in value]
    return value


def _json(status: int, payload: Any) -> Dict:
    return {
        "statusCode": status,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(_dump(payload)),
    }


def _body(event) -> Dict[str, Any]:
    try:
        payload = json.loads(event.get("body") or "{}")
    except json.JSONDecodeError as exc:
        raise ValidationError(f"Request body is not valid JSON: {exc.msg}") from exc
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


def _int(value: Any, name: str) -> Optional[int]:
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidPaginationError(f"{name} must be an integer, got {value!r}") from None


def _listing_args(event) -> Dict[str, Any]:
    params = dict(event.get("queryStringParameters") or {})
    page = _int(params.get("page"), "page")
    return {
        "page": 1 if page is None else page,
        "page_size": _int(params.get("pageSize") or params.get("page_size"), "pageSize"),
        "search": params.get("search"),
        "sort": params.get("sort") or None,
        "filters": {k: v for k, v in params.items() if k not in _PAGE_KEYS},
    }


def _handles_errors(func):
    """Map typed core errors onto their HTTP status codes."""

    @wraps(func)
    def wrapper(event, context):
        try:
            return func(event, context)
        except AppError as exc:
            logger.warning(
                "Request failed",
                extra={"error": type(exc).__name__, "detail": exc.message},
            )
            return to_response(exc)

    return wrapper


@_handles_errors
def lambda_handler(event, context):
    """CRUD for /customers, /interactions, /tickets and /segments."""
    method = event.get("requestContext", {}).get("http", {}).get("method", "").upper()
    params = event.get("pathParameters") or {}
    collection = params.get("collection")
    record_id = params.get("id")
    services = _get_services()

    if collection == "segments":
        return _segments(services.segment_service, method, record_id, event)

    repo = {
        "customers": services.customers,
        "interactions": services.interactions,
        "tickets": services.tickets,
    }.get(collection)
    if repo is None:
        return _json(404, {"message": f"Unknown collection {collection!r}"})

    if record_id is None:
        if method == "GET":
            return _json(200, repo.list(**_listing_args(event)))
        if method == "POST":
            return _json(201, repo.create(_body(event)))
    else:
        if method == "GET":
            return _json(200, repo.get(record_id))
        if method in ("PATCH", "PUT"):
            return _json(200, repo.update(record_id, _body(event)))
        if method == "DELETE":
            return _json(200, {"success": repo.delete(record_id)})
    return _json(405, {"message": f"{method} not allowed"})


def _segments(segment_service, method: str, segment_id: Optional[str], event) -> Dict:
    if segment_id is None:
        if method == "GET":
            args = _listing_args(event)
            return _json(
                200,
                segment_service.list_segments(
                    page=args["page"], page_size=args["page_size"], search=args["search"]
                ),
            )
        if method == "POST":
            return _json(201, segment_service.create_segment(_body(event)))
    else:
        if method == "GET":
            return _json(200, segment_service.get_segment(segment_id))
        if method in ("PATCH", "PUT"):
            return _json(200, segment_service.update_segment(segment_id, _body(event)))
        if method == "DELETE":
            return _json(200, {"success": segment_service.delete_segment(segment_id)})
    return _json(405, {"message": f"{method} not allowed"})


@_handles_errors
def stats_handler(event, context):
    """GET /stats."""
    return _json(200, _get_services().stats_service.get_stats())


@_handles_errors
def segment_preview_handler(event, context):
    """POST /segments/preview with ``{"rules": [...]}``."""
    body = _body(event)
    sample_size = _int(body.get("sampleSize"), "sampleSize") or 5
    return _json(
        200, _get_services().segment_service.preview(body.get("rules") or [], sample_size)
    )


@_handles_errors
def segment_members_handler(event, context):
    """GET /segments/{id}/members."""
    segment_id = event["pathParameters"]["id"]
    return _json(200, _get_services().segment_service.members(segment_id))


@_handles_errors
def segment_sync_handler(event, context):
    """POST /segments/{id}/sync."""
    segment_id = event["pathParameters"]["id"]
    return _json(200, _get_services().segment_service.sync_membership(segment_id))


@_handles_errors
def ticket_responses_handler(event, context):
    """GET or POST /tickets/{id}/responses."""
    ticket_id = event["pathParameters"]["id"]
    tickets = _get_services().tickets
    method = event.get("requestContext", {}).get("http", {}).get("method", "").upper()
    if method == "POST":
        return _json(201, tickets.add_response(ticket_id, _body(event)))
    return _json(200, tickets.list_responses(ticket_id))

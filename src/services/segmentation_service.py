"""
Customer segmentation.

``SegmentationEngine`` evaluates flat-AND rule lists against customers with
no state of its own. ``SegmentService`` feeds it every stored customer,
caches results in an explicit ``MembershipCache`` and keeps segment records
and their membership rows in step.

Membership is a full scan, O(customers x rules). That is fine for the
current data volume; larger customer bases need the rules pushed down into a
filtered count query instead.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional, Sequence, Set

from pydantic.alias_generators import to_snake

from models.customer import Customer
from models.enums import Operator
from models.response import Page
from models.segment import (
    MembershipSyncResult,
    Rule,
    Segment,
    SegmentCreate,
    SegmentPreview,
    SegmentUpdate,
)
from repositories.base import Payload, validate_payload
from repositories.customer_repo import CustomerRepository
from repositories.segment_repo import SegmentRepository
from utils.cache_service import MembershipCache
from utils.error_handling import TypeMismatchError, ValidationError
from utils.logging_config import get_logger

logger = get_logger(__name__)


class FieldKind(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    TAGS = "tags"


@dataclass(frozen=True)
class FieldDefinition:
    """A customer attribute that rules may reference."""

    name: str
    kind: FieldKind
    getter: Callable[[Customer], Any]


def _attr(name: str) -> Callable[[Customer], Any]:
    return lambda customer: getattr(customer, name)


def _address(part: str) -> Callable[[Customer], Any]:
    return lambda customer: getattr(customer.address, part) if customer.address else None


FIELDS: Dict[str, FieldDefinition] = {
    definition.name: definition
    for definition in (
        FieldDefinition("first_name", FieldKind.TEXT, _attr("first_name")),
        FieldDefinition("last_name", FieldKind.TEXT, _attr("last_name")),
        FieldDefinition("name", FieldKind.TEXT, lambda c: c.full_name),
        FieldDefinition("email", FieldKind.TEXT, _attr("email")),
        FieldDefinition("phone", FieldKind.TEXT, _attr("phone")),
        FieldDefinition("company", FieldKind.TEXT, _attr("company")),
        FieldDefinition("industry", FieldKind.TEXT, _attr("industry")),
        FieldDefinition("status", FieldKind.TEXT, _attr("status")),
        FieldDefinition("value", FieldKind.NUMBER, _attr("value")),
        FieldDefinition("tags", FieldKind.TAGS, _attr("tags")),
        FieldDefinition("created_at", FieldKind.DATE, _attr("created_at")),
        FieldDefinition("updated_at", FieldKind.DATE, _attr("updated_at")),
        FieldDefinition("last_contact", FieldKind.DATE, _attr("last_contact")),
        FieldDefinition("address.street", FieldKind.TEXT, _address("street")),
        FieldDefinition("address.city", FieldKind.TEXT, _address("city")),
        FieldDefinition("address.state", FieldKind.TEXT, _address("state")),
        FieldDefinition("address.postal_code", FieldKind.TEXT, _address("postal_code")),
        FieldDefinition("address.country", FieldKind.TEXT, _address("country")),
    )
}

_ORDERED = (FieldKind.NUMBER, FieldKind.DATE)
_TEXTUAL = (FieldKind.TEXT, FieldKind.TAGS)


def resolve_field(name: str) -> FieldDefinition:
    """Look up a rule field given in camelCase or snake_case (``address.postalCode`` too)."""
    key = ".".join(to_snake(part) for part in name.strip().split("."))
    definition = FIELDS.get(key)
    if definition is None:
        raise ValidationError(f"Unknown segment field {name!r}")
    return definition


def _text(value: Any) -> str:
    return value.value if isinstance(value, Enum) else str(value)


def _number(value: Any, field: str) -> float:
    if isinstance(value, bool):
        raise TypeMismatchError(f"{field} expects a number, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise TypeMismatchError(f"{field} expects a number, got {value!r}") from None


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _moment(value: Any, field: str):
    """Parse a rule value into a datetime, or a date when only a day was given."""
    if isinstance(value, datetime):
        return _naive_utc(value)
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        if len(text) == 10:
            return date.fromisoformat(text)
        return _naive_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except ValueError:
        raise TypeMismatchError(f"{field} expects a date, got {value!r}") from None


class SegmentationEngine:
    """Pure rule evaluation over customer objects."""

    def validate_rules(self, rules: Sequence[Rule]) -> None:
        """Fail fast on unknown fields and operator/field type mismatches."""
        for rule in rules:
            self._check(rule)

    def matches(self, customer: Customer, rules: Sequence[Rule]) -> bool:
        """AND of every rule; an empty rule list matches everything."""
        return all(self._evaluate(customer, rule) for rule in rules)

    def compute_membership(self, customers: Iterable[Customer], rules: Sequence[Rule]) -> Set[str]:
        rules = list(rules)
        self.validate_rules(rules)
        return {customer.id for customer in customers if self.matches(customer, rules)}

    def count(self, customers: Iterable[Customer], rules: Sequence[Rule]) -> int:
        return len(self.compute_membership(customers, rules))

    def _check(self, rule: Rule) -> FieldDefinition:
        definition = resolve_field(rule.field)
        if rule.operator in (Operator.GT, Operator.LT) and definition.kind not in _ORDERED:
            raise TypeMismatchError(
                f"Operator {rule.operator.value!r} needs a numeric or date field; "
                f"{rule.field!r} is {definition.kind.value}"
            )
        if rule.operator == Operator.CONTAINS and definition.kind not in _TEXTUAL:
            raise TypeMismatchError(
                f"Operator 'contains' needs a text field; {rule.field!r} is {definition.kind.value}"
            )
        return definition

    def _evaluate(self, customer: Customer, rule: Rule) -> bool:
        definition = self._check(rule)
        actual = definition.getter(customer)
        operator = rule.operator

        if actual is None or (definition.kind == FieldKind.TEXT and actual == ""):
            return operator == Operator.NE

        if definition.kind == FieldKind.TAGS:
            return self._evaluate_tags(actual, operator, rule.value)

        if operator == Operator.CONTAINS:
            return _text(rule.value).lower() in _text(actual).lower()

        if definition.kind == FieldKind.NUMBER:
            left, right = _number(actual, rule.field), _number(rule.value, rule.field)
        elif definition.kind == FieldKind.DATE:
            right = _moment(rule.value, rule.field)
            left = _naive_utc(actual)
            if not isinstance(right, datetime):
                left = left.date()
        else:
            left, right = _text(actual), _text(rule.value)

        if operator == Operator.EQ:
            return left == right
        if operator == Operator.NE:
            return left != right
        if operator == Operator.GT:
            return left > right
        return left < right

    @staticmethod
    def _evaluate_tags(tags: List[str], operator: Operator, value: Any) -> bool:
        wanted = _text(value)
        if operator == Operator.CONTAINS:
            return any(wanted.lower() in tag.lower() for tag in tags)
        if operator == Operator.EQ:
            return wanted in tags
        return wanted not in tags


class SegmentService:
    """Segments with live counts, previews and membership sync."""

    def __init__(
        self,
        customers: CustomerRepository,
        segments: SegmentRepository,
        cache: Optional[MembershipCache] = None,
        engine: Optional[SegmentationEngine] = None,
    ):
        self.customers = customers
        self.segments = segments
        self.cache = cache
        self.engine = engine or SegmentationEngine()

    def evaluate(self, rules: Sequence[Rule]) -> FrozenSet[str]:
        """Ids of every customer matching ``rules`` right now."""
        rules = list(rules)
        self.engine.validate_rules(rules)
        key = self.cache.key_for(rules) if self.cache is not None else None
        if key is not None:
            cached = self.cache.get(key)
            if cached is not None:
                return cached

        members = frozenset(self.engine.compute_membership(self.customers.iter_all(), rules))
        if key is not None:
            self.cache.set(key, members)
        logger.info("Segment evaluated", extra={"rules": len(rules), "members": len(members)})
        return members

    def count(self, rules: Sequence[Rule]) -> int:
        return len(self.evaluate(rules))

    def preview(self, rules: Sequence[Any], sample_size: int = 5) -> SegmentPreview:
        """Size and a few matching customers for an unsaved rule list."""
        if isinstance(rules, (str, bytes)) or not isinstance(rules, Sequence):
            raise ValidationError("rules must be a list of rule objects")
        parsed = [validate_payload(Rule, rule, "Rule") for rule in rules]
        members = self.evaluate(parsed)
        sample = []
        for customer in self.customers.iter_all():
            if len(sample) >= sample_size:
                break
            if customer.id in members:
                sample.append(customer)
        return SegmentPreview(count=len(members), sample=sample)

    def get_segment(self, segment_id: str) -> Segment:
        return self._with_count(self.segments.get(segment_id))

    def list_segments(self, page: int = 1, page_size: Optional[int] = None, search=None) -> Page:
        result = self.segments.list(page=page, page_size=page_size, search=search)
        result.items = [self._with_count(segment) for segment in result.items]
        return result

    def create_segment(self, payload: Payload) -> Segment:
        validated = validate_payload(SegmentCreate, payload, "Segment")
        self.engine.validate_rules(validated.rules)
        return self._with_count(self.segments.create(validated))

    def update_segment(self, segment_id: str, payload: Payload) -> Segment:
        validated = validate_payload(SegmentUpdate, payload, "Segment")
        if validated.rules is not None:
            self.engine.validate_rules(validated.rules)
        return self._with_count(self.segments.update(segment_id, validated))

    def delete_segment(self, segment_id: str) -> bool:
        return self.segments.delete(segment_id)

    def members(self, segment_id: str) -> List[Customer]:
        """Customers matching the segment's rules, evaluated now."""
        segment = self.segments.get(segment_id)
        member_ids = self.evaluate(segment.rules)
        return [customer for customer in self.customers.iter_all() if customer.id in member_ids]

    def sync_membership(self, segment_id: str) -> MembershipSyncResult:
        """Write the current membership into the membership join table."""
        segment = self.segments.get(segment_id)
        member_ids = self.evaluate(segment.rules)
        added, removed = self.segments.replace_members(segment_id, member_ids)
        return MembershipSyncResult(
            segment_id=segment_id,
            customers_added=added,
            customers_removed=removed,
            total_members=len(member_ids),
        )

    def _with_count(self, segment: Segment) -> Segment:
        segment.count = self.count(segment.rules)
        return segment

"""
Segment rule evaluation, caching and membership sync.

Run with: pytest tests/unit/test_segmentation.py -v
"""

from datetime import datetime

import pytest

from models.customer import Address, Customer
from models.segment import Rule
from services.segmentation_service import SegmentationEngine, resolve_field
from utils.error_handling import NotFoundError, TypeMismatchError, ValidationError


def _rule(field, operator, value=None):
    return Rule(field=field, operator=operator, value=value)


def _names(services, ids):
    return sorted(services.customers.get(i).first_name for i in ids)


class TestSegmentationEngine:
    """Pure evaluation against in-memory customers."""

    @pytest.fixture
    def engine(self):
        return SegmentationEngine()

    @pytest.fixture
    def customer(self):
        return Customer(
            id="c-1",
            first_name="Ann",
            last_name="Lee",
            email="ann@bigtech.io",
            company="BigTech Inc",
            status="Active",
            value=75000,
            tags=["vip"],
            address=Address(city="Leeds", country="UK"),
            created_at=datetime(2024, 3, 15, 14, 30),
        )

    def test_empty_rules_match(self, engine, customer):
        assert engine.matches(customer, []) is True

    def test_rules_are_anded(self, engine, customer):
        assert engine.matches(
            customer, [_rule("status", "eq", "Active"), _rule("value", "gt", 50000)]
        )
        assert not engine.matches(
            customer, [_rule("status", "eq", "Active"), _rule("value", "gt", 80000)]
        )

    def test_numeric_value_given_as_string(self, engine, customer):
        assert engine.matches(customer, [_rule("value", "lt", "100000")])

    def test_contains_is_case_insensitive(self, engine, customer):
        assert engine.matches(customer, [_rule("company", "contains", "TECH")])

    def test_address_field_in_camel_case(self, engine, customer):
        assert engine.matches(customer, [_rule("address.city", "eq", "Leeds")])
        assert engine.matches(customer, [_rule("address.postalCode", "ne", "LS1")])

    def test_missing_value_only_matches_ne(self, engine, customer):
        assert engine.matches(customer, [_rule("phone", "ne", "123")])
        assert not engine.matches(customer, [_rule("phone", "eq", "123")])
        assert not engine.matches(customer, [_rule("phone", "contains", "1")])
        assert not engine.matches(customer, [_rule("last_contact", "gt", "2020-01-01")])

    def test_date_only_value_compares_calendar_day(self, engine, customer):
        assert engine.matches(customer, [_rule("createdAt", "eq", "2024-03-15")])
        assert engine.matches(customer, [_rule("created_at", "gt", "2024-03-14")])
        assert not engine.matches(customer, [_rule("created_at", "lt", "2024-03-15")])

    def test_datetime_value_compares_instant(self, engine, customer):
        assert engine.matches(customer, [_rule("created_at", "gt", "2024-03-15T14:00:00Z")])
        assert engine.matches(customer, [_rule("created_at", "lt", "2024-03-15T15:00:00")])

    def test_tags(self, engine, customer):
        assert engine.matches(customer, [_rule("tags", "eq", "vip")])
        assert engine.matches(customer, [_rule("tags", "contains", "VI")])
        assert not engine.matches(customer, [_rule("tags", "ne", "vip")])

    def test_ordering_operator_on_text_field(self, engine, customer):
        with pytest.raises(TypeMismatchError):
            engine.validate_rules([_rule("company", "gt", "A")])

    def test_contains_on_number_field(self, engine, customer):
        with pytest.raises(TypeMismatchError):
            engine.matches(customer, [_rule("value", "contains", "5")])

    def test_non_numeric_value_for_number_field(self, engine, customer):
        with pytest.raises(TypeMismatchError):
            engine.matches(customer, [_rule("value", "gt", "lots")])

    def test_bad_date_value(self, engine, customer):
        with pytest.raises(TypeMismatchError):
            engine.matches(customer, [_rule("created_at", "gt", "yesterday")])

    def test_unknown_field(self, engine):
        with pytest.raises(ValidationError):
            resolve_field("favouriteColour")

    def test_count_matches_membership(self, engine, customer):
        other = customer.model_copy(update={"id": "c-2", "value": 10})
        rules = [_rule("value", "gt", 100)]
        assert engine.compute_membership([customer, other], rules) == {"c-1"}
        assert engine.count([customer, other], rules) == 1


class TestSegmentService:
    """Evaluation over stored customers, segments and membership rows."""

    def test_status_and_value(self, services, seeded):
        members = services.segment_service.evaluate(
            [_rule("status", "eq", "Active"), _rule("value", "gt", 50000)]
        )
        assert _names(services, members) == ["Ann"]

    def test_empty_rules_select_everyone(self, services, seeded):
        assert services.segment_service.count([]) == 5

    def test_company_contains(self, services, seeded):
        members = services.segment_service.evaluate([_rule("company", "contains", "tech")])
        assert _names(services, members) == ["Ann", "Cara"]

    def test_created_at_range(self, services, seeded):
        assert services.segment_service.count([_rule("created_at", "gt", "2000-01-01")]) == 5
        assert services.segment_service.count([_rule("created_at", "lt", "2000-01-01")]) == 0

    def test_tags_ne_includes_untagged(self, services, seeded):
        assert services.segment_service.count([_rule("tags", "ne", "vip")]) == 4

    def test_type_mismatch_surfaces(self, services, seeded):
        with pytest.raises(TypeMismatchError):
            services.segment_service.evaluate([_rule("status", "gt", "Active")])

    def test_result_is_cached_until_customer_write(self, services, seeded):
        rules = [_rule("status", "eq", "Active")]
        assert services.segment_service.count(rules) == 2
        version = services.segment_service.cache.version

        services.customers.update(seeded[2].id, {"status": "Active"})

        assert services.segment_service.cache.version == version + 1
        assert services.segment_service.count(rules) == 3

    def test_cached_result_reused(self, services, seeded, monkeypatch):
        rules = [_rule("industry", "eq", "Technology")]
        first = services.segment_service.evaluate(rules)

        def fail(*args, **kwargs):
            raise AssertionError("customers should not be rescanned")

        monkeypatch.setattr(services.customers, "iter_all", fail)
        assert services.segment_service.evaluate(rules) == first

    def test_create_segment_reports_count(self, services, seeded):
        segment = services.segment_service.create_segment(
            {
                "name": "High value",
                "rules": [{"field": "value", "operator": "gt", "value": "50000"}],
            }
        )
        assert segment.id
        assert segment.count == 2
        assert services.segment_service.get_segment(segment.id).count == 2

    def test_create_segment_rejects_bad_rules_without_writing(self, services, seeded):
        with pytest.raises(TypeMismatchError):
            services.segment_service.create_segment(
                {"name": "Broken", "rules": [{"field": "tags", "operator": "gt", "value": "a"}]}
            )
        assert services.segments.count() == 0

    def test_update_segment_rules(self, services, seeded):
        segment = services.segment_service.create_segment({"name": "Everyone"})
        updated = services.segment_service.update_segment(
            segment.id, {"rules": [{"field": "industry", "operator": "eq", "value": "Retail"}]}
        )
        assert updated.name == "Everyone"
        assert updated.count == 1

    def test_list_segments_with_counts(self, services, seeded):
        services.segment_service.create_segment({"name": "All"})
        services.segment_service.create_segment(
            {"name": "Active", "rules": [{"field": "status", "operator": "eq", "value": "Active"}]}
        )
        page = services.segment_service.list_segments()
        assert page.total == 2
        assert {s.name: s.count for s in page.items} == {"All": 5, "Active": 2}

    def test_members(self, services, seeded):
        segment = services.segment_service.create_segment(
            {"name": "Tech", "rules": [{"field": "industry", "operator": "eq", "value": "Technology"}]}
        )
        members = services.segment_service.members(segment.id)
        assert sorted(c.first_name for c in members) == ["Ann", "Cara"]

    def test_preview(self, services, seeded):
        preview = services.segment_service.preview(
            [{"field": "status", "operator": "eq", "value": "Active"}], sample_size=1
        )
        assert preview.count == 2
        assert len(preview.sample) == 1
        assert preview.sample[0].first_name in {"Ann", "Bob"}

    def test_preview_rejects_malformed_rule(self, services, seeded):
        with pytest.raises(ValidationError):
            services.segment_service.preview([{"field": "value", "operator": "between"}])

    @pytest.mark.parametrize("rules", ["x", {"field": "value"}, [1], ["status"]])
    def test_preview_rejects_non_object_rules(self, services, seeded, rules):
        with pytest.raises(ValidationError):
            services.segment_service.preview(rules)

    def test_delete_missing_segment_keeps_memberships(self, services, seeded):
        services.store.insert(
            "segment_memberships", {"customer_id": seeded[0].id, "segment_id": "ghost"}
        )

        with pytest.raises(NotFoundError):
            services.segment_service.delete_segment("ghost")
        assert services.segments.members("ghost") == {seeded[0].id}

    def test_sync_membership(self, services, seeded):
        segment = services.segment_service.create_segment(
            {"name": "Active", "rules": [{"field": "status", "operator": "eq", "value": "Active"}]}
        )

        first = services.segment_service.sync_membership(segment.id)
        assert (first.customers_added, first.customers_removed, first.total_members) == (2, 0, 2)

        services.customers.update(seeded[1].id, {"status": "Inactive"})
        second = services.segment_service.sync_membership(segment.id)
        assert (second.customers_added, second.customers_removed, second.total_members) == (0, 1, 1)
        assert services.segments.members(segment.id) == {seeded[0].id}

    def test_membership_blocks_customer_delete(self, services, seeded):
        segment = services.segment_service.create_segment(
            {"name": "Ann", "rules": [{"field": "email", "operator": "eq", "value": "ann@bigtech.io"}]}
        )
        services.segment_service.sync_membership(segment.id)

        with pytest.raises(ValidationError):
            services.customers.delete(seeded[0].id)

    def test_delete_segment_removes_memberships(self, services, seeded):
        segment = services.segment_service.create_segment({"name": "All"})
        services.segment_service.sync_membership(segment.id)

        assert services.segment_service.delete_segment(segment.id) is True
        assert services.segments.members(segment.id) == set()
        with pytest.raises(NotFoundError):
            services.segment_service.get_segment(segment.id)

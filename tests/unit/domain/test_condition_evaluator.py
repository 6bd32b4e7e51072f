"""Tests for the ConditionEvaluator."""

import pytest

from lead_routing.domain.policies.condition_evaluator import matches
from lead_routing.domain.value_objects.conditions import ConditionSet


def _cs(*predicates) -> ConditionSet:
    return ConditionSet.from_raw([
        {"field": f, "operator": op, "value": v} for f, op, v in predicates
    ])


def test_empty_conditions_always_match():
    assert matches(ConditionSet(), {}) is True
    assert matches(ConditionSet(), {"country_id": "US"}) is True


def test_eq_matches_scalar():
    assert matches(_cs(("country_id", "eq", "US")), {"country_id": "US"})
    assert not matches(_cs(("country_id", "eq", "US")), {"country_id": "DE"})


def test_eq_compares_ids_across_str_and_int():
    assert matches(_cs(("source_id", "eq", "7")), {"source_id": 7})
    assert matches(_cs(("source_id", "eq", 7)), {"source_id": 7.0})


def test_neq():
    assert matches(_cs(("country_id", "neq", "US")), {"country_id": "DE"})
    assert not matches(_cs(("country_id", "neq", "US")), {"country_id": "US"})


def test_unknown_field_does_not_match():
    """A rule referencing a retired field goes quiet instead of crashing."""
    assert not matches(_cs(("retired_field", "eq", "x")), {"country_id": "US"})


@pytest.mark.parametrize(
    "operator, value",
    [("neq", "US"), ("not_in", ["US"]), ("gt", 1), ("contains", "x"), ("in", ["US"])],
)
def test_missing_field_fails_every_operator(operator, value):
    assert not matches(_cs(("country_id", operator, value)), {"source_id": 7})


def test_all_predicates_must_hold():
    cs = _cs(("country_id", "eq", "US"), ("expected_revenue", "gte", 1000))
    assert matches(cs, {"country_id": "US", "expected_revenue": 5000})
    assert not matches(cs, {"country_id": "US", "expected_revenue": 10})


@pytest.mark.parametrize(
    "op, value, expected",
    [
        ("gt", 100, True),
        ("gte", 150, True),
        ("lt", 100, False),
        ("lte", 150, True),
        ("gt", 150, False),
    ],
)
def test_numeric_operators(op, value, expected):
    assert matches(_cs(("expected_revenue", op, value)), {"expected_revenue": 150}) is expected


def test_numeric_operator_on_numeric_string():
    assert matches(_cs(("expected_revenue", "gt", 100)), {"expected_revenue": "250.5"})


def test_numeric_operator_fails_on_non_numeric_value():
    assert not matches(_cs(("expected_revenue", "gt", 100)), {"expected_revenue": "lots"})
    assert not matches(_cs(("expected_revenue", "gt", 100)), {"expected_revenue": None})


def test_in_with_scalar_record_value():
    cs = _cs(("state", "in", ["CA", "OR", "WA"]))
    assert matches(cs, {"state": "OR"})
    assert not matches(cs, {"state": "TX"})


def test_in_treats_list_record_value_as_set():
    cs = _cs(("tag_ids", "in", ["vip", "partner"]))
    assert matches(cs, {"tag_ids": ["cold", "vip"]})
    assert not matches(cs, {"tag_ids": ["cold"]})
    assert not matches(cs, {"tag_ids": []})


def test_not_in():
    cs = _cs(("tag_ids", "not_in", ["spam"]))
    assert matches(cs, {"tag_ids": ["vip"]})
    assert not matches(cs, {"tag_ids": ["vip", "spam"]})
    assert matches(_cs(("state", "not_in", ["CA"])), {"state": "TX"})


def test_contains_on_list():
    cs = _cs(("tag_ids", "contains", "vip"))
    assert matches(cs, {"tag_ids": ["vip", "hot"]})
    assert not matches(cs, {"tag_ids": ["hot"]})


def test_contains_on_string_is_case_insensitive_substring():
    cs = _cs(("company", "contains", "acme"))
    assert matches(cs, {"company": "ACME Industries"})
    assert not matches(cs, {"company": "Globex"})


def test_invalid_predicate_never_matches():
    cs = ConditionSet.from_raw([{"field": "country_id", "operator": "like", "value": "U%"}])
    assert not matches(cs, {"country_id": "US"})


def test_invalid_predicate_does_not_affect_other_rule_sets():
    bad = ConditionSet.from_raw([{"field": "x", "operator": "~=", "value": 1}])
    good = _cs(("country_id", "eq", "US"))
    record = {"country_id": "US", "x": 1}
    assert not matches(bad, record)
    assert matches(good, record)


def test_mapping_form_territory_conditions():
    cs = ConditionSet.from_raw({"country": "US", "state": ["CA", "OR"]})
    assert matches(cs, {"country": "US", "state": "CA"})
    assert not matches(cs, {"country": "US", "state": "NY"})
    assert not matches(cs, {"state": "CA"})

"""ConditionEvaluator — match a ConditionSet against a flat lead record."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from lead_routing.domain.value_objects.conditions import ConditionSet, InvalidPredicate, Predicate
from lead_routing.domain.value_objects.enums import ConditionOperator

Record = Mapping[str, Any]

_NUMERIC_OPS = {
    ConditionOperator.GT: lambda a, b: a > b,
    ConditionOperator.GTE: lambda a, b: a >= b,
    ConditionOperator.LT: lambda a, b: a < b,
    ConditionOperator.LTE: lambda a, b: a <= b,
}


def matches(conditions: ConditionSet, record: Record) -> bool:
    """Pure function: True when every predicate holds for *record*.

    Rules:
      1. Empty ConditionSet always matches (catch-all rules).
      2. A field missing from the record fails its predicate.
      3. Numeric comparisons fail, not raise, on non-numeric values.
      4. List-valued record fields (e.g. ``tag_ids``) are treated as sets
         for ``in`` / ``not_in`` / ``contains``; scalars as singletons.
      5. InvalidPredicate never matches.
    """
    return all(predicate_holds(p, record) for p in conditions.predicates)


def predicate_holds(predicate: Predicate | InvalidPredicate, record: Record) -> bool:
    if isinstance(predicate, InvalidPredicate):
        return False
    if predicate.field not in record:
        return False

    actual = record[predicate.field]
    op = predicate.operator
    expected = predicate.value

    if op == ConditionOperator.EQ:
        return _equals(actual, expected)
    if op == ConditionOperator.NEQ:
        return not _equals(actual, expected)
    if op == ConditionOperator.IN:
        return bool(_as_set(actual) & _as_set(expected))
    if op == ConditionOperator.NOT_IN:
        return not (_as_set(actual) & _as_set(expected))
    if op == ConditionOperator.CONTAINS:
        if isinstance(actual, str) and isinstance(expected, str):
            return expected.lower() in actual.lower()
        return _as_set(expected) <= _as_set(actual)
    if op in _NUMERIC_OPS:
        a, b = _to_number(actual), _to_number(expected)
        if a is None or b is None:
            return False
        return _NUMERIC_OPS[op](a, b)
    return False


def _equals(actual: Any, expected: Any) -> bool:
    if isinstance(actual, (list, tuple, set)):
        return _as_set(expected) <= _as_set(actual) and bool(_as_set(actual))
    a_num, e_num = _to_number(actual), _to_number(expected)
    if a_num is not None and e_num is not None:
        return a_num == e_num
    return _normalize(actual) == _normalize(expected)


def _as_set(value: Any) -> set:
    if value is None:
        return set()
    if isinstance(value, (list, tuple, set, frozenset)):
        return {_normalize(v) for v in value}
    return {_normalize(value)}


def _normalize(value: Any) -> Any:
    # IDs arrive as str from JSON and as int/UUID from the store
    if isinstance(value, bool):
        return value
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    return str(value) if value is not None else None


def _to_number(value: Any) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None

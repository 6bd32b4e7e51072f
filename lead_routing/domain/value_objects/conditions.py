"""ConditionSet value object — a closed AND of typed field predicates."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from lead_routing.domain.value_objects.enums import OPERATOR_ALIASES, ConditionOperator


@dataclass(frozen=True)
class Predicate:
    field: str
    operator: ConditionOperator
    value: Any


@dataclass(frozen=True)
class InvalidPredicate:
    """A stored predicate that could not be parsed. Never matches."""

    field: str
    raw: Any
    error: str


@dataclass(frozen=True)
class ConditionSet:
    predicates: tuple[Predicate | InvalidPredicate, ...] = field(default_factory=tuple)

    def is_empty(self) -> bool:
        return not self.predicates

    @property
    def errors(self) -> list[str]:
        return [p.error for p in self.predicates if isinstance(p, InvalidPredicate)]

    @classmethod
    def from_raw(cls, raw: Any) -> ConditionSet:
        """Parse conditions as stored in JSON columns.

        Two shapes are accepted:
          * list form: ``[{"field": "country_id", "operator": "eq", "value": "US"}]``
          * mapping form (territories): ``{"country": "US", "state": ["CA", "OR"]}``
            where a scalar means ``eq`` and a list means ``in``.

        Anything malformed becomes an InvalidPredicate instead of raising, so a
        broken rule goes inert rather than breaking the routing pass.
        """
        if raw is None:
            return cls()
        if isinstance(raw, ConditionSet):
            return raw

        predicates: list[Predicate | InvalidPredicate] = []
        if isinstance(raw, dict):
            for key, value in raw.items():
                op = ConditionOperator.IN if isinstance(value, (list, tuple, set)) else ConditionOperator.EQ
                predicates.append(Predicate(field=str(key), operator=op, value=value))
            return cls(predicates=tuple(predicates))

        if not isinstance(raw, (list, tuple)):
            return cls(predicates=(InvalidPredicate(field="", raw=raw, error="conditions must be a list or mapping"),))

        for item in raw:
            predicates.append(_parse_item(item))
        return cls(predicates=tuple(predicates))

    def to_raw(self) -> list[dict]:
        """Serialize back to list form (invalid predicates keep their raw payload)."""
        out: list[dict] = []
        for p in self.predicates:
            if isinstance(p, Predicate):
                out.append({"field": p.field, "operator": p.operator.value, "value": p.value})
            elif isinstance(p.raw, dict):
                out.append(dict(p.raw))
        return out


def _parse_item(item: Any) -> Predicate | InvalidPredicate:
    if not isinstance(item, dict):
        return InvalidPredicate(field="", raw=item, error=f"predicate must be an object, got {type(item).__name__}")

    field_name = item.get("field")
    if not field_name or not isinstance(field_name, str):
        return InvalidPredicate(field="", raw=item, error="predicate has no field")

    raw_op = str(item.get("operator", "eq")).strip().lower()
    try:
        operator = ConditionOperator(raw_op)
    except ValueError:
        operator = OPERATOR_ALIASES.get(raw_op)
        if operator is None:
            return InvalidPredicate(field=field_name, raw=item, error=f"unknown operator {raw_op!r}")

    value = item.get("value")
    if operator in (ConditionOperator.IN, ConditionOperator.NOT_IN) and not isinstance(value, (list, tuple, set)):
        value = [value]
    return Predicate(field=field_name, operator=operator, value=value)

"""Domain enums — pure Python, no external dependencies."""

from enum import Enum


class RuleType(str, Enum):
    ROUND_ROBIN = "round_robin"
    LOAD_BALANCED = "load_balanced"
    WEIGHTED = "weighted"
    TERRITORY = "territory"
    MANUAL = "manual"


class AssignToType(str, Enum):
    USER = "user"
    TEAM = "team"


class TargetModel(str, Enum):
    LEADS = "leads"
    CONTACTS = "contacts"
    OPPORTUNITIES = "opportunities"


class AssignmentReason(str, Enum):
    AUTO_ASSIGNMENT = "auto_assignment"
    REASSIGNMENT = "reassignment"
    ALREADY_ASSIGNED = "already_assigned"
    NO_MATCH = "no_match"

    @property
    def is_assignment(self) -> bool:
        """True for reasons that moved ownership."""
        return self in (AssignmentReason.AUTO_ASSIGNMENT, AssignmentReason.REASSIGNMENT)


class ConditionOperator(str, Enum):
    EQ = "eq"
    NEQ = "neq"
    IN = "in"
    NOT_IN = "not_in"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    CONTAINS = "contains"


# Spellings found in stored rules, e.g. [{"operator": "="}]
OPERATOR_ALIASES: dict[str, ConditionOperator] = {
    "=": ConditionOperator.EQ,
    "==": ConditionOperator.EQ,
    "equals": ConditionOperator.EQ,
    "!=": ConditionOperator.NEQ,
    "<>": ConditionOperator.NEQ,
    ">": ConditionOperator.GT,
    ">=": ConditionOperator.GTE,
    "<": ConditionOperator.LT,
    "<=": ConditionOperator.LTE,
}

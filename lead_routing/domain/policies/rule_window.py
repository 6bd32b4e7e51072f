"""RuleWindowPolicy — is a rule eligible to route at a given instant?"""

from __future__ import annotations

from datetime import datetime, time

from lead_routing.domain.entities.assignment_rule import AssignmentRule


def is_rule_eligible(rule: AssignmentRule, now: datetime) -> bool:
    """Active flag, active days and time-of-day window, in that order.

    A rule outside its window is simply not eligible; it is not an error.
    """
    if not rule.is_active:
        return False
    if rule.active_days and now.isoweekday() not in rule.active_days:
        return False
    return within_window(rule.assignment_window_start, rule.assignment_window_end, now.time())


def within_window(start: time | None, end: time | None, at: time) -> bool:
    """Half-open [start, end) window; start > end wraps past midnight.

    A missing bound is open; start == end means the whole day.
    """
    at = at.replace(tzinfo=None)
    if start is None and end is None:
        return True
    if start is None:
        return at < end
    if end is None:
        return at >= start
    if start == end:
        return True
    if start < end:
        return start <= at < end
    return at >= start or at < end

"""Reconciliation strategies.

Both strategies are pure ``(current, desired) -> target`` functions and
always return a canonical state.

``merge`` never weakens protection relative to either input. For each rule
the catalog's direction decides the combination:

==========================  ===============  ==============
kind                        more is safer    less is safer
==========================  ===============  ==============
boolean / enabling flag     OR               AND
integer                     max              (not allowed)
check list                  union            intersection
==========================  ===============  ==============

Pinned rules (requiring pull requests) are always forced to their most
protective value, whatever either side says.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable

from repokeeper.protection.catalog import Direction, Rule, ValueKind
from repokeeper.protection.state import PolicyState


class Strategy(Enum):
    """How to resolve a difference between current and desired protection."""

    OVERWRITE = "overwrite"  # Replace with the desired baseline
    MERGE = "merge"  # Keep whichever side is more protective, rule by rule


def overwrite(current: PolicyState, desired: PolicyState) -> PolicyState:
    """Return the desired state; ``current`` is ignored."""
    return desired.canonical()


def merge(current: PolicyState, desired: PolicyState) -> PolicyState:
    """Combine two states so the result is at least as safe as both."""
    if current.catalog.ids != desired.catalog.ids:
        raise ValueError("Cannot merge states built from different rule catalogs")

    values = {
        rule.id: merge_value(rule, current[rule.id], desired[rule.id])
        for rule in desired.catalog
    }
    return PolicyState(values, desired.catalog).canonical()


def merge_value(rule: Rule, current: Any, desired: Any) -> Any:
    if rule.pinned:
        return rule.most_protective

    safer_is_more = rule.direction == Direction.MORE_IS_SAFER

    if rule.kind == ValueKind.INTEGER:
        return max(current, desired)
    if rule.kind == ValueKind.CHECK_LIST:
        merged = set(current) | set(desired) if safer_is_more else set(current) & set(desired)
        return tuple(sorted(merged))
    if safer_is_more:
        return current or desired
    return current and desired


STRATEGIES: dict[Strategy, Callable[[PolicyState, PolicyState], PolicyState]] = {
    Strategy.OVERWRITE: overwrite,
    Strategy.MERGE: merge,
}


def compute_target(strategy: Strategy | str, current: PolicyState, desired: PolicyState) -> PolicyState:
    """Run the named strategy."""
    return STRATEGIES[Strategy(strategy)](current, desired)

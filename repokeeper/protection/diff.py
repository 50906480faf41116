"""Diff engine — rule-by-rule comparison of two policy states.

The diff always follows catalog declaration order so that reports are
identical across runs. It does no I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from repokeeper.protection.catalog import Rule, ValueKind
from repokeeper.protection.state import PolicyState


@dataclass(frozen=True)
class RuleDiff:
    """One row of a comparison report."""

    rule: Rule
    current: Any
    desired: Any

    @property
    def changed(self) -> bool:
        return self.current != self.desired

    def describe(self) -> str:
        return (
            f"{self.rule.label}: {format_value(self.rule, self.current)} -> "
            f"{format_value(self.rule, self.desired)}"
        )


@dataclass
class PolicyDiff:
    """Ordered comparison of two states."""

    entries: list[RuleDiff] = field(default_factory=list)

    @property
    def any_changed(self) -> bool:
        return any(e.changed for e in self.entries)

    @property
    def changed_rules(self) -> list[RuleDiff]:
        return [e for e in self.entries if e.changed]

    def summary(self) -> str:
        if not self.any_changed:
            return "no changes needed"
        count = len(self.changed_rules)
        return f"{count} of {len(self.entries)} rule(s) differ"


def diff_states(current: PolicyState, desired: PolicyState) -> PolicyDiff:
    """Compare ``current`` against ``desired`` in catalog order."""
    if current.catalog.ids != desired.catalog.ids:
        raise ValueError("Cannot diff states built from different rule catalogs")

    return PolicyDiff(
        entries=[RuleDiff(rule, current[rule.id], desired[rule.id]) for rule in current.catalog]
    )


def format_value(rule: Rule, value: Any) -> str:
    """Render a rule value for reports."""
    if rule.kind == ValueKind.INTEGER:
        return str(value)
    if rule.kind == ValueKind.CHECK_LIST:
        return ", ".join(value) if value else "(none)"
    return "yes" if value else "no"

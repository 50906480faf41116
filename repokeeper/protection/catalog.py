"""Rule catalog — the fixed, ordered set of branch protection rules.

The catalog is static data: rule identity, display label, value kind,
security direction and the desired value. Normalization, diffing, merging
and payload building all iterate it, so adding a rule here is the only
change needed to enforce something new.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterator, Sequence


class ValueKind(Enum):
    """What type of value a rule holds."""

    BOOLEAN = "boolean"
    INTEGER = "integer"
    ENABLED_WITH_SUBFIELDS = "enabled-with-subfields"  # Boolean that gates nested rules
    CHECK_LIST = "check-list"  # Sorted tuple of status check contexts


class Direction(Enum):
    """Which way a rule's value moves when protection gets stronger."""

    MORE_IS_SAFER = "more_is_safer"
    LESS_IS_SAFER = "less_is_safer"


class Block(Enum):
    """Where a rule lives in GitHub's protection representation."""

    PULL_REQUEST_REVIEWS = "required_pull_request_reviews"
    STATUS_CHECKS = "required_status_checks"
    SIGNATURES = "required_signatures"  # Separate sub-resource
    TOP_LEVEL = "top_level"  # {"enabled": bool} flags on the main document


@dataclass(frozen=True)
class Rule:
    """A single protection rule."""

    id: str
    label: str
    kind: ValueKind
    direction: Direction
    block: Block
    desired: bool | int | tuple[str, ...]
    api_field: str = ""  # Field name in the GitHub document, defaults to id
    parent: str | None = None  # Enabling rule for nested rules
    pinned: bool = False  # Merge always forces the most protective value

    def __post_init__(self):
        if not self.api_field:
            object.__setattr__(self, "api_field", self.id)
        if self.kind == ValueKind.INTEGER and self.direction == Direction.LESS_IS_SAFER:
            raise ValueError(f"Rule {self.id}: integer rules must be more-is-safer")
        if self.pinned and self.kind not in (ValueKind.BOOLEAN, ValueKind.ENABLED_WITH_SUBFIELDS):
            raise ValueError(f"Rule {self.id}: only boolean rules can be pinned")
        object.__setattr__(self, "desired", self.coerce(self.desired))

    @property
    def least_protective(self) -> bool | int | tuple[str, ...]:
        """The value an absent field normalizes to."""
        if self.kind == ValueKind.INTEGER:
            return 0
        if self.kind == ValueKind.CHECK_LIST:
            return ()
        return self.direction == Direction.LESS_IS_SAFER

    @property
    def most_protective(self) -> bool:
        """The strongest value of a boolean rule."""
        if self.kind not in (ValueKind.BOOLEAN, ValueKind.ENABLED_WITH_SUBFIELDS):
            raise ValueError(f"Rule {self.id}: only boolean rules have a strongest value")
        return self.direction == Direction.MORE_IS_SAFER

    def coerce(self, value) -> bool | int | tuple[str, ...]:
        """Validate ``value`` for this rule and return its canonical form."""
        if self.kind == ValueKind.INTEGER:
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ValueError(f"Rule {self.id}: expected a non-negative integer, got {value!r}")
            return value
        if self.kind == ValueKind.CHECK_LIST:
            if isinstance(value, str) or not all(isinstance(v, str) for v in value):
                raise ValueError(f"Rule {self.id}: expected a list of check names, got {value!r}")
            return tuple(sorted(set(value)))
        if not isinstance(value, bool):
            raise ValueError(f"Rule {self.id}: expected a boolean, got {value!r}")
        return value


class RuleCatalog:
    """An ordered, immutable collection of rules."""

    def __init__(self, rules: Sequence[Rule]):
        self._rules: tuple[Rule, ...] = tuple(rules)
        self._by_id: dict[str, Rule] = {}

        for rule in self._rules:
            if rule.id in self._by_id:
                raise ValueError(f"Duplicate rule id: {rule.id}")
            if rule.parent is not None:
                parent = self._by_id.get(rule.parent)
                if parent is None:
                    raise ValueError(f"Rule {rule.id}: parent {rule.parent} must be declared first")
                if parent.kind != ValueKind.ENABLED_WITH_SUBFIELDS:
                    raise ValueError(f"Rule {rule.id}: parent {rule.parent} does not gate subfields")
            self._by_id[rule.id] = rule

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._by_id

    def __getitem__(self, rule_id: str) -> Rule:
        return self._by_id[rule_id]

    @property
    def ids(self) -> list[str]:
        return [r.id for r in self._rules]

    def children(self, parent_id: str) -> list[Rule]:
        return [r for r in self._rules if r.parent == parent_id]

    def in_block(self, block: Block) -> list[Rule]:
        return [r for r in self._rules if r.block == block]

    def with_desired(self, **overrides) -> RuleCatalog:
        """Return a copy of the catalog with different desired values.

        Only existing rules can be overridden; the rule set itself is fixed.
        """
        unknown = sorted(set(overrides) - set(self._by_id))
        if unknown:
            raise ValueError(f"Unknown rule(s): {', '.join(unknown)}")
        return RuleCatalog(
            [replace(r, desired=overrides[r.id]) if r.id in overrides else r for r in self._rules]
        )


_MORE = Direction.MORE_IS_SAFER
_LESS = Direction.LESS_IS_SAFER

DEFAULT_RULES: tuple[Rule, ...] = (
    # Pull request reviews
    Rule(
        "require_pull_request", "Require pull request before merging",
        ValueKind.ENABLED_WITH_SUBFIELDS, _MORE, Block.PULL_REQUEST_REVIEWS, True,
        pinned=True,
    ),
    Rule(
        "required_approving_review_count", "Required approving reviews",
        ValueKind.INTEGER, _MORE, Block.PULL_REQUEST_REVIEWS, 1,
        parent="require_pull_request",
    ),
    Rule(
        "dismiss_stale_reviews", "Dismiss stale reviews on new commits",
        ValueKind.BOOLEAN, _MORE, Block.PULL_REQUEST_REVIEWS, True,
        parent="require_pull_request",
    ),
    Rule(
        "require_code_owner_reviews", "Require code owner review",
        ValueKind.BOOLEAN, _MORE, Block.PULL_REQUEST_REVIEWS, False,
        parent="require_pull_request",
    ),
    Rule(
        "require_last_push_approval", "Require approval of the most recent push",
        ValueKind.BOOLEAN, _MORE, Block.PULL_REQUEST_REVIEWS, False,
        parent="require_pull_request",
    ),
    # Status checks
    Rule(
        "require_status_checks", "Require status checks to pass",
        ValueKind.ENABLED_WITH_SUBFIELDS, _MORE, Block.STATUS_CHECKS, False,
    ),
    Rule(
        "strict_status_checks", "Require branch to be up to date",
        ValueKind.BOOLEAN, _MORE, Block.STATUS_CHECKS, False,
        api_field="strict", parent="require_status_checks",
    ),
    Rule(
        "status_check_contexts", "Required status checks",
        ValueKind.CHECK_LIST, _MORE, Block.STATUS_CHECKS, (),
        api_field="contexts", parent="require_status_checks",
    ),
    # Top-level flags
    Rule("enforce_admins", "Enforce for administrators", ValueKind.BOOLEAN, _MORE, Block.TOP_LEVEL, False),
    Rule("required_linear_history", "Require linear history", ValueKind.BOOLEAN, _MORE, Block.TOP_LEVEL, False),
    Rule(
        "required_conversation_resolution", "Require conversation resolution",
        ValueKind.BOOLEAN, _MORE, Block.TOP_LEVEL, False,
    ),
    Rule("required_signatures", "Require signed commits", ValueKind.BOOLEAN, _MORE, Block.SIGNATURES, False),
    Rule("block_creations", "Block branch creations", ValueKind.BOOLEAN, _MORE, Block.TOP_LEVEL, False),
    Rule("lock_branch", "Lock branch (read-only)", ValueKind.BOOLEAN, _MORE, Block.TOP_LEVEL, False),
    Rule("allow_force_pushes", "Allow force pushes", ValueKind.BOOLEAN, _LESS, Block.TOP_LEVEL, False),
    Rule("allow_deletions", "Allow branch deletion", ValueKind.BOOLEAN, _LESS, Block.TOP_LEVEL, False),
    Rule("allow_fork_syncing", "Allow fork syncing", ValueKind.BOOLEAN, _LESS, Block.TOP_LEVEL, False),
)

DEFAULT_CATALOG = RuleCatalog(DEFAULT_RULES)

"""Policy state and the typed view of GitHub's protection document.

GitHub omits fields and whole sub-objects instead of sending falsy values.
``ProtectionDocument.from_api`` is the only place that touches the raw JSON;
from there on every sub-block is either ``Present(value)`` or ``ABSENT``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Generic, Iterator, TypeVar

from repokeeper.protection.catalog import DEFAULT_CATALOG, Block, RuleCatalog, ValueKind

T = TypeVar("T")


# --- Presence ---


@dataclass(frozen=True)
class Present(Generic[T]):
    """A sub-block or field that the remote document contained."""

    value: T


class Absent:
    """A sub-block or field that the remote document left out."""

    _instance: Absent | None = None

    def __new__(cls) -> Absent:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ABSENT"


ABSENT = Absent()

Maybe = Present[T] | Absent


class NotConfigured:
    """The branch has no protection at all. A valid state, not an error."""

    _instance: NotConfigured | None = None

    def __new__(cls) -> NotConfigured:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NOT_CONFIGURED"


NOT_CONFIGURED = NotConfigured()


# --- Remote document ---


@dataclass(frozen=True)
class RepoRef:
    """One repository branch that protection is read from and written to."""

    owner: str
    name: str
    branch: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    def __str__(self) -> str:
        return f"{self.full_name}@{self.branch}"


@dataclass(frozen=True)
class ReviewSettings:
    dismiss_stale_reviews: Maybe[bool] = ABSENT
    require_code_owner_reviews: Maybe[bool] = ABSENT
    required_approving_review_count: Maybe[int] = ABSENT
    require_last_push_approval: Maybe[bool] = ABSENT


@dataclass(frozen=True)
class StatusCheckSettings:
    strict: Maybe[bool] = ABSENT
    contexts: Maybe[tuple[str, ...]] = ABSENT


@dataclass(frozen=True)
class ProtectionDocument:
    """GitHub's branch protection response with absence made explicit."""

    pull_request_reviews: Maybe[ReviewSettings] = ABSENT
    status_checks: Maybe[StatusCheckSettings] = ABSENT
    flags: dict[str, Maybe[bool]] = field(default_factory=dict)

    def flag(self, name: str) -> Maybe[bool]:
        return self.flags.get(name, ABSENT)

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> ProtectionDocument:
        """Parse a ``GET .../protection`` response body."""
        reviews_raw = payload.get("required_pull_request_reviews")
        reviews: Maybe[ReviewSettings] = ABSENT
        if isinstance(reviews_raw, Mapping):
            reviews = Present(
                ReviewSettings(
                    dismiss_stale_reviews=_maybe_bool(reviews_raw, "dismiss_stale_reviews"),
                    require_code_owner_reviews=_maybe_bool(reviews_raw, "require_code_owner_reviews"),
                    required_approving_review_count=_maybe_int(
                        reviews_raw, "required_approving_review_count"
                    ),
                    require_last_push_approval=_maybe_bool(reviews_raw, "require_last_push_approval"),
                )
            )

        checks_raw = payload.get("required_status_checks")
        checks: Maybe[StatusCheckSettings] = ABSENT
        if isinstance(checks_raw, Mapping):
            checks = Present(
                StatusCheckSettings(
                    strict=_maybe_bool(checks_raw, "strict"),
                    contexts=_maybe_contexts(checks_raw),
                )
            )

        flags: dict[str, Maybe[bool]] = {}
        for name, raw in payload.items():
            # Top-level rules come back as {"enabled": bool, "url": ...}
            if isinstance(raw, Mapping) and "enabled" in raw:
                flags[name] = _maybe_bool(raw, "enabled")

        return cls(pull_request_reviews=reviews, status_checks=checks, flags=flags)


def _maybe_bool(data: Mapping[str, Any], key: str) -> Maybe[bool]:
    value = data.get(key)
    return Present(value) if isinstance(value, bool) else ABSENT


def _maybe_int(data: Mapping[str, Any], key: str) -> Maybe[int]:
    value = data.get(key)
    if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
        return Present(value)
    return ABSENT


def _maybe_contexts(data: Mapping[str, Any]) -> Maybe[tuple[str, ...]]:
    names: set[str] = set()
    seen = False
    contexts = data.get("contexts")
    if isinstance(contexts, list):
        seen = True
        names.update(c for c in contexts if isinstance(c, str))
    # Newer API versions report checks as objects; they mirror contexts
    checks = data.get("checks")
    if isinstance(checks, list):
        seen = True
        names.update(c["context"] for c in checks if isinstance(c, Mapping) and isinstance(c.get("context"), str))
    return Present(tuple(sorted(names))) if seen else ABSENT


# --- Canonical state ---


class PolicyState(Mapping):
    """Immutable, fully populated rule id -> value mapping in catalog order."""

    def __init__(self, values: Mapping[str, Any], catalog: RuleCatalog = DEFAULT_CATALOG):
        missing = [rid for rid in catalog.ids if rid not in values]
        if missing:
            raise ValueError(f"Policy state is missing rule(s): {', '.join(missing)}")
        extra = sorted(set(values) - set(catalog.ids))
        if extra:
            raise ValueError(f"Policy state has unknown rule(s): {', '.join(extra)}")

        self.catalog = catalog
        self._values: dict[str, Any] = {r.id: r.coerce(values[r.id]) for r in catalog}

    @classmethod
    def desired(cls, catalog: RuleCatalog = DEFAULT_CATALOG) -> PolicyState:
        return cls({r.id: r.desired for r in catalog}, catalog).canonical()

    @classmethod
    def least_protective(cls, catalog: RuleCatalog = DEFAULT_CATALOG) -> PolicyState:
        return cls({r.id: r.least_protective for r in catalog}, catalog)

    def __getitem__(self, rule_id: str) -> Any:
        return self._values[rule_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"PolicyState({self._values!r})"

    def replace(self, **changes) -> PolicyState:
        return PolicyState({**self._values, **changes}, self.catalog)

    def is_enabled(self, rule_id: str) -> bool:
        rule = self.catalog[rule_id]
        if rule.kind != ValueKind.ENABLED_WITH_SUBFIELDS:
            raise ValueError(f"Rule {rule_id} does not gate subfields")
        return bool(self._values[rule_id])

    def canonical(self) -> PolicyState:
        """Reset nested rules whose enabling rule is off.

        GitHub has nowhere to store review or status check settings once the
        enclosing block is null, so only the canonical form survives a
        round trip.
        """
        changes = {}
        for rule in self.catalog:
            if rule.parent is not None and not self._values[rule.parent]:
                if self._values[rule.id] != rule.least_protective:
                    changes[rule.id] = rule.least_protective
        return self.replace(**changes) if changes else self

    def block_values(self, block: Block) -> dict[str, Any]:
        return {r.id: self._values[r.id] for r in self.catalog.in_block(block)}

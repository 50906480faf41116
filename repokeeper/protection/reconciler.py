"""Reconciler — fetch, normalize, diff, pick a strategy, apply.

One run moves through::

    FETCHING -> NORMALIZING -> NO_CHANGE
                            -> DIFFING -> AWAITING_STRATEGY -> APPLYING -> DONE

There is no default strategy. ``reconcile`` takes either a
:class:`Strategy` or a chooser callable that sees the diff first (the CLI
uses this to prompt); a chooser returning None aborts the run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Callable, Union

from repokeeper.exceptions import PartialApplyWarning, ReconcileAborted
from repokeeper.protection.applier import apply_policy
from repokeeper.protection.catalog import DEFAULT_CATALOG, RuleCatalog
from repokeeper.protection.diff import PolicyDiff, diff_states
from repokeeper.protection.normalizer import fetch_remote, normalize_payload, unmanaged_settings
from repokeeper.protection.state import PolicyState, RepoRef
from repokeeper.protection.strategies import Strategy, compute_target

if TYPE_CHECKING:
    from repokeeper.github.protection_api import ProtectionApi

logger = logging.getLogger(__name__)


class Phase(Enum):
    FETCHING = "fetching"
    NORMALIZING = "normalizing"
    NO_CHANGE = "no_change"
    DIFFING = "diffing"
    AWAITING_STRATEGY = "awaiting_strategy"
    APPLYING = "applying"
    DONE = "done"


@dataclass
class DiffReport:
    """Preview of what reconciling would change. Nothing is written."""

    repo: RepoRef
    current: PolicyState
    desired: PolicyState
    diff: PolicyDiff
    unmanaged: list[str] = field(default_factory=list)  # Remote settings an apply would clear

    @property
    def any_changed(self) -> bool:
        return self.diff.any_changed


@dataclass
class Report:
    """Outcome of a reconcile run."""

    repo: RepoRef
    diff: PolicyDiff
    strategy: Strategy | None = None
    applied: PolicyState | None = None
    target_diff: PolicyDiff | None = None  # current -> applied
    warnings: list[PartialApplyWarning] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.applied is not None

    def summary(self) -> str:
        if not self.changed:
            return f"{self.repo}: no changes needed"
        changed = len(self.target_diff.changed_rules) if self.target_diff else 0
        text = f"{self.repo}: applied {self.strategy.value} ({changed} rule(s) changed)"
        if self.warnings:
            text += f" with {len(self.warnings)} warning(s)"
        return text


StrategyChooser = Callable[[DiffReport], Union[Strategy, str, None]]


class Reconciler:
    """Runs reconciliation for one repository branch at a time."""

    def __init__(self, api: ProtectionApi, catalog: RuleCatalog = DEFAULT_CATALOG):
        self.api = api
        self.catalog = catalog
        self.phase: Phase | None = None

    def _enter(self, phase: Phase, repo: RepoRef) -> None:
        self.phase = phase
        logger.debug("%s: %s", repo, phase.value)

    def preview(self, repo: RepoRef) -> DiffReport:
        """Fetch and compare without writing anything."""
        self._enter(Phase.FETCHING, repo)
        payload, signatures = fetch_remote(self.api, repo)

        self._enter(Phase.NORMALIZING, repo)
        current = normalize_payload(payload, signatures, self.catalog)
        desired = PolicyState.desired(self.catalog)

        diff = diff_states(current, desired)
        self._enter(Phase.DIFFING if diff.any_changed else Phase.NO_CHANGE, repo)
        return DiffReport(
            repo=repo,
            current=current,
            desired=desired,
            diff=diff,
            unmanaged=unmanaged_settings(payload),
        )

    def reconcile(self, repo: RepoRef, strategy: Strategy | str | StrategyChooser) -> Report:
        preview = self.preview(repo)
        report = Report(repo=repo, diff=preview.diff)
        if not preview.any_changed:
            logger.info("%s already matches the desired protection", repo)
            return report

        self._enter(Phase.AWAITING_STRATEGY, repo)
        choice = strategy(preview) if callable(strategy) else strategy
        if choice is None:
            raise ReconcileAborted(f"{repo}: no strategy chosen, nothing applied")
        report.strategy = Strategy(choice)

        target = compute_target(report.strategy, preview.current, preview.desired)

        self._enter(Phase.APPLYING, repo)
        for name in preview.unmanaged:
            logger.warning("%s: %s is not managed by repokeeper and will be removed", repo, name)
        result = apply_policy(self.api, repo, target)

        report.applied = result.applied
        report.warnings = result.warnings
        report.target_diff = diff_states(preview.current, result.applied)
        self._enter(Phase.DONE, repo)
        return report


def diff_only(api: ProtectionApi, repo: RepoRef, catalog: RuleCatalog = DEFAULT_CATALOG) -> DiffReport:
    """Preview reconciliation for ``repo``."""
    return Reconciler(api, catalog).preview(repo)


def reconcile(
    api: ProtectionApi,
    repo: RepoRef,
    strategy: Strategy | str | StrategyChooser,
    catalog: RuleCatalog = DEFAULT_CATALOG,
) -> Report:
    """Bring ``repo``'s protection in line with the catalog using ``strategy``."""
    return Reconciler(api, catalog).reconcile(repo, strategy)

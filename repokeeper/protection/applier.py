"""Policy applier — write a target PolicyState back to the remote.

The main ``PUT .../protection`` body carries every rule except signed
commits, which GitHub only exposes as its own sub-resource.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from repokeeper.exceptions import ApplyRejected, GitHubAPIError, PartialApplyWarning
from repokeeper.protection.catalog import Block
from repokeeper.protection.state import PolicyState, RepoRef

if TYPE_CHECKING:
    from repokeeper.github.protection_api import ProtectionApi

logger = logging.getLogger(__name__)


@dataclass
class ApplyResult:
    """What was written, and any non-fatal problems along the way."""

    applied: PolicyState
    warnings: list[PartialApplyWarning] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.warnings


def _nested_block(state: PolicyState, block: Block) -> dict[str, Any] | None:
    """Serialize a gated block, or None when its enabling rule is off.

    GitHub treats ``null`` as "remove this block" and ``{}`` as "enable with
    defaults", so a disabled block must be sent as ``None``.
    """
    rules = state.catalog.in_block(block)
    gate = next(r for r in rules if r.parent is None)
    if not state[gate.id]:
        return None

    body: dict[str, Any] = {}
    for rule in rules:
        if rule.parent is not None:
            value = state[rule.id]
            body[rule.api_field] = list(value) if isinstance(value, tuple) else value
    return body


def build_payload(target: PolicyState) -> dict[str, Any]:
    """Build the ``PUT /repos/{owner}/{repo}/branches/{branch}/protection`` body."""
    state = target.canonical()
    payload: dict[str, Any] = {
        "required_status_checks": _nested_block(state, Block.STATUS_CHECKS),
        "required_pull_request_reviews": _nested_block(state, Block.PULL_REQUEST_REVIEWS),
        "restrictions": None,
    }
    for rule in state.catalog.in_block(Block.TOP_LEVEL):
        payload[rule.api_field] = state[rule.id]
    return payload


def apply_policy(api: ProtectionApi, repo: RepoRef, target: PolicyState) -> ApplyResult:
    """Apply ``target``: the main update first, then the signature sub-resource.

    Raises:
        ApplyRejected: if the main update fails. Nothing is assumed applied.
    """
    state = target.canonical()
    payload = build_payload(state)

    logger.info("Applying branch protection to %s", repo)
    try:
        api.apply_protection(repo, payload)
    except GitHubAPIError as e:
        raise ApplyRejected(str(repo), "update protection", e) from e

    result = ApplyResult(applied=state)

    for rule in state.catalog.in_block(Block.SIGNATURES):
        enabled = bool(state[rule.id])
        try:
            api.set_signature_requirement(repo, enabled)
        except GitHubAPIError as e:
            action = "enable" if enabled else "disable"
            warning = PartialApplyWarning(str(repo), f"{action} required signatures", e)
            logger.warning("%s (main protection rules were applied)", warning)
            result.warnings.append(warning)

    return result

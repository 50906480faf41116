"""State normalizer — turn a sparse protection document into a full PolicyState.

Absence always means "least protective": a missing review block means no
reviews are required, a missing ``{"enabled": ...}`` flag means the setting
is at its weakest. Absent and "present with the weakest value" are
indistinguishable after this step.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from repokeeper.exceptions import GitHubAPIError, RemoteStateUnavailable
from repokeeper.protection.catalog import DEFAULT_CATALOG, Block, RuleCatalog
from repokeeper.protection.state import (
    ABSENT,
    NOT_CONFIGURED,
    Absent,
    NotConfigured,
    PolicyState,
    Present,
    ProtectionDocument,
    RepoRef,
)

if TYPE_CHECKING:
    from repokeeper.github.protection_api import ProtectionApi

logger = logging.getLogger(__name__)


def _get(maybe, default):
    return maybe.value if isinstance(maybe, Present) else default


def normalize(
    document: ProtectionDocument | NotConfigured,
    signatures_required: bool = False,
    catalog: RuleCatalog = DEFAULT_CATALOG,
) -> PolicyState:
    """Map a parsed document plus the signature flag onto every catalog rule."""
    if isinstance(document, NotConfigured):
        return PolicyState.least_protective(catalog)

    values: dict[str, Any] = {}

    reviews = document.pull_request_reviews
    checks = document.status_checks

    for rule in catalog:
        weakest = rule.least_protective

        if rule.block == Block.PULL_REQUEST_REVIEWS:
            if isinstance(reviews, Absent):
                values[rule.id] = weakest
            elif rule.parent is None:
                values[rule.id] = True
            else:
                values[rule.id] = _get(getattr(reviews.value, rule.api_field, ABSENT), weakest)

        elif rule.block == Block.STATUS_CHECKS:
            if isinstance(checks, Absent):
                values[rule.id] = weakest
            elif rule.parent is None:
                values[rule.id] = True
            else:
                values[rule.id] = _get(getattr(checks.value, rule.api_field, ABSENT), weakest)

        elif rule.block == Block.SIGNATURES:
            values[rule.id] = signatures_required

        else:
            values[rule.id] = _get(document.flag(rule.api_field), weakest)

    return PolicyState(values, catalog)


def normalize_payload(
    payload: dict | NotConfigured,
    signatures_required: bool = False,
    catalog: RuleCatalog = DEFAULT_CATALOG,
) -> PolicyState:
    """Normalize a raw ``GET .../protection`` body (or ``NOT_CONFIGURED``)."""
    document = payload if isinstance(payload, NotConfigured) else ProtectionDocument.from_api(payload)
    return normalize(document, signatures_required, catalog)


def fetch_remote(api: ProtectionApi, repo: RepoRef) -> tuple[dict | NotConfigured, bool]:
    """Fetch the protection document and the signature sub-resource.

    Raises:
        RemoteStateUnavailable: if either call fails for any reason other
            than the branch having no protection configured.
    """
    try:
        payload = api.fetch_protection(repo)
    except GitHubAPIError as e:
        raise RemoteStateUnavailable(str(repo), "fetch protection", e) from e

    if isinstance(payload, NotConfigured):
        logger.info("%s has no branch protection configured", repo)
        return NOT_CONFIGURED, False

    try:
        signatures = api.fetch_signature_requirement(repo)
    except GitHubAPIError as e:
        raise RemoteStateUnavailable(str(repo), "fetch signature requirement", e) from e

    logger.debug("Fetched protection for %s (signatures=%s)", repo, signatures)
    return payload, signatures


def fetch_current_state(
    api: ProtectionApi,
    repo: RepoRef,
    catalog: RuleCatalog = DEFAULT_CATALOG,
) -> PolicyState:
    """Fetch and normalize in one step; callers never see the signature split."""
    payload, signatures = fetch_remote(api, repo)
    return normalize_payload(payload, signatures, catalog)


def unmanaged_settings(payload: dict | NotConfigured) -> list[str]:
    """Name settings present on the remote that the catalog does not manage.

    Applying always sends these as empty, so they are removed.
    """
    if isinstance(payload, NotConfigured):
        return []
    found = []
    if _has_entries(payload.get("restrictions")):
        found.append("restrictions")
    reviews = payload.get("required_pull_request_reviews")
    if isinstance(reviews, dict):
        for name in ("dismissal_restrictions", "bypass_pull_request_allowances"):
            if _has_entries(reviews.get(name)):
                found.append(f"required_pull_request_reviews.{name}")
    return found


def _has_entries(value: Any) -> bool:
    # GitHub reports these as {"users": [...], "teams": [...], "apps": [...], "url": ...}
    if isinstance(value, dict):
        return any(isinstance(v, list) and v for v in value.values())
    return bool(value)

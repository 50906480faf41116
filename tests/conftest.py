"""Shared fixtures: an in-memory stand-in for the GitHub protection endpoints."""

from __future__ import annotations

import pytest

from repokeeper.exceptions import GitHubAPIError
from repokeeper.protection.state import NOT_CONFIGURED, RepoRef


class FakeProtectionApi:
    """Stores protection the way GitHub reports it back from ``GET``.

    ``document`` is None when the branch has no protection.
    """

    def __init__(self, document: dict | None = None, signatures: bool = False):
        self.document = document
        self.signatures = signatures
        self.fetch_error: GitHubAPIError | None = None
        self.apply_error: GitHubAPIError | None = None
        self.signature_error: GitHubAPIError | None = None
        self.calls: list[str] = []
        self.payloads: list[dict] = []

    def fetch_protection(self, repo):
        self.calls.append("fetch_protection")
        if self.fetch_error:
            raise self.fetch_error
        return NOT_CONFIGURED if self.document is None else self.document

    def fetch_signature_requirement(self, repo):
        self.calls.append("fetch_signature_requirement")
        return self.signatures

    def apply_protection(self, repo, payload):
        self.calls.append("apply_protection")
        if self.apply_error:
            raise self.apply_error
        self.payloads.append(payload)
        self.document = as_get_response(payload, self.signatures)

    def set_signature_requirement(self, repo, enabled):
        self.calls.append(f"set_signature_requirement:{enabled}")
        if self.signature_error:
            raise self.signature_error
        self.signatures = enabled


def as_get_response(payload: dict, signatures: bool = False) -> dict:
    """Translate a PUT body into the shape GitHub returns from GET."""
    doc: dict = {"url": "https://api.github.com/repos/acme/widgets/branches/main/protection"}
    reviews = payload.get("required_pull_request_reviews")
    if reviews is not None:
        doc["required_pull_request_reviews"] = dict(reviews)
    checks = payload.get("required_status_checks")
    if checks is not None:
        doc["required_status_checks"] = {
            "strict": checks["strict"],
            "contexts": list(checks["contexts"]),
            "checks": [{"context": c, "app_id": None} for c in checks["contexts"]],
        }
    for key, value in payload.items():
        if isinstance(value, bool):
            doc[key] = {"enabled": value}
    doc["required_signatures"] = {"enabled": signatures}
    return doc


@pytest.fixture
def repo() -> RepoRef:
    return RepoRef(owner="acme", name="widgets", branch="main")


@pytest.fixture
def fake_api() -> FakeProtectionApi:
    return FakeProtectionApi()


@pytest.fixture
def to_get_response():
    return as_get_response

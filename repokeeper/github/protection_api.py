"""The four remote operations the protection engine needs, and their GitHub form.

The engine only talks to :class:`ProtectionApi`, so tests (or another
hosting service) can provide their own implementation.
"""

from __future__ import annotations

from typing import Protocol

from repokeeper.exceptions import GitHubAPIError
from repokeeper.github.client import GitHubClient
from repokeeper.protection.state import NOT_CONFIGURED, NotConfigured, RepoRef

NOT_PROTECTED_MESSAGE = "Branch not protected"


class ProtectionApi(Protocol):
    """Remote surface for one repository branch's protection settings."""

    def fetch_protection(self, repo: RepoRef) -> dict | NotConfigured: ...

    def fetch_signature_requirement(self, repo: RepoRef) -> bool: ...

    def apply_protection(self, repo: RepoRef, payload: dict) -> None: ...

    def set_signature_requirement(self, repo: RepoRef, enabled: bool) -> None: ...


def _is_not_protected(error: GitHubAPIError) -> bool:
    return error.is_not_found and NOT_PROTECTED_MESSAGE.lower() in error.detail.lower()


class GitHubProtectionApi:
    """:class:`ProtectionApi` over the GitHub branch protection endpoints."""

    def __init__(self, client: GitHubClient):
        self.client = client

    @staticmethod
    def _path(repo: RepoRef, suffix: str = "") -> str:
        return f"/repos/{repo.full_name}/branches/{repo.branch}/protection{suffix}"

    def fetch_protection(self, repo: RepoRef) -> dict | NotConfigured:
        try:
            return self.client.get_json(self._path(repo))
        except GitHubAPIError as e:
            # A plain 404 means the repo or branch is missing, which is an error
            if _is_not_protected(e):
                return NOT_CONFIGURED
            raise

    def fetch_signature_requirement(self, repo: RepoRef) -> bool:
        try:
            data = self.client.get_json(self._path(repo, "/required_signatures"))
        except GitHubAPIError as e:
            if _is_not_protected(e):
                return False
            raise
        return bool(data.get("enabled", False))

    def apply_protection(self, repo: RepoRef, payload: dict) -> None:
        self.client.request("PUT", self._path(repo), json=payload)

    def set_signature_requirement(self, repo: RepoRef, enabled: bool) -> None:
        method = "POST" if enabled else "DELETE"
        self.client.request(method, self._path(repo, "/required_signatures"))

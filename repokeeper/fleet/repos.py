"""Fetch, filter and sort an owner's repositories."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from repokeeper.github.client import GitHubClient

SORT_METHODS = ("latest", "stars", "name", "visibility")
VISIBILITY_FILTERS = ("all", "public", "private")


@dataclass
class RepoInfo:
    """The fields of a repository the fleet views care about."""

    name: str
    full_name: str
    private: bool = False
    stars: int = 0
    updated_at: str = ""
    license_key: str | None = None
    default_branch: str = ""
    is_empty: bool = False
    archived: bool = False
    fork: bool = False

    @property
    def visibility(self) -> str:
        return "private" if self.private else "public"

    @property
    def flags(self) -> list[str]:
        return [
            name
            for name, enabled in (("archived", self.archived), ("empty", self.is_empty), ("fork", self.fork))
            if enabled
        ]

    @classmethod
    def from_api(cls, data: dict) -> RepoInfo:
        license_data = data.get("license") or {}
        return cls(
            name=data.get("name", ""),
            full_name=data.get("full_name", ""),
            private=bool(data.get("private", False)),
            stars=int(data.get("stargazers_count", 0) or 0),
            updated_at=data.get("updated_at") or "",
            license_key=license_data.get("key") or None,
            default_branch=data.get("default_branch") or "",
            # The REST API has no "empty" flag; a repo with no content reports size 0
            is_empty=data.get("size", 0) == 0,
            archived=bool(data.get("archived", False)),
            fork=bool(data.get("fork", False)),
        )


def fetch_repos(
    client: GitHubClient,
    owner: str | None = None,
    visibility: str = "all",
    limit: int = 100,
) -> list[RepoInfo]:
    """List repositories owned by ``owner`` (default: the authenticated user).

    Other users' private repositories are not visible, so for them the
    ``private`` filter simply returns nothing.
    """
    if visibility not in VISIBILITY_FILTERS:
        raise ValueError(f"Invalid filter '{visibility}'. Use: {', '.join(VISIBILITY_FILTERS)}")
    if limit <= 0:
        raise ValueError("limit must be a positive integer")

    if owner is None:
        items: Iterable[dict] = client.paginate(
            "/user/repos",
            params={"affiliation": "owner", "visibility": visibility, "sort": "updated"},
            limit=limit,
        )
        return [RepoInfo.from_api(item) for item in items]

    repos = []
    for item in client.paginate(f"/users/{owner}/repos", params={"type": "owner", "sort": "updated"}):
        repo = RepoInfo.from_api(item)
        if visibility != "all" and repo.visibility != visibility:
            continue
        repos.append(repo)
        if len(repos) >= limit:
            break
    return repos


def sort_repos(repos: Iterable[RepoInfo], method: str = "latest") -> list[RepoInfo]:
    """Sort repositories for display."""
    if method == "latest":
        return sorted(repos, key=lambda r: r.updated_at, reverse=True)
    if method == "stars":
        return sorted(repos, key=lambda r: r.stars, reverse=True)
    if method == "name":
        return sorted(repos, key=lambda r: r.name.lower())
    if method == "visibility":
        return sorted(repos, key=lambda r: r.private)
    raise ValueError(f"Invalid sort method '{method}'. Use: {', '.join(SORT_METHODS)}")

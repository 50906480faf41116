"""License checks across a fleet, and adding a LICENSE file to a repository."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from repokeeper.fleet.repos import RepoInfo
from repokeeper.github.client import GitHubClient

logger = logging.getLogger(__name__)

LICENSE_PATH = "LICENSE"


@dataclass
class LicenseSummary:
    """How many repositories carry the expected license."""

    license_key: str
    matching: list[RepoInfo] = field(default_factory=list)
    other: list[RepoInfo] = field(default_factory=list)
    unlicensed: list[RepoInfo] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.matching) + len(self.other) + len(self.unlicensed)

    @property
    def all_compliant(self) -> bool:
        return len(self.matching) == self.total


def summarize_licenses(repos: list[RepoInfo], license_key: str = "gpl-3.0") -> LicenseSummary:
    summary = LicenseSummary(license_key=license_key)
    for repo in repos:
        if repo.license_key == license_key:
            summary.matching.append(repo)
        elif repo.license_key:
            summary.other.append(repo)
        else:
            summary.unlicensed.append(repo)
    return summary


def license_candidates(repos: list[RepoInfo], license_key: str = "gpl-3.0") -> list[RepoInfo]:
    """Repositories the license could be added to. Archived and empty repos are excluded."""
    return [
        r for r in repos
        if r.license_key != license_key and not r.archived and not r.is_empty
    ]


def add_license(
    client: GitHubClient,
    repo: RepoInfo,
    body: str,
    message: str = "Add GNU GPL v3 license",
) -> None:
    """Create ``LICENSE`` or replace the existing one."""
    sha = client.file_sha(repo.full_name, LICENSE_PATH)
    logger.info("%s LICENSE in %s", "Replacing" if sha else "Creating", repo.full_name)
    client.put_file(repo.full_name, LICENSE_PATH, body, message, sha=sha)
